"""DFlow Prediction Markets API client (categories, series, events, live data)."""

import logging
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import quote

from .http_client import HttpClient

logger = logging.getLogger(__name__)

# Default Prediction Markets API base URL
DEFAULT_PREDICTION_MARKETS_API_BASE = "https://dev-prediction-markets-api.dflow.net"

API_KEY_HEADER = "x-api-key"


@dataclass
class EventRef:
    """Event identity as returned by the events listing."""

    ticker: str
    title: Optional[str] = None


@dataclass
class LiveDataEntry:
    """One live-data snapshot attached to an event.

    ``details`` is the raw payload whose shape varies by ``type``.
    """

    type: str
    details: Any
    milestone_id: Optional[str] = None


def _tickers(items: Any) -> list[str]:
    tickers: list[str] = []
    for item in items or []:
        if isinstance(item, dict) and item.get("ticker"):
            tickers.append(str(item["ticker"]))
    return tickers


def _details_missing(details: Any) -> bool:
    # Containers count as present even when empty.
    if isinstance(details, (dict, list)):
        return False
    return not details


class PredictionMarketsClient:
    """Client for the read-only Prediction Markets API."""

    def __init__(
        self,
        base_url: str = DEFAULT_PREDICTION_MARKETS_API_BASE,
        api_key: Optional[str] = None,
        timeout: float = 20.0,
    ):
        """
        Initialize Prediction Markets API client.

        Args:
            base_url: API base URL
            api_key: Optional API key, sent as ``x-api-key`` on every request
            timeout: Request timeout in seconds
        """
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers[API_KEY_HEADER] = api_key
        self.base_url = base_url
        self.client = HttpClient(base_url=base_url, timeout=timeout, default_headers=headers)

    def get_tags_by_categories(self) -> dict[str, list[str]]:
        """
        Fetch the category -> tags mapping (e.g. Sports -> [Basketball, ...]).

        Uses GET /api/v1/tags_by_categories. Categories with a null tag list
        map to an empty list.
        """
        response = self.client.get_json("/api/v1/tags_by_categories")
        raw = response.get("tagsByCategories") or {}
        return {str(category): [str(t) for t in (tags or []) if t] for category, tags in raw.items()}

    def get_series_by_category(self, category: str) -> list[str]:
        """Fetch series tickers for one category via GET /api/v1/series?category=..."""
        response = self.client.get_json("/api/v1/series", params={"category": category})
        return _tickers(response.get("series"))

    def get_series_by_tags(self, tags: list[str]) -> list[str]:
        """Fetch series tickers matching any of ``tags`` via GET /api/v1/series?tags=..."""
        response = self.client.get_json("/api/v1/series", params={"tags": ",".join(tags)})
        return _tickers(response.get("series"))

    def get_events(
        self,
        series_tickers: Optional[list[str]] = None,
        limit: Optional[int] = None,
    ) -> list[EventRef]:
        """
        Fetch events, optionally filtered by series tickers.

        Uses GET /api/v1/events?seriesTickers=<csv>&limit=<n>&withNestedMarkets=false
        """
        params: dict[str, Any] = {"withNestedMarkets": "false"}
        if series_tickers:
            params["seriesTickers"] = ",".join(series_tickers)
        if limit:
            params["limit"] = limit

        response = self.client.get_json("/api/v1/events", params=params)
        events: list[EventRef] = []
        for raw in response.get("events") or []:
            if not isinstance(raw, dict) or not raw.get("ticker"):
                continue
            events.append(EventRef(ticker=str(raw["ticker"]), title=raw.get("title")))
        return events

    def get_live_data_by_event(self, event_ticker: str) -> list[LiveDataEntry]:
        """
        Fetch live data for one event.

        Returns a list because multi-leg events can carry several entries.
        Entries without a ``type`` or without ``details`` are dropped; an
        empty ``details`` object is kept.
        """
        response = self.client.get_json(f"/api/v1/live_data/by-event/{quote(event_ticker, safe='')}")
        entries: list[LiveDataEntry] = []
        for raw in response.get("live_datas") or []:
            if not isinstance(raw, dict):
                continue
            type_name = raw.get("type")
            details = raw.get("details")
            if not type_name or _details_missing(details):
                continue
            entries.append(
                LiveDataEntry(
                    type=str(type_name),
                    details=details,
                    milestone_id=raw.get("milestone_id"),
                )
            )
        return entries

