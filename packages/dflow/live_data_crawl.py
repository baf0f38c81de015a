"""Crawl planning and live-data sample collection.

The crawl is strictly sequential: one request at a time with a fixed delay
after every batch- and event-level call. The number of live-data types is not
known up front, so the collector stops early once no new type has shown up
for a while. That early stop is a best-effort heuristic and can end the crawl
before a rare type is ever seen.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Optional

import requests

from .http_client import ApiError
from .prediction_markets import EventRef, PredictionMarketsClient

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "Sports"


@dataclass
class CrawlConfig:
    """Tuning constants for one crawl."""

    delay_seconds: float = 0.1
    max_samples_per_type: int = 5
    events_per_batch: int = 10
    series_batch_size: int = 10
    min_events_before_early_stop: int = 100
    max_events_to_check: int = 500
    events_after_last_new_type: int = 100
    progress_every: int = 25


@dataclass
class CrawlTargets:
    """Categories and tags selected from the CLI filters."""

    categories: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    unknown_tokens: list[str] = field(default_factory=list)
    mode: str = "default"


@dataclass
class TypeEntry:
    """Samples collected for one live-data type, with their source events."""

    samples: list[Any] = field(default_factory=list)
    event_tickers: list[str] = field(default_factory=list)


@dataclass
class CrawlState:
    """Counters and discovered buckets for a single crawl."""

    checked: int = 0
    found: int = 0
    last_new_type_at: int = 0
    type_map: dict[str, TypeEntry] = field(default_factory=dict)
    stop_reason: Optional[str] = None


def _pause(config: CrawlConfig) -> None:
    if config.delay_seconds > 0:
        time.sleep(config.delay_seconds)


def resolve_targets(
    tags_by_categories: dict[str, list[str]],
    filters: list[str],
    crawl_all: bool = False,
) -> CrawlTargets:
    """Classify filter tokens as categories or tags.

    Categories win over tags when a token names both. Tokens matching neither
    are skipped with a warning.
    """
    all_categories = list(tags_by_categories)

    if crawl_all:
        logger.info("Mode: crawling ALL categories")
        return CrawlTargets(categories=all_categories, mode="all")

    if not filters:
        logger.info(f"Mode: default ({DEFAULT_CATEGORY} category)")
        return CrawlTargets(categories=[DEFAULT_CATEGORY], mode="default")

    all_tags = {tag for tags in tags_by_categories.values() for tag in (tags or []) if tag}
    targets = CrawlTargets(mode="filtered")
    for token in filters:
        if token in tags_by_categories:
            targets.categories.append(token)
        elif token in all_tags:
            targets.tags.append(token)
        else:
            logger.warning(f'"{token}" not found as a category or tag, skipping.')
            targets.unknown_tokens.append(token)

    logger.info(
        f"Mode: filtered - categories: [{', '.join(targets.categories)}], "
        f"tags: [{', '.join(targets.tags)}]"
    )
    return targets


def resolve_series_tickers(
    client: PredictionMarketsClient,
    targets: CrawlTargets,
    config: CrawlConfig,
) -> set[str]:
    """Union the series tickers of every target category and tag."""
    tickers: set[str] = set()
    for category in targets.categories:
        tickers.update(client.get_series_by_category(category))
        _pause(config)

    if targets.tags:
        tickers.update(client.get_series_by_tags(targets.tags))

    logger.info(f"Found {len(tickers)} series")
    return tickers


def resolve_events(
    client: PredictionMarketsClient,
    series_tickers: set[str],
    config: CrawlConfig,
) -> list[EventRef]:
    """Fetch a capped number of events per batch of series, deduplicated by ticker."""
    tickers = sorted(series_tickers)
    events: dict[str, EventRef] = {}
    size = max(1, config.series_batch_size)

    for start in range(0, len(tickers), size):
        batch = tickers[start:start + size]
        for event in client.get_events(series_tickers=batch, limit=config.events_per_batch):
            events.setdefault(event.ticker, event)
        _pause(config)

    logger.info(f"Found {len(events)} unique events")
    return list(events.values())


def should_stop(state: CrawlState, config: CrawlConfig) -> Optional[str]:
    """Return a stop reason once either stop condition holds, else None."""
    if state.checked >= config.max_events_to_check:
        return "max_events"
    if (
        state.type_map
        and state.checked >= config.min_events_before_early_stop
        and state.checked - state.last_new_type_at >= config.events_after_last_new_type
    ):
        return "no_new_types"
    return None


def _record_entries(state: CrawlState, event: EventRef, entries: list, config: CrawlConfig) -> None:
    for entry in entries:
        if not entry.type or entry.details is None:
            continue
        state.found += 1

        bucket = state.type_map.get(entry.type)
        if bucket is None:
            bucket = TypeEntry()
            state.type_map[entry.type] = bucket
            state.last_new_type_at = state.checked
            logger.info(f"New type discovered: {entry.type} (from {event.ticker})")

        if len(bucket.samples) < config.max_samples_per_type:
            bucket.samples.append(entry.details)
            bucket.event_tickers.append(event.ticker)


def collect_samples(
    client: PredictionMarketsClient,
    events: list[EventRef],
    config: CrawlConfig,
    state: Optional[CrawlState] = None,
) -> CrawlState:
    """Fetch live data event by event and bucket the details by type.

    Per-event failures (HTTP errors, network errors, undecodable bodies) are
    expected, since most events carry no live data, and count as zero entries.
    """
    state = state or CrawlState()

    for event in events:
        state.checked += 1

        if config.progress_every and state.checked % config.progress_every == 0:
            types_so_far = ", ".join(state.type_map) or "(none yet)"
            logger.info(
                f"Progress: {state.checked}/{len(events)} events checked | "
                f"{state.found} hits | types: {types_so_far}"
            )

        try:
            entries = client.get_live_data_by_event(event.ticker)
        except (ApiError, requests.RequestException, ValueError) as e:
            logger.debug(f"No live data for {event.ticker}: {e}")
            entries = []

        _record_entries(state, event, entries, config)
        _pause(config)

        state.stop_reason = should_stop(state, config)
        if state.stop_reason == "max_events":
            logger.info(f"Reached max events limit ({config.max_events_to_check}). Stopping.")
            break
        if state.stop_reason == "no_new_types":
            logger.info(
                f"No new types in {config.events_after_last_new_type} events "
                f"({len(state.type_map)} types found). Stopping early."
            )
            break
    else:
        state.stop_reason = "exhausted"

    logger.info(f"Done crawling. Checked {state.checked} events, found {state.found} live data entries.")
    return state
