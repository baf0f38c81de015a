"""Offline tests for crawl planning, sample collection and stop conditions."""

from __future__ import annotations

import logging

import pytest
import requests

from packages.dflow.live_data_crawl import (
    DEFAULT_CATEGORY,
    CrawlConfig,
    CrawlState,
    CrawlTargets,
    TypeEntry,
    collect_samples,
    resolve_events,
    resolve_series_tickers,
    resolve_targets,
    should_stop,
)
from packages.dflow.prediction_markets import EventRef
from tests._fakes import FakePredictionMarketsClient

TAGS_BY_CATEGORIES = {
    "Sports": ["Basketball", "Golf", "Football"],
    "Politics": ["Elections"],
    "Crypto": [],
}


def _config(**overrides) -> CrawlConfig:
    config = CrawlConfig(delay_seconds=0)
    for key, value in overrides.items():
        setattr(config, key, value)
    return config


def _events(count: int) -> list[EventRef]:
    return [EventRef(ticker=f"EV-{i}") for i in range(1, count + 1)]


# -- planning ---------------------------------------------------------------


def test_resolve_targets_crawl_all_uses_every_category():
    targets = resolve_targets(TAGS_BY_CATEGORIES, ["Basketball"], crawl_all=True)
    assert targets.categories == ["Sports", "Politics", "Crypto"]
    assert targets.tags == []
    assert targets.mode == "all"


def test_resolve_targets_defaults_to_sports():
    targets = resolve_targets(TAGS_BY_CATEGORIES, [])
    assert targets.categories == [DEFAULT_CATEGORY] == ["Sports"]
    assert targets.mode == "default"


def test_resolve_targets_prefers_category_over_tag():
    targets = resolve_targets({"Golf": [], "Sports": ["Golf"]}, ["Golf"])
    assert targets.categories == ["Golf"]
    assert targets.tags == []


def test_unknown_filter_token_warns_once_and_is_skipped(caplog):
    caplog.set_level(logging.WARNING, logger="packages.dflow.live_data_crawl")

    targets = resolve_targets(TAGS_BY_CATEGORIES, ["Basketball", "NotARealTag"])

    assert targets.categories == []
    assert targets.tags == ["Basketball"]
    assert targets.unknown_tokens == ["NotARealTag"]
    warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
    assert len(warnings) == 1
    assert "NotARealTag" in warnings[0].getMessage()


def test_resolve_series_tickers_deduplicates_across_categories_and_tags():
    client = FakePredictionMarketsClient(
        series_by_category={"Sports": ["KXNBA", "KXPGA"], "Politics": ["KXPRES"]},
        series_by_tag={"Basketball": ["KXNBA", "KXWNBA"], "Elections": ["KXPRES"]},
    )
    targets = CrawlTargets(categories=["Sports", "Politics"], tags=["Basketball", "Elections"])

    tickers = resolve_series_tickers(client, targets, _config())

    assert tickers == {"KXNBA", "KXPGA", "KXPRES", "KXWNBA"}
    assert ("series_by_tags", ["Basketball", "Elections"]) in client.calls
    assert sum(1 for name, _ in client.calls if name == "series_by_tags") == 1


def test_resolve_series_tickers_skips_tag_query_without_tags():
    client = FakePredictionMarketsClient(series_by_category={"Sports": ["KXNBA"]})
    resolve_series_tickers(client, CrawlTargets(categories=["Sports"]), _config())
    assert [name for name, _ in client.calls] == ["series_by_category"]


def test_resolve_events_batches_series_and_deduplicates_events():
    series = {f"S{i:02d}" for i in range(23)}
    events_by_series = {s: [f"{s}-E1", "SHARED"] for s in series}
    client = FakePredictionMarketsClient(events_by_series=events_by_series)

    events = resolve_events(client, series, _config())

    batches = [arg for name, arg in client.calls if name == "events"]
    assert [len(batch) for batch, _ in batches] == [10, 10, 3]
    assert all(limit == 10 for _, limit in batches)
    tickers = [e.ticker for e in events]
    assert len(tickers) == len(set(tickers)) == 24
    assert tickers[:2] == ["S00-E1", "SHARED"]


def test_resolve_events_pauses_after_each_batch(monkeypatch):
    sleeps: list[float] = []
    monkeypatch.setattr("packages.dflow.live_data_crawl.time.sleep", sleeps.append)
    client = FakePredictionMarketsClient()

    resolve_events(client, {f"S{i}" for i in range(15)}, _config(delay_seconds=0.1))

    assert sleeps == [0.1, 0.1]


# -- collection -------------------------------------------------------------


def test_collect_samples_buckets_by_type_and_caps_samples():
    live_data = {
        f"EV-{i}": [{"type": "basketball_game", "details": {"home": i}, "milestone_id": "m"}]
        for i in range(1, 8)
    }
    live_data["EV-3"].append({"type": "golf_tournament", "details": {"leader": "A"}})
    client = FakePredictionMarketsClient(live_data=live_data)

    state = collect_samples(client, _events(7), _config(max_samples_per_type=5))

    assert list(state.type_map) == ["basketball_game", "golf_tournament"]
    bucket = state.type_map["basketball_game"]
    assert bucket.samples == [{"home": i} for i in range(1, 6)]
    assert bucket.event_tickers == ["EV-1", "EV-2", "EV-3", "EV-4", "EV-5"]
    assert state.found == 8
    assert state.checked == 7
    assert state.last_new_type_at == 3
    assert state.stop_reason == "exhausted"


def test_collect_samples_treats_event_failures_as_no_data():
    def factory(ticker: str):
        if ticker == "EV-1":
            raise requests.ConnectionError("boom")
        if ticker == "EV-2":
            raise ValueError("not json")
        if ticker == "EV-3":
            return [{"type": "tennis_match", "details": {"set": 1}}]
        return []

    client = FakePredictionMarketsClient(live_data_factory=factory)
    state = collect_samples(client, _events(5), _config())

    assert state.checked == 5
    assert list(state.type_map) == ["tennis_match"]
    assert client.live_data_calls() == ["EV-1", "EV-2", "EV-3", "EV-4", "EV-5"]


def test_collect_samples_missing_api_data_is_not_fatal():
    client = FakePredictionMarketsClient(live_data={})
    state = collect_samples(client, _events(3), _config())
    assert state.checked == 3
    assert state.type_map == {}


def test_entries_without_type_or_details_are_discarded_but_empty_details_kept():
    client = FakePredictionMarketsClient(
        live_data={
            "EV-1": [
                {"type": "soccer_game"},
                {"details": {"x": 1}},
                {"type": "soccer_game", "details": None},
                {"type": "cricket_match", "details": {}},
            ]
        }
    )
    state = collect_samples(client, _events(1), _config())

    assert list(state.type_map) == ["cricket_match"]
    assert state.type_map["cricket_match"].samples == [{}]
    assert state.found == 1


def test_collect_samples_pauses_after_every_event(monkeypatch):
    sleeps: list[float] = []
    monkeypatch.setattr("packages.dflow.live_data_crawl.time.sleep", sleeps.append)
    client = FakePredictionMarketsClient(live_data={"EV-2": []})

    collect_samples(client, _events(3), _config(delay_seconds=0.25))

    assert sleeps == [0.25, 0.25, 0.25]


# -- stop conditions --------------------------------------------------------


def _single_discovery_factory(at_ticker: str):
    def factory(ticker: str):
        if ticker == at_ticker:
            return [{"type": "basketball_game", "details": {"home": 1}}]
        return []

    return factory


def test_hard_cap_stops_crawl():
    client = FakePredictionMarketsClient(live_data_factory=lambda t: [])
    state = collect_samples(client, _events(600), _config())

    assert state.checked == 500
    assert state.stop_reason == "max_events"
    assert len(client.live_data_calls()) == 500


def test_crawl_without_any_type_runs_to_hard_cap():
    client = FakePredictionMarketsClient(live_data_factory=lambda t: [])
    state = collect_samples(
        client,
        _events(600),
        _config(max_events_to_check=500, min_events_before_early_stop=100),
    )
    assert state.type_map == {}
    assert state.checked == 500


def test_early_stop_waits_for_minimum_event_count():
    client = FakePredictionMarketsClient(live_data_factory=_single_discovery_factory("EV-1"))
    state = collect_samples(
        client,
        _events(600),
        _config(min_events_before_early_stop=100, events_after_last_new_type=10),
    )

    assert state.last_new_type_at == 1
    assert state.checked == 100
    assert state.stop_reason == "no_new_types"


def test_early_stop_after_quiet_window_following_last_discovery():
    client = FakePredictionMarketsClient(live_data_factory=_single_discovery_factory("EV-50"))
    state = collect_samples(client, _events(600), _config())

    assert state.last_new_type_at == 50
    assert state.checked == 150
    assert state.stop_reason == "no_new_types"


def test_new_discovery_resets_quiet_window():
    def factory(ticker: str):
        if ticker in ("EV-50", "EV-140"):
            return [{"type": f"type_{ticker}", "details": {"n": 1}}]
        return []

    client = FakePredictionMarketsClient(live_data_factory=factory)
    state = collect_samples(client, _events(600), _config())

    assert state.last_new_type_at == 140
    assert state.checked == 240


@pytest.mark.parametrize(
    "checked,last_new,types,expected",
    [
        (500, 0, False, "max_events"),
        (99, 0, True, None),
        (100, 0, True, "no_new_types"),
        (150, 51, True, None),
        (150, 50, True, "no_new_types"),
        (300, 0, False, None),
    ],
)
def test_should_stop(checked, last_new, types, expected):
    state = CrawlState(checked=checked, last_new_type_at=last_new)
    if types:
        state.type_map["basketball_game"] = TypeEntry()
    assert should_stop(state, _config()) == expected
