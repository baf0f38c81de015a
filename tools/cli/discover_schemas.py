#!/usr/bin/env python3
"""Discover live-data schemas from the DFlow Prediction Markets API.

Crawls events, samples their live data, and writes:

    <output-dir>/live-data-types.ts
    <output-dir>/examples/<type>.json
    <output-dir>/templates/<type>.json
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import requests
import yaml

from packages.dflow.codegen import write_artifacts
from packages.dflow.http_client import ApiError
from packages.dflow.live_data_crawl import (
    CrawlConfig,
    collect_samples,
    resolve_events,
    resolve_series_tickers,
    resolve_targets,
)
from packages.dflow.prediction_markets import (
    DEFAULT_PREDICTION_MARKETS_API_BASE,
    PredictionMarketsClient,
)
from dflowtool.reports.summary import build_crawl_lines, build_discovery_summary

logger = logging.getLogger(__name__)

ENV_API_BASE = "DFLOW_PREDICTION_MARKETS_API_URL"
ENV_API_KEY = "DFLOW_API_KEY"
DEFAULT_OUTPUT_DIR = "generated"
DEFAULT_CONFIG_FILES = ("dflowtool.yaml", "dflowtool.yml")
CONFIG_SECTION = "discover_schemas"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

# Local config keys that map straight onto CrawlConfig fields.
_CRAWL_CONFIG_KEYS = (
    "max_samples_per_type",
    "events_per_batch",
    "series_batch_size",
    "min_events_before_early_stop",
    "max_events_to_check",
    "events_after_last_new_type",
    "progress_every",
)


def _load_local_config(config_path: Optional[str]) -> Dict[str, Any]:
    """Load the ``discover_schemas`` section of the dflowtool YAML config."""
    paths_to_try: list[Path] = []
    if config_path:
        paths_to_try.append(Path(config_path))
    else:
        paths_to_try.extend(Path(name) for name in DEFAULT_CONFIG_FILES)

    for path in paths_to_try:
        if not path.exists():
            if config_path:
                logger.warning(f"Config file not found: {path}")
            continue
        try:
            payload = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as exc:
            logger.warning(f"Ignoring unreadable config {path}: {exc}")
            continue
        if not isinstance(payload, dict):
            return {}
        section = payload.get(CONFIG_SECTION, {})
        return section if isinstance(section, dict) else {}
    return {}


def build_crawl_config(args: argparse.Namespace, local_config: Dict[str, Any]) -> CrawlConfig:
    """CLI flags override the local config, which overrides built-in defaults."""
    config = CrawlConfig()
    for key in _CRAWL_CONFIG_KEYS:
        if key in local_config:
            setattr(config, key, int(local_config[key]))
    if "delay_ms" in local_config:
        config.delay_seconds = float(local_config["delay_ms"]) / 1000.0

    if args.max_events is not None:
        config.max_events_to_check = args.max_events
    if args.max_samples is not None:
        config.max_samples_per_type = args.max_samples
    if args.delay_ms is not None:
        config.delay_seconds = args.delay_ms / 1000.0
    return config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dflowtool discover-schemas",
        description="Discover live-data type schemas by crawling the Prediction Markets API.",
    )
    parser.add_argument(
        "filters",
        nargs="*",
        help="Category or tag names to crawl (default: Sports category)",
    )
    parser.add_argument("--all", dest="crawl_all", action="store_true", help="Crawl every category.")
    parser.add_argument(
        "--output-dir",
        default=None,
        help=f"Directory for generated files (default: {DEFAULT_OUTPUT_DIR})",
    )
    parser.add_argument(
        "--api-base",
        default=None,
        help=f"API base URL (default: ${ENV_API_BASE} or {DEFAULT_PREDICTION_MARKETS_API_BASE})",
    )
    parser.add_argument("--config", default=None, help="Path to a dflowtool YAML config file.")
    parser.add_argument("--max-events", type=int, default=None, help="Hard cap on events to check.")
    parser.add_argument("--max-samples", type=int, default=None, help="Samples kept per type.")
    parser.add_argument("--delay-ms", type=int, default=None, help="Delay between API calls (ms).")
    parser.add_argument("--log-level", choices=LOG_LEVELS, default="INFO")
    return parser


def run_discovery(
    client: PredictionMarketsClient,
    filters: List[str],
    crawl_all: bool,
    config: CrawlConfig,
    output_dir: Path,
) -> int:
    """Plan the crawl, collect samples, and write artifacts.

    Planning failures propagate to the caller.
    """
    print("Step 1: Fetching categories and tags...")
    tags_by_categories = client.get_tags_by_categories()
    print(f"  Categories: {', '.join(tags_by_categories)}")
    targets = resolve_targets(tags_by_categories, filters, crawl_all=crawl_all)

    print("Step 2: Finding series...")
    series_tickers = resolve_series_tickers(client, targets, config)
    print(f"  Found {len(series_tickers)} series")

    print("Step 3: Fetching events...")
    events = resolve_events(client, series_tickers, config)
    print(f"  Found {len(events)} unique events")

    print("Step 4: Fetching live data for each event...")
    state = collect_samples(client, events, config)
    print("")
    for line in build_crawl_lines(state):
        print(line)
    print("")

    if not state.type_map:
        print(
            "No live data types found. This can happen if no events are "
            "currently live or recently completed."
        )
        print("Try again later, or try: --all to crawl every category.")
        return 0

    print("Step 5: Generating output files...")
    paths = write_artifacts(state.type_map, output_dir)
    print(f"  Types:     {paths.types_path}")
    for type_name in state.type_map:
        print(f"  Example:   {paths.example_paths[type_name]}")
        print(f"  Template:  {paths.template_paths[type_name]}")
    print("")

    for line in build_discovery_summary(state.type_map):
        print(line)
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(levelname)s %(name)s: %(message)s",
    )

    local_config = _load_local_config(args.config)
    try:
        config = build_crawl_config(args, local_config)
    except (TypeError, ValueError) as exc:
        print(f"Error: invalid crawl config: {exc}", file=sys.stderr)
        return 1

    api_base = (
        args.api_base
        or local_config.get("api_base")
        or os.getenv(ENV_API_BASE)
        or DEFAULT_PREDICTION_MARKETS_API_BASE
    )
    output_dir = Path(args.output_dir or local_config.get("output_dir") or DEFAULT_OUTPUT_DIR)

    print("DFlow Live Data Schema Discovery")
    print("=" * 50)
    print(f"API: {api_base}")
    print("")

    client = PredictionMarketsClient(base_url=api_base, api_key=os.getenv(ENV_API_KEY))
    try:
        return run_discovery(
            client,
            filters=args.filters,
            crawl_all=args.crawl_all,
            config=config,
            output_dir=output_dir,
        )
    except (ApiError, requests.RequestException, ValueError, OSError) as exc:
        logger.error(f"Schema discovery failed: {exc}")
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
