"""DFlow Prediction Markets API client and live-data schema discovery package."""

from .http_client import ApiError, HttpClient
from .prediction_markets import EventRef, LiveDataEntry, PredictionMarketsClient
from .schema_inference import (
    FieldInfo,
    InferredType,
    infer_type,
    merge_multiple_samples,
    merge_types,
)
from .live_data_crawl import (
    CrawlConfig,
    CrawlState,
    CrawlTargets,
    TypeEntry,
    collect_samples,
    resolve_events,
    resolve_series_tickers,
    resolve_targets,
)
from .codegen import ArtifactPaths, generate_types_file, render_type, to_template, write_artifacts

__all__ = [
    "ApiError",
    "HttpClient",
    "EventRef",
    "LiveDataEntry",
    "PredictionMarketsClient",
    "FieldInfo",
    "InferredType",
    "infer_type",
    "merge_multiple_samples",
    "merge_types",
    "CrawlConfig",
    "CrawlState",
    "CrawlTargets",
    "TypeEntry",
    "collect_samples",
    "resolve_events",
    "resolve_series_tickers",
    "resolve_targets",
    "ArtifactPaths",
    "generate_types_file",
    "render_type",
    "to_template",
    "write_artifacts",
]
