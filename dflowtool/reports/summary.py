"""Discovery summary printed after a schema-discovery run."""

from __future__ import annotations

from typing import List, Mapping

from packages.dflow.codegen import interface_name, render_type
from packages.dflow.live_data_crawl import CrawlState, TypeEntry
from packages.dflow.schema_inference import ObjectType, is_optional, merge_multiple_samples

RULE_WIDTH = 50


def build_crawl_lines(state: CrawlState) -> List[str]:
    """One-line crawl totals plus the discovered type names."""
    names = ", ".join(state.type_map) or "(none)"
    return [
        f"Done crawling. Checked {state.checked} events, found {state.found} live data entries.",
        f"Discovered {len(state.type_map)} type(s): {names}",
    ]


def build_discovery_summary(type_map: Mapping[str, TypeEntry]) -> List[str]:
    """Per-type summary: interface name, sources, and top-level fields.

    Multi-line field types collapse to ``{...}`` to keep the output short.
    """
    lines = ["=" * RULE_WIDTH, "Summary", "=" * RULE_WIDTH, ""]
    for type_name, entry in type_map.items():
        total = len(entry.samples)
        merged = merge_multiple_samples(entry.samples)
        lines.append(f"{interface_name(type_name)} ({type_name}) - {total} sample(s)")
        lines.append(f"  Events: {', '.join(entry.event_tickers)}")
        if isinstance(merged, ObjectType):
            for key, info in merged.fields.items():
                rendered = render_type(info.type, total)
                short = "{...}" if "\n" in rendered else rendered
                opt = " (optional)" if is_optional(info, total) else ""
                lines.append(f"    {key}: {short}{opt}")
        lines.append("")
    return lines
