"""TypeScript and JSON artifact generation for discovered live-data types.

Output layout under the output directory:

    live-data-types.ts     interfaces, the LiveData discriminated union, type guards
    examples/<type>.json   first raw sample, verbatim
    templates/<type>.json  first raw sample with every leaf replaced by a placeholder
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Mapping, Optional

from .live_data_crawl import TypeEntry
from .schema_inference import (
    UNDEFINED,
    ArrayType,
    InferredType,
    NullType,
    ObjectType,
    PrimitiveType,
    UnionType,
    is_optional,
    merge_multiple_samples,
)

logger = logging.getLogger(__name__)

TYPES_FILENAME = "live-data-types.ts"
EXAMPLES_DIRNAME = "examples"
TEMPLATES_DIRNAME = "templates"
INTERFACE_SUFFIX = "Details"
UNION_NAME = "LiveData"
EXAMPLE_MILESTONE_ID = "<milestone-uuid>"
TEMPLATE_MILESTONE_ID = "<string>"
REGENERATE_COMMAND = "python -m dflowtool discover-schemas"
MAX_ATTRIBUTED_EVENTS = 3

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")
_UNSAFE_FILENAME_RE = re.compile(r"[^A-Za-z0-9_.-]")


@dataclass
class ArtifactPaths:
    """Files written by one generation pass."""

    types_path: Path
    example_paths: dict[str, Path] = field(default_factory=dict)
    template_paths: dict[str, Path] = field(default_factory=dict)


def to_pascal_case(type_name: str) -> str:
    """basketball_game -> BasketballGame"""
    return "".join(part[:1].upper() + part[1:].lower() for part in re.split(r"[_-]", type_name))


def human_label(type_name: str) -> str:
    """basketball_game -> Basketball Game"""
    return " ".join(part[:1].upper() + part[1:] for part in type_name.split("_"))


def interface_name(type_name: str) -> str:
    return to_pascal_case(type_name) + INTERFACE_SUFFIX


def guard_name(type_name: str) -> str:
    return "is" + to_pascal_case(type_name)


def _property_name(key: str) -> str:
    if _IDENTIFIER_RE.match(key):
        return key
    return json.dumps(key)


def _string_literal(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


def artifact_filename(type_name: str) -> str:
    """JSON filename for a type; path separators and other unsafe characters become ``_``."""
    safe = _UNSAFE_FILENAME_RE.sub("_", type_name).strip(".") or "_"
    if safe != type_name:
        logger.warning(f"Type name {type_name!r} written as {safe!r}")
    return f"{safe}.json"


def render_type(t: InferredType, total_samples: int, indent: int = 0) -> str:
    """Render an inferred type as a TypeScript type expression.

    ``total_samples`` is the size of the bucket the type was merged from; it
    decides which object fields are marked optional.
    """
    pad = "  " * indent

    if isinstance(t, NullType):
        return "null"
    if isinstance(t, PrimitiveType):
        return t.name
    if isinstance(t, ArrayType):
        element = render_type(t.element, total_samples, indent)
        if isinstance(t.element, (ObjectType, UnionType)):
            return f"Array<{element}>"
        return f"{element}[]"
    if isinstance(t, ObjectType):
        if not t.fields:
            return "Record<string, unknown>"
        lines = ["{"]
        for key, info in t.fields.items():
            marker = "?" if is_optional(info, total_samples) else ""
            value = render_type(info.type, total_samples, indent + 1)
            lines.append(f"{pad}  {_property_name(key)}{marker}: {value};")
        lines.append(f"{pad}}}")
        return "\n".join(lines)
    if isinstance(t, UnionType):
        return " | ".join(render_type(m, total_samples, indent) for m in t.members)
    raise TypeError(f"Unsupported inferred type: {t!r}")


def to_template(value: Any) -> Any:
    """Replace every leaf with a placeholder naming its kind.

    Arrays shrink to one representative element built from their first item.
    """
    if value is None:
        return "<null>"
    if value is UNDEFINED:
        return "<undefined>"
    if isinstance(value, str):
        return "<string>"
    if isinstance(value, bool):
        return "<boolean>"
    if isinstance(value, (int, float)):
        return "<number>"
    if isinstance(value, (list, tuple)):
        if not value:
            return []
        return [to_template(value[0])]
    if isinstance(value, Mapping):
        return {k: to_template(v) for k, v in value.items()}
    return "<unknown>"


def build_example(type_name: str, entry: TypeEntry) -> dict[str, Any]:
    return {
        "type": type_name,
        "details": entry.samples[0] if entry.samples else {},
        "milestone_id": EXAMPLE_MILESTONE_ID,
    }


def build_template(type_name: str, entry: TypeEntry) -> dict[str, Any]:
    return {
        "type": type_name,
        "details": to_template(entry.samples[0] if entry.samples else {}),
        "milestone_id": TEMPLATE_MILESTONE_ID,
    }


def _format_timestamp(generated_at: datetime) -> str:
    return generated_at.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


def _attribution(entry: TypeEntry) -> str:
    shown = ", ".join(entry.event_tickers[:MAX_ATTRIBUTED_EVENTS])
    if len(entry.event_tickers) > MAX_ATTRIBUTED_EVENTS:
        shown += ", ..."
    return shown


def _section(title: str) -> list[str]:
    rule = "// " + "-" * 75
    return [rule, f"// {title}", rule, ""]


def generate_types_file(
    type_map: Mapping[str, TypeEntry],
    generated_at: Optional[datetime] = None,
) -> str:
    """Build the TypeScript source for all discovered types.

    Contains one interface per type, the ``LiveData`` discriminated union and
    one type guard per type, in discovery order.
    """
    generated_at = generated_at or datetime.now(timezone.utc)
    lines: list[str] = [
        "/**",
        " * DFlow Live Data Type Schemas",
        f" * Auto-generated on {_format_timestamp(generated_at)}",
        f" * Types discovered: {', '.join(type_map)}",
        " *",
        " * These types describe the liveData.details object for each event type.",
        " * Live data is available via the DFlow Prediction Markets API:",
        " *   GET /api/v1/live_data/by-event/{event_ticker}",
        " *   GET /api/v1/live_data/by-mint/{mint_address}",
        " *   GET /api/v1/live_data?milestoneIds=...",
        " *",
        f" * To regenerate, run: {REGENERATE_COMMAND}",
        " */",
        "",
    ]

    for type_name, entry in type_map.items():
        merged = merge_multiple_samples(entry.samples)
        lines.append("/**")
        lines.append(f" * {human_label(type_name)} - live data details.")
        lines.append(f" * Inferred from {len(entry.samples)} sample(s): {_attribution(entry)}")
        lines.append(" */")
        lines.append(
            f"export interface {interface_name(type_name)} "
            f"{render_type(merged, len(entry.samples))}"
        )
        lines.append("")

    lines.extend(_section("Discriminated union - switch on ld.type to narrow the details"))
    lines.append(f"export type {UNION_NAME} =")
    names = list(type_map)
    for idx, type_name in enumerate(names):
        end = ";" if idx == len(names) - 1 else ""
        lines.append(
            f'  | {{ type: {_string_literal(type_name)}; details: {interface_name(type_name)}; '
            f"milestone_id: string }}{end}"
        )
    lines.append("")

    lines.extend(_section("Type guards"))
    for type_name in names:
        lines.append(
            f"export function {guard_name(type_name)}(ld: {UNION_NAME}): "
            f'ld is Extract<{UNION_NAME}, {{ type: {_string_literal(type_name)} }}> {{'
        )
        lines.append(f'  return ld.type === {_string_literal(type_name)};')
        lines.append("}")
        lines.append("")

    return "\n".join(lines) + "\n"


def _write_json(path: Path, payload: Any) -> None:
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")


def write_artifacts(
    type_map: Mapping[str, TypeEntry],
    output_dir: Path,
    generated_at: Optional[datetime] = None,
) -> ArtifactPaths:
    """Write the types file plus one example and one template per type.

    Files are written one at a time; an interruption can leave a partial set.
    """
    output_dir = Path(output_dir)
    examples_dir = output_dir / EXAMPLES_DIRNAME
    templates_dir = output_dir / TEMPLATES_DIRNAME
    examples_dir.mkdir(parents=True, exist_ok=True)
    templates_dir.mkdir(parents=True, exist_ok=True)

    paths = ArtifactPaths(types_path=output_dir / TYPES_FILENAME)
    paths.types_path.write_text(generate_types_file(type_map, generated_at), encoding="utf-8")
    logger.info(f"Types: {paths.types_path}")

    for type_name, entry in type_map.items():
        filename = artifact_filename(type_name)
        example_path = examples_dir / filename
        template_path = templates_dir / filename
        _write_json(example_path, build_example(type_name, entry))
        _write_json(template_path, build_template(type_name, entry))
        paths.example_paths[type_name] = example_path
        paths.template_paths[type_name] = template_path
        logger.info(f"Example: {example_path}")
        logger.info(f"Template: {template_path}")

    return paths
