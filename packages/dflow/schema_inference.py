"""Structural type inference over raw JSON samples.

Each sample is converted into an ``InferredType`` tree and same-type samples
are merged into one unified schema:

- Fields present in every sample are required.
- Fields present in only some samples are optional (tracked through
  ``FieldInfo.occurrences`` and decided at render time).
- Conflicting value kinds become unions (e.g. ``number | null``).

Unions are always flat and hold at most one member per structural kind. All
object members of a union are merged into a single object, so distinct record
shapes that meet inside a union lose their discriminability; this is a known
limitation of the merge.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar, Iterable, Mapping, Union


class _Undefined:
    """Marker for a value that is absent rather than null."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __bool__(self) -> bool:
        return False


UNDEFINED = _Undefined()

PRIMITIVE_NAMES = ("string", "number", "boolean")


@dataclass(frozen=True)
class NullType:
    kind: ClassVar[str] = "null"


@dataclass(frozen=True)
class PrimitiveType:
    name: str
    kind: ClassVar[str] = "primitive"

    def __post_init__(self) -> None:
        if self.name not in PRIMITIVE_NAMES:
            raise ValueError(f"Unknown primitive type: {self.name}")


@dataclass(frozen=True)
class ArrayType:
    element: "InferredType"
    kind: ClassVar[str] = "array"


@dataclass(frozen=True)
class FieldInfo:
    """A field of an inferred object; ``occurrences`` counts contributing samples."""

    type: "InferredType"
    occurrences: int = 1


@dataclass(frozen=True)
class ObjectType:
    """Object with fields in first-seen order. Equality ignores field order."""

    fields: dict[str, FieldInfo] = field(default_factory=dict)
    kind: ClassVar[str] = "object"


@dataclass(frozen=True, eq=False)
class UnionType:
    """Flat union of structurally distinct members. Equality ignores member order."""

    members: tuple["InferredType", ...]
    kind: ClassVar[str] = "union"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, UnionType):
            return NotImplemented
        if len(self.members) != len(other.members):
            return False
        return all(any(m == o for o in other.members) for m in self.members)

    __hash__ = None  # type: ignore[assignment]


InferredType = Union[NullType, PrimitiveType, ArrayType, ObjectType, UnionType]

STRING = PrimitiveType("string")
NUMBER = PrimitiveType("number")
BOOLEAN = PrimitiveType("boolean")
NULL = NullType()


def infer_type(value: Any) -> InferredType:
    """Infer an ``InferredType`` from a single decoded JSON value."""
    if value is None or value is UNDEFINED:
        return NULL
    if isinstance(value, str):
        return STRING
    # bool is a subclass of int, so it has to be checked first
    if isinstance(value, bool):
        return BOOLEAN
    if isinstance(value, (int, float)):
        return NUMBER

    if isinstance(value, (list, tuple)):
        if not value:
            return ArrayType(NULL)
        element = infer_type(value[0])
        for item in value[1:]:
            element = merge_types(element, infer_type(item))
        return ArrayType(element)

    if isinstance(value, Mapping):
        return ObjectType({str(k): FieldInfo(infer_type(v), 1) for k, v in value.items()})

    return STRING


def structural_key(t: InferredType) -> str:
    """Deduplication key: the kind, plus the subtype for primitives."""
    if isinstance(t, PrimitiveType):
        return f"p:{t.name}"
    if isinstance(t, (NullType, ArrayType, ObjectType)):
        return t.kind
    raise TypeError(f"Unions have no structural key: {t!r}")


def flatten_union(t: InferredType) -> list[InferredType]:
    """Recursively unwrap unions into a flat member list."""
    if isinstance(t, UnionType):
        flat: list[InferredType] = []
        for member in t.members:
            flat.extend(flatten_union(member))
        return flat
    return [t]


def merge_object_types(a: ObjectType, b: ObjectType) -> ObjectType:
    """Merge two objects field by field; shared fields sum their occurrences."""
    merged: dict[str, FieldInfo] = {}
    for key in list(a.fields) + [k for k in b.fields if k not in a.fields]:
        a_field = a.fields.get(key)
        b_field = b.fields.get(key)
        if a_field is not None and b_field is not None:
            merged[key] = FieldInfo(
                type=merge_types(a_field.type, b_field.type),
                occurrences=a_field.occurrences + b_field.occurrences,
            )
        else:
            merged[key] = a_field if a_field is not None else b_field
    return ObjectType(merged)


def merge_types(a: InferredType, b: InferredType) -> InferredType:
    """Unify two inferred types into one that covers both.

    Commutative and associative up to structural equality, so the fold order
    over many samples never changes the result.
    """
    if isinstance(a, NullType) and isinstance(b, NullType):
        return a
    if isinstance(a, PrimitiveType) and isinstance(b, PrimitiveType) and a.name == b.name:
        return a
    if isinstance(a, ArrayType) and isinstance(b, ArrayType):
        return ArrayType(merge_types(a.element, b.element))
    if isinstance(a, ObjectType) and isinstance(b, ObjectType):
        return merge_object_types(a, b)
    return _merge_into_union(a, b)


def _merge_into_union(a: InferredType, b: InferredType) -> InferredType:
    # Same-key members are merged, not dropped: objects collapse into one
    # object and arrays into one array with a merged element type.
    by_key: dict[str, InferredType] = {}
    for member in flatten_union(a) + flatten_union(b):
        key = structural_key(member)
        if key in by_key:
            by_key[key] = merge_types(by_key[key], member)
        else:
            by_key[key] = member

    members = [m for key, m in by_key.items() if key != ObjectType.kind]
    if ObjectType.kind in by_key:
        members.append(by_key[ObjectType.kind])

    if len(members) == 1:
        return members[0]
    return UnionType(tuple(members))


def merge_multiple_samples(samples: Iterable[Any]) -> InferredType:
    """Fold every raw sample of a bucket into one inferred type.

    With no samples the result is an empty object.
    """
    merged: InferredType | None = None
    for sample in samples:
        inferred = infer_type(sample)
        merged = inferred if merged is None else merge_types(merged, inferred)
    return merged if merged is not None else ObjectType()


def is_optional(info: FieldInfo, total_samples: int) -> bool:
    """A field is optional when it is missing from some of several samples.

    A single sample never yields optional fields: there is no evidence to tell
    "always present" from "present once".
    """
    return total_samples > 1 and info.occurrences < total_samples
