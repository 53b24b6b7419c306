"""Record access module."""

from .kinds import (
    FieldKind,
    NUMERIC_KINDS,
    comparand,
    duration_ns,
    timestamp_seconds,
)

from .access import (
    Field,
    Record,
    Ref,
    deref,
    is_composite,
    is_empty,
    is_optional,
    kind_of,
    lookup_field,
)

from .path import (
    ResolvedField,
    resolve_field,
)

__all__ = [
    # Kinds
    "FieldKind",
    "NUMERIC_KINDS",
    "comparand",
    "duration_ns",
    "timestamp_seconds",
    # Access
    "Field",
    "Record",
    "Ref",
    "deref",
    "is_composite",
    "is_empty",
    "is_optional",
    "kind_of",
    "lookup_field",
    # Paths
    "ResolvedField",
    "resolve_field",
]
