"""
Field access over heterogeneous records.

A record is anything the helpers below can walk:

    - mappings (dict, pandas.Series)
    - dataclass instances, namedtuples, types.SimpleNamespace
    - any object implementing ``lookup_field(name)``

Optional references are modelled with Ref. None, pandas.NaT and numpy NaT values
are treated as empty references too, so plain Python records with missing values resolve the
same way.
"""

from collections.abc import Mapping
from dataclasses import dataclass, fields, is_dataclass
from functools import lru_cache
from types import SimpleNamespace
from typing import Any, Generic, NamedTuple, Optional, Protocol, TypeVar, get_type_hints, runtime_checkable

import numpy as np
import pandas as pd

from ..errors import NilReferenceError, NoSuchFieldError
from .kinds import FieldKind, annotation_kind, scalar_kind

T = TypeVar("T")

_MISSING = object()


@dataclass(frozen=True)
class Ref(Generic[T]):
    """An optional reference; ``Ref()`` is empty."""

    target: Optional[T] = None

    @property
    def empty(self) -> bool:
        return self.target is None


class Field(NamedTuple):
    """A field value together with its runtime kind."""
    value: Any
    kind: FieldKind


@runtime_checkable
class Record(Protocol):
    """Records that expose their own fields."""

    def lookup_field(self, name: str) -> Any:
        """Return the value (or a Field) for name, raising NoSuchFieldError if absent."""
        ...


def _is_nat(value: Any) -> bool:
    if value is pd.NaT:
        return True
    return isinstance(value, (np.datetime64, np.timedelta64)) and bool(np.isnat(value))


def is_optional(value: Any) -> bool:
    """True for values that must be dereferenced before use."""
    return value is None or _is_nat(value) or isinstance(value, Ref)


def is_empty(value: Any) -> bool:
    """True for an empty optional reference."""
    if isinstance(value, Ref):
        return value.empty
    return value is None or _is_nat(value)


def deref(value: Any) -> Any:
    """
    Dereference an optional reference, following nested Refs.

    Raises:
        NilReferenceError: If the reference is empty
    """
    while is_optional(value):
        if is_empty(value):
            raise NilReferenceError("reference is empty")
        value = value.target
    return value


def _is_namedtuple(value: Any) -> bool:
    return isinstance(value, tuple) and hasattr(value, "_fields")


def is_composite(value: Any) -> bool:
    """True for values that have named fields."""
    if isinstance(value, Ref):
        return False
    if isinstance(value, (Record, Mapping, pd.Series, SimpleNamespace)):
        return True
    if is_dataclass(value) and not isinstance(value, type):
        return True
    return _is_namedtuple(value)


def kind_of(value: Any) -> FieldKind:
    """Runtime kind of a (dereferenced) value."""
    if is_composite(value):
        return FieldKind.COMPOSITE
    return scalar_kind(value)


@lru_cache(maxsize=None)
def _declared_kinds(cls: type) -> dict[str, FieldKind]:
    try:
        hints = get_type_hints(cls)
    except (NameError, TypeError):
        return {}
    declared = {}
    for f in fields(cls):
        kind = annotation_kind(hints.get(f.name))
        if kind is not None:
            declared[f.name] = kind
    return declared


def _raw_lookup(composite: Any, name: str) -> Any:
    if isinstance(composite, Record):
        return composite.lookup_field(name)
    if isinstance(composite, (Mapping, pd.Series)):
        return composite.get(name, _MISSING)
    if _is_namedtuple(composite):
        return getattr(composite, name) if name in composite._fields else _MISSING
    if is_dataclass(composite):
        names = {f.name for f in fields(composite)}
        return getattr(composite, name) if name in names else _MISSING
    return vars(composite).get(name, _MISSING)


def lookup_field(composite: Any, name: str) -> Field:
    """
    Look up a named field on a composite.

    The kind reported for the field describes the dereferenced value; an optional
    field keeps its Ref/None in ``value`` so the caller decides how to handle it.

    Args:
        composite: A value for which is_composite() is True
        name: Field name

    Returns:
        Field with the raw value and its kind

    Raises:
        NoSuchFieldError: If the composite has no field called name
    """
    value = _raw_lookup(composite, name)
    if value is _MISSING:
        raise NoSuchFieldError(f"field {name!r} doesn't exist on {type(composite).__name__}")
    if isinstance(value, Field):
        return value

    target = value
    while isinstance(target, Ref) and not target.empty:
        target = target.target
    if is_empty(target):
        return Field(value, FieldKind.UNSUPPORTED)
    kind = kind_of(target)

    # annotations only refine integer values
    if kind in (FieldKind.INT, FieldKind.UINT) and is_dataclass(composite) and not isinstance(composite, type):
        declared = _declared_kinds(type(composite)).get(name)
        if declared is not None:
            return Field(value, declared)
    return Field(value, kind)
