"""Runtime field kinds and their reduction to comparable values."""

from datetime import datetime, timedelta
from enum import Enum, auto
from ipaddress import IPv4Address, IPv6Address
from types import UnionType
from typing import Any, Union, get_args, get_origin
import calendar

import numpy as np
import pandas as pd


class FieldKind(Enum):
    """Kinds of field value a rule can be compared against."""
    INT = auto()
    UINT = auto()
    FLOAT = auto()
    STRING = auto()
    TIMESTAMP = auto()
    DURATION = auto()
    IP = auto()
    COMPOSITE = auto()
    UNSUPPORTED = auto()


NUMERIC_KINDS = frozenset({
    FieldKind.INT,
    FieldKind.UINT,
    FieldKind.FLOAT,
    FieldKind.DURATION,
    FieldKind.TIMESTAMP,
})

IPAddress = Union[IPv4Address, IPv6Address]


def scalar_kind(value: Any) -> FieldKind:
    """
    Detect the kind of a scalar value.

    Returns UNSUPPORTED for anything that isn't one of the scalar kinds,
    including composites; callers check for composites first.
    """
    # bool is an int subclass but has no comparator
    if isinstance(value, (bool, np.bool_)):
        return FieldKind.UNSUPPORTED
    # np.timedelta64 is a signedinteger subclass, so check it first.
    # pd.Timedelta subclasses timedelta, pd.Timestamp subclasses datetime
    if isinstance(value, (timedelta, np.timedelta64)):
        return FieldKind.DURATION
    if isinstance(value, (datetime, np.datetime64)):
        return FieldKind.TIMESTAMP
    if isinstance(value, np.unsignedinteger):
        return FieldKind.UINT
    if isinstance(value, (int, np.signedinteger)):
        return FieldKind.INT
    if isinstance(value, (float, np.floating)):
        return FieldKind.FLOAT
    if isinstance(value, str):
        return FieldKind.STRING
    if isinstance(value, (IPv4Address, IPv6Address)):
        return FieldKind.IP
    return FieldKind.UNSUPPORTED


def annotation_kind(annotation: Any) -> FieldKind | None:
    """
    Kind declared by a type annotation, where the runtime value can't express it.

    Python ints carry no signedness, so a field annotated with a numpy unsigned
    type (e.g. ``packets: np.uint64``) is treated as UINT.
    """
    args = [a for a in get_args(annotation) if a is not type(None)]
    if get_origin(annotation) in (Union, UnionType) and len(args) == 1:
        annotation = args[0]
    if isinstance(annotation, type) and issubclass(annotation, np.unsignedinteger):
        return FieldKind.UINT
    return None


def duration_ns(value: timedelta | np.timedelta64) -> int:
    """Duration as integer nanoseconds."""
    if isinstance(value, pd.Timedelta):
        return int(value.value)
    if isinstance(value, np.timedelta64):
        return int(pd.Timedelta(value).value)
    return (value.days * 86_400 + value.seconds) * 1_000_000_000 + value.microseconds * 1_000


def timestamp_seconds(value: datetime | np.datetime64) -> int:
    """
    Timestamp as unix seconds.

    Naive datetimes are taken as UTC.
    """
    if isinstance(value, np.datetime64):
        value = pd.Timestamp(value)
    return calendar.timegm(value.utctimetuple())


def comparand(value: Any, kind: FieldKind) -> Any:
    """
    Reduce a field value to the form the comparators work on.

    Integers become Python ints, floats become Python floats, durations become
    nanoseconds and timestamps become unix seconds. Strings and addresses are
    returned as they are.
    """
    if kind in (FieldKind.INT, FieldKind.UINT):
        return int(value)
    if kind == FieldKind.FLOAT:
        return float(value)
    if kind == FieldKind.DURATION:
        return duration_ns(value)
    if kind == FieldKind.TIMESTAMP:
        return timestamp_seconds(value)
    if kind == FieldKind.STRING:
        return str(value)
    return value
