"""
Default parsing functions and the hook table that holds them.

Every step that turns text into something typed is a plain function that can be
swapped through ParserHooks without touching the rest of the engine:

    divide                rule text  -> (path, operator, value)
    split_path            path text  -> [name, ...]
    parse_range           value text -> (min text, max text)
    parse_number_list     value text -> [text, ...]
    parse_string_list     value text -> [unquoted string, ...]
    parse_ip_prefix_list  value text -> [network, ...]
    reduce_int            literal    -> int (int64)
    reduce_uint           literal    -> int (uint64)
    reduce_float          literal    -> float
    reduce_duration       literal    -> int nanoseconds
    reduce_timestamp      literal    -> int unix seconds
"""

from dataclasses import dataclass, replace
from datetime import datetime
from ipaddress import IPv4Network, IPv6Network, ip_network
from typing import Any, Callable, Union
import calendar
import re

from ..errors import (
    MalformedRuleError,
    ThresholdReduceFailureError,
    ValueParseFailureError,
)

TIMESTAMP_FORMAT = "%Y/%m/%dT%H:%M:%S"
"""Default timestamp literal layout, e.g. 2020/03/31T15:00:00 (UTC)."""

INT64_MIN = -(2 ** 63)
INT64_MAX = 2 ** 63 - 1
UINT64_MAX = 2 ** 64 - 1

IPNetwork = Union[IPv4Network, IPv6Network]


# Parsed value shapes. The same containers hold the raw texts after parsing
# and the reduced numbers once a threshold is prepared.
@dataclass(frozen=True)
class Single:
    value: Any


@dataclass(frozen=True)
class Range:
    low: Any
    high: Any


@dataclass(frozen=True)
class ValueList:
    items: tuple


ParsedValue = Union[Single, Range, ValueList]


def split_rule(text: str, delimiter: str = ":") -> tuple[str, str, str]:
    """
    Split rule text into field path, operator and value.

    Only the first two delimiters split, so the value may itself contain the
    delimiter (timestamps, IPv6 prefixes).

    Raises:
        MalformedRuleError: If the text has fewer than two delimiters
    """
    parts = text.strip().split(delimiter, 2)
    if len(parts) != 3:
        raise MalformedRuleError(f"invalid formatted rule, {text!r}")
    path, op, value = (p.strip() for p in parts)
    return path, op, value


def split_field_path(text: str, separator: str = ".") -> list[str]:
    """Split a field path like ``a.b.c`` into its component names."""
    names = [name.strip() for name in text.split(separator)]
    if not text.strip() or any(not name for name in names):
        raise MalformedRuleError(f"invalid field path {text!r}")
    return names


def parse_range(text: str) -> tuple[str, str]:
    """Parse ``"min max"`` into its two texts."""
    tokens = text.split()
    if len(tokens) != 2:
        raise ValueParseFailureError(f"invalid range {text!r}, expected 'min max'")
    return tokens[0], tokens[1]


def parse_number_list(text: str) -> list[str]:
    """Parse ``"v1 v2 ... vn"`` into its texts."""
    tokens = text.split()
    if not tokens:
        raise ValueParseFailureError("list is empty")
    return tokens


# Non-greedy: a quoted segment ends at the first quote not preceded by a
# backslash. "" is matched on its own.
_QUOTED = re.compile(r'".*?[^\\]"|""')


def parse_string_list(text: str) -> list[str]:
    """
    Parse double-quoted strings, e.g. ``"warning" "fail \\"hard\\""``.

    Text outside quotes is skipped. ``\\"`` inside a string is unescaped.
    """
    matches = _QUOTED.findall(text)
    if not matches:
        raise ValueParseFailureError(f"no quoted string in {text!r}")
    return [m[1:-1].replace('\\"', '"') for m in matches]


def parse_ip_prefix_list(text: str) -> list[IPNetwork]:
    """
    Parse ``"cidr1 cidr2 ..."`` into networks.

    Each token needs an explicit prefix length; host bits are masked off, so
    ``1.1.1.99/24`` is the network 1.1.1.0/24.
    """
    networks = []
    for token in text.split():
        if "/" not in token:
            raise ThresholdReduceFailureError(f"{token!r} is not a CIDR prefix")
        try:
            networks.append(ip_network(token, strict=False))
        except ValueError as e:
            raise ThresholdReduceFailureError(f"{token!r} is not a CIDR prefix: {e}") from e
    if not networks:
        raise ValueParseFailureError("prefix list is empty")
    return networks


_INT_LITERAL = re.compile(
    r"(?P<sign>[+-]?)"
    r"(?:0[xX](?P<hex>_?[0-9a-fA-F](?:_?[0-9a-fA-F])*)"
    r"|0[bB](?P<bin>_?[01](?:_?[01])*)"
    r"|0[oO](?P<oct>_?[0-7](?:_?[0-7])*)"
    r"|0(?P<legacy_oct>(?:_?[0-7])*)"
    r"|(?P<dec>[1-9](?:_?[0-9])*))"
)


def _parse_integer(text: str, signed: bool) -> int:
    m = _INT_LITERAL.fullmatch(text)
    if m is None or (m.group("sign") and not signed):
        raise ThresholdReduceFailureError(f"can't parse {text!r} into an integer")

    for group, base in (("hex", 16), ("bin", 2), ("oct", 8), ("legacy_oct", 8), ("dec", 10)):
        digits = m.group(group)
        if digits is not None:
            break
    digits = digits.replace("_", "")
    value = int(digits, base) if digits else 0
    if m.group("sign") == "-":
        value = -value
    return value


def parse_int64(text: str) -> int:
    """
    Parse a signed integer literal.

    Accepts decimal, ``0x`` hex, ``0b`` binary, ``0o`` or leading-zero octal.
    """
    value = _parse_integer(text, signed=True)
    if not INT64_MIN <= value <= INT64_MAX:
        raise ThresholdReduceFailureError(f"{text!r} is out of int64 range")
    return value


def parse_uint64(text: str) -> int:
    """Parse an unsigned integer literal, same bases as parse_int64."""
    value = _parse_integer(text, signed=False)
    if value > UINT64_MAX:
        raise ThresholdReduceFailureError(f"{text!r} is out of uint64 range")
    return value


def parse_float64(text: str) -> float:
    """Parse a floating-point literal."""
    if not text or text != text.strip():
        raise ThresholdReduceFailureError(f"can't parse {text!r} into a float")
    try:
        return float(text)
    except ValueError as e:
        raise ThresholdReduceFailureError(f"can't parse {text!r} into a float") from e


_DURATION_UNITS = {
    "ns": 1,
    "us": 1_000,
    "µs": 1_000,  # U+00B5 micro sign
    "μs": 1_000,  # U+03BC greek mu
    "ms": 1_000_000,
    "s": 1_000_000_000,
    "m": 60 * 1_000_000_000,
    "h": 3600 * 1_000_000_000,
}

_DURATION_PART = re.compile(r"(?P<whole>[0-9]*)(?:\.(?P<frac>[0-9]*))?(?P<unit>ns|us|µs|μs|ms|s|m|h)")


def parse_duration_ns(text: str) -> int:
    """
    Parse a duration like ``10s``, ``1h30m`` or ``-1.5ms`` into nanoseconds.

    Every number needs a unit, except a bare ``0``.
    """
    s = text
    negative = s[:1] == "-"
    if s[:1] in ("-", "+"):
        s = s[1:]
    if s == "0":
        return 0
    if not s:
        raise ThresholdReduceFailureError(f"invalid duration {text!r}")

    total = 0
    pos = 0
    while pos < len(s):
        m = _DURATION_PART.match(s, pos)
        if m is None or not (m.group("whole") or m.group("frac")):
            raise ThresholdReduceFailureError(f"invalid duration {text!r}")
        unit = _DURATION_UNITS[m.group("unit")]
        total += int(m.group("whole") or "0") * unit
        frac = m.group("frac")
        if frac:
            total += int(frac) * unit // 10 ** len(frac)
        pos = m.end()

    if negative:
        total = -total
    if not INT64_MIN <= total <= INT64_MAX:
        raise ThresholdReduceFailureError(f"duration {text!r} overflows int64 nanoseconds")
    return total


def parse_timestamp_seconds(text: str, fmt: str = TIMESTAMP_FORMAT) -> int:
    """
    Parse a timestamp literal into unix seconds.

    The literal is read as UTC unless the format carries an offset (``%z``).
    """
    try:
        stamp = datetime.strptime(text, fmt)
    except ValueError as e:
        raise ThresholdReduceFailureError(f"invalid timestamp {text!r}, expected {fmt}") from e
    return calendar.timegm(stamp.utctimetuple())


@dataclass(frozen=True)
class ParserHooks:
    """
    Replaceable parsing strategies used by a CmpRule.

    Each slot defaults to the function of the same purpose in this module and
    can be overridden on its own.
    """

    divide: Callable[[str], tuple[str, str, str]] = split_rule
    """Split rule text into (path, operator, value)."""

    split_path: Callable[[str], list[str]] = split_field_path
    """Split a field path into component names."""

    parse_range: Callable[[str], tuple[str, str]] = parse_range
    """Split range text into (min, max) texts."""

    parse_number_list: Callable[[str], list[str]] = parse_number_list
    """Split list text for is/not into literal texts."""

    parse_string_list: Callable[[str], list[str]] = parse_string_list
    """Extract strings for same/differ/contain/notcontain."""

    parse_ip_prefix_list: Callable[[str], list[IPNetwork]] = parse_ip_prefix_list
    """Parse networks for within/notwithin."""

    reduce_int: Callable[[str], int] = parse_int64
    """Literal to signed integer."""

    reduce_uint: Callable[[str], int] = parse_uint64
    """Literal to unsigned integer."""

    reduce_float: Callable[[str], float] = parse_float64
    """Literal to float."""

    reduce_duration: Callable[[str], int] = parse_duration_ns
    """Literal to nanoseconds."""

    reduce_timestamp: Callable[[str], int] = parse_timestamp_seconds
    """Literal to unix seconds."""

    def replace(self, **changes: Callable) -> "ParserHooks":
        """Copy with some hooks swapped out."""
        return replace(self, **changes)
