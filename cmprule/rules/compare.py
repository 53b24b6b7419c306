"""Comparators for each comparison domain."""

from ipaddress import IPv4Address, IPv6Address
from typing import Sequence
import operator

from ..errors import OperatorKindMismatchError
from ..records.kinds import IPAddress
from .operators import (
    OP_CONTAIN,
    OP_DIFFER,
    OP_IN,
    OP_IS,
    OP_NOT,
    OP_NOTCONTAIN,
    OP_NOTIN,
    OP_NOTWITHIN,
    OP_SAME,
    OP_WITHIN,
)
from .parsers import IPNetwork, ParsedValue, Range, Single, ValueList

# Field value on the left: "v > threshold"
SINGLE_OPERATORS = {
    "==": operator.eq,
    "!=": operator.ne,
    ">": operator.gt,
    "<": operator.lt,
    ">=": operator.ge,
    "<=": operator.le,
}


def compare_number(value: int | float, op: str, threshold: ParsedValue) -> bool:
    """
    Compare a numeric field value against a reduced threshold.

    Args:
        value: Field value (int, float, nanoseconds or unix seconds)
        op: Numeric operator
        threshold: Single, Range or ValueList of reduced numbers

    Returns:
        Result of the comparison
    """
    if isinstance(threshold, Single) and op in SINGLE_OPERATORS:
        return SINGLE_OPERATORS[op](value, threshold.value)

    if isinstance(threshold, Range) and op in (OP_IN, OP_NOTIN):
        inside = threshold.low <= value <= threshold.high
        return inside if op == OP_IN else not inside

    if isinstance(threshold, ValueList) and op in (OP_IS, OP_NOT):
        found = any(value == item for item in threshold.items)
        return found if op == OP_IS else not found

    raise OperatorKindMismatchError(f"invalid op {op!r} for a number with value {threshold!r}")


def compare_string(value: str, op: str, strings: Sequence[str]) -> bool:
    """
    Compare a string field value against a list of strings.

    same/differ test equality with any entry, contain/notcontain test whether
    any entry is a substring of the value.
    """
    if op in (OP_SAME, OP_DIFFER):
        found = value in strings
        return found if op == OP_SAME else not found

    if op in (OP_CONTAIN, OP_NOTCONTAIN):
        found = any(s in value for s in strings)
        return found if op == OP_CONTAIN else not found

    raise OperatorKindMismatchError(f"invalid op {op!r} for string")


def _in_network(address: IPAddress, network: IPNetwork) -> bool:
    # IPv4-mapped IPv6 addresses match IPv4 networks
    if isinstance(address, IPv6Address) and address.ipv4_mapped is not None and network.version == 4:
        address = address.ipv4_mapped
    return address in network


def compare_ip(address: IPv4Address | IPv6Address, op: str, networks: Sequence[IPNetwork]) -> bool:
    """
    Test an address against a list of networks.

    within is true when any network of the same family contains the address;
    notwithin is its negation.
    """
    if op not in (OP_WITHIN, OP_NOTWITHIN):
        raise OperatorKindMismatchError(f"invalid op {op!r} for IP address")

    found = any(_in_network(address, net) for net in networks)
    return found if op == OP_WITHIN else not found
