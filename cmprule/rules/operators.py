"""
Operator tokens and their classification.

    Operator(s)                         Shape    Value text
    ==  !=  >=  <=  >  <                single   one literal
    in  notin                           range    "min max"
    is  not                             list     "v1 v2 ... vn"
    same  differ  contain  notcontain   list     '"s1" "s2" ...'
    within  notwithin                   list     "cidr1 cidr2 ..."
"""

from enum import Enum, auto


class ValueShape(Enum):
    """Shape of the value an operator takes."""
    SINGLE = auto()
    RANGE = auto()
    LIST = auto()
    INVALID = auto()


class Domain(Enum):
    """Comparison domain a field kind reduces to."""
    NUMERIC = auto()
    STRING = auto()
    IP = auto()


OP_EQ = "=="
OP_NE = "!="
OP_GT = ">"
OP_GE = ">="
OP_LT = "<"
OP_LE = "<="
OP_IN = "in"
OP_NOTIN = "notin"
OP_IS = "is"
OP_NOT = "not"
OP_SAME = "same"
OP_DIFFER = "differ"
OP_CONTAIN = "contain"
OP_NOTCONTAIN = "notcontain"
OP_WITHIN = "within"
OP_NOTWITHIN = "notwithin"

SINGLE_OPS = frozenset({OP_EQ, OP_NE, OP_GT, OP_GE, OP_LT, OP_LE})
RANGE_OPS = frozenset({OP_IN, OP_NOTIN})
NUMBER_LIST_OPS = frozenset({OP_IS, OP_NOT})
STRING_OPS = frozenset({OP_SAME, OP_DIFFER, OP_CONTAIN, OP_NOTCONTAIN})
IP_OPS = frozenset({OP_WITHIN, OP_NOTWITHIN})

NUMERIC_OPS = SINGLE_OPS | RANGE_OPS | NUMBER_LIST_OPS
ALL_OPS = NUMERIC_OPS | STRING_OPS | IP_OPS


def classify_operator(op: str) -> ValueShape:
    """Map an operator token to the shape of value it takes."""
    if op in SINGLE_OPS:
        return ValueShape.SINGLE
    if op in RANGE_OPS:
        return ValueShape.RANGE
    if op in NUMBER_LIST_OPS or op in STRING_OPS or op in IP_OPS:
        return ValueShape.LIST
    return ValueShape.INVALID


def domain_operators(domain: Domain) -> frozenset[str]:
    """Operators that are valid for a comparison domain."""
    return {
        Domain.NUMERIC: NUMERIC_OPS,
        Domain.STRING: STRING_OPS,
        Domain.IP: IP_OPS,
    }[domain]
