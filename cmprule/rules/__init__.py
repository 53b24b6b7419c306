"""Rules engine module."""

from .operators import (
    Domain,
    ValueShape,
    classify_operator,
    domain_operators,
)

from .parsers import (
    ParserHooks,
    Range,
    Single,
    ValueList,
    TIMESTAMP_FORMAT,
    split_rule,
    split_field_path,
    parse_range,
    parse_number_list,
    parse_string_list,
    parse_ip_prefix_list,
    parse_int64,
    parse_uint64,
    parse_float64,
    parse_duration_ns,
    parse_timestamp_seconds,
)

from .cache import (
    PreparedKind,
    PreparedThreshold,
)

from .engine import (
    CmpRule,
    FrameEvaluator,
    parse_rule,
    evaluate_rule,
)

from .ruleset import (
    RuleResult,
    RuleSet,
    RuleSpec,
)

__all__ = [
    # Operators
    "Domain",
    "ValueShape",
    "classify_operator",
    "domain_operators",
    # Parsers
    "ParserHooks",
    "Range",
    "Single",
    "ValueList",
    "TIMESTAMP_FORMAT",
    "split_rule",
    "split_field_path",
    "parse_range",
    "parse_number_list",
    "parse_string_list",
    "parse_ip_prefix_list",
    "parse_int64",
    "parse_uint64",
    "parse_float64",
    "parse_duration_ns",
    "parse_timestamp_seconds",
    # Cache
    "PreparedKind",
    "PreparedThreshold",
    # Engine
    "CmpRule",
    "FrameEvaluator",
    "parse_rule",
    "evaluate_rule",
    # Rule sets
    "RuleResult",
    "RuleSet",
    "RuleSpec",
]
