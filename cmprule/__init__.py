"""
Compare a field of a record to a threshold, based on a human-friendly text rule.

    rule = CmpRule.from_text("Stat1 : >= : 50")
    rule.compare({"Stat1": 100})   # True
"""

from .errors import (
    CmpRuleError,
    MalformedRuleError,
    InvalidOperatorError,
    ValueParseFailureError,
    ThresholdReduceFailureError,
    InvertedRangeError,
    FieldPathError,
    NoSuchFieldError,
    NotCompositeError,
    NilReferenceError,
    UnsupportedFieldKindError,
    OperatorKindMismatchError,
)

from .records import FieldKind, Field, Ref, resolve_field

from .rules import (
    CmpRule,
    FrameEvaluator,
    ParserHooks,
    PreparedKind,
    RuleResult,
    RuleSet,
    RuleSpec,
    parse_rule,
    evaluate_rule,
)

__version__ = "0.1.0"

__all__ = [
    # Errors
    "CmpRuleError",
    "MalformedRuleError",
    "InvalidOperatorError",
    "ValueParseFailureError",
    "ThresholdReduceFailureError",
    "InvertedRangeError",
    "FieldPathError",
    "NoSuchFieldError",
    "NotCompositeError",
    "NilReferenceError",
    "UnsupportedFieldKindError",
    "OperatorKindMismatchError",
    # Records
    "FieldKind",
    "Field",
    "Ref",
    "resolve_field",
    # Rules
    "CmpRule",
    "FrameEvaluator",
    "ParserHooks",
    "PreparedKind",
    "RuleResult",
    "RuleSet",
    "RuleSpec",
    "parse_rule",
    "evaluate_rule",
]
