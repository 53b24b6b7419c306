"""
Exceptions raised while parsing and evaluating comparison rules.

Every error derives from CmpRuleError, which is itself a ValueError, so callers
that only care whether a rule evaluated can catch the base class.
"""


class CmpRuleError(ValueError):
    """Base exception for all rule parsing and evaluation errors."""
    pass


class MalformedRuleError(CmpRuleError):
    """Raised when rule text does not split into path, operator and value."""
    pass


class InvalidOperatorError(CmpRuleError):
    """Raised when the operator token is not a known operator."""
    pass


class ValueParseFailureError(CmpRuleError):
    """Raised when the value text does not have the shape the operator needs."""
    pass


class ThresholdReduceFailureError(CmpRuleError):
    """Raised when a literal can't be reduced to a number, duration, time or prefix."""
    pass


class InvertedRangeError(CmpRuleError):
    """Raised when a reduced range has its max below its min."""
    pass


class FieldPathError(CmpRuleError):
    """Base exception for failures while walking a field path."""
    pass


class NoSuchFieldError(FieldPathError):
    """Raised when a path component does not exist on the current composite."""
    pass


class NotCompositeError(FieldPathError):
    """Raised when a path continues past a value that has no fields."""
    pass


class NilReferenceError(FieldPathError):
    """Raised when an optional reference on the path is empty."""
    pass


class UnsupportedFieldKindError(CmpRuleError):
    """Raised when the resolved field has no comparator."""
    pass


class OperatorKindMismatchError(CmpRuleError):
    """Raised when the operator is not valid for the resolved field's kind."""
    pass
