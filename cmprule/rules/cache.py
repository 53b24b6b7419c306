"""Prepared thresholds for numeric comparisons."""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Callable, Optional
import logging

from ..errors import InvertedRangeError, ThresholdReduceFailureError
from ..records import FieldKind
from .parsers import ParsedValue, Range, Single, ValueList

logger = logging.getLogger(__name__)


class PreparedKind(Enum):
    """Which reduction backs the cached threshold."""
    NOT_PREPARED = auto()
    AS_INTEGER = auto()
    AS_UNSIGNED = auto()
    AS_FLOAT = auto()
    AS_DURATION = auto()
    AS_TIMESTAMP = auto()


PREPARED_KIND_FOR = {
    FieldKind.INT: PreparedKind.AS_INTEGER,
    FieldKind.UINT: PreparedKind.AS_UNSIGNED,
    FieldKind.FLOAT: PreparedKind.AS_FLOAT,
    FieldKind.DURATION: PreparedKind.AS_DURATION,
    FieldKind.TIMESTAMP: PreparedKind.AS_TIMESTAMP,
}


def reduce_value(parsed: ParsedValue, reducer: Callable[[str], int | float]) -> ParsedValue:
    """
    Run a reducer over every text in a parsed value.

    Reducers may raise ValueError or TypeError; those are re-raised as
    ThresholdReduceFailureError.

    Raises:
        ThresholdReduceFailureError: If a literal can't be reduced
        InvertedRangeError: If a reduced range has max < min
    """
    try:
        if isinstance(parsed, Single):
            return Single(reducer(parsed.value))
        if isinstance(parsed, Range):
            low, high = reducer(parsed.low), reducer(parsed.high)
            if high < low:
                raise InvertedRangeError(
                    f"invalid range value, max {parsed.high} is smaller than min {parsed.low}"
                )
            return Range(low, high)
        if isinstance(parsed, ValueList):
            return ValueList(tuple(reducer(item) for item in parsed.items))
    except (ThresholdReduceFailureError, InvertedRangeError):
        raise
    except (ValueError, TypeError, OverflowError) as e:
        raise ThresholdReduceFailureError(str(e)) from e
    raise ThresholdReduceFailureError(f"can't reduce {parsed!r}")


@dataclass
class PreparedThreshold:
    """
    Reduced threshold cache owned by a single rule.

    The cache holds the threshold reduced for one kind at a time. Asking for a
    different kind re-runs the reduction; asking for the same kind reuses it.
    """

    kind: PreparedKind = PreparedKind.NOT_PREPARED
    """Reduction currently backing ``value``."""

    value: Optional[ParsedValue] = None
    """Reduced threshold, same shape as the parsed value."""

    reductions: int = 0
    """How many times a reduction has run since construction."""

    def clear(self) -> None:
        """Forget the cached threshold."""
        self.kind = PreparedKind.NOT_PREPARED
        self.value = None

    def ensure(
        self,
        kind: PreparedKind,
        parsed: ParsedValue,
        reducer: Callable[[str], int | float],
    ) -> ParsedValue:
        """
        Return the threshold reduced for kind, reducing it first if needed.

        On failure the cache is left cleared.
        """
        if self.kind == kind and self.value is not None:
            return self.value

        logger.debug(f"Preparing threshold {parsed!r} {self.kind.name} -> {kind.name}")
        self.clear()
        value = reduce_value(parsed, reducer)
        self.kind = kind
        self.value = value
        self.reductions += 1
        return value
