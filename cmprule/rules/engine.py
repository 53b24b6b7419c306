"""
Rules engine for comparing a record field against a threshold.

Supports rules like:
    stats.packets : >= : 100
    latency.p99   : in : 10ms 250ms
    result        : same : "passed" "passed with warnings"
    mgmt_addr     : within : 10.0.0.0/8 2001:db8::/32

Grammar:
    rule       := field_path ':' operator ':' value
    field_path := name ('.' name)*
    operator   := == | != | >= | <= | > | < | in | notin | is | not
                | same | differ | contain | notcontain | within | notwithin

Usage:
    rule = CmpRule().parse("stats.packets : >= : 100")
    rule.compare(record)          # True/False, raises CmpRuleError
    rule.check(record)            # (bool, error or None)
"""

from typing import Any, Literal, Optional, Union
import logging

import numpy as np
import pandas as pd

from ..errors import (
    CmpRuleError,
    InvalidOperatorError,
    MalformedRuleError,
    OperatorKindMismatchError,
    UnsupportedFieldKindError,
    ValueParseFailureError,
)
from ..records import FieldKind, NUMERIC_KINDS, comparand, resolve_field
from .cache import PREPARED_KIND_FOR, PreparedThreshold
from .compare import compare_ip, compare_number, compare_string
from .operators import (
    NUMBER_LIST_OPS,
    RANGE_OPS,
    SINGLE_OPS,
    STRING_OPS,
    Domain,
    ValueShape,
    classify_operator,
    domain_operators,
)
from .parsers import IPNetwork, ParsedValue, ParserHooks, Range, Single, ValueList

logger = logging.getLogger(__name__)


class CmpRule:
    """
    A parsed comparison rule and its prepared-threshold cache.

    A CmpRule can be re-parsed with new text; that discards everything parsed
    and cached before. compare() may update the cache, so a single instance must
    not be evaluated from several threads at once.
    """

    def __init__(self, hooks: Optional[ParserHooks] = None):
        """
        Initialize an empty rule.

        Args:
            hooks: Parsing strategies (default: ParserHooks())
        """
        self.hooks = hooks or ParserHooks()
        self.text = ""
        self.field_path: list[str] = []
        self.operator = ""
        self.raw_value = ""
        self.shape = ValueShape.INVALID
        self.parsed_value: Optional[ParsedValue] = None
        self.strings: list[str] = []
        self.networks: list[IPNetwork] = []
        self.prepared = PreparedThreshold()

    @classmethod
    def from_text(cls, text: str, hooks: Optional[ParserHooks] = None) -> "CmpRule":
        """Create and parse a rule in one step."""
        return cls(hooks).parse(text)

    def _reset(self) -> None:
        self.text = ""
        self.field_path = []
        self.operator = ""
        self.raw_value = ""
        self.shape = ValueShape.INVALID
        self.parsed_value = None
        self.strings = []
        self.networks = []
        self.prepared.clear()

    def parse(self, text: str) -> "CmpRule":
        """
        Parse rule text, replacing whatever this rule held before.

        Args:
            text: Rule text, e.g. "Num1 : >= : 50"

        Returns:
            self, for chaining

        Raises:
            MalformedRuleError: Text or field path doesn't split correctly
            InvalidOperatorError: Unknown operator token
            ValueParseFailureError: Value text doesn't have the operator's shape
            ThresholdReduceFailureError: An IP prefix can't be parsed
        """
        self._reset()
        hooks = self.hooks

        try:
            path_text, op, raw_value = hooks.divide(text)
        except CmpRuleError:
            raise
        except (ValueError, TypeError) as e:
            raise MalformedRuleError(f"invalid formatted rule, {text!r}: {e}") from e

        shape = classify_operator(op)
        if shape == ValueShape.INVALID:
            raise InvalidOperatorError(f"unknown operator {op!r} in rule {text!r}")

        try:
            field_path = list(hooks.split_path(path_text))
        except CmpRuleError:
            raise
        except (ValueError, TypeError) as e:
            raise MalformedRuleError(f"invalid field path {path_text!r}: {e}") from e
        if not field_path or not all(field_path):
            raise MalformedRuleError(f"invalid field path {path_text!r}")

        strings: list[str] = []
        networks: list[IPNetwork] = []
        try:
            if op in SINGLE_OPS:
                parsed: ParsedValue = Single(raw_value)
            elif op in RANGE_OPS:
                low, high = hooks.parse_range(raw_value)
                parsed = Range(low, high)
            elif op in NUMBER_LIST_OPS:
                parsed = ValueList(tuple(hooks.parse_number_list(raw_value)))
            elif op in STRING_OPS:
                strings = list(hooks.parse_string_list(raw_value))
                parsed = ValueList(tuple(strings))
            else:
                networks = list(hooks.parse_ip_prefix_list(raw_value))
                parsed = ValueList(tuple(str(n) for n in networks))
        except CmpRuleError:
            raise
        except (ValueError, TypeError) as e:
            raise ValueParseFailureError(f"can't parse value {raw_value!r} for {op!r}: {e}") from e

        if isinstance(parsed, ValueList) and not parsed.items:
            raise ValueParseFailureError(f"list is empty in rule {text!r}")

        self.text = text
        self.field_path = field_path
        self.operator = op
        self.raw_value = raw_value
        self.shape = shape
        self.parsed_value = parsed
        self.strings = strings
        self.networks = networks

        logger.debug(f"Parsed rule {text!r}: {'.'.join(field_path)} {op} {parsed!r}")
        return self

    @property
    def is_parsed(self) -> bool:
        return self.parsed_value is not None

    def clear_prepared(self) -> None:
        """
        Drop the cached numeric threshold.

        The parsed rule is kept; the next numeric comparison reduces it again.
        """
        self.prepared.clear()

    def _reducer_for(self, kind: FieldKind):
        return {
            FieldKind.INT: self.hooks.reduce_int,
            FieldKind.UINT: self.hooks.reduce_uint,
            FieldKind.FLOAT: self.hooks.reduce_float,
            FieldKind.DURATION: self.hooks.reduce_duration,
            FieldKind.TIMESTAMP: self.hooks.reduce_timestamp,
        }[kind]

    def compare(self, record: Any) -> bool:
        """
        Evaluate the rule against a record.

        Args:
            record: Anything the field-access helpers can walk

        Returns:
            True if the field satisfies the rule

        Raises:
            CmpRuleError: If the rule could not be evaluated
        """
        if not self.is_parsed:
            raise MalformedRuleError("rule has not been parsed")

        field = resolve_field(record, self.field_path)
        kind = field.kind

        if kind in NUMERIC_KINDS:
            if self.operator not in domain_operators(Domain.NUMERIC):
                raise OperatorKindMismatchError(
                    f"invalid op {self.operator!r} for {field.name} of kind {kind.name}"
                )
            threshold = self.prepared.ensure(
                PREPARED_KIND_FOR[kind], self.parsed_value, self._reducer_for(kind)
            )
            return compare_number(comparand(field.value, kind), self.operator, threshold)

        if kind == FieldKind.STRING:
            if self.operator not in domain_operators(Domain.STRING):
                raise OperatorKindMismatchError(
                    f"invalid op {self.operator!r} for string field {field.name}"
                )
            return compare_string(comparand(field.value, kind), self.operator, self.strings)

        if kind == FieldKind.IP:
            if self.operator not in domain_operators(Domain.IP):
                raise OperatorKindMismatchError(
                    f"invalid op {self.operator!r} for IP field {field.name}"
                )
            return compare_ip(field.value, self.operator, self.networks)

        raise UnsupportedFieldKindError(
            f"field {field.name} has unsupported type {type(field.value).__name__}"
        )

    def check(self, record: Any) -> tuple[bool, Optional[CmpRuleError]]:
        """
        Evaluate the rule, returning the error instead of raising it.

        Returns:
            Tuple of (result, error); result is False whenever error is set
        """
        try:
            return self.compare(record), None
        except CmpRuleError as e:
            return False, e

    def __repr__(self) -> str:
        if not self.is_parsed:
            return "CmpRule(<unparsed>)"
        return f"CmpRule({'.'.join(self.field_path)!r} {self.operator} {self.raw_value!r})"


class FrameEvaluator:
    """
    Evaluates rules against every row of a DataFrame.

    Usage:
        evaluator = FrameEvaluator(stats_df)
        passed = evaluator.evaluate("loss_pct : < : 0.5")
    """

    def __init__(
        self,
        frame: pd.DataFrame,
        hooks: Optional[ParserHooks] = None,
        on_error: Literal["raise", "false"] = "raise",
    ):
        """
        Initialize evaluator with row data.

        Args:
            frame: One record per row; nested dict cells are composites
            hooks: Parsing strategies for rules given as text
            on_error: "raise" to propagate row errors, "false" to log them
                and count the row as not passing
        """
        if on_error not in ("raise", "false"):
            raise ValueError(f"on_error must be 'raise' or 'false', got {on_error!r}")
        self.frame = frame
        self.hooks = hooks
        self.on_error = on_error
        self.last_errors: dict[Any, CmpRuleError] = {}

    def _as_rule(self, rule: Union[str, CmpRule]) -> CmpRule:
        if isinstance(rule, CmpRule):
            return rule
        return CmpRule.from_text(rule, self.hooks)

    def _rows(self) -> list[dict]:
        """Row dicts, with unsigned columns kept as numpy scalars so they stay UINT."""
        rows = self.frame.to_dict(orient="records")
        for column, dtype in self.frame.dtypes.items():
            if isinstance(dtype, np.dtype) and dtype.kind == "u":
                for row, value in zip(rows, self.frame[column].to_numpy()):
                    row[column] = value
        return rows

    def evaluate(self, rule: Union[str, CmpRule]) -> pd.Series:
        """
        Evaluate a rule against each row.

        Args:
            rule: Rule text or an already parsed CmpRule

        Returns:
            Boolean Series aligned with the frame index
        """
        cmp = self._as_rule(rule)
        self.last_errors = {}

        rows = self._rows()
        results = []
        for index, row in zip(self.frame.index, rows):
            if self.on_error == "raise":
                results.append(cmp.compare(row))
                continue
            passed, err = cmp.check(row)
            if err is not None:
                logger.warning(f"Rule {cmp!r} failed on row {index}: {err}")
                self.last_errors[index] = err
            results.append(passed)

        return pd.Series(results, index=self.frame.index, dtype=bool)

    def evaluate_with_debug(self, rule: Union[str, CmpRule]) -> tuple[pd.Series, dict]:
        """
        Evaluate rule with debug info.

        Returns:
            Tuple of (result_series, debug_info_dict)
        """
        cmp = self._as_rule(rule)
        result = self.evaluate(cmp)

        debug_info = {
            "rule": cmp.text,
            "parsed": repr(cmp),
            "true_count": int(result.sum()),
            "false_count": int((~result).sum()),
            "true_pct": float(result.mean() * 100) if len(result) else 0.0,
            "first_true": result.idxmax() if result.any() else None,
            "last_true": result[::-1].idxmax() if result.any() else None,
            "error_count": len(self.last_errors),
        }

        return result, debug_info

    @property
    def available_fields(self) -> list[str]:
        """Top-level field names available to rules."""
        return [str(c) for c in self.frame.columns]


def parse_rule(text: str, hooks: Optional[ParserHooks] = None) -> CmpRule:
    """Convenience function to parse a rule string."""
    return CmpRule.from_text(text, hooks)


def evaluate_rule(text: str, record: Any, hooks: Optional[ParserHooks] = None) -> bool:
    """Convenience function to parse and evaluate a rule once."""
    return CmpRule.from_text(text, hooks).compare(record)
