"""Named collections of independent rules."""

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional
import logging

from ..errors import CmpRuleError
from .engine import CmpRule
from .parsers import ParserHooks

logger = logging.getLogger(__name__)


@dataclass
class RuleSpec:
    """A rule as written in configuration."""

    name: str
    """Unique name used in reports."""

    rule: str
    """Rule text, e.g. "stats.packets : >= : 100"."""

    description: str = ""
    """Free-form explanation."""


@dataclass
class RuleResult:
    """Outcome of one rule against one record."""

    name: str
    rule: str
    passed: bool
    error: Optional[CmpRuleError] = None

    @property
    def status(self) -> str:
        if self.error is not None:
            return "ERROR"
        return "PASS" if self.passed else "FAIL"


@dataclass
class RuleSet:
    """
    Named rules evaluated one by one against the same record.

    Results are reported per rule; they are never combined.
    """

    rules: dict[str, CmpRule] = field(default_factory=dict)
    specs: dict[str, RuleSpec] = field(default_factory=dict)

    @classmethod
    def from_specs(
        cls,
        specs: Iterable[RuleSpec],
        hooks: Optional[ParserHooks] = None,
    ) -> "RuleSet":
        """
        Parse every spec into a CmpRule.

        Raises:
            ValueError: On duplicate names
            CmpRuleError: If a rule doesn't parse (the message names the rule)
        """
        ruleset = cls()
        for spec in specs:
            ruleset.add(spec, hooks)
        logger.info(f"Loaded {len(ruleset)} rules")
        return ruleset

    def add(self, spec: RuleSpec, hooks: Optional[ParserHooks] = None) -> CmpRule:
        """Parse and add a single rule."""
        if spec.name in self.rules:
            raise ValueError(f"Duplicate rule name: {spec.name}")
        try:
            rule = CmpRule.from_text(spec.rule, hooks)
        except CmpRuleError as e:
            raise type(e)(f"rule {spec.name!r}: {e}") from e
        self.rules[spec.name] = rule
        self.specs[spec.name] = spec
        return rule

    def __len__(self) -> int:
        return len(self.rules)

    def __iter__(self):
        return iter(self.rules.items())

    def evaluate(self, record: Any) -> dict[str, bool]:
        """
        Evaluate every rule against a record.

        Raises:
            CmpRuleError: On the first rule that can't be evaluated
        """
        return {name: rule.compare(record) for name, rule in self.rules.items()}

    def check(self, record: Any) -> list[RuleResult]:
        """Evaluate every rule, collecting errors instead of raising them."""
        results = []
        for name, rule in self.rules.items():
            passed, err = rule.check(record)
            if err is not None:
                logger.debug(f"Rule {name} errored: {err}")
            results.append(RuleResult(name=name, rule=self.specs[name].rule, passed=passed, error=err))
        return results

    def failures(self, record: Any) -> list[RuleResult]:
        """Results that did not pass, errors included."""
        return [r for r in self.check(record) if not r.passed or r.error is not None]

    def clear_prepared(self) -> None:
        """Drop every rule's cached threshold."""
        for rule in self.rules.values():
            rule.clear_prepared()
