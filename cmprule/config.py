"""Rule set configuration loading and validation."""

from dataclasses import dataclass, field
from functools import partial
from pathlib import Path
import yaml

from .rules import (
    ParserHooks,
    RuleSet,
    RuleSpec,
    TIMESTAMP_FORMAT,
    parse_timestamp_seconds,
    split_field_path,
    split_rule,
)


@dataclass
class GrammarConfig:
    """Options for the default rule grammar."""

    delimiter: str = ":"
    """Separator between field path, operator and value."""

    path_separator: str = "."
    """Separator between field path components."""

    timestamp_format: str = TIMESTAMP_FORMAT
    """strptime layout for timestamp literals."""


@dataclass
class RuleSetConfig:
    """A named rule set and the grammar it is written in."""

    grammar: GrammarConfig = field(default_factory=GrammarConfig)
    rules: list[RuleSpec] = field(default_factory=list)


def load_config(config_path: str | Path) -> RuleSetConfig:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to YAML config file

    Returns:
        RuleSetConfig object
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r") as f:
        raw = yaml.safe_load(f)

    return parse_config(raw or {})


def parse_config(raw: dict) -> RuleSetConfig:
    """
    Parse raw config dict into RuleSetConfig.

    Args:
        raw: Raw config dictionary from YAML

    Returns:
        RuleSetConfig object
    """
    if not isinstance(raw, dict):
        raise ValueError(f"Config must be a mapping, got {type(raw).__name__}")

    # Parse grammar config
    gram_raw = raw.get("grammar", {}) or {}
    grammar = GrammarConfig(
        delimiter=gram_raw.get("delimiter", ":"),
        path_separator=gram_raw.get("path_separator", "."),
        timestamp_format=gram_raw.get("timestamp_format", TIMESTAMP_FORMAT),
    )
    if not grammar.delimiter or not grammar.path_separator:
        raise ValueError("delimiter and path_separator must not be empty")

    # Parse rules
    rules = []
    names = set()
    for i, entry in enumerate(raw.get("rules", []) or []):
        if not isinstance(entry, dict) or "rule" not in entry:
            raise ValueError(f"Rule #{i} must be a mapping with a 'rule' key")
        name = str(entry.get("name", f"rule_{i}"))
        if name in names:
            raise ValueError(f"Duplicate rule name: {name}")
        names.add(name)
        rules.append(RuleSpec(
            name=name,
            rule=str(entry["rule"]),
            description=str(entry.get("description", "")),
        ))

    return RuleSetConfig(grammar=grammar, rules=rules)


def build_hooks(config: RuleSetConfig) -> ParserHooks:
    """Parser hooks for the grammar options of a config."""
    grammar = config.grammar
    return ParserHooks(
        divide=partial(split_rule, delimiter=grammar.delimiter),
        split_path=partial(split_field_path, separator=grammar.path_separator),
        reduce_timestamp=partial(parse_timestamp_seconds, fmt=grammar.timestamp_format),
    )


def build_ruleset(config: RuleSetConfig) -> RuleSet:
    """Parse every rule of a config into a RuleSet."""
    return RuleSet.from_specs(config.rules, build_hooks(config))


def save_config(config: RuleSetConfig, config_path: str | Path) -> None:
    """
    Save configuration to YAML file.

    Args:
        config: RuleSetConfig object
        config_path: Path to save YAML file
    """
    raw = {
        "grammar": {
            "delimiter": config.grammar.delimiter,
            "path_separator": config.grammar.path_separator,
            "timestamp_format": config.grammar.timestamp_format,
        },
        "rules": [
            {
                "name": spec.name,
                "rule": spec.rule,
                **({"description": spec.description} if spec.description else {}),
            }
            for spec in config.rules
        ],
    }

    config_path = Path(config_path)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, "w") as f:
        yaml.dump(raw, f, default_flow_style=False, sort_keys=False)
