#!/usr/bin/env python3
"""
Verification script for a rule set.

Usage:
    python scripts/verify_rules.py rules.yaml record.yaml

Loads the rule set and a single record from YAML, evaluates every rule and
prints one line per rule. Exits non-zero if any rule fails or errors.

String values in the record that parse as IP addresses are converted so that
within/notwithin rules apply to them.
"""

import sys
from ipaddress import ip_address
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import logging

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

import yaml

from cmprule.config import build_ruleset, load_config


def coerce_addresses(value):
    """Recursively turn IP-address strings into ipaddress objects."""
    if isinstance(value, dict):
        return {k: coerce_addresses(v) for k, v in value.items()}
    if isinstance(value, str):
        try:
            return ip_address(value)
        except ValueError:
            return value
    return value


def main(argv: list[str]) -> int:
    if len(argv) != 3:
        print(__doc__)
        return 2

    print("=" * 60)
    print("Rule Verification")
    print("=" * 60)

    print("\n1. Loading rules...")
    config = load_config(argv[1])
    ruleset = build_ruleset(config)
    print(f"   Loaded {len(ruleset)} rules from {argv[1]}")

    print("\n2. Loading record...")
    with open(argv[2], "r") as f:
        record = coerce_addresses(yaml.safe_load(f) or {})
    print(f"   Top-level fields: {', '.join(map(str, record))}")

    print("\n3. Evaluating...")
    results = ruleset.check(record)
    for result in results:
        detail = f" ({result.error})" if result.error is not None else ""
        print(f"   [{result.status:5}] {result.name}: {result.rule}{detail}")

    failed = [r for r in results if r.status != "PASS"]
    print("\n" + "=" * 60)
    print(f"Passed {len(results) - len(failed)}/{len(results)}")
    print("=" * 60)

    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main(sys.argv))
