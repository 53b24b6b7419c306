"""Tests for rules engine."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from ipaddress import IPv4Address, IPv6Address, ip_address

import pytest
import numpy as np

from cmprule import (
    CmpRule,
    CmpRuleError,
    InvalidOperatorError,
    InvertedRangeError,
    MalformedRuleError,
    NilReferenceError,
    NoSuchFieldError,
    OperatorKindMismatchError,
    ParserHooks,
    PreparedKind,
    Ref,
    ThresholdReduceFailureError,
    UnsupportedFieldKindError,
    ValueParseFailureError,
    evaluate_rule,
    parse_rule,
)
from cmprule.rules import Range, Single, ValueList, ValueShape, parse_int64


@dataclass
class SampleStats:
    Num1: int = -120
    Num_uint1: np.uint64 = np.uint64(120)
    Float1: float = 12.5
    Str1: str = "test1"
    Str2: str = '"inside"outside'
    Stamp1: datetime = datetime(2020, 3, 31, 15, 0, 0)
    Duration1: timedelta = timedelta(seconds=10)
    IP1: IPv4Address = ip_address("1.1.1.1")
    IP2: IPv6Address = ip_address("2001:dead::1")


@pytest.fixture
def sample():
    """Record with one field of every supported kind."""
    return SampleStats()


# (rule, expected result); None means the rule must raise
RULE_TABLE = [
    # int
    ("Num1:==:-120", True),
    (" Num1 :  ==: -120 ", True),
    (" Num1a :  ==: 120 ", None),
    ("Num1:!=:-120", False),
    ("Num1:!=:12 0", None),
    ("Num1:>=:100", False),
    ("Num1:>=:-200", True),
    ("Num1:! =:120", None),
    ("Num1:<=:-100", True),
    ("Num1:>:100", False),
    ("Num1:<:-100", True),
    ("Num1:*&:100", None),
    ("Num1:in:100", None),
    ("Num1:==:abd", None),
    ("Num1:==:111abd", None),
    ("Num1:in:-120 130", True),
    ("Num1:notin:120 130", True),
    ("Num1:is:60 -120 130", True),
    ("Num1:not:60 33 120 130", True),
    # uint
    ("Num_uint1:==:111abd", None),
    ("Num_uint1:>=:111abd", None),
    ("Num_uint1:>=:100", True),
    ("Num_uint1:==:0x78", True),
    ("Num_uint1:==:-120", None),
    ("Num_uint1:is:1 2 120", True),
    # float
    ("Float1:>=:11.2", True),
    ("Float1:>=:-11.2", True),
    ("Float1:<:100", True),
    ("Float1:>=:111abd", None),
    ("Float1:in:10 20", True),
    ("Float1:is:3 12.5", True),
    ("Float1:not:3 12.5", False),
    # string
    ('Str1:same:"test2" : "test1"', True),
    ('Str1:same:"test1" : "test2"', True),
    ('Str1:differ:"test3" "test2"', True),
    ('Str2:same:"\\"inside\\"outside" "test2"', True),
    ('Str1:contain:"test" "test2"', True),
    ('Str2:same:"\\"inside\\"" "test2"', False),
    ('Str2:contain:"\\"inside\\"" "test2" ""', True),
    ('Str1:same:test1 "test2"', False),
    ("Str1:same:test1 ", None),
    ('Str1:notcontain:"fail" "warn"', True),
    # duration
    ("Duration1:==:0m10s", True),
    ("Duration1:==:10s", True),
    ("Duration1:<:1h", True),
    ("Duration1:==:0m10sm", None),
    ("Duration1:==:100", None),
    ("Duration1:in:1s 1h", True),
    ("Duration1:notin:1h 2h", True),
    ("Duration1:is:10s 2h 3m", True),
    ("Duration1:is:2h 10s 3m", True),
    # timestamp
    ("Stamp1:==:2020/03/31T15:00:00", True),
    ("Stamp1:>:2010/01/31T15:00:00", True),
    ("Stamp1:<:2030/12/31T15:00:00", True),
    ("Stamp1:is:3030/04/13T15:00:00 2020/03/31T15:00:00 1200/04/13T15:00:00 ", True),
    ("Stamp1:in:2020/03/11T15:00:00 2020/04/13T15:00:00 ", True),
    # IP
    ("IP1:within:1.1.1.1/32 2.2.2.2/32", True),
    ("IP1:within:1.1.1.1 2.2.2.2/32", None),
    ("IP1:within:1.1.1.1/24 2.2.2.2/32", True),
    ("IP1:within:1.1.1.0/32 2.2.2.2/32", False),
    ("IP1:within:1.1.1.99/24 2.2.2.2/32", True),
    ("IP2:within:2001:dead::99/64 2002:beef::/128", True),
    ("IP2:notwithin:2002:dead::23/64 2002:beef::/128", True),
    ("IP2:notwithin:2001:dead::99/64", False),
    ("IP1:within:1.1.1.1/32 2001:dead::1/32", True),
]


class TestRuleTable:
    """Every rule in the table against one record, with one reused CmpRule."""

    @pytest.mark.parametrize("text, expected", RULE_TABLE)
    def test_fresh_rule(self, sample, text, expected):
        """Each rule on a new CmpRule."""
        rule = CmpRule()
        if expected is None:
            with pytest.raises(CmpRuleError):
                rule.parse(text)
                rule.compare(sample)
        else:
            assert rule.parse(text).compare(sample) is expected

    def test_reused_rule(self, sample):
        """One instance reparsed for every row gives the same answers."""
        rule = CmpRule()
        for text, expected in RULE_TABLE:
            try:
                rule.parse(text)
                result, err = rule.check(sample)
            except CmpRuleError as e:
                result, err = False, e

            if expected is None:
                assert err is not None, text
            else:
                assert err is None, f"{text}: {err}"
                assert result is expected, text


class TestScenarios:
    """End-to-end scenarios."""

    def test_int_greater_than(self, sample):
        assert parse_rule("Num1:>:100").check(sample) == (False, None)

    def test_float_in_range(self, sample):
        assert parse_rule("Float1:in:10 20").check(sample) == (True, None)

    def test_string_contain(self, sample):
        assert parse_rule('Str1:contain:"test"').check(sample) == (True, None)

    def test_duration_greater_than(self, sample):
        assert parse_rule("Duration1:>:5s").check(sample) == (True, None)

    def test_ip_within(self, sample):
        assert parse_rule("IP1:within:1.1.1.0/24").check(sample) == (True, None)

    def test_unknown_operator(self):
        with pytest.raises(InvalidOperatorError):
            parse_rule("Num1:*&:100")


class TestParse:
    """Tests for CmpRule.parse."""

    def test_fields(self):
        """Parsing fills path, operator and parsed value."""
        rule = parse_rule(" stats.packets : in : 10 20 ")
        assert rule.field_path == ["stats", "packets"]
        assert rule.operator == "in"
        assert rule.raw_value == "10 20"
        assert rule.shape == ValueShape.RANGE
        assert rule.parsed_value == Range("10", "20")

    def test_single_and_list_shapes(self):
        """Single keeps the raw text, is/not keep a token list."""
        assert parse_rule("a:>=:0x10").parsed_value == Single("0x10")
        assert parse_rule("a:is:1 2 3").parsed_value == ValueList(("1", "2", "3"))

    def test_string_list_materialized(self):
        """String operators keep the unescaped strings."""
        rule = parse_rule('msg:contain:"a\\"b" "c"')
        assert rule.strings == ['a"b', "c"]

    def test_networks_materialized(self):
        """IP operators keep parsed networks."""
        rule = parse_rule("addr:within:10.1.2.3/8 2001:db8::/32")
        assert [str(n) for n in rule.networks] == ["10.0.0.0/8", "2001:db8::/32"]

    def test_malformed(self):
        """Missing delimiters is a malformed rule."""
        with pytest.raises(MalformedRuleError):
            parse_rule("Num1 >= 5")

    def test_empty_path_component(self):
        """Paths can't have empty components."""
        with pytest.raises(MalformedRuleError):
            parse_rule("a..b:==:1")

    def test_range_needs_two_values(self):
        with pytest.raises(ValueParseFailureError):
            parse_rule("a:in:1 2 3")

    def test_empty_list(self):
        with pytest.raises(ValueParseFailureError):
            parse_rule("a:is:   ")

    def test_reparse_resets(self, sample):
        """Reparsing discards the old rule and its cache."""
        rule = parse_rule("Num1:<:0")
        assert rule.compare(sample) is True
        assert rule.prepared.kind == PreparedKind.AS_INTEGER

        rule.parse('Str1:same:"test1"')
        assert rule.prepared.kind == PreparedKind.NOT_PREPARED
        assert rule.field_path == ["Str1"]
        assert rule.compare(sample) is True

    def test_failed_parse_leaves_rule_unparsed(self, sample):
        """A rule that failed to parse can't be compared."""
        rule = parse_rule("Num1:<:0")
        with pytest.raises(InvalidOperatorError):
            rule.parse("Num1:<>:0")
        assert not rule.is_parsed
        with pytest.raises(MalformedRuleError):
            rule.compare(sample)

    def test_compare_before_parse(self, sample):
        with pytest.raises(MalformedRuleError, match="not been parsed"):
            CmpRule().compare(sample)


class TestCompareErrors:
    """Errors raised while evaluating."""

    def test_no_such_field(self, sample):
        with pytest.raises(NoSuchFieldError):
            parse_rule("Missing:==:1").compare(sample)

    def test_operator_kind_mismatch(self, sample):
        """Operators must match the field's domain."""
        cases = ["Str1:>:5", 'Num1:same:"x"', "IP1:==:1", "Num1:within:1.0.0.0/8"]
        for text in cases:
            with pytest.raises(OperatorKindMismatchError):
                parse_rule(text).compare(sample)

    def test_unsupported_kind(self):
        """bool, composites and unknown objects have no comparator."""
        for value in (True, {"inner": 1}, object(), [1, 2]):
            with pytest.raises(UnsupportedFieldKindError):
                parse_rule("x:==:1").compare({"x": value})

    def test_inverted_range(self, sample):
        """max < min is found after reduction."""
        with pytest.raises(InvertedRangeError):
            parse_rule("Num1:in:130 -120").compare(sample)
        with pytest.raises(InvertedRangeError):
            parse_rule("Duration1:in:1h 1s").compare(sample)
        # Text order doesn't matter, value order does
        assert parse_rule("Num1:in:-0x80 0x10").compare(sample) is True

    def test_check_returns_error(self, sample):
        """check() reports errors alongside False."""
        passed, err = parse_rule("Num1:==:abc").check(sample)
        assert passed is False
        assert isinstance(err, ThresholdReduceFailureError)

    def test_ip_families(self):
        """Addresses only match networks of their own family, mapped IPv4 included."""
        assert parse_rule("a:within:::/0").compare({"a": ip_address("10.0.0.1")}) is False
        assert parse_rule("a:within:0.0.0.0/0").compare({"a": ip_address("::1")}) is False
        assert parse_rule("a:within:10.0.0.0/8").compare({"a": ip_address("::ffff:10.1.2.3")}) is True

    def test_check_numpy_nat(self):
        """numpy NaT values are empty references."""
        passed, err = parse_rule("t:>:2020/01/01T00:00:00").check({"t": np.datetime64("NaT")})
        assert passed is False
        assert isinstance(err, NilReferenceError)

        passed, err = parse_rule("d:>:5s").check({"d": np.timedelta64("NaT")})
        assert passed is False
        assert isinstance(err, NilReferenceError)

    def test_errors_are_value_errors(self, sample):
        """All rule errors can be caught as ValueError."""
        with pytest.raises(ValueError):
            parse_rule("Missing:==:1").compare(sample)


class TestNestedRecords:
    """Rules against nested records."""

    def test_nested_path(self):
        record = {"stats": {"latency": {"p99": timedelta(milliseconds=120)}}}
        assert evaluate_rule("stats.latency.p99 : < : 250ms", record) is True

    def test_optional_reference(self):
        """Optional references are dereferenced on the way."""
        record = {"peer": Ref({"addr": ip_address("10.0.0.7")})}
        assert evaluate_rule("peer.addr:within:10.0.0.0/24", record) is True

    def test_empty_reference(self):
        record = {"peer": Ref()}
        rule = parse_rule("peer.addr:within:10.0.0.0/24")
        with pytest.raises(NilReferenceError):
            rule.compare(record)

    def test_dataclass_optional_field(self):
        """None in a dataclass field is an empty reference."""

        @dataclass
        class Inner:
            count: int = 3

        @dataclass
        class Outer:
            inner: Inner | None = field(default_factory=Inner)

        rule = parse_rule("inner.count:is:1 2 3")
        assert rule.compare(Outer()) is True
        with pytest.raises(NilReferenceError):
            rule.compare(Outer(inner=None))


class TestPreparedCache:
    """Tests for the prepared-threshold cache."""

    @pytest.fixture
    def counted(self):
        """Rule whose integer reducer records every call."""
        calls = []

        def reduce_int(text):
            calls.append(text)
            return parse_int64(text)

        return CmpRule(ParserHooks(reduce_int=reduce_int)), calls

    def test_reduces_once_per_kind(self, counted):
        """Repeated evaluation against the same kind reuses the threshold."""
        rule, calls = counted
        rule.parse("n:in:1 5")

        assert rule.compare({"n": 3}) is True
        assert rule.compare({"n": 9}) is False
        assert rule.compare({"n": 5}) is True

        assert calls == ["1", "5"]
        assert rule.prepared.kind == PreparedKind.AS_INTEGER
        assert rule.prepared.value == Range(1, 5)

    def test_clear_prepared(self, counted):
        """Clearing forces another reduction but keeps the parsed rule."""
        rule, calls = counted
        rule.parse("n:>:10")
        assert rule.compare({"n": 11}) is True

        rule.clear_prepared()
        assert rule.prepared.kind == PreparedKind.NOT_PREPARED
        assert rule.parsed_value == Single("10")

        assert rule.compare({"n": 11}) is True
        assert calls == ["10", "10"]

    def test_kind_drift_rereduces(self):
        """Switching between numeric kinds re-runs the matching reducer."""
        rule = parse_rule("x:>:10")
        assert rule.compare({"x": 11}) is True
        assert rule.prepared.kind == PreparedKind.AS_INTEGER

        assert rule.compare({"x": 10.5}) is True
        assert rule.prepared.kind == PreparedKind.AS_FLOAT

        assert rule.compare({"x": np.uint16(9)}) is False
        assert rule.prepared.kind == PreparedKind.AS_UNSIGNED
        assert rule.prepared.reductions == 3

    def test_failed_reduction_clears(self):
        """A reduction failure leaves the cache empty."""
        rule = parse_rule("x:>:5s")
        assert rule.compare({"x": timedelta(seconds=6)}) is True
        assert rule.prepared.kind == PreparedKind.AS_DURATION

        with pytest.raises(ThresholdReduceFailureError):
            rule.compare({"x": 6})
        assert rule.prepared.kind == PreparedKind.NOT_PREPARED

        # Still usable against the original kind
        assert rule.compare({"x": timedelta(seconds=4)}) is False

    def test_cache_transparency(self):
        """Cached results match direct computation, before and after clearing."""
        rule = parse_rule("v:in:0 10")
        for v in range(-5, 16):
            expected = 0 <= v <= 10
            assert rule.compare({"v": v}) is expected
            rule.clear_prepared()
            assert rule.compare({"v": v}) is expected

    def test_idempotent(self, sample):
        """Re-evaluating gives the same result."""
        rule = parse_rule("Stamp1:in:2020/03/11T15:00:00 2020/04/13T15:00:00")
        results = {rule.compare(sample) for _ in range(5)}
        assert results == {True}

    def test_single_operators_match_relation(self):
        """Single operators agree with the mathematical relation."""
        relations = {
            "==": lambda x, t: x == t,
            "!=": lambda x, t: x != t,
            ">=": lambda x, t: x >= t,
            "<=": lambda x, t: x <= t,
            ">": lambda x, t: x > t,
            "<": lambda x, t: x < t,
        }
        for op, relation in relations.items():
            rule = parse_rule(f"x:{op}:0")
            for x in (-3, 0, 3):
                assert rule.compare({"x": x}) is relation(x, 0), f"{x} {op} 0"

    def test_list_membership(self):
        """is/not test membership in the reduced list."""
        is_rule = parse_rule("x:is:0x10 017 3")
        not_rule = parse_rule("x:not:0x10 017 3")
        for x in (16, 15, 3, 4):
            assert is_rule.compare({"x": x}) is (x in (16, 15, 3))
            assert not_rule.compare({"x": x}) is (x not in (16, 15, 3))


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
