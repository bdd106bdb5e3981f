import math
import sys
from pathlib import Path

import pytest

# Ensure project root (parent of tests/) is importable
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pattern_counts as pc  # noqa: E402
import risk_ratio as rr  # noqa: E402


A = ("A", "*", "*", "*")
B = ("*", "B", "*", "*")


def test_common_rule_formula():
    # fc=9 ft=10 sc=2 st=10: p_rule=9/11, p_without=1/9.
    rule = rr.common_rule(A, (9, 10), (2, 10))
    assert rule.support_first == pytest.approx(0.9)
    assert rule.support_second == pytest.approx(0.2)
    assert rule.risk_ratio == pytest.approx((9 / 11) / (1 / 9))


def test_common_rule_zero_denominator_gives_zero():
    rule = rr.common_rule(A, (5, 5), (3, 3))
    assert rule.risk_ratio == 0.0


def test_common_rule_first_without_rule_zero_gives_infinity():
    rule = rr.common_rule(A, (5, 5), (1, 3))
    assert math.isinf(rule.risk_ratio)
    assert rule.risk_ratio > 0


def test_first_only_rule_uses_second_total():
    # fc=4 ft=10 st=10: total_without=16, first_without=6, p_rule=1.
    rule = rr.first_only_rule(A, (4, 10), 10)
    assert rule.support_second == 0.0
    assert rule.risk_ratio == pytest.approx(1.0 / (6 / 16))


def test_scenario_all_first_records_match():
    first = {A: (10, 10)}
    second = {A: (2, 10)}
    [rule] = rr.compute_rules(first, second)
    assert rule.support_first == 1.0
    assert rule.support_second == pytest.approx(0.2)
    assert rule.risk_ratio > 1.2
    assert math.isinf(rule.risk_ratio)
    assert rr.filter_rules([rule]) == [rule]


def test_scenario_support_on_threshold_is_filtered_out():
    first = {A: (1, 20)}
    second = {B: (3, 15)}
    [rule] = rr.compute_rules(first, second)
    assert rule.support_first == 0.05
    assert rule.support_second == 0.0
    assert rr.filter_rules([rule]) == []


def test_scenario_empty_second_table_with_known_total():
    first = {A: (7, 7)}
    [rule] = rr.compute_rules(first, {}, second_total=4)
    assert math.isinf(rule.risk_ratio)
    assert rr.filter_rules([rule]) == [rule]


def test_empty_second_without_total_gives_zero_ratio():
    [rule] = rr.compute_rules({A: (7, 7)}, {})
    assert rule.risk_ratio == 0.0


def test_patterns_only_in_second_are_not_reported():
    first = {A: (3, 10)}
    second = {A: (1, 10), B: (9, 10)}
    rules = rr.compute_rules(first, second)
    assert [r.pattern for r in rules] == [A]


def test_rules_sorted_by_pattern():
    first = {B: (1, 4), A: (2, 4)}
    rules = rr.compute_rules(first, {A: (1, 4)})
    assert [r.pattern for r in rules] == sorted([A, B])


def test_inconsistent_totals_are_reported():
    with pytest.raises(rr.InconsistentPopulationTotal):
        rr.compute_rules({A: (1, 10), B: (1, 11)}, {})
    with pytest.raises(AssertionError):
        rr.compute_rules({A: (1, 10)}, {A: (1, 5)}, second_total=6)


def test_population_total():
    assert rr.population_total({}) is None
    assert rr.population_total({A: (1, 10), B: (3, 10)}) == 10


def test_filter_thresholds_are_strict_and_configurable():
    rules = [
        rr.Rule(A, 0.5, 0.1, 1.2),
        rr.Rule(B, 0.5, 0.1, 1.3),
    ]
    assert [r.pattern for r in rr.filter_rules(rules)] == [B]
    assert rr.filter_rules(rules, min_support=0.5) == []
    assert len(rr.filter_rules(rules, min_risk_ratio=1.0)) == 2


def test_format_rule():
    line = rr.format_rule(rr.Rule(A, 0.1234, 0.0, 2.5))
    assert line == "[rule]: ['A', '*', '*', '*'] 12.34% 2.50"
    assert rr.format_rule(rr.Rule(A, 1.0, 0.0, math.inf)).endswith("100.00% inf")


def test_end_to_end_from_records():
    first = [("A", "x", "1", "n")] * 9 + [("C", "y", "2", "n")]
    second = [("A", "y", "1", "n")] * 2 + [("C", "y", "2", "n")] * 8
    for mode in pc.COUNTING_MODES:
        ft = pc.count_population(first, mode=mode)
        st = pc.count_population(second, mode=mode)
        rules = {r.pattern: r for r in rr.compute_rules(ft, st, second_total=len(second))}
        a = rules[("A", "*", "*", "*")]
        assert a.support_first == pytest.approx(0.9)
        assert a.support_second == pytest.approx(0.2)
        assert a.risk_ratio == pytest.approx((9 / 11) / (1 / 9))
        kept = {r.pattern for r in rr.filter_rules(rules.values())}
        assert ("A", "*", "*", "*") in kept
        assert ("C", "*", "*", "*") not in kept
