#!/usr/bin/env python3
# -*- coding: utf-8 -*-
#
# Support and risk ratio of generalized patterns between two populations.
#
# Key conventions (explicit):
# - inputs are FrequencyTables: pattern -> (count, population_total).
# - support_x = count_x / total_x.
# - risk_ratio = P(first | pattern) / P(first | not pattern).
# - rules are anchored in the first population: patterns seen only in the second population are never reported.
#   This asymmetry is deliberate (the question asked is "what predicts the first population").

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from pattern_counts import FrequencyTable
from rule_patterns import Pattern


# ----------------------------
# Constants
# ----------------------------

MIN_SUPPORT = 0.05
MIN_RISK_RATIO = 1.2


class InconsistentPopulationTotal(AssertionError):
    pass


@dataclass(frozen=True)
class Rule:
    pattern: Pattern
    support_first: float
    support_second: float
    risk_ratio: float


# ----------------------------
# Statistics
# ----------------------------

def population_total(table: FrequencyTable) -> Optional[int]:
    """The population total shared by every entry, or None for an empty table."""
    totals = {t for _, t in table.values()}
    if not totals:
        return None
    if len(totals) > 1:
        raise InconsistentPopulationTotal(f"FrequencyTable has several population totals: {sorted(totals)}")
    return next(iter(totals))


def _risk_ratio(fc: int, ft: int, sc: int, st: int, p_rule: float) -> float:
    total_without_rule = (ft - fc) + (st - sc)
    first_without_rule = ft - fc
    if total_without_rule == 0:
        return 0.0
    if first_without_rule == 0:
        return math.inf
    p_without_rule = first_without_rule / total_without_rule
    return p_rule / p_without_rule


def common_rule(pattern: Pattern, first: Tuple[int, int], second: Tuple[int, int]) -> Rule:
    fc, ft = first
    sc, st = second
    p_rule = fc / (fc + sc)
    return Rule(
        pattern=pattern,
        support_first=fc / ft,
        support_second=sc / st,
        risk_ratio=_risk_ratio(fc, ft, sc, st, p_rule),
    )


def first_only_rule(pattern: Pattern, first: Tuple[int, int], second_total: int) -> Rule:
    fc, ft = first
    return Rule(
        pattern=pattern,
        support_first=fc / ft,
        support_second=0.0,
        risk_ratio=_risk_ratio(fc, ft, 0, second_total, 1.0),
    )


def compute_rules(
    first: FrequencyTable,
    second: FrequencyTable,
    second_total: Optional[int] = None,
) -> List[Rule]:
    """Rules for every pattern of the first table, sorted by pattern.

    second_total is the size of the second population; when omitted it is read from
    the second table (0 if that table is empty). Both tables must be complete.
    """
    population_total(first)
    table_total = population_total(second)
    if second_total is None:
        second_total = table_total or 0
    elif table_total is not None and table_total != second_total:
        raise InconsistentPopulationTotal(
            f"Second population total {second_total} disagrees with its FrequencyTable ({table_total})"
        )

    rules: List[Rule] = []
    for pattern in sorted(first):
        other = second.get(pattern)
        if other is not None:
            rules.append(common_rule(pattern, first[pattern], other))
        else:
            rules.append(first_only_rule(pattern, first[pattern], second_total))
    return rules


def filter_rules(
    rules: Iterable[Rule],
    min_support: float = MIN_SUPPORT,
    min_risk_ratio: float = MIN_RISK_RATIO,
) -> List[Rule]:
    return [r for r in rules if r.support_first > min_support and r.risk_ratio > min_risk_ratio]


def format_rule(rule: Rule) -> str:
    return f"[rule]: {list(rule.pattern)!r} {rule.support_first * 100.0:.2f}% {rule.risk_ratio:.2f}"
