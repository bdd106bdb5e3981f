#!/usr/bin/env python3
# -*- coding: utf-8 -*-
#
# Per-population pattern counting: exact (shardable) and approximate (Space-Saving).
#
# Key conventions (explicit):
# - a FrequencyTable maps pattern -> (count, total).
# - count = number of records whose expansion contains the pattern.
# - total = number of records in the population (not the number of patterns); the same for every entry.
# - a SpaceSaving instance is owned by one population and fed sequentially; it is not safe for concurrent writers.

from __future__ import annotations

import multiprocessing
from collections import Counter
from typing import Callable, Dict, Iterable, List, Sequence, Tuple

from sortedcontainers import SortedList

from rule_patterns import MASKS, Mask, Pattern, generate_patterns


# ----------------------------
# Constants
# ----------------------------

DEFAULT_CAPACITY = 700

FrequencyTable = Dict[Pattern, Tuple[int, int]]


class InvalidCapacity(ValueError):
    pass


# ----------------------------
# Exact counting
# ----------------------------

class ExactCounter:
    """Incremental group-by-count of generated patterns for one population.

    Counters only grow. Shard-local counters are combined with merge(); merging is
    order-independent, so the merged table does not depend on how records were sharded.
    """

    def __init__(self, masks: Sequence[Mask] = MASKS) -> None:
        self.masks = list(masks)
        self.counts: Counter = Counter()
        self.total = 0

    def add(self, record: Sequence[str]) -> None:
        # Expand first so a width error leaves the counter untouched.
        patterns = generate_patterns(record, self.masks)
        self.counts.update(patterns)
        self.total += 1

    def add_all(self, records: Iterable[Sequence[str]]) -> "ExactCounter":
        for r in records:
            self.add(r)
        return self

    def merge(self, other: "ExactCounter") -> None:
        if other.masks != self.masks:
            raise ValueError("Cannot merge counters built with different mask sets.")
        self.counts.update(other.counts)
        self.total += other.total

    def table(self) -> FrequencyTable:
        return {p: (c, self.total) for p, c in self.counts.items()}


def count_exact(records: Iterable[Sequence[str]], masks: Sequence[Mask] = MASKS) -> FrequencyTable:
    return ExactCounter(masks).add_all(records).table()


def _count_shard(args: Tuple[List[Sequence[str]], List[Mask]]) -> ExactCounter:
    shard, masks = args
    return ExactCounter(masks).add_all(shard)


def count_exact_sharded(
    shards: Sequence[List[Sequence[str]]],
    masks: Sequence[Mask] = MASKS,
    workers: int = 1,
) -> FrequencyTable:
    """Count each shard independently, then merge the partial counters in shard order.

    The table is only produced once every shard has been fully counted.
    """
    if workers < 1:
        raise ValueError(f"workers must be >= 1, got {workers}")

    jobs = [(list(s), list(masks)) for s in shards]
    if workers == 1 or len(jobs) <= 1:
        partials = [_count_shard(j) for j in jobs]
    else:
        with multiprocessing.Pool(min(workers, len(jobs))) as pool:
            partials = pool.map(_count_shard, jobs)

    merged = ExactCounter(masks)
    for p in partials:
        merged.merge(p)
    return merged.table()


def shard_records(records: Sequence[Sequence[str]], n: int) -> List[List[Sequence[str]]]:
    # Round-robin split into n shards (some may be empty).
    if n < 1:
        raise ValueError(f"Shard count must be >= 1, got {n}")
    shards: List[List[Sequence[str]]] = [[] for _ in range(n)]
    for i, r in enumerate(records):
        shards[i % n].append(r)
    return shards


# ----------------------------
# Approximate counting (Space-Saving)
# ----------------------------

class SpaceSaving:
    """Space-Saving top-K frequency estimator over a sequential stream of keys.

    Tracks at most `capacity` keys. Each tracked key carries (count, error) where the
    true count lies in [count - error, count]. The ordered index is a SortedList of
    (count, key) pairs, so lookup, update and eviction of the minimum are O(log K);
    the eviction victim is the minimum count, ties broken by the smallest key.

    When capacity is at least the number of distinct keys, nothing is ever evicted
    and every count is exact with error 0.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise InvalidCapacity(f"Space-Saving capacity must be >= 1, got {capacity}")
        self._capacity = capacity
        self._keys: Dict[Pattern, Tuple[int, int]] = {}
        self._index: SortedList = SortedList()

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._keys)

    def _index_remove(self, count: int, key: Pattern) -> None:
        if (count, key) not in self._index:
            raise AssertionError(f"Space-Saving index out of sync for key {key!r}")
        self._index.remove((count, key))

    def insert(self, key: Pattern) -> None:
        val = self._keys.get(key)
        if val is not None:
            count, error = val
            self._index_remove(count, key)
            self._keys[key] = (count + 1, error)
            self._index.add((count + 1, key))
            return

        if len(self._keys) < self._capacity:
            self._keys[key] = (1, 0)
            self._index.add((1, key))
            return

        # Table full: evict the minimum and inherit its count as error.
        min_count, min_key = self._index.pop(0)
        del self._keys[min_key]

        self._keys[key] = (min_count + 1, min_count)
        self._index.add((min_count + 1, key))

    def get_counts(self) -> Dict[Pattern, Tuple[int, int]]:
        return dict(self._keys)


def count_approx(
    records: Iterable[Sequence[str]],
    masks: Sequence[Mask] = MASKS,
    capacity: int = DEFAULT_CAPACITY,
) -> FrequencyTable:
    ss = SpaceSaving(capacity)
    total = 0
    for r in records:
        for p in generate_patterns(r, masks):
            ss.insert(p)
        total += 1
    # The summary's error term is dropped; the population total is tracked outside the summary.
    return {p: (c, total) for p, (c, _err) in ss.get_counts().items()}


# ----------------------------
# Mode dispatch
# ----------------------------

def _exact_mode(records: Sequence[Sequence[str]], masks: Sequence[Mask], capacity: int, workers: int) -> FrequencyTable:
    if workers <= 1:
        return count_exact(records, masks)
    return count_exact_sharded(shard_records(records, workers), masks, workers)


def _approx_mode(records: Sequence[Sequence[str]], masks: Sequence[Mask], capacity: int, workers: int) -> FrequencyTable:
    # Strictly sequential: workers does not apply.
    return count_approx(records, masks, capacity)


COUNTING_MODES: Dict[str, Callable[[Sequence[Sequence[str]], Sequence[Mask], int, int], FrequencyTable]] = {
    "exact": _exact_mode,
    "approx": _approx_mode,
}


def count_population(
    records: Sequence[Sequence[str]],
    masks: Sequence[Mask] = MASKS,
    mode: str = "exact",
    capacity: int = DEFAULT_CAPACITY,
    workers: int = 1,
) -> FrequencyTable:
    fn = COUNTING_MODES.get(mode)
    if fn is None:
        raise ValueError(f"Unknown counting mode {mode!r} (expected one of {sorted(COUNTING_MODES)})")
    return fn(records, masks, capacity, workers)
