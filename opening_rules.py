#!/usr/bin/env python3
"""
opening_rules.py

Compare two populations of piece events (as written by piece_events.py) and print the generalized
patterns that are over-represented in the first one.

- Each input line is one event: piece,event,square,move,by.
- Populations are chosen by one field (default: square, field 2): lines equal to --first go to the
  first population, lines equal to --second to the second; the field is then dropped.
- Every remaining 4-field record is expanded into its 14 generalized patterns and counted per population,
  exactly (optionally sharded over worker processes) or with a bounded Space-Saving summary (--mode approx).
- A rule is printed when support_first > --min-support and risk_ratio > --min-risk-ratio.

Only patterns seen in the first population are reported.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from pattern_counts import COUNTING_MODES, DEFAULT_CAPACITY, count_population
from piece_events import open_text
from risk_ratio import MIN_RISK_RATIO, MIN_SUPPORT, compute_rules, filter_rules, format_rule
from rule_patterns import MASKS, RECORD_WIDTH, Record


# ----------------------------
# Constants
# ----------------------------

INPUT_WIDTH = RECORD_WIDTH + 1

DEFAULT_SPLIT_FIELD = 2
DEFAULT_FIRST = "e5"
DEFAULT_SECOND = "e4"


# ----------------------------
# Input
# ----------------------------

def read_records(lines: Iterable[str], width: int = INPUT_WIDTH, progress_every: int = 0) -> Tuple[List[Record], int]:
    """Parse comma-separated lines; returns (records, skipped). Lines of the wrong width are reported and skipped."""
    records: List[Record] = []
    skipped = 0
    count = 0
    for line in lines:
        line = line.rstrip("\r\n")
        if not line:
            continue
        count += 1
        if progress_every > 0 and count % progress_every == 0:
            print(f"[input-count]: {count}", file=sys.stderr, flush=True)

        fields = tuple(line.split(","))
        if len(fields) != width:
            skipped += 1
            print(f"WARNING: expected {width} fields, got {len(fields)}: {list(fields)!r}", file=sys.stderr, flush=True)
            continue
        records.append(fields)
    return records, skipped


def split_populations(
    records: Iterable[Sequence[str]],
    field: int = DEFAULT_SPLIT_FIELD,
    first_value: str = DEFAULT_FIRST,
    second_value: str = DEFAULT_SECOND,
) -> Tuple[List[Record], List[Record]]:
    first: List[Record] = []
    second: List[Record] = []
    for r in records:
        v = r[field]
        if v == first_value:
            first.append(tuple(r[:field]) + tuple(r[field + 1:]))
        elif v == second_value:
            second.append(tuple(r[:field]) + tuple(r[field + 1:]))
    return first, second


# ----------------------------
# CLI
# ----------------------------

def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(
        description="Report event patterns over-represented in one population of piece events versus another."
    )
    ap.add_argument("paths", nargs="+", help="Event CSV files (plain, .zst or .bz2) or '-' for stdin.")
    ap.add_argument("--split-field", type=int, default=DEFAULT_SPLIT_FIELD, help="Field index used to split populations.")
    ap.add_argument("--first", default=DEFAULT_FIRST, help="Split field value of the first population.")
    ap.add_argument("--second", default=DEFAULT_SECOND, help="Split field value of the second population.")
    ap.add_argument("--mode", choices=sorted(COUNTING_MODES), default="exact")
    ap.add_argument("--capacity", type=int, default=DEFAULT_CAPACITY, help="Space-Saving capacity per population (approx mode).")
    ap.add_argument("--workers", type=int, default=1, help="Worker processes for exact counting.")
    ap.add_argument("--min-support", type=float, default=MIN_SUPPORT)
    ap.add_argument("--min-risk-ratio", type=float, default=MIN_RISK_RATIO)
    ap.add_argument("--progress-every", type=int, default=10000, help="Input lines between progress logs; 0 disables.")
    return ap.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    problem = None
    if not 0 <= args.split_field < INPUT_WIDTH:
        problem = f"--split-field must be in [0, {INPUT_WIDTH}), got {args.split_field}."
    elif args.first == args.second:
        problem = "--first and --second must differ."
    elif args.workers < 1:
        problem = "--workers must be >= 1."
    elif args.mode == "approx" and args.capacity < 1:
        problem = f"--capacity must be >= 1, got {args.capacity}."
    if problem is not None:
        print(f"Error: {problem}", file=sys.stderr)
        return 1

    paths = [p for p in args.paths if p == "-" or Path(p).is_file()]
    for p in args.paths:
        if p not in paths:
            print(f"skip: {p}: not a file", file=sys.stderr)
    if not paths:
        print(f"No input files found (paths={args.paths!r}).", file=sys.stderr)
        return 2

    records: List[Record] = []
    skipped = 0
    for p in paths:
        print(p, file=sys.stderr, flush=True)
        with open_text(p) as stream:
            recs, sk = read_records(stream, progress_every=args.progress_every)
        records.extend(recs)
        skipped += sk

    first, second = split_populations(records, args.split_field, args.first, args.second)
    print(
        f"records={len(records)} skipped={skipped} first={len(first)} second={len(second)} mode={args.mode}",
        file=sys.stderr,
        flush=True,
    )

    first_table = count_population(first, MASKS, args.mode, args.capacity, args.workers)
    second_table = count_population(second, MASKS, args.mode, args.capacity, args.workers)

    rules = compute_rules(first_table, second_table, second_total=len(second))
    for r in filter_rules(rules, args.min_support, args.min_risk_ratio):
        print(format_rule(r))

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
