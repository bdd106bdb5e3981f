#!/usr/bin/env python3
# -*- coding: utf-8 -*-
#
# Generalized patterns of fixed-width event records.
#
# Key conventions (explicit):
# - a mask is a tuple of 0/1 flags, one per record field; 1 keeps the field, 0 replaces it by WILDCARD.
# - patterns are literal keys: WILDCARD is an ordinary value when comparing, never a match operator.

from __future__ import annotations

from itertools import product
from typing import List, Sequence, Tuple


# ----------------------------
# Constants
# ----------------------------

WILDCARD = "*"

# Width of a record once the population field has been dropped.
RECORD_WIDTH = 4

Record = Tuple[str, ...]
Mask = Tuple[int, ...]
Pattern = Tuple[str, ...]


class InvalidWidth(ValueError):
    pass


# ----------------------------
# Masks
# ----------------------------

def nontrivial_masks(width: int) -> List[Mask]:
    """All masks of the given width except all-zero and all-one, in ascending binary order."""
    if width < 1:
        raise InvalidWidth(f"Mask width must be >= 1, got {width}")
    return [m for m in product((0, 1), repeat=width) if 0 < sum(m) < width]


MASKS: List[Mask] = nontrivial_masks(RECORD_WIDTH)


# ----------------------------
# Generation
# ----------------------------

def apply_mask(record: Sequence[str], mask: Mask) -> Pattern:
    if len(mask) != len(record):
        raise InvalidWidth(f"Record width {len(record)} does not match mask width {len(mask)}: {tuple(record)!r}")
    return tuple(v if keep else WILDCARD for v, keep in zip(record, mask))


def generate_patterns(record: Sequence[str], masks: Sequence[Mask] = MASKS) -> List[Pattern]:
    # One pattern per mask, in mask order.
    return [apply_mask(record, m) for m in masks]
