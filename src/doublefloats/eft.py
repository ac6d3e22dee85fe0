"""
eft.py — Error-free transformations

An error-free transformation computes a rounded floating-point result together
with its exact rounding error, using only operations of the same format.
two_sum is the one every double-float value is built on.

The operands are numpy scalars of one width (Python floats are accepted for
binary64). numpy evaluates each operation separately, in the written order,
without contraction into fused operations, which is what makes the error term
exact under round-to-nearest-even.
"""

from __future__ import annotations

import numpy as np


def two_sum(a, b):
    """
    Knuth's TwoSum.

    Returns (hi, lo) with hi = fl(a + b) and hi + lo == a + b exactly.
    If a + b overflows, hi is the signed infinity and lo is NaN.

    INVARIANT: |lo| <= ulp(hi) / 2 for every finite result.
    """
    with np.errstate(over="ignore", invalid="ignore"):
        s = a + b
        bb = s - a
        lo = (a - (s - bb)) + (b - bb)
    return s, lo


def is_canonical_pair(hi, lo) -> bool:
    """True when re-summing (hi, lo) leaves both limbs unchanged."""
    new_hi, new_lo = two_sum(hi, lo)
    return bool(new_hi == hi) and bool(new_lo == lo)
