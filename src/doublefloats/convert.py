"""
convert.py — Conversion network between reals and double-floats

================================================================================
PATHS
================================================================================

Every conversion is looked up in an explicit table, never left to implicit
coercion:

    source kind      destination      path
    -----------      -----------      ----
    integer          any width        split_integer  (exact integer value)
    real             any width        split          (exact rational value)
    pair (a, b)      any width        from_tuple     (promote, canonicalise)
    DoubleFloat      same width       identity
    DoubleFloat      wider            widen          (exact cast + two_sum)
    DoubleFloat      narrower         narrow         (exact sum + split)

Widening never loses bits, so casting the limbs and re-running two_sum is
enough. Narrowing goes through the exact rational hi + lo so that the
information held in the source lo limb reaches the narrower pair.

Non-finite sources never raise: hi keeps the infinity or NaN, lo is NaN.

================================================================================
"""

from __future__ import annotations
from enum import Enum
import logging
import math

import numpy as np

from .core import DoubleFloat, double_type, resolve_format
from .eft import two_sum
from .formats import FloatFormat, is_finite_real, is_integral, is_real, to_mpq

logger = logging.getLogger(__name__)


# ==============================================================================
# SOURCE KINDS
# ==============================================================================

class SourceKind(Enum):
    INTEGER = "integer"
    REAL = "real"
    PAIR = "pair"
    DOUBLE_FLOAT = "double_float"


def source_kind(value) -> SourceKind:
    """
    Classify a conversion source.

    Raises:
        TypeError: value is not a real, a 2-tuple or a DoubleFloat
    """
    if isinstance(value, DoubleFloat):
        return SourceKind.DOUBLE_FLOAT
    if isinstance(value, tuple):
        return SourceKind.PAIR
    if is_integral(value):
        return SourceKind.INTEGER
    if is_real(value):
        return SourceKind.REAL
    raise TypeError(
        f"Cannot convert {type(value).__name__} to a double-float. "
        f"Use a real number, a (hi, lo) tuple or a DoubleFloat."
    )


# ==============================================================================
# SCALAR SPLITTER
# ==============================================================================

def split(value, target) -> DoubleFloat:
    """
    Split a real into a canonical pair at the target width.

        hi = round(x)
        lo = round(x - hi)      # x - hi computed exactly

    The result is canonical by construction and is still passed through
    the canonicalising constructor. Zero keeps its sign on hi. A finite
    value too large for the width becomes (±inf, nan), non-finite input
    becomes (x, nan).
    """
    fmt = resolve_format(target)
    result_type = double_type(fmt)
    if not is_finite_real(value):
        return result_type.raw(fmt.round_non_finite(value), fmt.nan)

    exact = to_mpq(value)
    if exact == 0:
        hi = fmt.round(value)
        # two_sum(-0.0, -0.0) keeps the sign of hi
        return result_type.canonical(hi, hi)

    hi = fmt.round_exact(exact)
    if not fmt.is_finite(hi):
        logger.debug("%r overflows %s, collapsing to (%r, nan)", value, fmt.label, hi)
        return result_type.raw(hi, fmt.nan)

    lo = fmt.round_exact(exact - to_mpq(hi))
    return result_type.canonical(hi, lo)


def split_integer(value, target) -> DoubleFloat:
    """
    Split an integer of any size. The integer is used exactly, so values
    beyond 2**53 keep their low bits in lo.
    """
    return split(int(value), target)


# ==============================================================================
# PAIRS
# ==============================================================================

def promote_pair(hi, lo, target=None) -> DoubleFloat:
    """
    Canonical double-float from two reals of possibly different types.

    Two integers are added exactly and split. Otherwise both values are
    rounded to a common width (the target, or the widest native float
    among them) and passed through two_sum.
    """
    if is_integral(hi) and is_integral(lo):
        fmt = resolve_format(target) if target is not None else FloatFormat.DOUBLE
        return split(int(hi) + int(lo), fmt)
    fmt = resolve_format(target) if target is not None else FloatFormat.common(hi, lo)
    return double_type(fmt).canonical(hi, lo)


def from_tuple(pair: tuple, target) -> DoubleFloat:
    """
    Interpret a 2-tuple positionally as (hi, lo) at the target width.

    Tuples of reals are promoted and canonicalised, tuples holding
    DoubleFloat values are combined at the target width.
    """
    if len(pair) != 2:
        raise ValueError(f"Expected a (hi, lo) pair, got a tuple of length {len(pair)}")
    hi, lo = pair
    if isinstance(hi, DoubleFloat) or isinstance(lo, DoubleFloat):
        return combine(hi, lo, target)
    return promote_pair(hi, lo, target)


# ==============================================================================
# SAME-WIDTH COMPOSITION
# ==============================================================================

def combine(x, y, target=None) -> DoubleFloat:
    """
    Sum of two operands as one double-float of a single width.

    Scalars are first promoted to zero-residual double-floats, then the
    pairs are added with a two_sum cascade:

        s, e = two_sum(x.hi, y.hi)
        t, f = two_sum(x.lo, y.lo)
        s, e = two_sum(s, e + t)
        hi, lo = two_sum(s, e + f)

    Without a target, the width is the one of the DoubleFloat operand(s).

    Raises:
        ValueError: two DoubleFloat operands of different widths and no
            target width
    """
    if target is not None:
        fmt = resolve_format(target)
    else:
        formats = {value.fmt for value in (x, y) if isinstance(value, DoubleFloat)}
        if len(formats) > 1:
            raise ValueError(
                f"Cannot combine double-floats of different widths: "
                f"{sorted(fmt.width for fmt in formats)}. Convert one of them first."
            )
        fmt = formats.pop() if formats else FloatFormat.common(x, y)

    x = convert(x, fmt)
    y = convert(y, fmt)
    result_type = double_type(fmt)
    if not (x.is_finite() and y.is_finite()):
        with np.errstate(over="ignore", invalid="ignore"):
            return result_type.raw(x.hi + y.hi, fmt.nan)

    with np.errstate(over="ignore", invalid="ignore"):
        s, e = two_sum(x.hi, y.hi)
        t, f = two_sum(x.lo, y.lo)
        s, e = two_sum(s, e + t)
        hi, lo = two_sum(s, e + f)
    if not fmt.is_finite(hi):
        overflow = math.copysign(math.inf, float(x.hi) + float(y.hi))
        return result_type.raw(overflow, fmt.nan)
    return result_type.raw(hi, lo)


# ==============================================================================
# WIDTH CHANGES
# ==============================================================================

def widen(value: DoubleFloat, target) -> DoubleFloat:
    """
    Move a double-float to a wider format.

    Both limbs are cast exactly, then two_sum restores canonical form at
    the finer resolution of the destination.
    """
    fmt = resolve_format(target)
    _check_direction(value, fmt, wider=True)
    result_type = double_type(fmt)
    if not value.is_finite():
        return result_type.raw(fmt.cast(value.hi), fmt.nan)
    hi, lo = two_sum(fmt.cast(value.hi), fmt.cast(value.lo))
    return result_type.raw(hi, lo)


def narrow(value: DoubleFloat, target) -> DoubleFloat:
    """
    Move a double-float to a narrower format.

    Truncating hi alone would drop what lo knows, so the exact sum hi + lo
    is split at the destination width instead.
    """
    fmt = resolve_format(target)
    _check_direction(value, fmt, wider=False)
    result_type = double_type(fmt)
    if not value.is_finite():
        return result_type.raw(fmt.cast(value.hi), fmt.nan)
    exact = value.exact()
    if exact == 0:
        return split(value.hi, fmt)
    logger.debug("narrowing %r to %s through its exact value", value, fmt.label)
    return split(exact, fmt)


def _same_width(value: DoubleFloat, target) -> DoubleFloat:
    fmt = resolve_format(target)
    result_type = double_type(fmt)
    if type(value) is result_type:
        return value
    return result_type.raw(value.hi, value.lo)


def _check_direction(value: DoubleFloat, fmt: FloatFormat, wider: bool) -> None:
    source = value.fmt
    if (fmt.width > source.width) != wider or fmt is source:
        direction = "wider" if wider else "narrower"
        raise ValueError(
            f"{fmt.label} is not {direction} than {source.label}; use convert()"
        )


_H, _S, _D = FloatFormat.HALF, FloatFormat.SINGLE, FloatFormat.DOUBLE

_DOUBLE_FLOAT_PATHS = {
    (_H, _H): _same_width,
    (_H, _S): widen,
    (_H, _D): widen,
    (_S, _H): narrow,
    (_S, _S): _same_width,
    (_S, _D): widen,
    (_D, _H): narrow,
    (_D, _S): narrow,
    (_D, _D): _same_width,
}


def conversion_path(source: FloatFormat, target: FloatFormat):
    """The function converting source-width double-floats to target width."""
    return _DOUBLE_FLOAT_PATHS[(source, target)]


def _convert_double_float(value: DoubleFloat, fmt: FloatFormat) -> DoubleFloat:
    if isinstance(value.hi, DoubleFloat):
        raise TypeError("Nested double-floats have no conversion path")
    return conversion_path(value.fmt, fmt)(value, fmt)


_CONVERTERS = {
    SourceKind.INTEGER: split_integer,
    SourceKind.REAL: split,
    SourceKind.PAIR: from_tuple,
    SourceKind.DOUBLE_FLOAT: _convert_double_float,
}


# ==============================================================================
# ENTRY POINTS
# ==============================================================================

def convert(value, target) -> DoubleFloat:
    """
    Double-float of the target width from any supported source.

    Args:
        value: int, real scalar, (hi, lo) tuple or DoubleFloat
        target: FloatFormat, width in bits or Double16/Double32/Double64

    Raises:
        TypeError: unsupported source type
        ValueError: unsupported width
    """
    fmt = resolve_format(target)
    return _CONVERTERS[source_kind(value)](value, fmt)


def to_scalar(value, target):
    """
    Nearest native float of the target width.

    For a double-float this rounds the exact sum hi + lo once. Non-finite
    double-floats return their hi limb.
    """
    fmt = resolve_format(target)
    if isinstance(value, DoubleFloat):
        if not value.is_finite():
            return fmt.cast(float(value.hi))
        return fmt.round_exact(value.exact())
    if not is_real(value):
        raise TypeError(f"Cannot convert {type(value).__name__} to {fmt.label}")
    return fmt.round(value)
