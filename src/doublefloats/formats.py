"""
formats.py — IEEE-754 limb formats for double-float values

================================================================================
DESIGN PRINCIPLES
================================================================================

1. ONE IMPLEMENTATION, THREE WIDTHS
   Every algorithm in this package is written once and parameterised by a
   FloatFormat. The format knows its numpy scalar type, its mantissa
   precision and how to round an exact value into itself.

2. EXACT INTERMEDIATES
   Exact values are gmpy2.mpq rationals. Rounding an exact value into a
   format goes through gmpy2's IEEE contexts, which emulate the target
   precision, exponent range, subnormals and overflow of the binary format.

3. NATIVE LIMBS
   Limbs are numpy.float16 / numpy.float32 / numpy.float64 scalars, so the
   arithmetic of the error-free transformations happens in the limb width.

================================================================================
"""

from __future__ import annotations
from decimal import Decimal
from enum import Enum
from typing import Optional
import math
import numbers

import gmpy2
import numpy as np


# ==============================================================================
# FORMAT DEFINITIONS
# ==============================================================================

class FloatFormat(Enum):
    """
    Supported limb formats.

    Each member carries the IEEE interchange name, the storage width in bits
    and the numpy scalar type used for limbs of that width.
    """
    HALF = ("binary16", 16, np.float16)
    SINGLE = ("binary32", 32, np.float32)
    DOUBLE = ("binary64", 64, np.float64)

    def __init__(self, label: str, width: int, scalar_type: type):
        self._label = label
        self._width = width
        self._scalar_type = scalar_type

    @property
    def label(self) -> str:
        return self._label

    @property
    def width(self) -> int:
        return self._width

    @property
    def scalar_type(self) -> type:
        return self._scalar_type

    @property
    def precision(self) -> int:
        """Mantissa bits including the implicit leading bit (11, 24, 53)."""
        return np.finfo(self._scalar_type).nmant + 1

    @property
    def nan(self):
        return self._scalar_type(math.nan)

    @property
    def zero(self):
        return self._scalar_type(0)

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    @classmethod
    def from_width(cls, width: int) -> FloatFormat:
        for fmt in cls:
            if fmt.width == width:
                return fmt
        raise ValueError(
            f"Unsupported floating-point width: {width}. "
            f"Expected one of {[fmt.width for fmt in cls]}."
        )

    @classmethod
    def of(cls, value) -> Optional[FloatFormat]:
        """Format of a native float scalar, or None for any other real."""
        for fmt in cls:
            if isinstance(value, fmt.scalar_type):
                return fmt
        if isinstance(value, float):
            return cls.DOUBLE
        return None

    @classmethod
    def common(cls, *values) -> FloatFormat:
        """
        Widest format among the native floats in values.

        Integers and other exact reals do not vote; with no native float
        at all the result is DOUBLE.
        """
        formats = [fmt for fmt in map(cls.of, values) if fmt is not None]
        if not formats:
            return cls.DOUBLE
        return max(formats, key=lambda fmt: fmt.width)

    # -------------------------------------------------------------------------
    # Rounding
    # -------------------------------------------------------------------------

    def cast(self, value):
        """Cast a native float into this format (round to nearest even)."""
        with np.errstate(over="ignore"):
            return self._scalar_type(value)

    def round_exact(self, value):
        """
        Round an exact value (gmpy2.mpq, mpz or int) to the nearest value of
        this format. Overflow gives a signed infinity, tiny values become
        subnormals or a signed zero of the format.
        """
        with gmpy2.ieee(self._width):
            rounded = gmpy2.mpfr(value)
        # rounded is representable in this format, so float() is exact
        return self._scalar_type(float(rounded))

    def round(self, value):
        """Round any real scalar to this format."""
        if isinstance(value, _NATIVE_FLOATS):
            return self.cast(value)
        if not is_finite_real(value):
            return self.round_non_finite(value)
        return self.round_exact(to_mpq(value))

    def round_non_finite(self, value):
        """
        Infinity or NaN of this format. NaNs never go through float(), which
        rejects a signalling Decimal NaN.
        """
        check = getattr(value, "is_nan", None)
        if check is not None and check():
            return self.nan
        return self.cast(float(value))

    def is_finite(self, value) -> bool:
        return bool(np.isfinite(value))


_NATIVE_FLOATS = (float, np.float16, np.float32, np.float64)


# ==============================================================================
# EXACT REAL HELPERS
# ==============================================================================

def is_real(value) -> bool:
    """True for every scalar the splitter accepts."""
    return isinstance(value, (numbers.Real, Decimal))


def is_integral(value) -> bool:
    return isinstance(value, (numbers.Integral, np.integer))


def is_finite_real(value) -> bool:
    """
    Finiteness test that works across Python, numpy, decimal and gmpy2
    scalars without going through a lossy float conversion.
    """
    if isinstance(value, numbers.Rational):
        return True
    if isinstance(value, np.floating):
        return bool(np.isfinite(value))
    check = getattr(value, "is_finite", None)
    if check is not None:
        return bool(check())
    return math.isfinite(value)


def to_mpq(value) -> gmpy2.mpq:
    """
    Exact rational value of a finite real.

    Raises:
        TypeError: value has no exact rational form
        ValueError / OverflowError: value is NaN / infinite (from the
            underlying as_integer_ratio)
    """
    if isinstance(value, gmpy2.mpq):
        return value
    if isinstance(value, (numbers.Rational, np.integer)):
        return gmpy2.mpq(int(value.numerator), int(value.denominator))
    as_ratio = getattr(value, "as_integer_ratio", None)
    if as_ratio is None:
        raise TypeError(
            f"Cannot take the exact value of {type(value).__name__}. "
            f"Use int, float, Fraction, Decimal, numpy or gmpy2 scalars."
        )
    numerator, denominator = as_ratio()
    return gmpy2.mpq(int(numerator), int(denominator))
