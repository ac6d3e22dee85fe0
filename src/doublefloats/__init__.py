"""
doublefloats — Double-float extended precision over IEEE-754 limbs

A double-float stores a number as the exact sum of two non-overlapping native
floats (hi, lo) of one width, doubling the significand bits of the format.

================================================================================
QUICK START
================================================================================

Basic usage:

    from fractions import Fraction
    from doublefloats import Double64, Double32, two_sum

    # Split an exact real (0.1 is not a binary float)
    x = Double64.of(Fraction(1, 10))
    x.hi            # 0.1 rounded to binary64
    x.lo            # what the rounding lost, rounded to binary64

    # Error-free addition
    hi, lo = two_sum(1.0, 2.0 ** -60)     # (1.0, 8.673617379884035e-19)

    # Change width
    y = Double32.of(x)                    # narrowing through the exact value
    Double64.of(y)                        # widening: exact cast + two_sum

Accessors and queries:

    from doublefloats import hilo, precision

    hilo(x)                 # (x.hi, x.lo)
    hilo(1.5)               # (1.5, 0.0)
    precision(Double64)     # 106

Non-finite values never raise:

    Double64.of(float("inf"))     # Double64(inf, nan)

================================================================================
"""

# Limb formats
from .formats import FloatFormat

# Error-free transformations
from .eft import two_sum, is_canonical_pair

# Value types
from .core import (
    DoubleFloat,
    Double16,
    Double32,
    Double64,
    double_type,
    resolve_format,
)

# Conversion network
from .convert import (
    SourceKind,
    source_kind,
    convert,
    split,
    split_integer,
    promote_pair,
    from_tuple,
    combine,
    widen,
    narrow,
    conversion_path,
    to_scalar,
)

# Accessors
from .accessors import hilo, hi_part, lo_part, precision

# Settings
from .config import Settings, settings, current_settings

__version__ = "1.0.0"
__license__ = "MIT"

__all__ = [
    # Formats
    "FloatFormat",
    # EFT
    "two_sum",
    "is_canonical_pair",
    # Core
    "DoubleFloat",
    "Double16",
    "Double32",
    "Double64",
    "double_type",
    "resolve_format",
    # Conversion
    "SourceKind",
    "source_kind",
    "convert",
    "split",
    "split_integer",
    "promote_pair",
    "from_tuple",
    "combine",
    "widen",
    "narrow",
    "conversion_path",
    "to_scalar",
    # Accessors
    "hilo",
    "hi_part",
    "lo_part",
    "precision",
    # Settings
    "Settings",
    "settings",
    "current_settings",
]
