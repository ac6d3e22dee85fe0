"""
core.py — The DoubleFloat value type

================================================================================
DESIGN PRINCIPLES
================================================================================

1. REPRESENTATION
   A value is a pair (hi, lo) of native floats of one width whose exact sum
   is the represented number. In canonical form hi == fl(hi + lo) and
   |lo| <= ulp(hi) / 2: the limbs do not overlap, and the pair carries
   twice the significand bits of the limb format.

2. NON-FINITE VALUES
   When the value is infinite or NaN, hi holds it and lo is NaN. The lo
   limb then carries no information and no error is raised.

3. TWO CONSTRUCTION MODES
   canonical() always runs two_sum on the pair. raw() stores the pair as
   given and trusts the caller. Internal code that already holds a
   canonical pair (two_sum output, a copied value) uses raw().

4. IMMUTABILITY
   Frozen, slotted dataclasses. Every operation returns a new instance,
   values can be shared freely between threads.

5. STRUCTURAL EQUALITY
   Two values are equal when they have the same class and the same limbs
   (NaN limbs compare equal to each other). Different splits of the same
   real number are different values.

================================================================================
WIDTHS
================================================================================

    Double16  — numpy.float16 limbs, 22-bit significand
    Double32  — numpy.float32 limbs, 48-bit significand
    Double64  — numpy.float64 limbs, 106-bit significand

The base class DoubleFloat infers the width from its inputs and can also hold
DoubleFloat limbs (a nested double-float), which hashing and the accessors
handle recursively.

================================================================================
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, ClassVar, Optional
import math
import sys

import gmpy2
import numpy as np

from .config import current_settings
from .eft import is_canonical_pair, two_sum
from .formats import FloatFormat, to_mpq


# Seed mixed into the hi limb hash so that (a, b) and (b, a) differ
_HASH_DOUBLE_LO = 0x9BAD5EBAB034FE78


# ==============================================================================
# DOUBLEFLOAT
# ==============================================================================

@dataclass(frozen=True, slots=True, eq=False)
class DoubleFloat:
    """
    A pair of magnitude-ordered, non-overlapping floats.

    The generated initializer is the raw constructor: DoubleFloat(hi, lo)
    stores both limbs without renormalising. On Double16/32/64 each limb is
    still rounded to the numpy type of the width, so Double16(0.1, 0.0)
    holds float16 limbs.

    USAGE:
        x = Double64.of(0.1)             # split a real
        y = Double64.canonical(1.0, 2**-60)
        z = DoubleFloat.of(np.float32(1), np.float32(2**-30))   # Double32
    """
    hi: Any
    lo: Any

    FORMAT: ClassVar[Optional[FloatFormat]] = None

    def __post_init__(self):
        if self.FORMAT is not None:
            self._coerce_limb("hi")
            self._coerce_limb("lo")
        if __debug__ and current_settings().check_raw_pairs:
            _check_raw_pair(self.hi, self.lo)

    def _coerce_limb(self, name: str) -> None:
        # Width classes always hold limbs of their own numpy type
        limb = getattr(self, name)
        if type(limb) is self.FORMAT.scalar_type:
            return
        if isinstance(limb, DoubleFloat):
            raise TypeError(
                f"{type(self).__name__} limbs must be scalars, "
                f"got {type(limb).__name__}"
            )
        object.__setattr__(self, name, self.FORMAT.round(limb))

    # -------------------------------------------------------------------------
    # Constructors
    # -------------------------------------------------------------------------

    @classmethod
    def raw(cls, hi, lo) -> DoubleFloat:
        """
        Store (hi, lo) without renormalising.

        The caller guarantees the pair is canonical. Limbs are only brought
        to the numpy type of the target width. Two DoubleFloat limbs build a
        nested value (base class only).
        """
        if isinstance(hi, DoubleFloat) or isinstance(lo, DoubleFloat):
            return cls._nested(hi, lo)
        fmt = cls.FORMAT or FloatFormat.common(hi, lo)
        return double_type(fmt)(fmt.round(hi), fmt.round(lo))

    @classmethod
    def canonical(cls, hi, lo) -> DoubleFloat:
        """
        Build a canonical value from any pair of reals.

        Each limb is rounded to the target width on its own, then two_sum
        establishes the invariant. A non-finite hi is kept and lo becomes
        NaN. A DoubleFloat limb is combined with the other operand at the
        same width.
        """
        if isinstance(hi, DoubleFloat) or isinstance(lo, DoubleFloat):
            from .convert import combine
            return combine(hi, lo, cls.FORMAT)
        fmt = cls.FORMAT or FloatFormat.common(hi, lo)
        hi, lo = fmt.round(hi), fmt.round(lo)
        target = double_type(fmt)
        if not fmt.is_finite(hi):
            return target(hi, fmt.nan)
        return target(*two_sum(hi, lo))

    @classmethod
    def of(cls, *values) -> DoubleFloat:
        """
        Generic entry point.

            Double64.of(x)          # real, tuple or DoubleFloat of any width
            Double64.of(hi, lo)     # pair of reals, canonicalised
            DoubleFloat.of(...)     # width taken from the inputs

        Raises:
            TypeError: wrong number of arguments or unsupported input type
        """
        from .convert import convert

        if len(values) == 1:
            source = values[0]
        elif len(values) == 2:
            source = values
        else:
            raise TypeError(
                f"{cls.__name__}.of() takes 1 or 2 values, got {len(values)}"
            )
        if cls.FORMAT is not None:
            return convert(source, cls.FORMAT)
        if isinstance(source, DoubleFloat):
            return source.normalized()
        parts = source if isinstance(source, tuple) else (source,)
        return convert(source, _common_format(*parts))

    @classmethod
    def _nested(cls, hi, lo) -> DoubleFloat:
        if cls.FORMAT is not None:
            raise TypeError(
                f"{cls.__name__} limbs must be scalars, "
                f"got {type(hi).__name__} and {type(lo).__name__}"
            )
        if type(hi) is not type(lo):
            raise TypeError(
                f"Nested limbs must share a type: "
                f"{type(hi).__name__} vs {type(lo).__name__}"
            )
        return DoubleFloat(hi, lo)

    def normalized(self) -> DoubleFloat:
        """Re-run two_sum on the limbs. Idempotent on canonical values."""
        return type(self).canonical(self.hi, self.lo)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def fmt(self) -> FloatFormat:
        """Format of the innermost limbs."""
        if self.FORMAT is not None:
            return self.FORMAT
        if isinstance(self.hi, DoubleFloat):
            return self.hi.fmt
        fmt = FloatFormat.of(self.hi)
        if fmt is None:
            raise TypeError(f"Unsupported limb type: {type(self.hi).__name__}")
        return fmt

    @property
    def width(self) -> int:
        return self.fmt.width

    @property
    def limb_type(self) -> type:
        """Type of the stored limbs (numpy scalar type, or DoubleFloat class)."""
        if self.FORMAT is not None:
            return self.FORMAT.scalar_type
        return type(self.hi)

    def is_finite(self) -> bool:
        return _limb_is_finite(self.hi) and _limb_is_finite(self.lo)

    def is_nan(self) -> bool:
        if isinstance(self.hi, DoubleFloat):
            return self.hi.is_nan()
        return bool(np.isnan(self.hi))

    def is_inf(self) -> bool:
        if isinstance(self.hi, DoubleFloat):
            return self.hi.is_inf()
        return bool(np.isinf(self.hi))

    # -------------------------------------------------------------------------
    # Exact value
    # -------------------------------------------------------------------------

    def exact(self) -> gmpy2.mpq:
        """
        Exact sum hi + lo as a rational.

        Only defined for finite values: a non-finite limb raises
        ValueError (NaN) or OverflowError (infinity).
        """
        return _limb_exact(self.hi) + _limb_exact(self.lo)

    def as_integer_ratio(self) -> tuple[int, int]:
        if not self.is_finite():
            if self.is_inf():
                raise OverflowError(f"cannot convert {self!r} to integer ratio")
            raise ValueError(f"cannot convert {self!r} to integer ratio")
        q = self.exact()
        return int(q.numerator), int(q.denominator)

    def __float__(self) -> float:
        """Nearest binary64 value to hi + lo."""
        if not self.is_finite():
            return float(self.hi)
        return float(FloatFormat.DOUBLE.round_exact(self.exact()))

    # -------------------------------------------------------------------------
    # Equality and hashing
    # -------------------------------------------------------------------------

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DoubleFloat):
            return NotImplemented
        return (
            type(self) is type(other)
            and _same_limb(self.hi, other.hi)
            and _same_limb(self.lo, other.lo)
        )

    def __hash__(self) -> int:
        # Order sensitive: hi is hashed together with a seed, lo on its own
        return hash((_limb_hash(self.hi), _HASH_DOUBLE_LO)) ^ _limb_hash(self.lo)

    # -------------------------------------------------------------------------
    # Output and serialisation
    # -------------------------------------------------------------------------

    def __repr__(self) -> str:
        return f"{type(self).__name__}({_limb_repr(self.hi)}, {_limb_repr(self.lo)})"

    def to_dict(self) -> dict:
        """
        Serialise for persistence/API.

        Format: {"format": "Double64", "hi": str, "lo": str}
        Limbs are written with float.hex() so the round trip is exact,
        NaN and infinities included. Nested values nest their dicts.
        """
        return {
            "format": type(self).__name__,
            "hi": _limb_to_json(self.hi),
            "lo": _limb_to_json(self.lo),
        }

    @classmethod
    def from_dict(cls, data: dict) -> DoubleFloat:
        """
        Deserialise the output of to_dict(). The stored pair was canonical,
        so it is restored with the raw constructor.
        """
        name = data["format"]
        target = _TYPES_BY_NAME.get(name)
        if target is None:
            raise ValueError(f"Unknown double-float format: {name!r}")
        if cls is not DoubleFloat and target is not cls:
            raise ValueError(f"Cannot load a {name} as {cls.__name__}")
        if target is DoubleFloat:
            return DoubleFloat(
                DoubleFloat.from_dict(data["hi"]),
                DoubleFloat.from_dict(data["lo"]),
            )
        return target.raw(float.fromhex(data["hi"]), float.fromhex(data["lo"]))


# ==============================================================================
# WIDTH INSTANTIATIONS
# ==============================================================================

@dataclass(frozen=True, slots=True, eq=False, repr=False)
class Double16(DoubleFloat):
    """Double-float over numpy.float16 limbs."""
    FORMAT: ClassVar[Optional[FloatFormat]] = FloatFormat.HALF


@dataclass(frozen=True, slots=True, eq=False, repr=False)
class Double32(DoubleFloat):
    """Double-float over numpy.float32 limbs."""
    FORMAT: ClassVar[Optional[FloatFormat]] = FloatFormat.SINGLE


@dataclass(frozen=True, slots=True, eq=False, repr=False)
class Double64(DoubleFloat):
    """Double-float over numpy.float64 limbs."""
    FORMAT: ClassVar[Optional[FloatFormat]] = FloatFormat.DOUBLE


_DOUBLE_TYPES: dict[FloatFormat, type[DoubleFloat]] = {
    FloatFormat.HALF: Double16,
    FloatFormat.SINGLE: Double32,
    FloatFormat.DOUBLE: Double64,
}

_TYPES_BY_NAME: dict[str, type[DoubleFloat]] = {
    cls.__name__: cls for cls in (DoubleFloat, Double16, Double32, Double64)
}


def double_type(fmt: FloatFormat) -> type[DoubleFloat]:
    """The DoubleFloat subclass whose limbs have format fmt."""
    return _DOUBLE_TYPES[fmt]


def resolve_format(target) -> FloatFormat:
    """
    Accept a FloatFormat, a width in bits (16, 32, 64) or one of the
    Double16/Double32/Double64 classes.
    """
    if isinstance(target, FloatFormat):
        return target
    if isinstance(target, type) and issubclass(target, DoubleFloat):
        if target.FORMAT is None:
            raise TypeError("DoubleFloat has no fixed width; use Double16/32/64")
        return target.FORMAT
    if isinstance(target, int) and not isinstance(target, bool):
        return FloatFormat.from_width(target)
    raise TypeError(f"Not a floating-point width: {target!r}")


# ==============================================================================
# LIMB HELPERS
# ==============================================================================

def _common_format(*values) -> FloatFormat:
    formats = [
        value.fmt if isinstance(value, DoubleFloat) else FloatFormat.of(value)
        for value in values
    ]
    formats = [fmt for fmt in formats if fmt is not None]
    if not formats:
        return FloatFormat.DOUBLE
    return max(formats, key=lambda fmt: fmt.width)


def _check_raw_pair(hi, lo) -> None:
    if isinstance(hi, DoubleFloat) or isinstance(lo, DoubleFloat):
        return
    if not (np.isfinite(hi) and np.isfinite(lo)):
        return
    assert is_canonical_pair(hi, lo), f"({hi!r}, {lo!r}) is not a canonical pair"


def _limb_is_finite(limb) -> bool:
    if isinstance(limb, DoubleFloat):
        return limb.is_finite()
    return bool(np.isfinite(limb))


def _limb_exact(limb) -> gmpy2.mpq:
    if isinstance(limb, DoubleFloat):
        return limb.exact()
    return to_mpq(limb)


def _same_limb(a, b) -> bool:
    if isinstance(a, DoubleFloat) or isinstance(b, DoubleFloat):
        return a == b
    if np.isnan(a) and np.isnan(b):
        return True
    return bool(a == b)


def _limb_hash(limb) -> int:
    if isinstance(limb, DoubleFloat):
        return hash(limb)
    if math.isnan(limb):
        # hash(nan) is identity based; every NaN limb hashes alike
        return sys.hash_info.nan
    return hash(float(limb))


def _limb_repr(limb) -> str:
    if isinstance(limb, DoubleFloat):
        return repr(limb)
    return repr(float(limb))


def _limb_to_json(limb):
    if isinstance(limb, DoubleFloat):
        return limb.to_dict()
    return float(limb).hex()
