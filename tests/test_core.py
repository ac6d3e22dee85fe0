"""
test_core.py — Test suite for the DoubleFloat value type

================================================================================
TEST STRUCTURE
================================================================================

1. CONSTRUCTORS
   canonical(), raw(), of() and width inference.

2. INVARIANT TESTS
   Canonical form after construction, NaN lo for non-finite values.

3. EQUALITY, HASHING, SERIALISATION
   Structural equality, nested hash recursion, exact to_dict round trip.

4. SETTINGS
   Debug-only validation of raw pairs.

================================================================================
"""

import logging
import math
from fractions import Fraction

import gmpy2
import numpy as np
import pytest
from hypothesis import given, settings as hypothesis_settings
from hypothesis import strategies as st

import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from doublefloats import (
    DoubleFloat,
    Double16,
    Double32,
    Double64,
    FloatFormat,
    convert,
    double_type,
    is_canonical_pair,
    resolve_format,
    settings,
    current_settings,
)
from doublefloats.formats import to_mpq


# ==============================================================================
# TEST HELPERS
# ==============================================================================

@st.composite
def double64_strategy(draw):
    """Canonical Double64 values from random finite float pairs."""
    values = st.floats(
        min_value=-2.0 ** 1000,
        max_value=2.0 ** 1000,
        allow_nan=False,
        allow_infinity=False,
    )
    return Double64.canonical(draw(values), draw(values))


# ==============================================================================
# CONSTRUCTORS
# ==============================================================================

class TestCanonicalConstructor:

    def test_canonicalises_overlapping_pair(self):
        x = Double64.canonical(1.0, 1.0)
        assert x.hi == 2.0
        assert x.lo == 0.0

    def test_keeps_canonical_pair(self):
        x = Double64.canonical(1.0, 2.0 ** -60)
        assert (x.hi, x.lo) == (1.0, 2.0 ** -60)

    def test_limbs_have_numpy_type(self):
        x = Double32.canonical(1.0, 0.0)
        assert isinstance(x.hi, np.float32)
        assert isinstance(x.lo, np.float32)

    def test_foreign_width_limbs_rounded_first(self):
        x = Double32.canonical(0.1, 0.0)
        assert x.hi == np.float32(0.1)
        assert x.lo == 0

    def test_infinite_hi_survives(self):
        x = Double64.canonical(math.inf, 0.0)
        assert x.hi == math.inf
        assert np.isnan(x.lo)

    def test_overflow_collapses(self):
        big = np.finfo(np.float16).max
        x = Double16.canonical(big, big)
        assert np.isposinf(x.hi)
        assert np.isnan(x.lo)

    def test_base_class_infers_width(self):
        assert type(DoubleFloat.canonical(1.0, 0.0)) is Double64
        assert type(DoubleFloat.canonical(np.float32(1), np.float32(0))) is Double32
        assert type(DoubleFloat.canonical(np.float16(1), 0)) is Double16

    def test_double_float_limb_is_combined(self):
        x = Double64.canonical(Double64.of(1.0), 2.0 ** -60)
        assert x == Double64.raw(1.0, 2.0 ** -60)


class TestRawConstructor:

    def test_stores_pair_verbatim(self):
        x = Double64.raw(1.0, 1.0)
        assert (x.hi, x.lo) == (1.0, 1.0)

    def test_initializer_is_raw(self):
        x = Double64(np.float64(3.0), np.float64(3.0))
        assert x.hi == 3.0
        assert x.lo == 3.0

    def test_initializer_rounds_limbs_to_width(self):
        x = Double16(0.1, 0.0)
        assert type(x.hi) is np.float16
        assert type(x.lo) is np.float16
        assert x.hi == np.float16(0.1)

    def test_initializer_and_raw_hash_alike(self):
        a, b = Double16(0.1, 0.0), Double16.raw(0.1, 0.0)
        assert a == b
        assert hash(a) == hash(b)
        assert len({a, b}) == 1

    def test_initializer_value_does_not_gain_bits_when_widened(self):
        y = convert(Double16(0.1, 0.0), 32)
        assert y.exact() == to_mpq(np.float16(0.1))

    def test_initializer_rejects_nested_limbs(self):
        with pytest.raises(TypeError):
            Double64(Double64.of(1.0), Double64.of(0.0))

    def test_nested_limbs(self):
        inner_hi = Double64.of(1.0)
        inner_lo = Double64.of(2.0 ** -200)
        nested = DoubleFloat.raw(inner_hi, inner_lo)
        assert type(nested) is DoubleFloat
        assert nested.hi is inner_hi
        assert nested.fmt is FloatFormat.DOUBLE
        assert nested.limb_type is Double64

    def test_width_classes_reject_nested_limbs(self):
        with pytest.raises(TypeError):
            Double64.raw(Double64.of(1.0), Double64.of(0.0))

    def test_nested_limbs_must_match(self):
        with pytest.raises(TypeError):
            DoubleFloat.raw(Double64.of(1.0), Double32.of(0.0))


class TestOf:

    def test_scalar(self):
        x = Double64.of(1.5)
        assert (x.hi, x.lo) == (1.5, 0.0)

    def test_pair(self):
        x = Double64.of(1.0, 2.0 ** -60)
        assert (x.hi, x.lo) == (1.0, 2.0 ** -60)

    def test_tuple(self):
        assert Double64.of((1.0, 1.0)) == Double64.raw(2.0, 0.0)

    def test_other_width(self):
        x = Double64.of(Double32.of(1.5))
        assert type(x) is Double64
        assert x.hi == 1.5

    def test_base_class_width_inference(self):
        assert type(DoubleFloat.of(1.0)) is Double64
        assert type(DoubleFloat.of(np.float32(1.0))) is Double32
        assert type(DoubleFloat.of(np.float16(1.0), 2)) is Double16
        assert type(DoubleFloat.of(3)) is Double64
        assert type(DoubleFloat.of((np.float32(1), np.float32(0)))) is Double32

    def test_base_class_keeps_double_float_width(self):
        x = DoubleFloat.of(Double32.of(0.5))
        assert type(x) is Double32

    def test_too_many_values(self):
        with pytest.raises(TypeError):
            Double64.of(1.0, 2.0, 3.0)

    def test_unsupported_type(self):
        with pytest.raises(TypeError):
            Double64.of("0.1")


class TestResolveFormat:

    def test_accepts_widths_formats_and_classes(self):
        assert resolve_format(16) is FloatFormat.HALF
        assert resolve_format(FloatFormat.SINGLE) is FloatFormat.SINGLE
        assert resolve_format(Double64) is FloatFormat.DOUBLE

    def test_rejects_unknown(self):
        with pytest.raises(ValueError):
            resolve_format(128)
        with pytest.raises(TypeError):
            resolve_format(DoubleFloat)
        with pytest.raises(TypeError):
            resolve_format("binary64")

    def test_double_type(self):
        assert double_type(FloatFormat.HALF) is Double16


# ==============================================================================
# INVARIANTS
# ==============================================================================

class TestInvariants:

    @hypothesis_settings(max_examples=200)
    @given(double64_strategy())
    def test_canonical_after_construction(self, x):
        assert is_canonical_pair(x.hi, x.lo)

    @hypothesis_settings(max_examples=200)
    @given(double64_strategy())
    def test_normalized_is_idempotent(self, x):
        assert x.normalized() == x

    def test_immutable(self):
        x = Double64.of(1.0)
        with pytest.raises(AttributeError):
            x.hi = 2.0

    @pytest.mark.parametrize("cls", [Double16, Double32, Double64])
    def test_non_finite_lo_is_nan(self, cls):
        for value in (math.inf, -math.inf, math.nan):
            x = cls.of(value)
            assert np.isnan(x.lo)
            assert not x.is_finite()


class TestQueries:

    def test_finite(self):
        assert Double64.of(1.0).is_finite()
        assert not Double64.of(math.inf).is_finite()

    def test_nan_and_inf(self):
        assert Double32.of(math.nan).is_nan()
        assert Double32.of(-math.inf).is_inf()
        assert not Double32.of(1.0).is_inf()

    def test_width_and_limb_type(self):
        x = Double16.of(1.0)
        assert x.width == 16
        assert x.limb_type is np.float16

    def test_exact(self):
        x = Double64.raw(1.0, 2.0 ** -60)
        assert x.exact() == 1 + gmpy2.mpq(1, 2 ** 60)

    def test_exact_of_nested(self):
        nested = DoubleFloat(Double64.of(1.0), Double64.of(2.0 ** -200))
        assert nested.exact() == 1 + gmpy2.mpq(1, 2 ** 200)

    def test_as_integer_ratio(self):
        assert Double64.raw(1.0, 2.0 ** -60).as_integer_ratio() == (2 ** 60 + 1, 2 ** 60)

    def test_as_integer_ratio_non_finite(self):
        with pytest.raises(OverflowError):
            Double64.of(math.inf).as_integer_ratio()
        with pytest.raises(ValueError):
            Double64.of(math.nan).as_integer_ratio()

    def test_float_rounds_exact_sum(self):
        x = Double32.of(Fraction(1, 3))
        assert float(x) == float(FloatFormat.DOUBLE.round_exact(x.exact()))
        assert abs(float(x) - 1 / 3) < 2.0 ** -45

    def test_float_of_non_finite(self):
        assert float(Double16.of(-math.inf)) == -math.inf


# ==============================================================================
# EQUALITY AND HASHING
# ==============================================================================

class TestEquality:

    def test_equal_limbs(self):
        assert Double64.of(0.5) == Double64.raw(0.5, 0.0)

    def test_different_limbs(self):
        assert Double64.raw(1.0, 2.0 ** -60) != Double64.raw(1.0, 2.0 ** -61)

    def test_different_widths_differ(self):
        assert Double64.of(1.0) != Double32.of(1.0)

    def test_non_finite_values_equal_themselves(self):
        assert Double64.of(math.inf) == Double64.of(math.inf)
        assert Double64.of(math.nan) == Double64.of(math.nan)
        assert Double64.of(math.inf) != Double64.of(-math.inf)

    def test_not_equal_to_plain_numbers(self):
        assert Double64.of(1.0) != 1.0


class TestHash:

    def test_structurally_equal_hash_equal(self):
        assert hash(Double64.of(0.5)) == hash(Double64.raw(0.5, 0.0))

    def test_nan_lo_hashes_consistently(self):
        assert hash(Double64.of(math.inf)) == hash(Double64.of(math.inf))
        assert hash(Double32.of(math.nan)) == hash(Double32.of(math.nan))

    def test_usable_in_sets(self):
        values = {Double64.of(math.inf), Double64.of(math.inf), Double64.of(1.0)}
        assert len(values) == 2

    def test_order_sensitive(self):
        assert hash(Double64.raw(1.0, 2.0)) != hash(Double64.raw(2.0, 1.0))

    def test_nested_hash_recurses(self):
        a = DoubleFloat(Double64.of(1.0), Double64.of(math.inf))
        b = DoubleFloat(Double64.of(1.0), Double64.of(math.inf))
        assert a == b
        assert hash(a) == hash(b)

    def test_doubly_nested_hash(self):
        inner = DoubleFloat(Double16.of(1.0), Double16.of(0.0))
        a = DoubleFloat(inner, inner)
        b = DoubleFloat(DoubleFloat(Double16.of(1.0), Double16.of(0.0)), inner)
        assert hash(a) == hash(b)


# ==============================================================================
# OUTPUT AND SERIALISATION
# ==============================================================================

class TestRepr:

    def test_repr(self):
        assert repr(Double64.of(1.5)) == "Double64(1.5, 0.0)"
        assert repr(Double16.of(math.inf)) == "Double16(inf, nan)"


class TestSerialization:

    def test_to_dict(self):
        d = Double64.raw(1.0, 2.0 ** -60).to_dict()
        assert d == {"format": "Double64", "hi": (1.0).hex(), "lo": (2.0 ** -60).hex()}

    @pytest.mark.parametrize("x", [
        Double64.of(Fraction(1, 3)),
        Double32.of(Fraction(2, 7)),
        Double16.of(Fraction(-5, 9)),
        Double64.of(math.inf),
        Double32.of(math.nan),
    ])
    def test_round_trip(self, x):
        assert DoubleFloat.from_dict(x.to_dict()) == x
        assert type(x).from_dict(x.to_dict()) == x

    def test_nested_round_trip(self):
        nested = DoubleFloat(Double64.of(1.0), Double64.of(2.0 ** -200))
        assert DoubleFloat.from_dict(nested.to_dict()) == nested

    def test_wrong_width_rejected(self):
        with pytest.raises(ValueError):
            Double32.from_dict(Double64.of(1.0).to_dict())

    def test_unknown_format_rejected(self):
        with pytest.raises(ValueError):
            DoubleFloat.from_dict({"format": "Double128", "hi": "0x0p+0", "lo": "0x0p+0"})


# ==============================================================================
# SETTINGS
# ==============================================================================

class TestRawPairCheck:

    def test_off_by_default(self):
        assert current_settings().check_raw_pairs is False
        Double64.raw(1.0, 1.0)

    def test_rejects_overlapping_pair_when_enabled(self):
        with settings(check_raw_pairs=True):
            with pytest.raises(AssertionError):
                Double64.raw(1.0, 1.0)

    def test_accepts_canonical_and_non_finite_pairs(self):
        with settings(check_raw_pairs=True):
            Double64.raw(1.0, 2.0 ** -60)
            Double64.raw(math.inf, math.nan)
            Double64.of(Fraction(1, 3))

    def test_settings_restored(self):
        with settings(check_raw_pairs=True) as active:
            assert active.check_raw_pairs
        assert current_settings().check_raw_pairs is False

    def test_unknown_setting(self):
        with pytest.raises(TypeError):
            with settings(intermediate_bits=512):
                pass
