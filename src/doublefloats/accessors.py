"""
accessors.py — Uniform (hi, lo) access and precision queries

hilo() answers the same question for every shape a multi-part value can
take in generic numeric code:

    native float          (x, 0 of the same type)
    DoubleFloat           (x.hi, x.lo)
    (a, b) tuple          (a, b), whatever a and b are (DoubleFloat included)

The cases are closed and resolved by functools.singledispatch on the type of
the argument.
"""

from __future__ import annotations
from functools import singledispatch

import numpy as np

from .core import DoubleFloat
from .formats import FloatFormat


@singledispatch
def hilo(value) -> tuple:
    """(high part, low part) of a native float, DoubleFloat or 2-tuple."""
    raise TypeError(f"No (hi, lo) view of {type(value).__name__}")


@hilo.register(float)
@hilo.register(np.floating)
def _(value) -> tuple:
    return value, type(value)(0)


@hilo.register(DoubleFloat)
def _(value: DoubleFloat) -> tuple:
    return value.hi, value.lo


@hilo.register(tuple)
def _(value: tuple) -> tuple:
    if len(value) != 2:
        raise ValueError(f"Expected a (hi, lo) pair, got a tuple of length {len(value)}")
    return value[0], value[1]


def hi_part(value):
    return hilo(value)[0]


def lo_part(value):
    return hilo(value)[1]


# ==============================================================================
# PRECISION
# ==============================================================================

def precision(value) -> int:
    """
    Significand bits of a format, native float, DoubleFloat class or value.

    For a double-float this is twice the limb precision (22, 48, 106 for
    Double16/32/64). It is a property of the type, not a measurement of
    the stored value.
    """
    if isinstance(value, FloatFormat):
        return value.precision
    if isinstance(value, DoubleFloat):
        return 2 * precision(value.hi)
    if isinstance(value, type):
        return _type_precision(value)
    fmt = FloatFormat.of(value)
    if fmt is None:
        raise TypeError(f"No floating-point precision for {type(value).__name__}")
    return fmt.precision


def _type_precision(cls: type) -> int:
    if issubclass(cls, DoubleFloat):
        if cls.FORMAT is None:
            raise TypeError("DoubleFloat has no fixed width; use Double16/32/64")
        return 2 * cls.FORMAT.precision
    if cls is float:
        return FloatFormat.DOUBLE.precision
    for fmt in FloatFormat:
        if cls is fmt.scalar_type:
            return fmt.precision
    raise TypeError(f"No floating-point precision for {cls.__name__}")
