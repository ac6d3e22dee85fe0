"""
config.py — Runtime settings

Settings are immutable and scoped with a context manager, the same way gmpy2
scopes its arithmetic contexts:

    from doublefloats.config import settings

    with settings(check_raw_pairs=True):
        Double64.raw(1.0, 1.0)   # AssertionError: not a canonical pair

The current Settings live in a ContextVar, so threads and asyncio tasks each
see their own value.
"""

from __future__ import annotations
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, replace
from typing import Iterator


@dataclass(frozen=True)
class Settings:
    """
    check_raw_pairs:
        Validate pairs handed to the raw (non-canonicalising) constructor.
        The check is an assert: it only runs when Python assertions are
        enabled, and never under `python -O`. Off by default.
    """
    check_raw_pairs: bool = False


_current: ContextVar[Settings] = ContextVar("doublefloats_settings", default=Settings())


def current_settings() -> Settings:
    return _current.get()


@contextmanager
def settings(**overrides) -> Iterator[Settings]:
    """Temporarily override fields of the current Settings."""
    token = _current.set(replace(_current.get(), **overrides))
    try:
        yield _current.get()
    finally:
        _current.reset(token)
