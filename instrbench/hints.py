from __future__ import annotations

from typing import TypeVar

T = TypeVar("T")

_sink: list[object] = [None]


def black_box(value: T) -> T:
    """Return ``value`` unchanged while keeping it observably used.

    Wrap benchmark inputs and results with this so the measured work cannot be
    skipped as dead code or folded into a constant by an optimizing runtime.
    """
    _sink[0] = value
    return value


__all__ = ["black_box"]
