"""Error types for instrbench.

Every failure that makes a run untrustworthy is fatal and derives from
``InstrbenchError``. An unavailable profiler is not an error: it is reported
through ``Profiler.check_available`` and the run is skipped.
"""

from __future__ import annotations

from collections.abc import Sequence


class InstrbenchError(Exception):
    """Base class for all instrbench errors."""


class BenchmarkConfigError(InstrbenchError):
    """Raised when the registered benchmarks are inconsistent."""

    names: tuple[str, ...]

    def __init__(self, message: str, names: Sequence[str]) -> None:
        self.names = tuple(names)
        super().__init__(f"{message}: {', '.join(self.names)}")


class MeasurementError(InstrbenchError):
    """Raised when a profiler run or its output cannot be trusted."""


class DispatchError(InstrbenchError):
    """Raised when a child invocation names a benchmark that cannot exist."""


__all__ = [
    "BenchmarkConfigError",
    "DispatchError",
    "InstrbenchError",
    "MeasurementError",
]
