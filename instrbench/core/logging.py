"""Logging for concurrent measurements.

Measurements run as concurrent asyncio tasks, so log lines from different
benchmarks interleave. A context variable carries the run id plus the name
and dispatch index of the benchmark being measured, and a handler filter
copies it onto each record.

Records go to stderr: stdout is reserved for the ``<count> : <name>`` report.
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime

_PLAIN_FORMAT = "%(asctime)s %(levelname)-7s %(name)s [%(bench_tag)s] %(message)s"


@dataclass(frozen=True, slots=True)
class BenchmarkContext:
    run_id: str | None = None
    benchmark: str | None = None
    index: int | None = None

    def tag(self) -> str:
        """Short ``run/name#index`` marker for plain-text log lines."""
        parts = [self.run_id or "-"]
        if self.benchmark is not None:
            parts.append(self.benchmark if self.index is None else f"{self.benchmark}#{self.index}")
        return "/".join(parts)


_CURRENT: contextvars.ContextVar[BenchmarkContext] = contextvars.ContextVar(
    "instrbench_benchmark_context",
    default=BenchmarkContext(),
)


def get_benchmark_context() -> BenchmarkContext:
    return _CURRENT.get()


class BenchmarkContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        context = _CURRENT.get()
        record.run_id = context.run_id
        record.benchmark = context.benchmark
        record.bench_index = context.index
        record.bench_tag = context.tag()
        return True


class JsonLineFormatter(logging.Formatter):
    """One JSON object per record, with the benchmark context as top-level keys."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload["run_id"] = getattr(record, "run_id", None)
        payload["benchmark"] = getattr(record, "benchmark", None)
        payload["index"] = getattr(record, "bench_index", None)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def setup_logging(level: int | str = logging.INFO, json_output: bool = False) -> None:
    """Replace the root handlers with a single stderr handler."""
    handler = logging.StreamHandler(stream=sys.stderr)
    handler.addFilter(BenchmarkContextFilter())
    handler.setFormatter(JsonLineFormatter() if json_output else logging.Formatter(_PLAIN_FORMAT))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


@contextmanager
def benchmark_scope(
    *,
    run_id: str | None = None,
    benchmark: str | None = None,
    index: int | None = None,
) -> Iterator[None]:
    """Set benchmark context for the current task; unset fields keep the outer value."""
    outer = _CURRENT.get()
    token = _CURRENT.set(
        BenchmarkContext(
            run_id=outer.run_id if run_id is None else run_id,
            benchmark=outer.benchmark if benchmark is None else benchmark,
            index=outer.index if index is None else index,
        )
    )
    try:
        yield
    finally:
        _CURRENT.reset(token)


__all__ = [
    "BenchmarkContext",
    "BenchmarkContextFilter",
    "JsonLineFormatter",
    "benchmark_scope",
    "get_benchmark_context",
    "setup_logging",
]
