"""Child-process dispatch.

A benchmark program is started once by the user and then re-invoked by the
runner once per benchmark, under the profiler, as::

    <program> --bench-run <index>

In that child invocation only the selected benchmark runs, so the profiler
counts as little unrelated work as possible. Index ``-1`` runs nothing and is
used to measure the fixed startup and dispatch cost.
"""

from __future__ import annotations

import sys
from collections.abc import Sequence

from instrbench.errors import DispatchError
from instrbench.models.benchmark import Benchmark

BENCH_RUN_FLAG = "--bench-run"
CALIBRATION_INDEX = -1


def parse_dispatch_args(args: Sequence[str]) -> int | None:
    """Return the benchmark index of a child invocation, or ``None`` at top level.

    :param args: Process arguments without the program name.
    :raises DispatchError: If the dispatch flag is present without a valid integer.
    """
    if not args or args[0] != BENCH_RUN_FLAG:
        return None
    if len(args) < 2:
        raise DispatchError(f"{BENCH_RUN_FLAG} requires a benchmark index")
    raw_index = args[1]
    try:
        return int(raw_index, 10)
    except ValueError as exc:
        raise DispatchError(f"invalid benchmark index {raw_index!r}") from exc


def child_args(index: int) -> list[str]:
    return [BENCH_RUN_FLAG, str(index)]


def run_single(index: int, benchmarks: Sequence[Benchmark]) -> None:
    """Run exactly one benchmark, or nothing for the calibration index."""
    if index == CALIBRATION_INDEX:
        return
    if not 0 <= index < len(benchmarks):
        raise DispatchError(
            f"benchmark index {index} out of range for {len(benchmarks)} registered benchmarks"
        )
    benchmarks[index].run()


def self_command() -> list[str]:
    """Return the argument prefix that starts this same program again.

    Interpreter options and the script path (or ``-m module``) are kept, the
    program's own arguments are dropped.
    """
    original = list(sys.orig_argv)
    own_args = len(sys.argv) - 1
    prefix = original[: len(original) - own_args] if own_args > 0 else original
    if len(prefix) < 2:
        return [sys.executable, sys.argv[0]]
    prefix[0] = sys.executable
    return prefix


__all__ = [
    "BENCH_RUN_FLAG",
    "CALIBRATION_INDEX",
    "child_args",
    "parse_dispatch_args",
    "run_single",
    "self_command",
]
