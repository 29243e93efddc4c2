"""Benchmark registration and validation.

The registry is an ordered list: registration order is the report order and
the position of each benchmark is the index a child process receives on its
command line. Parent and child both rebuild the registry from the same module
level code, so nothing here may reorder or filter it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Sequence

from instrbench.errors import BenchmarkConfigError
from instrbench.models.benchmark import Benchmark, ReportingKind

logger = logging.getLogger(__name__)

BenchmarkFunction = Callable[[], object]


class BenchmarkRegistry(Sequence[Benchmark]):
    """Ordered collection of benchmarks owned by one benchmark program."""

    def __init__(self, benchmarks: Iterable[Benchmark] = ()) -> None:
        self._benchmarks: list[Benchmark] = list(benchmarks)

    def __getitem__(self, index: int) -> Benchmark:  # type: ignore[override]
        return self._benchmarks[index]

    def __len__(self) -> int:
        return len(self._benchmarks)

    def __iter__(self) -> Iterator[Benchmark]:
        return iter(self._benchmarks)

    def register(self, name: str, function: BenchmarkFunction) -> Benchmark:
        """Register ``function`` under ``name`` with all instructions reported."""
        return self.add(Benchmark(name=name, function=function))

    def add(self, benchmark: Benchmark) -> Benchmark:
        self._benchmarks.append(benchmark)
        return benchmark

    def extend(self, benchmarks: Iterable[Benchmark]) -> None:
        for benchmark in benchmarks:
            self.add(benchmark)

    def benchmark(
        self,
        name: str | None = None,
        *,
        hidden: bool = False,
        exclude_setup: str | None = None,
    ) -> Callable[[BenchmarkFunction], BenchmarkFunction]:
        """Decorator to register a function as a benchmark.

        The decorated function is returned unchanged so it can still be called
        directly, e.g. from another benchmark that builds on it.
        """
        if hidden and exclude_setup is not None:
            raise ValueError("a benchmark cannot be hidden and exclude setup instructions")

        def decorator(func: BenchmarkFunction) -> BenchmarkFunction:
            entry = Benchmark(name=name or func.__name__, function=func)
            if hidden:
                entry = entry.hidden()
            elif exclude_setup is not None:
                entry = entry.exclude_setup_instructions(exclude_setup)
            self.add(entry)
            return func

        return decorator

    def names(self) -> list[str]:
        return [benchmark.name for benchmark in self._benchmarks]

    def validate(self) -> None:
        validate(self._benchmarks)


def find_duplicate_names(benchmarks: Iterable[Benchmark]) -> list[str]:
    """Names registered more than once, each listed once in order of first repeat."""
    seen: set[str] = set()
    duplicates: list[str] = []
    for benchmark in benchmarks:
        if benchmark.name in seen and benchmark.name not in duplicates:
            duplicates.append(benchmark.name)
        seen.add(benchmark.name)
    return duplicates


def find_dangling_setup_names(benchmarks: Iterable[Benchmark]) -> list[str]:
    entries = list(benchmarks)
    all_names = {benchmark.name for benchmark in entries}
    referenced = {
        benchmark.reporting_mode.setup_name
        for benchmark in entries
        if benchmark.reporting_mode.kind is ReportingKind.all_instructions_except_setup
        and benchmark.reporting_mode.setup_name is not None
    }
    return sorted(referenced - all_names)


def validate(benchmarks: Iterable[Benchmark]) -> None:
    """Raise ``BenchmarkConfigError`` if the benchmarks cannot be measured.

    Benchmarks are invalid when a name is registered more than once or when a
    setup exclusion references a benchmark that was never registered. Each
    check reports every offending name at once.
    """
    entries = list(benchmarks)

    duplicate_names = find_duplicate_names(entries)
    if duplicate_names:
        raise BenchmarkConfigError(
            "The following benchmarks are defined multiple times", duplicate_names
        )

    undefined_names = find_dangling_setup_names(entries)
    if undefined_names:
        raise BenchmarkConfigError(
            "The following benchmark names are referenced, "
            "but have no corresponding benchmarks",
            undefined_names,
        )

    logger.debug("benchmarks_validated count=%d", len(entries))


__all__ = [
    "BenchmarkFunction",
    "BenchmarkRegistry",
    "find_dangling_setup_names",
    "find_duplicate_names",
    "validate",
]
