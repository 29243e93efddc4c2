"""Top-level benchmark orchestration.

The runner measures an empty child invocation first (the calibration
baseline), then measures every registered benchmark in its own child process,
concurrently, and subtracts the baseline from each count. Results are joined
by name and reported in registration order, whatever order the measurements
finish in.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import Mapping, Sequence

from instrbench.config import available_cpus
from instrbench.core.logging import benchmark_scope
from instrbench.dispatch import CALIBRATION_INDEX, self_command
from instrbench.errors import MeasurementError
from instrbench.models.benchmark import Benchmark, ReportingKind
from instrbench.models.report import ReportLine, RunReport
from instrbench.protocols.profiler import Profiler
from instrbench.registry import validate

logger = logging.getLogger(__name__)

CALIBRATION_LABEL = "calibration"


class BenchmarkRunner:
    """Measures registered benchmarks through a ``Profiler``.

    Parameters
    ----------
    profiler:
        Backend that runs one child invocation and returns its instruction
        count.
    command:
        Argument prefix that starts the benchmark program again. Defaults to
        the command line of the current process.
    max_concurrent:
        Maximum concurrent profiler runs. Defaults to the CPUs available to
        the process.
    """

    def __init__(
        self,
        profiler: Profiler,
        *,
        command: Sequence[str] | None = None,
        max_concurrent: int | None = None,
    ) -> None:
        self._profiler = profiler
        self._command = list(command) if command is not None else self_command()
        self._max_concurrent = max(1, max_concurrent or available_cpus())

    @property
    def command(self) -> list[str]:
        return list(self._command)

    async def run(self, benchmarks: Sequence[Benchmark]) -> RunReport | None:
        """Measure all benchmarks and return the visible results.

        Returns ``None`` without measuring anything when the profiler is not
        available.
        """
        entries = list(benchmarks)
        validate(entries)

        if not self._profiler.check_available():
            logger.warning("Instruction profiler unavailable, skipping %d benchmarks", len(entries))
            return None

        run_id = uuid.uuid4().hex[:12]
        with benchmark_scope(run_id=run_id):
            architecture = self._profiler.architecture()
            with benchmark_scope(benchmark=CALIBRATION_LABEL, index=CALIBRATION_INDEX):
                calibration = await self._profiler.measure(
                    architecture, self._command, CALIBRATION_INDEX, CALIBRATION_LABEL
                )
            logger.info(
                "calibration_measured arch=%s instructions=%d benchmarks=%d max_concurrent=%d",
                architecture,
                calibration,
                len(entries),
                self._max_concurrent,
            )

            results = await self._measure_all(architecture, calibration, entries)

        return RunReport(
            architecture=architecture,
            calibration=calibration,
            results=resolve_report_lines(entries, results),
        )

    async def _measure_all(
        self,
        architecture: str,
        calibration: int,
        benchmarks: Sequence[Benchmark],
    ) -> dict[str, int]:
        semaphore = asyncio.Semaphore(self._max_concurrent)
        tasks = [
            self._measure_one(semaphore, architecture, calibration, index, benchmark)
            for index, benchmark in enumerate(benchmarks)
        ]
        # Every launched measurement finishes before the first failure is raised.
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome
        return dict(outcomes)  # type: ignore[arg-type]

    async def _measure_one(
        self,
        semaphore: asyncio.Semaphore,
        architecture: str,
        calibration: int,
        index: int,
        benchmark: Benchmark,
    ) -> tuple[str, int]:
        async with semaphore:
            with benchmark_scope(benchmark=benchmark.name, index=index):
                raw_count = await self._profiler.measure(
                    architecture, self._command, index, benchmark.name
                )
                adjusted = raw_count - calibration
                if adjusted < 0:
                    raise MeasurementError(
                        f"benchmark {benchmark.name!r} counted {raw_count} instructions, "
                        f"fewer than the calibration baseline of {calibration}"
                    )
                logger.debug("benchmark_measured raw=%d adjusted=%d", raw_count, adjusted)
                return benchmark.name, adjusted


def resolve_report_lines(
    benchmarks: Sequence[Benchmark],
    results: Mapping[str, int],
) -> list[ReportLine]:
    """Apply each benchmark's reporting mode to calibration-adjusted counts."""
    lines: list[ReportLine] = []
    for benchmark in benchmarks:
        mode = benchmark.reporting_mode
        if mode.kind is ReportingKind.hidden:
            continue
        instructions = results[benchmark.name]
        if mode.setup_name is not None:
            instructions -= results[mode.setup_name]
        lines.append(
            ReportLine(
                name=benchmark.name,
                instructions=instructions,
                reporting=mode.kind,
                setup_name=mode.setup_name,
            )
        )
    return lines


__all__ = ["CALIBRATION_LABEL", "BenchmarkRunner", "resolve_report_lines"]
