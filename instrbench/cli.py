"""Entry point for benchmark programs.

A benchmark program builds its registry at module level and hands it to
``main``::

    registry = BenchmarkRegistry()
    registry.register("parse_small", parse_small)

    if __name__ == "__main__":
        main(registry)

Run without arguments it measures everything. The runner re-invokes the same
program with ``--bench-run <index>``; that child path is checked before any
option parsing, configuration or logging setup so it adds as few instructions
as possible to the measurement.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Sequence
from pathlib import Path

import click

from instrbench.config import InstrbenchSettings, load_config
from instrbench.core.logging import setup_logging
from instrbench.dispatch import parse_dispatch_args, run_single
from instrbench.errors import InstrbenchError
from instrbench.models.benchmark import Benchmark
from instrbench.profiling.cachegrind import CachegrindProfiler
from instrbench.runner import BenchmarkRunner

logger = logging.getLogger(__name__)

_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def main(benchmarks: Sequence[Benchmark], args: Sequence[str] | None = None) -> None:
    """Run one benchmark when invoked as a child, otherwise measure them all."""
    argv = list(sys.argv[1:] if args is None else args)
    index = parse_dispatch_args(argv)
    if index is not None:
        run_single(index, benchmarks)
        return
    cli.main(args=argv, obj=benchmarks)


def _resolve_settings(
    config_path: Path | None,
    jobs: int | None,
    output_dir: Path | None,
    report_dir: Path | None,
    log_level: str | None,
    json_logs: bool,
) -> InstrbenchSettings:
    settings = load_config(config_path) if config_path is not None else InstrbenchSettings()
    if jobs is not None:
        settings.runner.max_concurrent = jobs
    if output_dir is not None:
        settings.profiler.output_dir = output_dir
    if report_dir is not None:
        settings.runner.report_dir = report_dir
    if log_level is not None:
        settings.logging.level = log_level.upper()
    if json_logs:
        settings.logging.json_output = True
    return settings


@click.command()
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path, dir_okay=False),
    default=None,
    help="YAML configuration file.",
)
@click.option(
    "--jobs",
    "-j",
    type=click.IntRange(min=1),
    default=None,
    help="Concurrent profiler runs [default: available CPUs].",
)
@click.option(
    "--output-dir",
    type=click.Path(path_type=Path, file_okay=False, dir_okay=True),
    default=None,
    help="Directory for intermediate cachegrind output files.",
)
@click.option(
    "--report-dir",
    type=click.Path(path_type=Path, file_okay=False, dir_okay=True),
    default=None,
    help="Also write a JSON report to this directory.",
)
@click.option(
    "--log-level",
    type=click.Choice(_LOG_LEVELS, case_sensitive=False),
    default=None,
)
@click.option("--json-logs", is_flag=True, default=False, help="Emit logs as JSON.")
@click.pass_obj
def cli(
    benchmarks: Sequence[Benchmark] | None,
    config_path: Path | None,
    jobs: int | None,
    output_dir: Path | None,
    report_dir: Path | None,
    log_level: str | None,
    json_logs: bool,
) -> None:
    """Measure the instruction count of every registered benchmark."""
    if benchmarks is None:
        raise click.UsageError("no benchmarks registered; call instrbench.main(registry)")

    try:
        settings = _resolve_settings(
            config_path, jobs, output_dir, report_dir, log_level, json_logs
        )
    except (FileNotFoundError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc

    setup_logging(settings.logging.level, json_output=settings.logging.json_output)

    runner = BenchmarkRunner(
        CachegrindProfiler(settings.profiler),
        max_concurrent=settings.runner.resolved_max_concurrent(),
    )
    try:
        report = asyncio.run(runner.run(benchmarks))
    except InstrbenchError as exc:
        raise click.ClickException(str(exc)) from exc

    if report is None:
        return

    for line in report.lines():
        click.echo(line)

    if settings.runner.report_dir is not None:
        path = report.write_report(settings.runner.report_dir)
        logger.info("Report written to %s", path)


__all__ = ["cli", "main"]
