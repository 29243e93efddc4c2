"""Deterministic instruction-count benchmarks.

Benchmarks are registered as named zero-argument functions. Each one runs in
its own child process under cachegrind, and the reported number is the count
of instructions it executed minus the fixed cost of starting a child.
"""

from instrbench.errors import (
    BenchmarkConfigError,
    DispatchError,
    InstrbenchError,
    MeasurementError,
)
from instrbench.hints import black_box
from instrbench.cli import main
from instrbench.models.benchmark import Benchmark, ReportingKind, ReportingMode
from instrbench.models.report import ReportLine, RunReport
from instrbench.registry import BenchmarkRegistry, validate
from instrbench.runner import BenchmarkRunner

__all__ = [
    "Benchmark",
    "BenchmarkConfigError",
    "BenchmarkRegistry",
    "BenchmarkRunner",
    "DispatchError",
    "InstrbenchError",
    "MeasurementError",
    "ReportLine",
    "ReportingKind",
    "ReportingMode",
    "RunReport",
    "black_box",
    "main",
    "validate",
]
