from __future__ import annotations

from instrbench.models.benchmark import Benchmark, ReportingKind, ReportingMode
from instrbench.models.report import ReportLine, RunReport

__all__ = [
    "Benchmark",
    "ReportLine",
    "ReportingKind",
    "ReportingMode",
    "RunReport",
]
