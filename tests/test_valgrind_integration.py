"""End-to-end runs of the demo program under the real cachegrind tool."""

from __future__ import annotations

import re
import subprocess
import sys
from pathlib import Path

import pytest
from instrbench.demo.workloads import build_registry
from instrbench.models.benchmark import ReportingKind

REPO_ROOT = Path(__file__).resolve().parents[1]
_LINE = re.compile(r"^-?\d+ : \S+$")

pytestmark = pytest.mark.valgrind


def _run_demo(output_dir: Path) -> subprocess.CompletedProcess[str]:
    return subprocess.run(
        [
            sys.executable,
            "-m",
            "instrbench.demo",
            "--output-dir",
            str(output_dir),
            "--log-level",
            "ERROR",
        ],
        cwd=REPO_ROOT,
        capture_output=True,
        text=True,
        timeout=900,
        check=False,
    )


def test_demo_reports_visible_benchmarks_in_order(tmp_path: Path) -> None:
    completed = _run_demo(tmp_path / "cachegrind")

    assert completed.returncode == 0, completed.stderr
    lines = completed.stdout.splitlines()
    assert all(_LINE.match(line) for line in lines)
    expected = [
        bench.name
        for bench in build_registry()
        if bench.reporting_mode.kind is not ReportingKind.hidden
    ]
    assert [line.split(" : ", 1)[1] for line in lines] == expected
    assert list((tmp_path / "cachegrind").iterdir()) == []


def test_repeated_runs_give_identical_output(tmp_path: Path) -> None:
    first = _run_demo(tmp_path / "first")
    second = _run_demo(tmp_path / "second")

    assert first.returncode == 0, first.stderr
    assert second.returncode == 0, second.stderr
    assert first.stdout == second.stdout
