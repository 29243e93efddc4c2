"""Tests for the program entry point: child dispatch and the top-level command."""

from __future__ import annotations

import json
import logging
import subprocess
import sys
import types
from collections.abc import Iterator
from pathlib import Path

import instrbench
import instrbench.cli
import pytest
from click.testing import CliRunner
from instrbench.cli import cli, main
from instrbench.errors import DispatchError
from instrbench.models.benchmark import Benchmark
from instrbench.registry import BenchmarkRegistry

from tests.fakes import FakeProfiler, noop

REPO_ROOT = Path(__file__).resolve().parents[1]


@pytest.fixture(autouse=True)
def restore_root_logging() -> Iterator[None]:
    root = logging.getLogger()
    saved_handlers = list(root.handlers)
    saved_filters = list(root.filters)
    saved_level = root.level
    yield
    root.handlers[:] = saved_handlers
    root.filters[:] = saved_filters
    root.setLevel(saved_level)


@pytest.fixture
def setup_registry() -> BenchmarkRegistry:
    registry = BenchmarkRegistry()
    registry.add(Benchmark("setup", noop).hidden())
    registry.add(Benchmark("work", noop).exclude_setup_instructions("setup"))
    return registry


def _use_profiler(monkeypatch: pytest.MonkeyPatch, profiler: FakeProfiler) -> None:
    monkeypatch.setattr(instrbench.cli, "CachegrindProfiler", lambda config: profiler)


def test_package_main_does_not_hide_cli_module() -> None:
    assert isinstance(instrbench.cli, types.ModuleType)
    assert instrbench.main is main
    assert hasattr(instrbench.cli, "CachegrindProfiler")


class TestChildDispatch:
    def test_runs_selected_benchmark(self) -> None:
        calls: list[str] = []
        registry = BenchmarkRegistry()
        registry.register("a", lambda: calls.append("a"))
        registry.register("b", lambda: calls.append("b"))

        main(registry, ["--bench-run", "1"])

        assert calls == ["b"]

    def test_calibration_runs_nothing(self) -> None:
        calls: list[str] = []
        registry = BenchmarkRegistry()
        registry.register("a", lambda: calls.append("a"))

        main(registry, ["--bench-run", "-1"])

        assert calls == []

    def test_out_of_range_index_raises(self) -> None:
        registry = BenchmarkRegistry()
        registry.register("a", noop)

        with pytest.raises(DispatchError):
            main(registry, ["--bench-run", "5"])


class TestCli:
    def test_prints_results_in_registration_order(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        profiler = FakeProfiler(
            counts={"calibration": 100, "c": 130, "a": 110, "b": 120},
            delays={"c": 0.03},
        )
        _use_profiler(monkeypatch, profiler)
        registry = BenchmarkRegistry([Benchmark(name, noop) for name in ("c", "a", "b")])

        result = CliRunner().invoke(cli, ["--log-level", "ERROR"], obj=registry)

        assert result.exit_code == 0, result.output
        assert result.output.splitlines() == ["30 : c", "10 : a", "20 : b"]

    def test_hidden_setup_is_excluded(
        self, monkeypatch: pytest.MonkeyPatch, setup_registry: BenchmarkRegistry
    ) -> None:
        profiler = FakeProfiler(counts={"calibration": 1000, "setup": 5000, "work": 9000})
        _use_profiler(monkeypatch, profiler)

        result = CliRunner().invoke(cli, ["--log-level", "ERROR"], obj=setup_registry)

        assert result.exit_code == 0, result.output
        assert result.output == "4000 : work\n"

    def test_jobs_option_bounds_concurrency(self, monkeypatch: pytest.MonkeyPatch) -> None:
        names = [f"b{i}" for i in range(4)]
        profiler = FakeProfiler(
            counts={name: 5 for name in names} | {"calibration": 1},
            delays={name: 0.01 for name in names},
        )
        _use_profiler(monkeypatch, profiler)
        registry = BenchmarkRegistry([Benchmark(name, noop) for name in names])

        result = CliRunner().invoke(cli, ["--jobs", "1", "--log-level", "ERROR"], obj=registry)

        assert result.exit_code == 0, result.output
        assert profiler.max_in_flight == 1

    def test_unavailable_profiler_prints_nothing(
        self,
        monkeypatch: pytest.MonkeyPatch,
        tmp_path: Path,
        setup_registry: BenchmarkRegistry,
    ) -> None:
        monkeypatch.setenv("INSTRBENCH_PROFILER__VALGRIND_BIN", str(tmp_path / "no-valgrind"))

        result = CliRunner().invoke(cli, ["--log-level", "ERROR"], obj=setup_registry)

        assert result.exit_code == 0, result.output
        assert result.output == ""

    def test_invalid_registry_fails(self, monkeypatch: pytest.MonkeyPatch) -> None:
        profiler = FakeProfiler()
        _use_profiler(monkeypatch, profiler)
        registry = BenchmarkRegistry([Benchmark("x", noop), Benchmark("x", noop)])

        result = CliRunner().invoke(cli, ["--log-level", "ERROR"], obj=registry)

        assert result.exit_code == 1
        assert "defined multiple times: x" in result.output
        assert profiler.calls == []

    def test_measurement_failure_prints_no_partial_report(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        profiler = FakeProfiler(counts={"calibration": 1, "a": 2, "b": 3}, fail_labels={"b"})
        _use_profiler(monkeypatch, profiler)
        registry = BenchmarkRegistry([Benchmark("a", noop), Benchmark("b", noop)])

        result = CliRunner().invoke(cli, ["--log-level", "ERROR"], obj=registry)

        assert result.exit_code == 1
        assert " : a" not in result.output
        assert "Failed to run benchmark 'b'" in result.output

    def test_writes_json_report(
        self,
        monkeypatch: pytest.MonkeyPatch,
        tmp_path: Path,
        setup_registry: BenchmarkRegistry,
    ) -> None:
        profiler = FakeProfiler(
            counts={"calibration": 1000, "setup": 5000, "work": 9000}, arch="aarch64"
        )
        _use_profiler(monkeypatch, profiler)
        report_dir = tmp_path / "reports"

        result = CliRunner().invoke(
            cli,
            ["--report-dir", str(report_dir), "--log-level", "ERROR"],
            obj=setup_registry,
        )

        assert result.exit_code == 0, result.output
        (report_path,) = report_dir.glob("instructions-*.json")
        data = json.loads(report_path.read_text(encoding="utf-8"))
        assert data["architecture"] == "aarch64"
        assert data["calibration"] == 1000
        assert data["results"] == [
            {
                "name": "work",
                "instructions": 4000,
                "reporting": "all_instructions_except_setup",
                "setup_name": "setup",
            }
        ]

    def test_missing_config_file(self, tmp_path: Path, setup_registry: BenchmarkRegistry) -> None:
        result = CliRunner().invoke(
            cli, ["--config", str(tmp_path / "absent.yaml")], obj=setup_registry
        )

        assert result.exit_code == 1
        assert "config file not found" in result.output

    def test_requires_registry(self) -> None:
        result = CliRunner().invoke(cli, [])

        assert result.exit_code == 2
        assert "no benchmarks registered" in result.output


class TestDemoProgram:
    def _run(self, *args: str) -> subprocess.CompletedProcess[str]:
        return subprocess.run(
            [sys.executable, "-m", "instrbench.demo", *args],
            cwd=REPO_ROOT,
            capture_output=True,
            text=True,
            timeout=60,
            check=False,
        )

    def test_calibration_child_exits_cleanly_without_output(self) -> None:
        completed = self._run("--bench-run", "-1")
        assert completed.returncode == 0, completed.stderr
        assert completed.stdout == ""

    def test_benchmark_child_runs(self) -> None:
        completed = self._run("--bench-run", "0")
        assert completed.returncode == 0, completed.stderr
        assert completed.stdout == ""

    def test_out_of_range_child_fails(self) -> None:
        completed = self._run("--bench-run", "999")
        assert completed.returncode != 0
        assert "out of range" in completed.stderr
