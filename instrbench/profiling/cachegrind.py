"""Instruction counting with Valgrind's cachegrind tool.

Each measurement runs the benchmark program once under::

    setarch <arch> -R valgrind --tool=cachegrind --cache-sim=no
        --cachegrind-out-file=<output_dir>/cachegrind.out.<index>.<label>
        <command> --bench-run <index>

``setarch -R`` disables address space randomization, which would otherwise
add a few instructions of jitter between runs. With cache simulation off,
cachegrind only counts instructions, and the total is read from the
``summary:`` line of its output file. Children also get a fixed
``PYTHONHASHSEED`` so string hashing does not change the count between runs.
"""

from __future__ import annotations

import asyncio
import logging
import os
import re
import subprocess
from collections.abc import Sequence
from pathlib import Path
from time import perf_counter

from instrbench.config import ProfilerConfig
from instrbench.dispatch import child_args
from instrbench.errors import MeasurementError

logger = logging.getLogger(__name__)

_SUMMARY_PREFIX = "summary: "
_UNSAFE_LABEL_CHARS = re.compile(r"[^A-Za-z0-9._-]")


class CachegrindProfiler:
    """Runs child benchmark processes under cachegrind and reads their totals."""

    def __init__(self, config: ProfilerConfig | None = None) -> None:
        self._config = config or ProfilerConfig()

    @property
    def output_dir(self) -> Path:
        return self._config.output_dir

    def check_available(self) -> bool:
        try:
            probe = subprocess.run(
                [self._config.valgrind_bin, "--tool=cachegrind", "--version"],
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
                check=False,
            )
        except OSError as exc:
            logger.warning("Unexpected error while launching valgrind: %s", exc)
            return False

        if probe.returncode != 0:
            logger.warning(
                "Failed to launch valgrind (exit code %d). "
                "Please ensure that valgrind is installed and on the $PATH.",
                probe.returncode,
            )
            return False
        return True

    def architecture(self) -> str:
        """Return the CPU architecture name reported by ``uname -m``."""
        try:
            probe = subprocess.run(
                [self._config.uname_bin, "-m"],
                capture_output=True,
                check=False,
            )
        except OSError as exc:
            raise MeasurementError(
                f"failed to run `{self._config.uname_bin}` to determine CPU architecture: {exc}"
            ) from exc

        if probe.returncode != 0:
            raise MeasurementError(
                f"`{self._config.uname_bin} -m` exited with status {probe.returncode}"
            )
        try:
            arch = probe.stdout.decode("utf-8").strip()
        except UnicodeDecodeError as exc:
            raise MeasurementError(
                f"`{self._config.uname_bin} -m` returned invalid unicode"
            ) from exc
        if not arch:
            raise MeasurementError(f"`{self._config.uname_bin} -m` returned no architecture")
        return arch

    def output_file(self, index: int, label: str) -> Path:
        """Return the output path for one measurement.

        The dispatch index keeps names unique; the label is folded into a single
        path segment so names containing separators stay inside ``output_dir``.
        """
        slug = _UNSAFE_LABEL_CHARS.sub("_", label) or "benchmark"
        return self._config.output_dir / f"cachegrind.out.{index}.{slug}"

    def build_command(
        self,
        architecture: str,
        command: Sequence[str],
        index: int,
        output_file: Path,
    ) -> list[str]:
        if isinstance(command, str):
            raise ValueError("command must be an argument list, not a shell string")
        if not command:
            raise ValueError("command must not be empty")
        return [
            self._config.setarch_bin,
            architecture,
            "-R",
            self._config.valgrind_bin,
            "--tool=cachegrind",
            "--cache-sim=no",
            f"--cachegrind-out-file={output_file}",
            *[str(part) for part in command],
            *child_args(index),
        ]

    async def measure(
        self,
        architecture: str,
        command: Sequence[str],
        index: int,
        label: str,
    ) -> int:
        """Count the instructions of one child invocation.

        :param architecture: Target architecture passed to ``setarch``.
        :param command: Argument prefix that starts the benchmark program.
        :param index: Benchmark index for the child, ``-1`` for calibration.
        :param label: Benchmark name, used in the output file name and errors.
        :returns: Total instruction count of the child process.
        :raises MeasurementError: If the child fails or its output has no total.
        """
        output_file = self.output_file(index, label)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        argv = self.build_command(architecture, command, index, output_file)

        started = perf_counter()
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                env=self._build_env(),
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
        except OSError as exc:
            raise MeasurementError(
                f"Failed to run benchmark {label!r} in cachegrind: {exc}"
            ) from exc

        exit_code = await process.wait()
        if exit_code != 0:
            raise MeasurementError(
                f"Failed to run benchmark {label!r} in cachegrind. Exit code: {exit_code}"
            )

        try:
            instruction_count = parse_cachegrind_output(output_file)
        finally:
            self._remove_output(output_file)

        logger.debug(
            "cachegrind_measured label=%s index=%d instructions=%d duration_s=%.3f",
            label,
            index,
            instruction_count,
            perf_counter() - started,
        )
        return instruction_count

    def _build_env(self) -> dict[str, str]:
        run_env = dict(os.environ)
        if self._config.python_hash_seed is not None:
            run_env.setdefault("PYTHONHASHSEED", self._config.python_hash_seed)
        return run_env

    def _remove_output(self, output_file: Path) -> None:
        try:
            output_file.unlink(missing_ok=True)
        except OSError:
            logger.debug("Failed to remove cachegrind output file %s", output_file)


def parse_cachegrind_output(path: Path) -> int:
    """Return the total from the first ``summary:`` line of a cachegrind output file."""
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        raise MeasurementError(f"Unable to open cachegrind output file {path}") from exc

    for line in text.splitlines():
        if not line.startswith(_SUMMARY_PREFIX):
            continue
        raw_count = line[len(_SUMMARY_PREFIX) :].strip()
        try:
            count = int(raw_count, 10)
        except ValueError as exc:
            raise MeasurementError(
                f"Unable to parse summary line from cachegrind output file {path}: {line!r}"
            ) from exc
        if count < 0:
            raise MeasurementError(f"Negative instruction count in {path}: {count}")
        return count

    raise MeasurementError(f"Unable to parse cachegrind output file {path}: no summary line")


__all__ = ["CachegrindProfiler", "parse_cachegrind_output"]
