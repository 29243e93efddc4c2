from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from enum import StrEnum


class ReportingKind(StrEnum):
    hidden = "hidden"
    all_instructions = "all_instructions"
    all_instructions_except_setup = "all_instructions_except_setup"


@dataclass(frozen=True, slots=True)
class ReportingMode:
    """How a benchmark's instruction count shows up in the results.

    ``all_instructions_except_setup`` carries the name of another benchmark
    whose count is subtracted. That benchmark usually runs only the shared
    setup code and is often hidden itself.
    """

    kind: ReportingKind = ReportingKind.all_instructions
    setup_name: str | None = None

    @classmethod
    def hidden(cls) -> ReportingMode:
        return cls(kind=ReportingKind.hidden)

    @classmethod
    def all_instructions(cls) -> ReportingMode:
        return cls(kind=ReportingKind.all_instructions)

    @classmethod
    def all_instructions_except_setup(cls, setup_name: str) -> ReportingMode:
        return cls(kind=ReportingKind.all_instructions_except_setup, setup_name=setup_name)

    def __post_init__(self) -> None:
        needs_setup = self.kind is ReportingKind.all_instructions_except_setup
        if needs_setup and not self.setup_name:
            raise ValueError("all_instructions_except_setup requires a setup benchmark name")
        if not needs_setup and self.setup_name is not None:
            raise ValueError(
                f"setup_name is only valid for {ReportingKind.all_instructions_except_setup}"
            )

    def __str__(self) -> str:
        if self.setup_name is not None:
            return f"{self.kind}({self.setup_name})"
        return str(self.kind)


@dataclass(frozen=True, slots=True)
class Benchmark:
    """A named zero-argument function measured in its own child process."""

    name: str
    function: Callable[[], object] = field(repr=False, compare=False)
    reporting_mode: ReportingMode = field(default_factory=ReportingMode.all_instructions)

    def hidden(self) -> Benchmark:
        """Return a copy that is measured but left out of the results."""
        return replace(self, reporting_mode=ReportingMode.hidden())

    def exclude_setup_instructions(self, setup_name: str) -> Benchmark:
        """Return a copy that reports its count minus the ``setup_name`` benchmark's."""
        return replace(self, reporting_mode=ReportingMode.all_instructions_except_setup(setup_name))

    def run(self) -> None:
        self.function()


__all__ = ["Benchmark", "ReportingKind", "ReportingMode"]
