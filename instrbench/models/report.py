from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, Field

from instrbench.models.benchmark import ReportingKind


def utc_now() -> datetime:
    return datetime.now(UTC)


class ReportLine(BaseModel):
    name: str
    instructions: int
    reporting: ReportingKind = ReportingKind.all_instructions
    setup_name: str | None = None

    def render(self) -> str:
        return f"{self.instructions} : {self.name}"


class RunReport(BaseModel):
    """Visible results of one top-level run, in registration order."""

    architecture: str
    calibration: int = Field(ge=0)
    results: list[ReportLine] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)

    def lines(self) -> list[str]:
        return [line.render() for line in self.results]

    def write_report(self, directory: str | Path = "reports") -> Path:
        """Write the report to a dated JSON file in the given directory."""
        dir_path = Path(directory)
        dir_path.mkdir(parents=True, exist_ok=True)
        stamp = self.created_at.strftime("%Y-%m-%dT%H%M%S")
        path = dir_path / f"instructions-{stamp}.json"
        path.write_text(self.model_dump_json(indent=2), encoding="utf-8")
        return path


__all__ = ["ReportLine", "RunReport", "utc_now"]
