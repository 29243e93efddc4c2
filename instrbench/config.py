from __future__ import annotations

import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def available_cpus() -> int:
    """Number of CPUs this process may run on."""
    if hasattr(os, "sched_getaffinity"):
        return len(os.sched_getaffinity(0)) or 1
    return os.cpu_count() or 1


class ProfilerConfig(BaseModel):
    """External tools used to count instructions.

    Cache simulation is always disabled and ASLR is always turned off for the
    measured process; only the tool locations are configurable.
    """

    valgrind_bin: str = "valgrind"
    setarch_bin: str = "setarch"
    uname_bin: str = "uname"
    output_dir: Path = Path("target/cachegrind")
    python_hash_seed: str | None = "0"
    """``PYTHONHASHSEED`` for measured children unless already set. ``None`` leaves it alone."""

    @field_validator("python_hash_seed", mode="before")
    @classmethod
    def _seed_as_text(cls, value: object) -> object:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class RunnerConfig(BaseModel):
    max_concurrent: int | None = Field(default=None, ge=1)
    """Concurrent profiler runs. ``None`` uses the number of available CPUs."""
    report_dir: Path | None = None

    def resolved_max_concurrent(self) -> int:
        if self.max_concurrent is not None:
            return self.max_concurrent
        return available_cpus()


class LoggingConfig(BaseModel):
    level: str = "INFO"
    json_output: bool = False

    @field_validator("level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        normalized = value.upper()
        if normalized not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value}")
        return normalized


class InstrbenchSettings(BaseSettings):
    profiler: ProfilerConfig = Field(default_factory=ProfilerConfig)
    runner: RunnerConfig = Field(default_factory=RunnerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_prefix="INSTRBENCH_",
        env_nested_delimiter="__",
        extra="ignore",
    )


def _coerce_env_value(value: str) -> object:
    parsed = yaml.safe_load(value)
    return value if parsed is None else parsed


def _set_nested(mapping: dict[str, object], path: list[str], value: object) -> None:
    current = mapping
    for key in path[:-1]:
        existing = current.get(key)
        if not isinstance(existing, dict):
            existing = {}
            current[key] = existing
        current = existing
    current[path[-1]] = value


def _apply_env_overrides(data: dict[str, object]) -> dict[str, object]:
    merged = dict(data)
    prefix = "INSTRBENCH_"
    for key, raw_value in os.environ.items():
        if not key.startswith(prefix):
            continue
        path = key[len(prefix) :].lower().split("__")
        _set_nested(merged, path, _coerce_env_value(raw_value))
    return merged


def load_config(path: str | Path = "instrbench.yaml") -> InstrbenchSettings:
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"config file not found: {config_path}")

    loaded = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    if not isinstance(loaded, dict):
        raise ValueError("config file must contain a top-level mapping")

    raw = loaded.get("instrbench", loaded)
    if not isinstance(raw, dict):
        raise ValueError("instrbench config section must be a mapping")

    return InstrbenchSettings.model_validate(_apply_env_overrides(raw))


__all__ = [
    "InstrbenchSettings",
    "LoggingConfig",
    "ProfilerConfig",
    "RunnerConfig",
    "available_cpus",
    "load_config",
]
