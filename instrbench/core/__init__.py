"""Lightweight re-exports of the core helpers."""

from instrbench.core.logging import benchmark_scope, setup_logging

__all__ = ["benchmark_scope", "setup_logging"]
