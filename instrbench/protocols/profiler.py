from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable


@runtime_checkable
class Profiler(Protocol):
    def check_available(self) -> bool: ...

    def architecture(self) -> str: ...

    async def measure(
        self,
        architecture: str,
        command: Sequence[str],
        index: int,
        label: str,
    ) -> int: ...


__all__ = ["Profiler"]
