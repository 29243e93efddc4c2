from __future__ import annotations

import shutil

import pytest

from tests.fakes import FakeProfiler


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if shutil.which("valgrind") and shutil.which("setarch"):
        return
    skip_valgrind = pytest.mark.skip(reason="valgrind and setarch are required")
    for item in items:
        if "valgrind" in item.keywords:
            item.add_marker(skip_valgrind)


@pytest.fixture
def profiler() -> FakeProfiler:
    return FakeProfiler()
