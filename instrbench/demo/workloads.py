"""Hashing and compression workloads for the demo benchmark program.

Each workload family follows the same shape: a hidden benchmark that only
builds the state, a benchmark that builds it and does the work while
excluding the build cost, and a bulk benchmark that excludes the whole
previous step.
"""

from __future__ import annotations

import hmac
import zlib
from collections.abc import Callable

from instrbench.hints import black_box
from instrbench.models.benchmark import Benchmark
from instrbench.registry import BenchmarkRegistry

_KEY = bytes(range(32))
_MESSAGE = b"instrbench" * 64
_BULK_SIZE = 256 * 1024


def _new_mac(digest: str) -> hmac.HMAC:
    return hmac.new(black_box(_KEY), digestmod=digest)


def bench_new_mac(digest: str) -> None:
    black_box(_new_mac(digest))


def bench_sign(digest: str) -> None:
    mac = _new_mac(digest)
    mac.update(black_box(_MESSAGE))
    black_box(mac.digest())


def bench_sign_bulk(digest: str) -> None:
    mac = _new_mac(digest)
    mac.update(black_box(_MESSAGE))
    black_box(mac.digest())
    bulk = _new_mac(digest)
    bulk.update(bytes(black_box(_BULK_SIZE)))
    black_box(bulk.digest())


def bench_compress(level: int) -> None:
    payload = black_box(_MESSAGE * 16)
    black_box(zlib.compress(payload, level))


def _bind(func: Callable[[str], None], digest: str) -> Callable[[], None]:
    return lambda: func(black_box(digest))


def add_benchmarks_for_digest(registry: BenchmarkRegistry, digest: str) -> None:
    registry.extend(
        [
            Benchmark(f"new_mac_{digest}", _bind(bench_new_mac, digest)).hidden(),
            Benchmark(f"sign_{digest}", _bind(bench_sign, digest)).exclude_setup_instructions(
                f"new_mac_{digest}"
            ),
            Benchmark(
                f"sign_bulk_{digest}", _bind(bench_sign_bulk, digest)
            ).exclude_setup_instructions(f"sign_{digest}"),
        ]
    )


def build_registry() -> BenchmarkRegistry:
    registry = BenchmarkRegistry()
    for digest in ("sha256", "blake2b"):
        add_benchmarks_for_digest(registry, digest)

    @registry.benchmark("zlib_compress_default")
    def _compress_default() -> None:
        bench_compress(black_box(6))

    @registry.benchmark("zlib_compress_best")
    def _compress_best() -> None:
        bench_compress(black_box(9))

    return registry


__all__ = ["add_benchmarks_for_digest", "build_registry"]
