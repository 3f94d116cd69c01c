"""Benchmarks for SpatialIndex.

Measures one-time build cost against the repeated-query hot path, with and
without reusing caller-owned result buffers.
"""

from __future__ import annotations

import time
from typing import Any, Callable

import numpy as np
import torch

from torchneighbors import SpatialIndex


def print_result(name: str, times: list[float]) -> None:
    """Print the mean and spread of ``times`` in milliseconds."""
    print(f"\n{name}")
    print("-" * len(name))
    print(f"  {np.mean(times) * 1e3:.3f}ms +/- {np.std(times) * 1e3:.3f}ms")


class BenchSpatialIndex:
    """Benchmarks for SpatialIndex build and search."""

    def __init__(
        self,
        warmup: int = 3,
        iterations: int = 10,
        device: str | None = None,
    ):
        self.warmup = warmup
        self.iterations = iterations
        if device is None:
            device = "cuda" if torch.cuda.is_available() else "cpu"
        self.device = torch.device(device)

    def _bench(self, func: Callable, *args: Any, **kwargs: Any) -> list[float]:
        for _ in range(self.warmup):
            func(*args, **kwargs)

        times = []
        for _ in range(self.iterations):
            start = time.perf_counter()
            func(*args, **kwargs)
            if self.device.type == "cuda":
                torch.cuda.synchronize(self.device)
            times.append(time.perf_counter() - start)
        return times

    def bench_build(self, n_points: int = 100000, dimension: int = 3) -> None:
        """Benchmark index construction."""
        points = torch.randn(n_points, dimension, device=self.device)
        index = SpatialIndex()

        print_result(
            f"build (n={n_points}, d={dimension})",
            self._bench(index.build, points),
        )

    def bench_knn(
        self,
        n_points: int = 100000,
        n_queries: int = 10000,
        k: int = 16,
    ) -> None:
        """Benchmark batch KNN with fresh and reused result buffers."""
        index = SpatialIndex(torch.randn(n_points, 3, device=self.device))
        queries = torch.randn(n_queries, 3, device=self.device)
        out = (
            torch.empty(0, dtype=torch.int64, device=self.device),
            torch.empty(0, device=self.device),
        )

        print_result(
            f"search_knn (n={n_points}, q={n_queries}, k={k})",
            self._bench(index.search_knn, queries, k),
        )
        print_result(
            f"search_knn with out (n={n_points}, q={n_queries}, k={k})",
            self._bench(index.search_knn, queries, k, out=out),
        )

    def bench_radius(
        self,
        n_points: int = 100000,
        n_queries: int = 10000,
        radius: float = 0.05,
    ) -> None:
        """Benchmark batch radius and hybrid queries."""
        index = SpatialIndex(
            torch.randn(n_points, 3, device=self.device),
            maximum_neighbors=64,
        )
        queries = torch.randn(n_queries, 3, device=self.device)

        print_result(
            f"search_radius (n={n_points}, q={n_queries}, r={radius})",
            self._bench(index.search_radius, queries, radius),
        )
        print_result(
            f"search_hybrid (n={n_points}, q={n_queries}, r={radius}, max_k=16)",
            self._bench(index.search_hybrid, queries, radius, 16),
        )

    def bench_single_queries(
        self, n_points: int = 100000, n_queries: int = 100
    ) -> None:
        """Benchmark a loop of single host queries."""
        index = SpatialIndex(torch.randn(n_points, 3, device=self.device))
        queries = torch.randn(n_queries, 3).tolist()

        def loop() -> None:
            for query in queries:
                index.search_knn(query, 8)

        print_result(
            f"{n_queries} single search_knn calls (n={n_points})",
            self._bench(loop),
        )

    def run_all(self) -> None:
        """Run all spatial index benchmarks."""
        print("=" * 60)
        print("SPATIAL INDEX BENCHMARKS")
        print("=" * 60)

        self.bench_build()
        self.bench_knn()
        self.bench_radius()
        self.bench_single_queries()


if __name__ == "__main__":
    bench = BenchSpatialIndex(warmup=5, iterations=20)
    bench.run_all()
