"""Benchmarks for spatial index construction and queries."""

from .bench_spatial_index import BenchSpatialIndex

__all__ = ["BenchSpatialIndex"]
