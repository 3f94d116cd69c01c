"""Hypothesis strategies for spatial index testing."""

from ._index_devices import index_devices
from ._point_dtypes import point_dtypes
from ._point_sets import point_sets, query_points

__all__ = [
    # Tensor strategies
    "point_sets",
    "query_points",
    # Dtype strategies
    "point_dtypes",
    # Device strategies
    "index_devices",
]
