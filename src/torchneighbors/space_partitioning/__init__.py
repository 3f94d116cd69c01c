"""Spatial index for nearest-neighbor search over 2D/3D points.

This module provides:
- `SpatialIndex`: build once over a point set or geometry, then run
  k-nearest, radius and hybrid (radius + k) queries on device
- Query parameter variants for `SpatialIndex.search()`
- The underlying flat index engine working on padded 4-wide point buffers

Note: Queries return squared Euclidean distances. Unfilled result slots
hold -1 indices and +inf distances.
"""

from ._flat_index import (
    DEFAULT_TILE_SIZE,
    INVALID_INDEX,
    FlatIndex,
    flat_index,
    flat_index_hybrid,
    flat_index_knn,
    flat_index_radius,
)
from ._padded_layout import PADDED_POINT_WIDTH, pad_points, point_dimension
from ._search_parameters import (
    MAXIMUM_NEIGHBORS,
    HybridSearchParameters,
    KnnSearchParameters,
    RadiusSearchParameters,
    SearchParameters,
    SearchType,
)
from ._search_result import SEARCH_FAILED, NeighborSearchResult
from ._spatial_index import SpatialIndex

__all__ = [
    "DEFAULT_TILE_SIZE",
    "FlatIndex",
    "HybridSearchParameters",
    "INVALID_INDEX",
    "KnnSearchParameters",
    "MAXIMUM_NEIGHBORS",
    "NeighborSearchResult",
    "PADDED_POINT_WIDTH",
    "RadiusSearchParameters",
    "SEARCH_FAILED",
    "SearchParameters",
    "SearchType",
    "SpatialIndex",
    "flat_index",
    "flat_index_hybrid",
    "flat_index_knn",
    "flat_index_radius",
    "pad_points",
    "point_dimension",
]
