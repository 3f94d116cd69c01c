"""torchneighbors: nearest-neighbor search over 2D/3D point sets in PyTorch."""

from . import geometry, space_partitioning
from ._exceptions import (
    NeighborCapacityWarning,
    SpatialIndexError,
    SpatialIndexWarning,
    UnsupportedGeometryWarning,
)
from .space_partitioning import (
    HybridSearchParameters,
    KnnSearchParameters,
    NeighborSearchResult,
    RadiusSearchParameters,
    SpatialIndex,
)

__all__ = [
    "HybridSearchParameters",
    "KnnSearchParameters",
    "NeighborCapacityWarning",
    "NeighborSearchResult",
    "RadiusSearchParameters",
    "SpatialIndex",
    "SpatialIndexError",
    "SpatialIndexWarning",
    "UnsupportedGeometryWarning",
    "geometry",
    "space_partitioning",
]

__version__ = "0.1.0"
