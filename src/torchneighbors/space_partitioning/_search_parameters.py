"""Query parameter variants accepted by `SpatialIndex.search()`."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import ClassVar, Union

MAXIMUM_NEIGHBORS = 1000


class SearchType(enum.Enum):
    """Tag identifying a query family."""

    KNN = "knn"
    RADIUS = "radius"
    HYBRID = "hybrid"


@dataclass(frozen=True)
class KnnSearchParameters:
    """Search for a fixed number of nearest neighbors.

    Parameters
    ----------
    k : int
        Number of neighbors. Default 30.
    """

    search_type: ClassVar[SearchType] = SearchType.KNN

    k: int = 30


@dataclass(frozen=True)
class RadiusSearchParameters:
    """Search for every neighbor within a radius.

    The number of neighbors returned per query is bounded by the index's
    ``maximum_neighbors``.

    Parameters
    ----------
    radius : float
        Search radius (inclusive). Default 1.0.
    """

    search_type: ClassVar[SearchType] = SearchType.RADIUS

    radius: float = 1.0


@dataclass(frozen=True)
class HybridSearchParameters:
    """Search for at most ``max_k`` nearest neighbors within a radius.

    Parameters
    ----------
    radius : float
        Search radius (inclusive). Default 1.0.
    max_k : int
        Maximum number of neighbors per query. Default 30.
    """

    search_type: ClassVar[SearchType] = SearchType.HYBRID

    radius: float = 1.0
    max_k: int = 30


SearchParameters = Union[
    KnnSearchParameters,
    RadiusSearchParameters,
    HybridSearchParameters,
]
