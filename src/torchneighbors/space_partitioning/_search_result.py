"""Result of a neighbor search."""

from typing import NamedTuple

from torch import Tensor

SEARCH_FAILED = -1


class NeighborSearchResult(NamedTuple):
    """Neighbors found by a `SpatialIndex` query.

    Unpacks as ``indices, distances, count = index.search_knn(...)``.

    Parameters
    ----------
    indices : Tensor
        Neighbor indices, shape (Q, W) for a batch or (W,) for a single
        query. Sorted by increasing distance; unfilled slots hold -1.
    distances : Tensor
        Squared Euclidean distances matching ``indices``; unfilled slots
        hold +inf.
    count : int
        Number of neighbors found over all queries, or ``SEARCH_FAILED``
        (-1) when the query was rejected. On failure ``indices`` and
        ``distances`` are empty.
    """

    indices: Tensor
    distances: Tensor
    count: int

    @property
    def failed(self) -> bool:
        """Whether the query was rejected."""
        return self.count == SEARCH_FAILED
