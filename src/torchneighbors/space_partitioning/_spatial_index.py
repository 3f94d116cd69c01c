"""Spatial index over 2D/3D points with k-nearest, radius and hybrid queries."""

from __future__ import annotations

import math
import numbers
import warnings
from typing import Any, Optional, Union

import torch
from torch import Tensor

from .._exceptions import (
    NeighborCapacityWarning,
    SpatialIndexError,
    SpatialIndexWarning,
    UnsupportedGeometryWarning,
)
from ..geometry import PointCloud, PointGeometry, TriangleMesh
from ._flat_index import (
    DEFAULT_TILE_SIZE,
    FlatIndex,
    flat_index,
    flat_index_hybrid,
    flat_index_knn,
    flat_index_radius,
)
from ._padded_layout import pad_points, point_dimension, unpad_points
from ._search_parameters import (
    MAXIMUM_NEIGHBORS,
    HybridSearchParameters,
    KnnSearchParameters,
    RadiusSearchParameters,
    SearchParameters,
    SearchType,
)
from ._search_result import SEARCH_FAILED, NeighborSearchResult


class SpatialIndex:
    """Spatial index answering nearest-neighbor queries on device.

    The index is built once over a point set (`build()` or
    `set_geometry()`) and then queried any number of times. Points and
    queries stay on the index device; a query never copies the index.

    Failures never raise. `build()` and `set_geometry()` return False and
    warn, searches return a `NeighborSearchResult` whose ``count`` is -1.

    Parameters
    ----------
    data : Tensor or PointGeometry, optional
        Points of shape (n, 2) or (n, 3), or a `PointCloud` /
        `TriangleMesh`, to build the index from immediately.
    device : torch.device or str, optional
        Device holding the index. Defaults to the device of the points.
    maximum_neighbors : int, default=1000
        Result width of radius queries and the largest admissible ``k``.
    tile_size : int, default=4096
        Number of queries evaluated together by the search engine.

    Examples
    --------
    >>> points = torch.tensor([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])
    >>> index = SpatialIndex(points)
    >>> indices, distances, count = index.search_knn(points[0], k=2)
    >>> distances
    tensor([0., 1.])
    >>> count
    2
    """

    def __init__(
        self,
        data: Union[Tensor, PointGeometry, None] = None,
        *,
        device: Union[torch.device, str, None] = None,
        maximum_neighbors: int = MAXIMUM_NEIGHBORS,
        tile_size: int = DEFAULT_TILE_SIZE,
    ) -> None:
        if maximum_neighbors < 1:
            raise SpatialIndexError(
                f"maximum_neighbors must be >= 1, got {maximum_neighbors}"
            )
        if tile_size < 1:
            raise SpatialIndexError(f"tile_size must be >= 1, got {tile_size}")

        self._device = None if device is None else torch.device(device)
        self._maximum_neighbors = maximum_neighbors
        self._tile_size = tile_size
        self._index: Optional[FlatIndex] = None

        if data is None:
            return
        if isinstance(data, Tensor):
            self.build(data)
        else:
            self.set_geometry(data)

    def __len__(self) -> int:
        return self.count

    def __repr__(self) -> str:
        if self._index is None:
            return (
                f"SpatialIndex(built=False, "
                f"maximum_neighbors={self._maximum_neighbors})"
            )
        return (
            f"SpatialIndex(count={self.count}, dimension={self.dimension}, "
            f"device={self.device}, maximum_neighbors={self._maximum_neighbors})"
        )

    @property
    def is_built(self) -> bool:
        """Whether a point set has been indexed."""
        return self._index is not None

    @property
    def dimension(self) -> Optional[int]:
        """Dimension of the indexed points (2 or 3), None before a build."""
        if self._index is None:
            return None
        return self._index.dimension

    @property
    def count(self) -> int:
        """Number of indexed points."""
        if self._index is None:
            return 0
        return self._index.points.shape[0]

    @property
    def device(self) -> Optional[torch.device]:
        """Device holding the index."""
        if self._index is None:
            return self._device
        return self._index.points.device

    @property
    def maximum_neighbors(self) -> int:
        """Result width of radius queries and the largest admissible k."""
        return self._maximum_neighbors

    @property
    def points(self) -> Optional[Tensor]:
        """Copy of the indexed points, shape (count, dimension)."""
        if self._index is None:
            return None
        return unpad_points(self._index.points, self.dimension)

    def reset(self) -> None:
        """Release the built index."""
        self._index = None

    def build(self, points: Tensor) -> bool:
        """Index a point set, replacing any previously built index.

        Parameters
        ----------
        points : Tensor, shape (n, 2) or (n, 3)
            Non-empty, finite, floating point set. The index keeps a padded
            copy; later changes to ``points`` do not affect it.

        Returns
        -------
        bool
            True on success. On failure a `SpatialIndexWarning` is emitted
            and the previous index, if any, is kept.
        """
        if not isinstance(points, Tensor):
            warnings.warn(
                f"SpatialIndex.build: points must be a Tensor, "
                f"got {type(points).__name__}",
                SpatialIndexWarning,
            )
            return False

        d = point_dimension(points)
        if points.dim() != 2 or d is None:
            warnings.warn(
                f"SpatialIndex.build: cannot determine point dimension of "
                f"{tuple(points.shape)} {points.dtype} tensor; expected "
                f"floating (n, 2) or (n, 3)",
                SpatialIndexWarning,
            )
            return False

        if points.shape[0] == 0:
            warnings.warn(
                "SpatialIndex.build: cannot index an empty point set",
                SpatialIndexWarning,
            )
            return False

        if not bool(torch.isfinite(points).all()):
            warnings.warn(
                "SpatialIndex.build: points must be finite",
                SpatialIndexWarning,
            )
            return False

        self._index = flat_index(pad_points(points, device=self._device), d)
        return True

    def set_geometry(self, geometry: PointGeometry) -> bool:
        """Index the points of a point cloud or the vertices of a mesh.

        Parameters
        ----------
        geometry : PointCloud or TriangleMesh
            Geometry to index.

        Returns
        -------
        bool
            True on success. Other geometry types emit an
            `UnsupportedGeometryWarning` and leave the index unchanged.
        """
        if not isinstance(geometry, (PointCloud, TriangleMesh)):
            warnings.warn(
                f"SpatialIndex.set_geometry: unsupported geometry type "
                f"{type(geometry).__name__}",
                UnsupportedGeometryWarning,
            )
            return False

        return self.build(geometry.point_buffer())

    def search_knn(
        self,
        queries: Any,
        k: int,
        *,
        out: Optional[tuple[Tensor, Tensor]] = None,
    ) -> NeighborSearchResult:
        """Find the k nearest indexed points.

        Parameters
        ----------
        queries : Tensor or array-like
            Batch of shape (Q, d) on the index device, or a single point of
            shape (d,) on any device (or a list, tuple or NumPy array).
        k : int
            Number of neighbors, in ``[0, maximum_neighbors]``.
        out : tuple of Tensor, optional
            ``(indices, distances)`` buffers on the index device, resized in
            place to (Q, k). Batch queries only.

        Returns
        -------
        NeighborSearchResult
            ``indices`` and ``distances`` of width ``k`` sorted by increasing
            squared distance. Fewer than ``k`` slots per query are filled
            when the index holds fewer than ``k`` points.
        """
        if (
            not isinstance(k, numbers.Integral)
            or k < 0
            or k > self._maximum_neighbors
        ):
            return self._failure(queries)

        return self._dispatch(queries, int(k), None, out, capped=True)

    def search_radius(
        self,
        queries: Any,
        radius: float,
        *,
        out: Optional[tuple[Tensor, Tensor]] = None,
    ) -> NeighborSearchResult:
        """Find the indexed points within ``radius``.

        Parameters
        ----------
        queries : Tensor or array-like
            See `search_knn()`.
        radius : float
            Search radius (inclusive), non-negative with a finite square.
        out : tuple of Tensor, optional
            See `search_knn()`.

        Returns
        -------
        NeighborSearchResult
            ``indices`` and ``distances`` of width ``maximum_neighbors``.
            When a query has more neighbors than that, the nearest ones are
            kept and a `NeighborCapacityWarning` is emitted.
        """
        if not _is_radius(radius):
            return self._failure(queries)

        return self._dispatch(
            queries,
            self._maximum_neighbors,
            float(radius),
            out,
            capped=False,
        )

    def search_hybrid(
        self,
        queries: Any,
        radius: float,
        max_k: int,
        *,
        out: Optional[tuple[Tensor, Tensor]] = None,
    ) -> NeighborSearchResult:
        """Find at most ``max_k`` nearest indexed points within ``radius``.

        Parameters
        ----------
        queries : Tensor or array-like
            See `search_knn()`.
        radius : float
            Search radius (inclusive), non-negative with a finite square.
        max_k : int
            Maximum number of neighbors per query, non-negative.
        out : tuple of Tensor, optional
            See `search_knn()`.

        Returns
        -------
        NeighborSearchResult
            ``indices`` and ``distances`` of width ``max_k``.
        """
        if not _is_radius(radius):
            return self._failure(queries)
        if not isinstance(max_k, numbers.Integral) or max_k < 0:
            return self._failure(queries)

        return self._dispatch(
            queries, int(max_k), float(radius), out, capped=True
        )

    def search(
        self,
        queries: Any,
        parameters: SearchParameters,
        *,
        out: Optional[tuple[Tensor, Tensor]] = None,
    ) -> NeighborSearchResult:
        """Run the query described by ``parameters``.

        Parameters
        ----------
        queries : Tensor or array-like
            See `search_knn()`.
        parameters : KnnSearchParameters, RadiusSearchParameters or HybridSearchParameters
            Query family and its arguments.
        out : tuple of Tensor, optional
            See `search_knn()`.

        Returns
        -------
        NeighborSearchResult
            Result of the matching search method; ``count`` is -1 for
            unrecognized parameters.
        """
        if not isinstance(
            parameters,
            (KnnSearchParameters, RadiusSearchParameters, HybridSearchParameters),
        ):
            return self._failure(queries)

        if parameters.search_type is SearchType.KNN:
            return self.search_knn(queries, parameters.k, out=out)
        if parameters.search_type is SearchType.RADIUS:
            return self.search_radius(queries, parameters.radius, out=out)
        if parameters.search_type is SearchType.HYBRID:
            return self.search_hybrid(
                queries, parameters.radius, parameters.max_k, out=out
            )

        return self._failure(queries)

    def _dispatch(
        self,
        queries: Any,
        width: int,
        radius: Optional[float],
        out: Optional[tuple[Tensor, Tensor]],
        *,
        capped: bool,
    ) -> NeighborSearchResult:
        staged = self._stage(queries)
        if staged is None:
            return self._failure(queries)

        padded, result_device = staged
        if result_device is not None and out is not None:
            return self._failure(queries)
        if out is not None and not self._accepts_out(out):
            return self._failure(queries)

        if radius is None:
            indices, distances, counts = flat_index_knn(
                self._index, padded, width, tile_size=self._tile_size, out=out
            )
        elif capped:
            indices, distances, counts = flat_index_hybrid(
                self._index,
                padded,
                radius * radius,
                width,
                tile_size=self._tile_size,
                out=out,
            )
        else:
            indices, distances, counts = flat_index_radius(
                self._index,
                padded,
                radius * radius,
                width,
                tile_size=self._tile_size,
                out=out,
            )

        if not capped:
            truncated = int((counts > width).sum())
            if truncated:
                warnings.warn(
                    f"SpatialIndex.search_radius: {truncated} queries found "
                    f"more than {width} neighbors within radius {radius}; "
                    f"only the nearest {width} were kept",
                    NeighborCapacityWarning,
                )

        count = int(counts.clamp(max=width).sum())

        if result_device is not None:
            return NeighborSearchResult(
                indices[0].to(result_device),
                distances[0].to(result_device),
                count,
            )

        return NeighborSearchResult(indices, distances, count)

    def _stage(
        self, queries: Any
    ) -> Optional[tuple[Tensor, Optional[torch.device]]]:
        """Pad queries for the engine.

        Returns the padded (Q, 4) batch and, for a single query point, the
        device its result goes back to. None when the queries are rejected.
        """
        if self._index is None:
            return None

        points = self._index.points

        if isinstance(queries, Tensor) and queries.dim() == 2:
            if queries.shape[0] == 0 or queries.device != points.device:
                return None
            if point_dimension(queries) != self.dimension:
                return None
            if not bool(torch.isfinite(queries).all()):
                return None
            return pad_points(queries).to(dtype=points.dtype), None

        query = _as_point(queries)
        if query is None or query.shape[0] != self.dimension:
            return None

        result_device = query.device
        batch = query.to(device=points.device, dtype=points.dtype)[None]
        return pad_points(batch), result_device

    def _accepts_out(self, out: Any) -> bool:
        if not isinstance(out, (tuple, list)) or len(out) != 2:
            return False
        indices, distances = out
        if not isinstance(indices, Tensor) or not isinstance(distances, Tensor):
            return False
        points = self._index.points
        return (
            indices.dtype == torch.int64
            and distances.dtype == points.dtype
            and indices.device == points.device
            and distances.device == points.device
        )

    def _failure(self, queries: Any) -> NeighborSearchResult:
        if isinstance(queries, Tensor):
            device = queries.device
            single = queries.dim() != 2
            dtype = (
                queries.dtype
                if queries.is_floating_point()
                else torch.get_default_dtype()
            )
        else:
            device = torch.device("cpu")
            single = True
            dtype = torch.get_default_dtype()

        shape = (0,) if single else (0, 0)

        return NeighborSearchResult(
            torch.empty(shape, dtype=torch.int64, device=device),
            torch.empty(shape, dtype=dtype, device=device),
            SEARCH_FAILED,
        )


def _is_radius(radius: Any) -> bool:
    if not isinstance(radius, numbers.Real):
        return False
    try:
        radius = float(radius)
    except OverflowError:
        return False
    # The engine takes the squared radius, which must stay finite.
    return radius >= 0 and math.isfinite(radius * radius)


def _as_point(query: Any) -> Optional[Tensor]:
    if isinstance(query, Tensor):
        point = query
    else:
        try:
            point = torch.as_tensor(query)
        except (TypeError, ValueError, RuntimeError):
            return None

    if point.dim() != 1 or point.is_complex() or point.dtype == torch.bool:
        return None
    if not bool(torch.isfinite(point).all()):
        return None
    return point
