"""Exact tiled neighbor search engine over padded point buffers."""

from __future__ import annotations

import math
from typing import Optional

import torch
from tensordict import tensorclass
from torch import Tensor

from ._padded_layout import PADDED_POINT_WIDTH, SUPPORTED_DIMENSIONS

INVALID_INDEX = -1

DEFAULT_TILE_SIZE = 4096

# Upper bound on the (tile, n) distance workspace, in elements.
_MAXIMUM_TILE_ELEMENTS = 1 << 26


@tensorclass
class FlatIndex:
    """Spatial index over a padded point buffer.

    Use `flat_index()` to construct instances. The index owns its buffer:
    the points are never modified after construction and a new index is
    built whenever the point set changes.

    Attributes
    ----------
    points : Tensor
        Padded points, shape (n, 4). Components past `dimension` are zero.
    dimension : int
        Logical dimension (2 or 3).
    lower : Tensor
        Per-component minimum of `points`, shape (4,).
    upper : Tensor
        Per-component maximum of `points`, shape (4,).

    Examples
    --------
    >>> index = flat_index(pad_points(torch.randn(100, 3)), dimension=3)
    >>> index.points.shape
    torch.Size([100, 4])
    """

    points: Tensor
    dimension: int
    lower: Tensor
    upper: Tensor


def flat_index(padded_points: Tensor, dimension: int) -> FlatIndex:
    """Build an index over padded points.

    Construction runs eagerly on the device of ``padded_points`` so no
    per-query setup remains. It only records the bounds of the points; no
    tree is built, and every query scans all n points.

    Parameters
    ----------
    padded_points : Tensor, shape (n, 4)
        Points in the padded layout produced by `pad_points()`. Must be
        non-empty and finite.
    dimension : int
        Logical dimension of the points, 2 or 3.

    Returns
    -------
    FlatIndex
    """
    if padded_points.dim() != 2 or padded_points.shape[1] != PADDED_POINT_WIDTH:
        raise RuntimeError(
            f"padded_points must be (n, {PADDED_POINT_WIDTH}), "
            f"got {tuple(padded_points.shape)}"
        )
    if padded_points.shape[0] == 0:
        raise RuntimeError("cannot build an index over an empty point set")
    if dimension not in SUPPORTED_DIMENSIONS:
        raise RuntimeError(f"dimension must be 2 or 3, got {dimension}")

    points = padded_points.contiguous()

    return FlatIndex(
        points=points,
        dimension=int(dimension),
        lower=points.amin(dim=0),
        upper=points.amax(dim=0),
        batch_size=[],
    )


def flat_index_knn(
    index: FlatIndex,
    queries: Tensor,
    k: int,
    *,
    device_resident: bool = True,
    tile_size: int = DEFAULT_TILE_SIZE,
    out: Optional[tuple[Tensor, Tensor]] = None,
) -> tuple[Tensor, Tensor, Tensor]:
    """Find the k nearest indexed points for each query.

    Parameters
    ----------
    index : FlatIndex
        Index built by `flat_index()`.
    queries : Tensor, shape (m, 4)
        Padded query points with the dtype of the index.
    k : int
        Number of neighbors (result width). May exceed the number of
        indexed points, in which case the trailing slots stay unfilled.
    device_resident : bool, default=True
        Queries and results live on the index device. When False, queries
        are moved to the index device and results moved back.
    tile_size : int, default=4096
        Maximum number of queries evaluated together.
    out : tuple of Tensor, optional
        ``(indices, distances)`` buffers, resized in place to (m, k).

    Returns
    -------
    indices : Tensor, shape (m, k)
        Neighbor indices sorted by increasing distance, -1 when unfilled.
    distances : Tensor, shape (m, k)
        Squared Euclidean distances, +inf when unfilled.
    counts : Tensor, shape (m,)
        Number of filled slots per query.
    """
    if k < 0:
        raise RuntimeError(f"k must be non-negative, got {k}")

    return _search(index, queries, k, None, device_resident, tile_size, out)


def flat_index_radius(
    index: FlatIndex,
    queries: Tensor,
    squared_radius: float,
    maximum_neighbors: int,
    *,
    device_resident: bool = True,
    tile_size: int = DEFAULT_TILE_SIZE,
    out: Optional[tuple[Tensor, Tensor]] = None,
) -> tuple[Tensor, Tensor, Tensor]:
    """Find the indexed points within a radius of each query.

    Parameters
    ----------
    index : FlatIndex
        Index built by `flat_index()`.
    queries : Tensor, shape (m, 4)
        Padded query points with the dtype of the index.
    squared_radius : float
        Squared search radius (inclusive).
    maximum_neighbors : int
        Result width. When more points fall inside the radius, the nearest
        ``maximum_neighbors`` are kept.
    device_resident, tile_size, out
        See `flat_index_knn()`.

    Returns
    -------
    indices : Tensor, shape (m, maximum_neighbors)
        Neighbor indices sorted by increasing distance, -1 when unfilled.
    distances : Tensor, shape (m, maximum_neighbors)
        Squared distances, +inf when unfilled.
    counts : Tensor, shape (m,)
        Number of indexed points inside the radius per query. Can exceed
        ``maximum_neighbors``; the excess was dropped from the results.
    """
    if maximum_neighbors < 0:
        raise RuntimeError(
            f"maximum_neighbors must be non-negative, got {maximum_neighbors}"
        )
    if not squared_radius >= 0 or math.isinf(squared_radius):
        raise RuntimeError(
            f"squared_radius must be finite and non-negative, got {squared_radius}"
        )

    return _search(
        index,
        queries,
        maximum_neighbors,
        squared_radius,
        device_resident,
        tile_size,
        out,
    )


def flat_index_hybrid(
    index: FlatIndex,
    queries: Tensor,
    squared_radius: float,
    max_k: int,
    *,
    device_resident: bool = True,
    tile_size: int = DEFAULT_TILE_SIZE,
    out: Optional[tuple[Tensor, Tensor]] = None,
) -> tuple[Tensor, Tensor, Tensor]:
    """Find at most ``max_k`` nearest indexed points within a radius.

    Same as `flat_index_radius()` with the result width set to ``max_k``.
    """
    if max_k < 0:
        raise RuntimeError(f"max_k must be non-negative, got {max_k}")
    if not squared_radius >= 0 or math.isinf(squared_radius):
        raise RuntimeError(
            f"squared_radius must be finite and non-negative, got {squared_radius}"
        )

    return _search(
        index, queries, max_k, squared_radius, device_resident, tile_size, out
    )


def _search(
    index: FlatIndex,
    queries: Tensor,
    width: int,
    squared_radius: Optional[float],
    device_resident: bool,
    tile_size: int,
    out: Optional[tuple[Tensor, Tensor]],
) -> tuple[Tensor, Tensor, Tensor]:
    if not isinstance(index, FlatIndex):
        raise RuntimeError(f"Unsupported index type: {type(index).__name__}")
    if tile_size <= 0:
        raise RuntimeError(f"tile_size must be > 0, got {tile_size}")

    points = index.points

    if queries.dim() != 2 or queries.shape[1] != PADDED_POINT_WIDTH:
        raise RuntimeError(
            f"queries must be padded (m, {PADDED_POINT_WIDTH}), "
            f"got {tuple(queries.shape)}"
        )
    if queries.dtype != points.dtype:
        raise RuntimeError(
            f"queries dtype ({queries.dtype}) must match "
            f"index dtype ({points.dtype})"
        )

    source_device = None
    if queries.device != points.device:
        if device_resident:
            raise RuntimeError(
                f"queries are on {queries.device} but the index is on "
                f"{points.device}; pass device_resident=False to transfer"
            )
        if out is not None:
            raise RuntimeError("out requires device_resident=True")
        source_device = queries.device
        queries = queries.to(points.device)

    m = queries.shape[0]
    n = points.shape[0]
    dimension = index.dimension
    selected = min(width, n)

    indices, distances = _result_buffers(out, m, width, queries)
    indices[:, selected:] = INVALID_INDEX
    distances[:, selected:] = math.inf
    counts = torch.zeros(m, dtype=torch.int64, device=points.device)

    rows = max(1, min(tile_size, _MAXIMUM_TILE_ELEMENTS // n))

    for start in range(0, m, rows):
        stop = min(start + rows, m)
        tile = queries[start:stop]

        if squared_radius is not None:
            reachable = (
                _squared_distances_to_bounds(tile, index.lower, index.upper)
                <= squared_radius
            )
            if not bool(reachable.any()):
                indices[start:stop, :selected] = INVALID_INDEX
                distances[start:stop, :selected] = math.inf
                continue

        squared_distances = _squared_distances(tile, points, dimension)

        if squared_radius is not None:
            within = squared_distances <= squared_radius
            counts[start:stop] = within.sum(dim=1)
            squared_distances = squared_distances.masked_fill(~within, math.inf)

        tile_distances, tile_indices = torch.topk(
            squared_distances, selected, dim=1, largest=False, sorted=True
        )
        unfilled = torch.isinf(tile_distances)
        if squared_radius is None:
            counts[start:stop] = (~unfilled).sum(dim=1)

        indices[start:stop, :selected] = tile_indices.masked_fill(
            unfilled, INVALID_INDEX
        )
        distances[start:stop, :selected] = tile_distances

    if source_device is not None:
        return (
            indices.to(source_device),
            distances.to(source_device),
            counts.to(source_device),
        )

    return indices, distances, counts


def _result_buffers(
    out: Optional[tuple[Tensor, Tensor]],
    m: int,
    width: int,
    queries: Tensor,
) -> tuple[Tensor, Tensor]:
    if out is None:
        return (
            torch.empty(m, width, dtype=torch.int64, device=queries.device),
            torch.empty(m, width, dtype=queries.dtype, device=queries.device),
        )

    indices, distances = out
    if indices.dtype != torch.int64:
        raise RuntimeError(f"out indices must be int64, got {indices.dtype}")
    if distances.dtype != queries.dtype:
        raise RuntimeError(
            f"out distances dtype ({distances.dtype}) must match "
            f"queries dtype ({queries.dtype})"
        )
    if indices.device != queries.device or distances.device != queries.device:
        raise RuntimeError(
            f"out buffers must be on {queries.device}, got "
            f"{indices.device} and {distances.device}"
        )

    return indices.resize_(m, width), distances.resize_(m, width)


def _squared_distances(queries: Tensor, points: Tensor, dimension: int) -> Tensor:
    # Accumulated per component so coincident points give exactly zero.
    result = torch.zeros(
        queries.shape[0], points.shape[0], dtype=points.dtype, device=points.device
    )
    for c in range(dimension):
        result += (queries[:, c, None] - points[:, c]).square()
    return result


def _squared_distances_to_bounds(
    queries: Tensor, lower: Tensor, upper: Tensor
) -> Tensor:
    below = torch.clamp(lower - queries, min=0)
    above = torch.clamp(queries - upper, min=0)
    return (below + above).square().sum(dim=1)
