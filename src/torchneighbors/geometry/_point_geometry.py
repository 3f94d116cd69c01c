"""Capability shared by geometries that can be indexed by point."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from torch import Tensor


@runtime_checkable
class PointGeometry(Protocol):
    """Geometry exposing a flat buffer of 2D or 3D points.

    Implemented by :class:`PointCloud` (its points) and
    :class:`TriangleMesh` (its vertices).
    """

    @property
    def dimension(self) -> int: ...

    def point_buffer(self) -> Tensor: ...
