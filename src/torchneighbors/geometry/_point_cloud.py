"""Point cloud tensorclass."""

from __future__ import annotations

from typing import Optional

from tensordict import tensorclass
from torch import Tensor


@tensorclass
class PointCloud:
    """Unordered set of 2D or 3D points with optional per-point attributes.

    Use `point_cloud()` to construct instances.

    As a tensorclass, PointCloud supports:
    - Device movement: `cloud.to("cuda")` or `cloud.cuda()`
    - Dtype conversion: `cloud.to(torch.float64)`

    Attributes
    ----------
    points : Tensor
        Point coordinates, shape (n, d) with d in {2, 3}.
    normals : Tensor | None
        Per-point normals, shape (n, d).
    colors : Tensor | None
        Per-point colors, shape (n, 3).
    """

    points: Tensor
    normals: Tensor | None
    colors: Tensor | None

    @property
    def dimension(self) -> int:
        """Spatial dimension of the points (2 or 3)."""
        return self.points.shape[-1]

    @property
    def num_points(self) -> int:
        """Number of points in the cloud."""
        return self.points.shape[-2]

    def point_buffer(self) -> Tensor:
        """Points to index, shape (n, d)."""
        return self.points


def point_cloud(
    points: Tensor,
    *,
    normals: Optional[Tensor] = None,
    colors: Optional[Tensor] = None,
) -> PointCloud:
    """Create a point cloud.

    Parameters
    ----------
    points : Tensor, shape (n, d)
        Point coordinates, d in {2, 3}. May be empty.
    normals : Tensor, shape (n, d), optional
        Per-point normals.
    colors : Tensor, shape (n, 3), optional
        Per-point colors.

    Returns
    -------
    PointCloud

    Examples
    --------
    >>> cloud = point_cloud(torch.randn(100, 3))
    >>> cloud.dimension
    3
    """
    if points.dim() != 2 or points.shape[1] not in (2, 3):
        raise ValueError(f"points must be (n, 2) or (n, 3), got {points.shape}")
    if normals is not None and normals.shape != points.shape:
        raise ValueError(
            f"normals must match points shape {points.shape}, "
            f"got {normals.shape}"
        )
    if colors is not None and colors.shape != (points.shape[0], 3):
        raise ValueError(
            f"colors must be ({points.shape[0]}, 3), got {colors.shape}"
        )

    return PointCloud(
        points=points,
        normals=normals,
        colors=colors,
        batch_size=[],
    )
