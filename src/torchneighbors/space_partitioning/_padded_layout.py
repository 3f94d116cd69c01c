"""Conversion between logical 2D/3D points and the padded 4-wide layout."""

from __future__ import annotations

from typing import Optional

import torch
from torch import Tensor

PADDED_POINT_WIDTH = 4

SUPPORTED_DIMENSIONS = (2, 3)


def point_dimension(points: Tensor) -> Optional[int]:
    """Logical dimension of a point buffer, or None if it is not 2D/3D.

    Parameters
    ----------
    points : Tensor
        Single point of shape (d,) or batch of shape (n, d).

    Returns
    -------
    int or None
        ``d`` when it is one of 2 or 3 and the tensor has a floating dtype.

    Examples
    --------
    >>> point_dimension(torch.zeros(5, 3))
    3
    >>> point_dimension(torch.zeros(5, 4)) is None
    True
    """
    if points.dim() not in (1, 2) or not points.is_floating_point():
        return None
    d = points.shape[-1]
    if d not in SUPPORTED_DIMENSIONS:
        return None
    return d


def pad_points(
    points: Tensor,
    *,
    device: Optional[torch.device] = None,
) -> Tensor:
    """Copy points into the padded 4-component layout.

    Parameters
    ----------
    points : Tensor, shape (n, d)
        Points with d in {2, 3}.
    device : torch.device, optional
        Device of the padded copy. Defaults to the device of ``points``.

    Returns
    -------
    Tensor, shape (n, 4)
        Contiguous copy with the trailing ``4 - d`` components set to zero.
        Never a view of ``points``.

    Examples
    --------
    >>> pad_points(torch.tensor([[1.0, 2.0]]))
    tensor([[1., 2., 0., 0.]])
    """
    if points.dim() != 2:
        raise RuntimeError(f"points must be 2D (n, d), got {points.dim()}D")

    d = point_dimension(points)
    if d is None:
        raise RuntimeError(
            f"points must be floating (n, 2) or (n, 3), got "
            f"{tuple(points.shape)} of dtype {points.dtype}"
        )

    padded = torch.zeros(
        points.shape[0],
        PADDED_POINT_WIDTH,
        dtype=points.dtype,
        device=points.device if device is None else device,
    )
    padded[:, :d].copy_(points)
    return padded


def unpad_points(padded: Tensor, dimension: int) -> Tensor:
    """Copy the logical components out of a padded buffer."""
    return padded[:, :dimension].clone()
