"""Triangle mesh tensorclass."""

from __future__ import annotations

from tensordict import tensorclass
from torch import Tensor


@tensorclass
class TriangleMesh:
    """Triangle mesh in 2D or 3D.

    Use `triangle_mesh()` to construct instances. Only the vertices take
    part in neighbor search; triangles are carried along unchanged.

    Attributes
    ----------
    vertices : Tensor
        Vertex coordinates, shape (num_vertices, d) with d in {2, 3}.
    triangles : Tensor
        Vertex indices per triangle, shape (num_triangles, 3).
    """

    vertices: Tensor
    triangles: Tensor

    @property
    def dimension(self) -> int:
        """Spatial dimension of the mesh (2 or 3)."""
        return self.vertices.shape[-1]

    @property
    def num_vertices(self) -> int:
        """Number of vertices in the mesh."""
        return self.vertices.shape[-2]

    @property
    def num_triangles(self) -> int:
        """Number of triangles in the mesh."""
        return self.triangles.shape[-2]

    def point_buffer(self) -> Tensor:
        """Vertices to index, shape (num_vertices, d)."""
        return self.vertices


def triangle_mesh(vertices: Tensor, triangles: Tensor) -> TriangleMesh:
    """Create a triangle mesh.

    Parameters
    ----------
    vertices : Tensor, shape (V, d)
        Vertex coordinates, d in {2, 3}.
    triangles : Tensor, shape (F, 3)
        Vertex indices per triangle.

    Returns
    -------
    TriangleMesh

    Examples
    --------
    >>> vertices = torch.tensor([[0.0, 0.0, 0.0], [1.0, 0.0, 0.0], [0.0, 1.0, 0.0]])
    >>> mesh = triangle_mesh(vertices, torch.tensor([[0, 1, 2]]))
    >>> mesh.num_triangles
    1
    """
    if vertices.dim() != 2 or vertices.shape[1] not in (2, 3):
        raise ValueError(
            f"vertices must be (V, 2) or (V, 3), got {vertices.shape}"
        )
    if triangles.dim() != 2 or triangles.shape[1] != 3:
        raise ValueError(f"triangles must be (F, 3), got {triangles.shape}")
    if triangles.is_floating_point():
        raise ValueError(
            f"triangles must have an integer dtype, got {triangles.dtype}"
        )

    return TriangleMesh(
        vertices=vertices,
        triangles=triangles,
        batch_size=[],
    )
