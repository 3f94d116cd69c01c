"""Point geometries that can be ingested by a spatial index."""

from ._point_cloud import PointCloud, point_cloud
from ._point_geometry import PointGeometry
from ._triangle_mesh import TriangleMesh, triangle_mesh

__all__ = [
    "PointCloud",
    "PointGeometry",
    "TriangleMesh",
    "point_cloud",
    "triangle_mesh",
]
