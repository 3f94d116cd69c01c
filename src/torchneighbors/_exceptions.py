"""Exceptions and warnings for spatial index operations."""


class SpatialIndexError(RuntimeError):
    """Error raised for invalid spatial index configuration."""

    pass


class SpatialIndexWarning(UserWarning):
    """Warning for spatial index issues (e.g., a rejected build)."""

    pass


class UnsupportedGeometryWarning(SpatialIndexWarning):
    """Geometry passed to the index is not a supported point geometry."""

    pass


class NeighborCapacityWarning(SpatialIndexWarning):
    """Radius query found more neighbors than the result buffer holds."""

    pass
