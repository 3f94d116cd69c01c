import math

import pytest
import torch

from torchneighbors.space_partitioning import (
    INVALID_INDEX,
    FlatIndex,
    flat_index,
    flat_index_hybrid,
    flat_index_knn,
    flat_index_radius,
    pad_points,
)


def _build(points):
    return flat_index(pad_points(points), dimension=points.shape[1])


class TestFlatIndexBuild:
    """Tests for flat_index construction."""

    def test_returns_flat_index(self):
        """Returns FlatIndex instance."""
        index = _build(torch.randn(20, 3))

        assert isinstance(index, FlatIndex)
        assert index.points.shape == (20, 4)
        assert index.dimension == 3

    def test_dimension_is_host_int(self):
        """Dimension is a host int, not a device tensor."""
        index = _build(torch.randn(20, 2))

        assert type(index.dimension) is int
        assert index.dimension == 2

    def test_bounds(self):
        """Bounds are the per-component extremes of the points."""
        points = torch.tensor([[0.0, -1.0], [2.0, 3.0], [1.0, 1.0]])

        index = _build(points)

        torch.testing.assert_close(index.lower, torch.tensor([0.0, -1.0, 0.0, 0.0]))
        torch.testing.assert_close(index.upper, torch.tensor([2.0, 3.0, 0.0, 0.0]))

    def test_empty_raises(self):
        """Raises RuntimeError for an empty point set."""
        with pytest.raises(RuntimeError, match="empty"):
            flat_index(torch.empty(0, 4), dimension=3)

    def test_unpadded_raises(self):
        """Raises RuntimeError for points not in the padded layout."""
        with pytest.raises(RuntimeError, match="padded_points"):
            flat_index(torch.randn(10, 3), dimension=3)

    def test_invalid_dimension_raises(self):
        """Raises RuntimeError for dimensions other than 2 and 3."""
        with pytest.raises(RuntimeError, match="dimension"):
            flat_index(torch.randn(10, 4), dimension=4)


class TestFlatIndexKnn:
    """Tests for flat_index_knn."""

    def test_shapes(self):
        """Results have width k and one count per query."""
        index = _build(torch.randn(50, 3))

        indices, distances, counts = flat_index_knn(
            index, pad_points(torch.randn(7, 3)), 4
        )

        assert indices.shape == (7, 4)
        assert distances.shape == (7, 4)
        assert counts.tolist() == [4] * 7

    def test_matches_brute_force(self):
        """Results match brute-force search."""
        torch.manual_seed(42)
        points = torch.randn(100, 2, dtype=torch.float64)
        queries = torch.randn(5, 2, dtype=torch.float64)
        index = _build(points)

        indices, distances, _ = flat_index_knn(index, pad_points(queries), 3)

        for i, query in enumerate(queries):
            expected = ((points - query) ** 2).sum(dim=1)
            bf_distances, bf_indices = torch.topk(expected, 3, largest=False)
            torch.testing.assert_close(distances[i], bf_distances)
            torch.testing.assert_close(indices[i], bf_indices)

    def test_unfilled_slots(self):
        """Slots beyond the point count hold the sentinels."""
        index = _build(torch.randn(2, 3))

        indices, distances, counts = flat_index_knn(
            index, pad_points(torch.randn(1, 3)), 4
        )

        assert counts.tolist() == [2]
        assert indices[0, 2:].tolist() == [INVALID_INDEX, INVALID_INDEX]
        assert torch.isinf(distances[0, 2:]).all()

    def test_negative_k_raises(self):
        """Raises RuntimeError for negative k."""
        index = _build(torch.randn(10, 3))

        with pytest.raises(RuntimeError, match="k must be non-negative"):
            flat_index_knn(index, pad_points(torch.randn(2, 3)), -1)

    def test_unpadded_queries_raise(self):
        """Raises RuntimeError for queries not in the padded layout."""
        index = _build(torch.randn(10, 3))

        with pytest.raises(RuntimeError, match="padded"):
            flat_index_knn(index, torch.randn(2, 3), 1)

    def test_dtype_mismatch_raises(self):
        """Raises RuntimeError when query and index dtypes differ."""
        index = _build(torch.randn(10, 3))

        with pytest.raises(RuntimeError, match="dtype"):
            flat_index_knn(index, pad_points(torch.randn(2, 3)).double(), 1)

    def test_wrong_index_type_raises(self):
        """Raises RuntimeError for objects that are not a FlatIndex."""
        with pytest.raises(RuntimeError, match="Unsupported index type"):
            flat_index_knn(object(), pad_points(torch.randn(2, 3)), 1)

    def test_invalid_tile_size_raises(self):
        """Raises RuntimeError for a non-positive tile size."""
        index = _build(torch.randn(10, 3))

        with pytest.raises(RuntimeError, match="tile_size"):
            flat_index_knn(index, pad_points(torch.randn(2, 3)), 1, tile_size=0)

    def test_out_buffers_resized(self):
        """out buffers are resized in place and returned."""
        index = _build(torch.randn(10, 3))
        out = (torch.empty(3, 9, dtype=torch.int64), torch.empty(3, 9))

        indices, distances, _ = flat_index_knn(
            index, pad_points(torch.randn(2, 3)), 2, out=out
        )

        assert indices is out[0]
        assert distances is out[1]
        assert out[0].shape == (2, 2)

    def test_out_wrong_dtype_raises(self):
        """Raises RuntimeError for out buffers of the wrong dtype."""
        index = _build(torch.randn(10, 3))
        out = (torch.empty(0, dtype=torch.int32), torch.empty(0))

        with pytest.raises(RuntimeError, match="int64"):
            flat_index_knn(index, pad_points(torch.randn(2, 3)), 2, out=out)


class TestFlatIndexRadius:
    """Tests for flat_index_radius."""

    def test_counts_are_uncapped(self):
        """Counts report every match, even beyond the result width."""
        points = torch.zeros(6, 3)
        index = _build(points)

        indices, distances, counts = flat_index_radius(
            index, pad_points(torch.zeros(1, 3)), 1.0, 4
        )

        assert counts.tolist() == [6]
        assert indices.shape == (1, 4)
        assert (indices >= 0).all()

    def test_squared_radius(self):
        """The radius argument is compared against squared distances."""
        index = _build(torch.tensor([[1.5, 0.0]]))
        query = pad_points(torch.zeros(1, 2))

        _, _, inside = flat_index_radius(index, query, 2.25, 4)
        _, _, outside = flat_index_radius(index, query, 1.5, 4)

        assert inside.tolist() == [1]
        assert outside.tolist() == [0]

    def test_queries_outside_bounds(self):
        """Queries out of reach of the bounds find nothing."""
        index = _build(torch.rand(20, 3))

        indices, distances, counts = flat_index_radius(
            index, pad_points(torch.full((3, 3), 10.0)), 1.0, 5
        )

        assert counts.tolist() == [0, 0, 0]
        assert (indices == INVALID_INDEX).all()
        assert torch.isinf(distances).all()

    @pytest.mark.parametrize("squared_radius", [-1.0, math.inf, math.nan])
    def test_invalid_radius_raises(self, squared_radius):
        """Raises RuntimeError for negative or non-finite radii."""
        index = _build(torch.randn(10, 3))

        with pytest.raises(RuntimeError, match="squared_radius"):
            flat_index_radius(
                index, pad_points(torch.randn(2, 3)), squared_radius, 4
            )

    def test_negative_width_raises(self):
        """Raises RuntimeError for a negative result width."""
        index = _build(torch.randn(10, 3))

        with pytest.raises(RuntimeError, match="maximum_neighbors"):
            flat_index_radius(index, pad_points(torch.randn(2, 3)), 1.0, -1)


class TestFlatIndexHybrid:
    """Tests for flat_index_hybrid."""

    def test_nearest_kept(self):
        """The nearest max_k matches are kept."""
        points = torch.tensor([[3.0, 0.0], [1.0, 0.0], [2.0, 0.0]])
        index = _build(points)

        indices, distances, counts = flat_index_hybrid(
            index, pad_points(torch.zeros(1, 2)), 100.0, 2
        )

        assert indices.tolist() == [[1, 2]]
        torch.testing.assert_close(distances, torch.tensor([[1.0, 4.0]]))
        assert counts.tolist() == [3]

    def test_negative_max_k_raises(self):
        """Raises RuntimeError for negative max_k."""
        index = _build(torch.randn(10, 3))

        with pytest.raises(RuntimeError, match="max_k"):
            flat_index_hybrid(index, pad_points(torch.randn(2, 3)), 1.0, -1)


class TestFlatIndexDeviceResidency:
    """Tests for the device_resident flag."""

    @pytest.mark.skipif(
        not torch.cuda.is_available(), reason="CUDA not available"
    )
    def test_device_mismatch_raises(self):
        """Host queries against a device index raise when resident."""
        index = _build(torch.randn(10, 3, device="cuda"))

        with pytest.raises(RuntimeError, match="device_resident"):
            flat_index_knn(index, pad_points(torch.randn(2, 3)), 1)

    @pytest.mark.skipif(
        not torch.cuda.is_available(), reason="CUDA not available"
    )
    def test_transfer_when_not_resident(self):
        """Results come back on the query device when not resident."""
        points = torch.randn(10, 3)
        index = _build(points.cuda())

        indices, distances, counts = flat_index_knn(
            index, pad_points(points[:2]), 1, device_resident=False
        )

        assert indices.device.type == "cpu"
        assert indices[:, 0].tolist() == [0, 1]

    def test_same_device_not_resident(self):
        """device_resident=False is a no-op when devices already match."""
        points = torch.randn(10, 3)
        index = _build(points)

        indices, _, _ = flat_index_knn(
            index, pad_points(points[:2]), 1, device_resident=False
        )

        assert indices[:, 0].tolist() == [0, 1]

    @pytest.mark.skipif(
        not torch.cuda.is_available(), reason="CUDA not available"
    )
    def test_dimension_survives_device_move(self):
        """Moving the index across devices keeps the dimension as an int."""
        index = _build(torch.randn(10, 3)).to("cuda")

        assert index.points.device.type == "cuda"
        assert type(index.dimension) is int
        assert index.dimension == 3
