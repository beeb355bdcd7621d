"""Tests for cell graph generation."""

import math

import numpy as np
import pytest
from scipy.spatial import cKDTree

from py_hydro.core.errors import InvalidConfiguration
from py_hydro.core.rng import SeededRandom
from py_hydro.core.voronoi_graph import (
    build_cells,
    clip_polygon_to_rect,
    generate_cell_graph,
    poisson_disc,
    validate_sampling_grid,
)


class TestPoissonDisc:
    """Test blue-noise sampling."""

    def test_minimum_spacing(self):
        """Test that no two samples are closer than the radius."""
        points = poisson_disc(120, 80, 6, SeededRandom(3))
        distances, _ = cKDTree(points).query(points, k=2)
        assert distances[:, 1].min() >= 6 - 1e-9

    def test_points_in_bounds(self):
        points = poisson_disc(120, 80, 6, SeededRandom(3))
        assert np.all(points[:, 0] >= 0)
        assert np.all(points[:, 0] < 120)
        assert np.all(points[:, 1] >= 0)
        assert np.all(points[:, 1] < 80)

    def test_deterministic(self):
        """Test that one seed always yields the same samples."""
        a = poisson_disc(100, 100, 8, SeededRandom(17))
        b = poisson_disc(100, 100, 8, SeededRandom(17))
        np.testing.assert_array_equal(a, b)

    def test_reasonable_coverage(self):
        """Test the sampler fills the area rather than stopping early."""
        points = poisson_disc(100, 100, 5, SeededRandom(1))
        # Maximal Poisson-disc packings land well above one point per 4r^2
        assert len(points) > 100 * 100 / (4 * 25)

    def test_grid_scan_order(self):
        """Test that output follows the acceleration grid row by row."""
        radius = 6
        points = poisson_disc(120, 80, radius, SeededRandom(9))
        cell = radius * math.sqrt(0.5)
        rows = [int(y / cell) for y in points[:, 1]]
        assert rows == sorted(rows)


class TestValidation:
    """Test configuration checks before sampling."""

    def test_oversized_grid_rejected(self):
        with pytest.raises(InvalidConfiguration):
            validate_sampling_grid(10000, 10000, 1, max_grid_cells=1_000_000)

    @pytest.mark.parametrize("width,height,radius", [
        (0, 100, 4),
        (100, -1, 4),
        (100, 100, 0),
        (100, 100, float("nan")),
        (float("inf"), 100, 4),
    ])
    def test_degenerate_inputs_rejected(self, width, height, radius):
        with pytest.raises(InvalidConfiguration):
            validate_sampling_grid(width, height, radius)

    def test_rejection_happens_before_sampling(self):
        """Test that an invalid grid never consumes random draws."""
        rng = SeededRandom(1)
        with pytest.raises(InvalidConfiguration):
            poisson_disc(10000, 10000, 1, rng)
        assert rng.call_count == 0

    def test_invalid_configuration_is_value_error(self):
        with pytest.raises(ValueError):
            validate_sampling_grid(100, 100, -2)

    def test_too_few_points(self):
        with pytest.raises(InvalidConfiguration):
            build_cells(np.array([[1.0, 1.0], [2.0, 2.0]]), 10, 10)


class TestCellGraph:
    """Test cells, adjacency and geometry queries."""

    @pytest.fixture
    def graph(self):
        return generate_cell_graph(160, 120, 8, SeededRandom(21))

    def test_ids_match_indices(self, graph):
        assert [c.id for c in graph.cells] == list(range(len(graph.cells)))
        assert len(graph.cells) == len(graph.points)

    def test_neighbors_symmetric(self, graph):
        """Test that adjacency is mutual."""
        for cell in graph.cells:
            assert cell.id not in cell.neighbors
            for n in cell.neighbors:
                assert cell.id in graph.cells[n].neighbors

    def test_initial_scalars(self, graph):
        for cell in graph.cells:
            assert cell.height == 0.0
            assert cell.precipitation == pytest.approx(0.02)
            assert cell.flux == pytest.approx(0.02)

    def test_polygons_closed_and_clipped(self, graph):
        """Test polygons are closed rings inside the map rectangle."""
        for cell in graph.cells:
            if not cell.polygon:
                continue
            assert len(cell.polygon) >= 4
            assert cell.polygon[0] == cell.polygon[-1]
            for x, y in cell.polygon:
                assert -1e-6 <= x <= 160 + 1e-6
                assert -1e-6 <= y <= 120 + 1e-6

    def test_find_cell_at_site(self, graph):
        for cell in graph.cells[:20]:
            assert graph.find_cell_at(cell.x, cell.y) == cell.id

    def test_find_cell_at_nearest(self, graph):
        """Test lookup returns the nearest site."""
        x, y = 80.3, 61.7
        found = graph.find_cell_at(x, y)
        d = [(c.x - x) ** 2 + (c.y - y) ** 2 for c in graph.cells]
        assert found == int(np.argmin(d))

    @pytest.mark.parametrize("x,y", [(-1, 10), (10, -0.5), (161, 10), (10, 121),
                                     (float("nan"), 5), (5, float("inf"))])
    def test_find_cell_at_outside(self, graph, x, y):
        assert graph.find_cell_at(x, y) is None

    def test_shared_edge_between_neighbors(self, graph):
        """Test most neighbor pairs share an exact polygon edge."""
        pairs = [(c.id, n) for c in graph.cells for n in c.neighbors if c.id < n]
        found = 0
        for a, b in pairs:
            edge = graph.shared_edge(a, b)
            if edge is None:
                continue
            found += 1
            ring_b = graph.cells[b].polygon
            for p in edge:
                assert any(abs(p[0] - q[0]) < 1e-6 and abs(p[1] - q[1]) < 1e-6 for q in ring_b)
        assert found >= 0.8 * len(pairs)

    def test_shared_edge_none_for_far_cells(self, graph):
        a = graph.find_cell_at(1, 1)
        b = graph.find_cell_at(159, 119)
        assert graph.shared_edge(a, b) is None

    def test_edge_midpoint_falls_back_to_sites(self, graph):
        a = graph.find_cell_at(1, 1)
        b = graph.find_cell_at(159, 119)
        ca, cb = graph.cells[a], graph.cells[b]
        assert graph.edge_midpoint(a, b) == pytest.approx(((ca.x + cb.x) / 2, (ca.y + cb.y) / 2))


class TestClipPolygon:
    """Test rectangle clipping."""

    def test_inside_unchanged(self):
        square = [(1, 1), (2, 1), (2, 2), (1, 2)]
        assert clip_polygon_to_rect(square, 0, 0, 10, 10) == square

    def test_partial_overlap(self):
        square = [(-5, -5), (5, -5), (5, 5), (-5, 5)]
        clipped = clip_polygon_to_rect(square, 0, 0, 10, 10)
        assert sorted(clipped) == [(0, 0), (0, 5), (5, 0), (5, 5)]

    def test_outside_empty(self):
        square = [(20, 20), (30, 20), (30, 30), (20, 30)]
        assert clip_polygon_to_rect(square, 0, 0, 10, 10) == []
