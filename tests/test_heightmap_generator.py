"""Tests for heightmap seeding."""

import pytest

from conftest import make_grid
from py_hydro.core.cells import FeatureType
from py_hydro.core.heightmap_generator import BlobType, HeightmapGenerator, HeightmapOptions, add_blob
from py_hydro.core.rng import SeededRandom
from py_hydro.core.voronoi_graph import generate_cell_graph


def flat_grid(n=9):
    return make_grid([[0.0] * n for _ in range(n)])[0]


class TestAddBlob:
    """Test BFS height spreading."""

    def test_start_cell_gets_full_height(self):
        cells = flat_grid()
        add_blob(cells, 40, 0.5, 0.9, 0.0, BlobType.HILL, SeededRandom(1))
        assert cells[40].height == pytest.approx(0.5)

    def test_hill_decays_per_expansion(self):
        """Test the carried value shrinks with every dequeued cell."""
        cells = flat_grid()
        add_blob(cells, 40, 0.5, 0.5, 0.0, BlobType.HILL, SeededRandom(1))
        # First expansion hands 0.5 * 0.5 to all four neighbors of the center
        for n in (39, 41, 31, 49):
            assert cells[n].height == pytest.approx(0.25)

    def test_island_decays_from_cell_height(self):
        """Test island spreading reads the expanded cell's own height."""
        cells = flat_grid()
        cells[39].height = 0.4
        add_blob(cells, 40, 0.5, 0.5, 0.0, BlobType.ISLAND, SeededRandom(1))
        assert cells[39].height == pytest.approx(0.4 + 0.25)
        # 38 is reached from 39, whose raised height is 0.65
        assert cells[38].height == pytest.approx(0.65 * 0.5)

    def test_island_and_hill_differ(self):
        hill = flat_grid()
        island = flat_grid()
        add_blob(hill, 40, 0.6, 0.8, 0.0, BlobType.HILL, SeededRandom(1))
        add_blob(island, 40, 0.6, 0.8, 0.0, BlobType.ISLAND, SeededRandom(1))
        assert [c.height for c in hill] != [c.height for c in island]

    def test_heights_clamped(self):
        cells = flat_grid()
        add_blob(cells, 40, 0.9, 0.99, 0.2, BlobType.ISLAND, SeededRandom(3))
        assert all(0.0 <= c.height <= 1.0 for c in cells)

    def test_stops_below_min_height(self):
        """Test a fast-decaying hill touches only the nearby rings."""
        cells = flat_grid(15)
        touched = add_blob(cells, 112, 0.1, 0.05, 0.0, BlobType.HILL, SeededRandom(1))
        assert 112 in touched
        assert len(touched) == 5

    def test_sharpness_zero_uses_no_randomness(self):
        rng = SeededRandom(1)
        add_blob(flat_grid(), 40, 0.5, 0.9, 0.0, BlobType.HILL, rng)
        assert rng.call_count == 0

    def test_sharpness_factor_range(self):
        """Test each neighbor increment is scaled by a factor in [1.1 - s, 1.1 + s)."""
        cells = flat_grid()
        add_blob(cells, 40, 0.5, 0.5, 0.2, BlobType.HILL, SeededRandom(8))
        for n in (39, 41, 31, 49):
            assert 0.25 * 0.9 - 1e-12 <= cells[n].height < 0.25 * 1.3

    def test_clears_feature_labels(self):
        cells = flat_grid()
        for c in cells:
            c.feature_type = FeatureType.OCEAN
            c.feature_number = 0
        touched = add_blob(cells, 40, 0.5, 0.5, 0.0, BlobType.HILL, SeededRandom(1))
        for cell_id in touched:
            assert cells[cell_id].feature_type is None
            assert cells[cell_id].feature_number is None


class TestHeightmapGenerator:
    """Test the random map seeding."""

    @pytest.fixture
    def graph(self):
        return generate_cell_graph(300, 200, 8, SeededRandom(1234))

    def test_generate_deterministic(self):
        a = generate_cell_graph(200, 120, 6, SeededRandom(5))
        b = generate_cell_graph(200, 120, 6, SeededRandom(5))
        HeightmapGenerator(a, SeededRandom(9)).generate()
        HeightmapGenerator(b, SeededRandom(9)).generate()
        assert [c.height for c in a.cells] == [c.height for c in b.cells]

    def test_island_near_center(self, graph):
        """Test the island mass sits around the map center."""
        gen = HeightmapGenerator(graph, SeededRandom(2), options=HeightmapOptions(island_radius=0.6))
        touched = gen.add_island()
        assert touched

        total = sum(c.height for c in graph.cells)
        cx = sum(c.x * c.height for c in graph.cells) / total
        cy = sum(c.y * c.height for c in graph.cells) / total
        assert 0.3 * 300 <= cx <= 0.7 * 300
        assert 0.3 * 200 <= cy <= 0.7 * 200

    def test_fast_decay_leaves_ocean(self, graph):
        gen = HeightmapGenerator(graph, SeededRandom(2), options=HeightmapOptions(island_radius=0.6))
        gen.add_island()
        heights = [c.height for c in graph.cells]
        assert min(heights) < 0.2
        assert max(heights) >= 0.9

    def test_heights_in_unit_range(self, graph):
        assert HeightmapGenerator(graph, SeededRandom(4)).generate() is None
        assert any(c.height >= 0.2 for c in graph.cells)
        assert all(0.0 <= c.height <= 1.0 for c in graph.cells)

    def test_hill_count(self, graph):
        gen = HeightmapGenerator(graph, SeededRandom(2), options=HeightmapOptions(hill_count=4))
        assert gen.add_hills() == 4
        assert gen.add_hills(count=0) == 0
