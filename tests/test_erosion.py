"""Tests for coastline and river downcutting."""

import pytest

from conftest import make_grid
from py_hydro.core.erosion import downcut_coastline, downcut_rivers


class TestDowncutCoastline:
    """Test uniform land lowering."""

    def test_only_land_lowered(self):
        cells, _ = make_grid([[0.1, 0.5, 0.9]])
        changed = downcut_coastline(cells, 0.1, sea_level=0.2)
        assert changed == 2
        assert cells[0].height == pytest.approx(0.1)
        assert cells[1].height == pytest.approx(0.4)
        assert cells[2].height == pytest.approx(0.8)

    def test_never_raises_heights(self):
        cells, _ = make_grid([[0.0, 0.25, 0.3, 1.0]])
        before = [c.height for c in cells]
        downcut_coastline(cells, 0.5)
        assert all(c.height <= b for c, b in zip(cells, before))
        assert all(c.height >= 0.0 for c in cells)

    def test_zero_amount_changes_nothing(self):
        cells, _ = make_grid([[0.3, 0.6]])
        assert downcut_coastline(cells, 0.0) == 0


class TestDowncutRivers:
    """Test flux-gated carving."""

    def test_only_wet_land_carved(self):
        cells, _ = make_grid([[0.5, 0.5, 0.205, 0.1]])
        cells[0].flux = 0.02
        cells[1].flux = 0.5
        cells[2].flux = 0.5   # below sea_level + 0.01
        cells[3].flux = 5.0   # water
        changed = downcut_rivers(cells, 0.1, sea_level=0.2)
        assert changed == 1
        assert cells[0].height == pytest.approx(0.5)
        assert cells[1].height == pytest.approx(0.49)
        assert cells[2].height == pytest.approx(0.205)
        assert cells[3].height == pytest.approx(0.1)

    def test_idempotent_once_ineligible(self):
        """Test a second pass is a no-op when no cell qualifies."""
        cells, _ = make_grid([[0.5, 0.3]])
        for c in cells:
            c.flux = 0.01
        assert downcut_rivers(cells, 0.1) == 0
        assert downcut_rivers(cells, 0.1) == 0
        assert [c.height for c in cells] == [0.5, 0.3]
