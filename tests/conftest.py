"""Shared fixtures: small hand-built square-grid cell graphs."""

from typing import List, Optional, Sequence

import pytest

from py_hydro.core.cells import Cell

CELL_SIZE = 10.0


class GridGeometry:
    """GeometryQueries over a rows x cols grid of square cells."""

    def __init__(self, cells: List[Cell], rows: int, cols: int, size: float = CELL_SIZE):
        self.cells = cells
        self.rows = rows
        self.cols = cols
        self.size = size

    def find_cell_at(self, x: float, y: float) -> Optional[int]:
        if x < 0 or y < 0 or x > self.cols * self.size or y > self.rows * self.size:
            return None
        i = min(int(x // self.size), self.cols - 1)
        j = min(int(y // self.size), self.rows - 1)
        return j * self.cols + i

    def shared_edge(self, a: int, b: int):
        ring_a = self.cells[a].polygon
        ring_b = self.cells[b].polygon
        edges_b = {frozenset((ring_b[k], ring_b[k + 1])) for k in range(len(ring_b) - 1)}
        for k in range(len(ring_a) - 1):
            if frozenset((ring_a[k], ring_a[k + 1])) in edges_b:
                return (ring_a[k], ring_a[k + 1])
        return None

    def edge_midpoint(self, a: int, b: int):
        edge = self.shared_edge(a, b)
        if edge is None:
            ca, cb = self.cells[a], self.cells[b]
            return ((ca.x + cb.x) / 2, (ca.y + cb.y) / 2)
        (x1, y1), (x2, y2) = edge
        return ((x1 + x2) / 2, (y1 + y2) / 2)


def make_grid(heights: Sequence[Sequence[float]], size: float = CELL_SIZE):
    """
    Build 4-connected square cells from a row-major height table.

    Returns:
        Tuple of (cells, geometry)
    """
    rows = len(heights)
    cols = len(heights[0])
    cells = []
    for j in range(rows):
        for i in range(cols):
            x0, y0 = i * size, j * size
            x1, y1 = x0 + size, y0 + size
            neighbors = []
            if i > 0:
                neighbors.append(j * cols + i - 1)
            if i < cols - 1:
                neighbors.append(j * cols + i + 1)
            if j > 0:
                neighbors.append((j - 1) * cols + i)
            if j < rows - 1:
                neighbors.append((j + 1) * cols + i)
            cells.append(Cell(
                id=j * cols + i,
                x=x0 + size / 2,
                y=y0 + size / 2,
                polygon=[(x0, y0), (x1, y0), (x1, y1), (x0, y1), (x0, y0)],
                neighbors=neighbors,
                height=float(heights[j][i]),
            ))
    return cells, GridGeometry(cells, rows, cols, size)


@pytest.fixture
def island_grid():
    """7x7 grid: ocean ring, a land plateau with a central lake, and a peak."""
    o, l, p = 0.0, 0.5, 0.8
    heights = [
        [o, o, o, o, o, o, o],
        [o, l, l, l, l, l, o],
        [o, l, p, l, l, l, o],
        [o, l, l, 0.1, l, l, o],
        [o, l, l, l, l, l, o],
        [o, l, l, l, l, l, o],
        [o, o, o, o, o, o, o],
    ]
    return make_grid(heights)
