"""Cell graph generation: Poisson-disc sampling, Delaunay adjacency, clipped Voronoi polygons."""

import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import numpy as np
import structlog
from scipy.spatial import Delaunay, QhullError, Voronoi, cKDTree

from .cells import BASE_FLUX, BASE_PRECIPITATION, Cell, Edge, Point
from .errors import InvalidConfiguration
from .rng import SeededRandom

logger = structlog.get_logger()

DEFAULT_MAX_GRID_CELLS = 1_000_000
EDGE_MATCH_TOLERANCE = 1e-6


@dataclass
class CellGraph:
    """Voronoi cell graph with the geometry queries later stages consume.

    Implements ``GeometryQueries``: point lookup, exact shared edges and
    shared-edge midpoints. Cell ids equal their index in ``cells``.
    """
    width: float
    height: float
    radius: float
    points: np.ndarray
    cells: List[Cell]
    _tree: Optional[cKDTree] = field(default=None, repr=False)

    def __post_init__(self):
        if self._tree is None and len(self.points):
            self._tree = cKDTree(self.points)

    def find_cell_at(self, x: float, y: float) -> Optional[int]:
        """
        Find the cell whose site is nearest to (x, y).

        Returns None for points outside the map or non-finite coordinates.
        """
        if self._tree is None or not (math.isfinite(x) and math.isfinite(y)):
            return None
        if x < 0 or y < 0 or x > self.width or y > self.height:
            return None
        _, idx = self._tree.query((x, y))
        return int(idx)

    def shared_edge(self, a: int, b: int) -> Optional[Edge]:
        """Return the polygon edge cells a and b share, or None if they share none."""
        ring_a = self.cells[a].polygon
        ring_b = self.cells[b].polygon
        if len(ring_a) < 2 or len(ring_b) < 2:
            return None

        for i in range(len(ring_a) - 1):
            a1, a2 = ring_a[i], ring_a[i + 1]
            for j in range(len(ring_b) - 1):
                if _same_edge(a1, a2, ring_b[j], ring_b[j + 1]):
                    return (a1, a2)
        return None

    def edge_midpoint(self, a: int, b: int) -> Point:
        """Midpoint of the shared edge, or of the two sites when none is found."""
        edge = self.shared_edge(a, b)
        if edge is not None:
            (x1, y1), (x2, y2) = edge
            return ((x1 + x2) / 2, (y1 + y2) / 2)

        cell_a, cell_b = self.cells[a], self.cells[b]
        return ((cell_a.x + cell_b.x) / 2, (cell_a.y + cell_b.y) / 2)


def _same_point(p: Point, q: Point, eps: float = EDGE_MATCH_TOLERANCE) -> bool:
    return abs(p[0] - q[0]) <= eps and abs(p[1] - q[1]) <= eps


def _same_edge(a1: Point, a2: Point, b1: Point, b2: Point) -> bool:
    return (_same_point(a1, b1) and _same_point(a2, b2)) or (
        _same_point(a1, b2) and _same_point(a2, b1)
    )


def validate_sampling_grid(width: float, height: float, radius: float,
                           max_grid_cells: int = DEFAULT_MAX_GRID_CELLS) -> Tuple[int, int]:
    """
    Check the Poisson-disc acceleration grid before any sampling happens.

    Args:
        width: Map width
        height: Map height
        radius: Minimum distance between samples
        max_grid_cells: Largest grid allowed

    Returns:
        Tuple of (grid columns, grid rows)

    Raises:
        InvalidConfiguration: If the grid would be empty, non-finite or too large
    """
    for name, value in (("width", width), ("height", height), ("radius", radius)):
        if not math.isfinite(value) or value <= 0:
            raise InvalidConfiguration(f"Sampling {name} must be a positive finite number, got {value}")

    cell_size = radius * math.sqrt(0.5)
    grid_w = math.ceil(width / cell_size)
    grid_h = math.ceil(height / cell_size)
    grid_size = grid_w * grid_h

    if grid_size <= 0 or grid_size > max_grid_cells:
        raise InvalidConfiguration(
            f"Grid too large: {grid_w}x{grid_h} = {grid_size} cells "
            f"(limit {max_grid_cells}). Try increasing radius or decreasing map size."
        )
    return grid_w, grid_h


def poisson_disc(width: float, height: float, radius: float, rng: SeededRandom,
                 max_attempts: int = 30,
                 max_grid_cells: int = DEFAULT_MAX_GRID_CELLS) -> np.ndarray:
    """
    Generate blue-noise points with a minimum pairwise spacing.

    Bridson's algorithm driven by the shared RNG. Points come back in
    acceleration-grid scan order (row by row), not in acceptance order.

    Args:
        width: Sampling area width
        height: Sampling area height
        radius: Minimum distance between any two points
        rng: Shared seeded generator
        max_attempts: Candidates tried around an active sample before retiring it
        max_grid_cells: Largest acceleration grid allowed

    Returns:
        Array of [x, y] point coordinates
    """
    grid_w, grid_h = validate_sampling_grid(width, height, radius, max_grid_cells)

    r2 = radius * radius
    outer = 3 * r2
    cell_size = radius * math.sqrt(0.5)
    grid: List[Optional[Tuple[float, float]]] = [None] * (grid_w * grid_h)
    queue: List[Tuple[float, float]] = []

    def far(x: float, y: float) -> bool:
        i = int(x / cell_size)
        j = int(y / cell_size)
        i0, j0 = max(i - 2, 0), max(j - 2, 0)
        i1, j1 = min(i + 3, grid_w), min(j + 3, grid_h)
        for jj in range(j0, j1):
            row = jj * grid_w
            for ii in range(i0, i1):
                s = grid[row + ii]
                if s is not None:
                    dx = s[0] - x
                    dy = s[1] - y
                    if dx * dx + dy * dy < r2:
                        return False
        return True

    def sample(x: float, y: float) -> None:
        s = (x, y)
        queue.append(s)
        grid[grid_w * int(y / cell_size) + int(x / cell_size)] = s

    sample(rng.random() * width, rng.random() * height)

    while queue:
        i = int(rng.random() * len(queue))
        sx, sy = queue[i]
        accepted = False
        for _ in range(max_attempts):
            a = 2 * math.pi * rng.random()
            r = math.sqrt(rng.random() * outer + r2)
            x = sx + r * math.cos(a)
            y = sy + r * math.sin(a)
            if 0 <= x < width and 0 <= y < height and far(x, y):
                sample(x, y)
                accepted = True
        if not accepted:
            queue.pop(i)

    points = [s for s in grid if s is not None]
    return np.array(points, dtype=np.float64).reshape(-1, 2)


def build_cell_neighbors(points: np.ndarray) -> List[List[int]]:
    """
    Build symmetric cell adjacency from the Delaunay triangulation.

    Args:
        points: Cell sites

    Returns:
        Sorted neighbor id list for each cell
    """
    try:
        tri = Delaunay(points)
    except QhullError as exc:
        raise InvalidConfiguration(f"Cannot triangulate {len(points)} sample points: {exc}") from exc

    indptr, indices = tri.vertex_neighbor_vertices
    return [
        sorted(int(j) for j in indices[indptr[i]:indptr[i + 1]])
        for i in range(len(points))
    ]


def clip_polygon_to_rect(polygon: Sequence[Point], x0: float, y0: float,
                         x1: float, y1: float) -> List[Point]:
    """
    Clip a convex polygon to an axis-aligned rectangle (Sutherland-Hodgman).

    Args:
        polygon: Open vertex ring
        x0, y0, x1, y1: Rectangle bounds

    Returns:
        Open vertex ring of the clipped polygon (may be empty)
    """

    def clip(points, inside, intersect):
        out = []
        if not points:
            return out
        prev = points[-1]
        for cur in points:
            if inside(cur):
                if not inside(prev):
                    out.append(intersect(prev, cur))
                out.append(cur)
            elif inside(prev):
                out.append(intersect(prev, cur))
            prev = cur
        return out

    def at_x(c):
        def intersect(p, q):
            t = (c - p[0]) / (q[0] - p[0])
            return (c, p[1] + t * (q[1] - p[1]))
        return intersect

    def at_y(c):
        def intersect(p, q):
            t = (c - p[1]) / (q[1] - p[1])
            return (p[0] + t * (q[0] - p[0]), c)
        return intersect

    ring = list(polygon)
    ring = clip(ring, lambda p: p[0] >= x0, at_x(x0))
    ring = clip(ring, lambda p: p[0] <= x1, at_x(x1))
    ring = clip(ring, lambda p: p[1] >= y0, at_y(y0))
    ring = clip(ring, lambda p: p[1] <= y1, at_y(y1))

    # Drop consecutive duplicates left by vertices lying on the boundary
    cleaned: List[Point] = []
    for p in ring:
        if not cleaned or not _same_point(cleaned[-1], p):
            cleaned.append(p)
    if len(cleaned) > 1 and _same_point(cleaned[0], cleaned[-1]):
        cleaned.pop()
    return cleaned


def build_cell_polygons(points: np.ndarray, width: float, height: float) -> List[List[Point]]:
    """
    Build closed Voronoi polygons clipped to the map rectangle.

    Four far-away sentinel sites keep every real region bounded, so each
    region is a finite convex polygon before clipping.

    Args:
        points: Cell sites
        width: Map width
        height: Map height

    Returns:
        Closed vertex ring per cell (empty when the region degenerates)
    """
    span = max(width, height)
    sentinels = np.array([
        [-10 * span, -10 * span],
        [11 * span, -10 * span],
        [11 * span, 11 * span],
        [-10 * span, 11 * span],
    ])
    vor = Voronoi(np.vstack([points, sentinels]))

    polygons: List[List[Point]] = []
    skipped = 0
    for i in range(len(points)):
        region = vor.regions[vor.point_region[i]]
        if not region or -1 in region:
            polygons.append([])
            skipped += 1
            continue

        vertices = vor.vertices[region]
        px, py = points[i]
        angles = np.arctan2(vertices[:, 1] - py, vertices[:, 0] - px)
        ring = [(float(vertices[k][0]), float(vertices[k][1])) for k in np.argsort(angles)]

        clipped = clip_polygon_to_rect(ring, 0.0, 0.0, width, height)
        if len(clipped) < 3:
            polygons.append([])
            skipped += 1
            continue
        polygons.append(clipped + [clipped[0]])

    if skipped:
        logger.warning("Degenerate cell polygons", skipped=skipped)
    return polygons


def build_cells(points: np.ndarray, width: float, height: float) -> List[Cell]:
    """
    Build the Cell list (neighbors, polygons, initial scalars) for sampled points.

    Args:
        points: Cell sites
        width: Map width
        height: Map height

    Returns:
        One Cell per point, with id equal to its index
    """
    if len(points) < 3:
        raise InvalidConfiguration(
            f"Sampling produced {len(points)} points; at least 3 are needed to build a cell graph"
        )

    neighbors = build_cell_neighbors(points)
    polygons = build_cell_polygons(points, width, height)

    return [
        Cell(
            id=i,
            x=float(points[i][0]),
            y=float(points[i][1]),
            polygon=polygons[i],
            neighbors=neighbors[i],
            height=0.0,
            precipitation=BASE_PRECIPITATION,
            flux=BASE_FLUX,
        )
        for i in range(len(points))
    ]


def generate_cell_graph(width: float, height: float, radius: float, rng: SeededRandom,
                        max_grid_cells: int = DEFAULT_MAX_GRID_CELLS) -> CellGraph:
    """
    Generate the complete cell graph for a map.

    Args:
        width: Map width
        height: Map height
        radius: Poisson-disc minimum spacing
        rng: Shared seeded generator
        max_grid_cells: Largest sampling grid allowed

    Returns:
        CellGraph with cells and geometry queries
    """
    logger.info("Generating cell graph", width=width, height=height, radius=radius)

    points = poisson_disc(width, height, radius, rng, max_grid_cells=max_grid_cells)
    logger.info("Points generated", points=len(points))

    cells = build_cells(points, width, height)
    logger.info("Cell graph built", cells=len(cells))

    return CellGraph(width=width, height=height, radius=radius, points=points, cells=cells)
