"""
Heightmap seeding for hydrology maps.

Heights are raised by breadth-first "blob" spreading from a start cell. The
random map places one large island near the center and a handful of hills
around it.
"""

from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Set

import structlog

from .cells import Cell, clamp01, neighbor_ids
from .rng import SeededRandom
from .voronoi_graph import CellGraph

logger = structlog.get_logger()


class BlobType(str, Enum):
    """How the spread value decays ring by ring."""

    ISLAND = "island"  # next value = height of the cell being expanded * radius
    HILL = "hill"      # next value = previous value * radius


@dataclass
class HeightmapOptions:
    """Random-map blob parameters."""

    island_height: float = 0.9
    island_radius: float = 0.85
    island_sharpness: float = 0.2
    island_jitter: float = 0.1  # fraction of map size around the center

    hill_count: int = 10
    hill_height_min: float = 0.1
    hill_height_max: float = 0.5
    hill_radius: float = 0.99
    hill_sharpness: float = 0.2
    hill_max_attempts: int = 50
    hill_max_start_height: float = 0.05  # above sea level

    min_blob_height: float = 0.01  # spreading stops at or below this value


def add_blob(cells: List[Cell], start: int, height: float, radius: float,
             sharpness: float, blob_type: BlobType, rng: SeededRandom,
             min_height: float = 0.01) -> Set[int]:
    """
    Raise heights around a start cell using BFS spreading.

    The start cell gets the full height. Each expanded cell hands a decayed
    value to its unvisited neighbors; ISLAND blobs decay from the expanded
    cell's own (already raised) height, HILL blobs decay a single carried
    value. Sharpness jitters each neighbor's increment by a factor drawn
    from [1.1 - sharpness, 1.1 + sharpness).

    Args:
        cells: Cells to modify in place
        start: Start cell id
        height: Height added at the start cell
        radius: Decay factor per expansion (e.g. 0.9-0.999)
        sharpness: Spread randomization (0 disables it)
        blob_type: ISLAND or HILL decay rule
        rng: Shared seeded generator
        min_height: Spreading stops once the carried value drops to this

    Returns:
        Set of touched cell ids
    """
    n_cells = len(cells)
    value = height

    start_cell = cells[start]
    start_cell.height = clamp01(start_cell.height + value)
    start_cell.feature_type = None
    start_cell.feature_number = None

    used = {start}
    queue = deque([start])

    while queue and value > min_height:
        current = cells[queue.popleft()]

        if blob_type == BlobType.ISLAND:
            value = current.height * radius
        else:
            value = value * radius

        for neighbor_id in neighbor_ids(current, n_cells):
            if neighbor_id in used:
                continue

            if sharpness == 0:
                mod = 1.0
            else:
                mod = rng.float_in(1.1 - sharpness, 1.1 + sharpness)

            neighbor = cells[neighbor_id]
            neighbor.height = clamp01(neighbor.height + value * mod)
            neighbor.feature_type = None
            neighbor.feature_number = None

            used.add(neighbor_id)
            queue.append(neighbor_id)

    return used


class HeightmapGenerator:
    """
    Seeds a random map: one central island followed by a set of hills.

    Every random draw comes from the shared generator, so the resulting
    heights depend only on the seed and the graph.
    """

    def __init__(self, graph: CellGraph, rng: SeededRandom, sea_level: float = 0.2,
                 options: Optional[HeightmapOptions] = None):
        """
        Initialize the heightmap generator.

        Args:
            graph: Cell graph to raise heights on
            rng: Shared seeded generator
            sea_level: Land/water threshold
            options: Blob parameters
        """
        self.graph = graph
        self.cells = graph.cells
        self.rng = rng
        self.sea_level = sea_level
        self.options = options or HeightmapOptions()

    def add_island(self) -> Set[int]:
        """Add the large island blob near the map center."""
        opts = self.options
        cx = self.graph.width * (0.5 + self.rng.float_in(-opts.island_jitter, opts.island_jitter))
        cy = self.graph.height * (0.5 + self.rng.float_in(-opts.island_jitter, opts.island_jitter))

        start = self.graph.find_cell_at(cx, cy)
        if start is None:
            logger.warning("No cell at island center, skipping", x=cx, y=cy)
            return set()

        touched = add_blob(self.cells, start, opts.island_height, opts.island_radius,
                           opts.island_sharpness, BlobType.ISLAND, self.rng,
                           min_height=opts.min_blob_height)
        logger.info("Island added", start=start, touched=len(touched))
        return touched

    def add_hills(self, count: Optional[int] = None) -> int:
        """
        Add hill blobs at positions that are not already high ground.

        Args:
            count: Number of hills (defaults to options.hill_count)

        Returns:
            Number of hills actually placed
        """
        opts = self.options
        count = opts.hill_count if count is None else count
        width, height = self.graph.width, self.graph.height
        max_start = self.sea_level + opts.hill_max_start_height

        placed = 0
        for _ in range(count):
            start = None
            tries = 0
            while True:
                x = self.rng.float_in(width * 0.25, width * 0.75)
                y = self.rng.float_in(height * 0.2, height * 0.75)
                start = self.graph.find_cell_at(x, y)
                tries += 1
                if start is None or self.cells[start].height <= max_start or tries >= opts.hill_max_attempts:
                    break

            if start is None:
                continue

            hill_height = round(self.rng.float_in(opts.hill_height_min, opts.hill_height_max), 2)
            add_blob(self.cells, start, hill_height, opts.hill_radius, opts.hill_sharpness,
                     BlobType.HILL, self.rng, min_height=opts.min_blob_height)
            placed += 1

        logger.info("Hills added", requested=count, placed=placed)
        return placed

    def generate(self) -> None:
        """Seed the random map: the central island, then the hills."""
        logger.info("Seeding heightmap", cells=len(self.cells))
        self.add_island()
        self.add_hills()
