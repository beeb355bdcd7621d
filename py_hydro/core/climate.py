"""
Precipitation simulation driven by boundary winds.

This module implements:
- Wind selection (explicit or randomized N/E/S/W)
- Ray marching inland from the map edge with rain deposit on land
- Orographic blocking on high ridges
- Neighbor smoothing and flux seeding from precipitation
"""

import math
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

import numpy as np
import structlog
from pydantic import BaseModel, Field

from .cells import BASE_FLUX, BASE_PRECIPITATION, Cell, GeometryQueries, neighbor_ids
from .rng import SeededRandom

logger = structlog.get_logger()


class WindToggles(BaseModel):
    """Which map edges blow moisture inland."""

    N: bool = Field(False, description="North wind")
    E: bool = Field(False, description="East wind")
    S: bool = Field(False, description="South wind")
    W: bool = Field(False, description="West wind")
    randomize: bool = Field(True, description="Draw each wind at random instead of using the flags")

    @property
    def active_count(self) -> int:
        return int(self.N) + int(self.E) + int(self.S) + int(self.W)


@dataclass
class ClimateOptions:
    """Precipitation calculation options."""

    precipitation: float = 7.0          # moisture carried by each ray (0..10)
    sea_level: float = 0.2
    wind_probability: float = 0.75      # chance a randomized wind is active
    frontier_width: float = 10.0        # strip width, divided by active winds
    frontier_margin: float = 0.1        # fraction of the edge skipped at each end
    step: float = 5.0                   # ray advance per sample
    jitter: float = 5.0                 # lateral jitter for N/E/S rays
    west_jitter: float = 10.0           # lateral jitter for the west wind
    ridge_height: float = 0.6           # rays stop on cells at or above this
    base_precipitation: float = BASE_PRECIPITATION
    base_flux: float = BASE_FLUX


class Climate:
    """Handles wind-driven precipitation and flux seeding."""

    def __init__(self, cells: List[Cell], geometry: GeometryQueries, width: float,
                 height: float, rng: SeededRandom, options: Optional[ClimateOptions] = None):
        """
        Initialize climate calculator.

        Args:
            cells: Cells with heights populated
            geometry: Point lookup used to sample cells along rays
            width: Map width
            height: Map height
            rng: Shared seeded generator
            options: Climate calculation options
        """
        self.cells = cells
        self.geometry = geometry
        self.width = width
        self.height = height
        self.rng = rng
        self.options = options or ClimateOptions()

        self.samples = 0
        self.blocked_rays = 0

    def resolve_winds(self, winds: WindToggles) -> WindToggles:
        """
        Decide which winds blow, guaranteeing at least one.

        Randomized winds draw N, E, S, W in that order. If none ends up
        active, exactly one side is picked uniformly.
        """
        resolved = winds.model_copy()
        if resolved.randomize:
            threshold = 1 - self.options.wind_probability
            resolved.N = self.rng.random() >= threshold
            resolved.E = self.rng.random() >= threshold
            resolved.S = self.rng.random() >= threshold
            resolved.W = self.rng.random() >= threshold

        if resolved.active_count == 0:
            pick = self.rng.int_in(0, 3)
            resolved.N = pick == 0
            resolved.E = pick == 1
            resolved.S = pick == 2
            resolved.W = pick == 3

        return resolved

    def _march_ray(self, x: float, y: float, load: float, dx: float, dy: float,
                   jitter: Callable[[], Tuple[float, float]]) -> None:
        """Advance one ray from (x, y), raining on land until it runs dry or leaves the map."""
        opts = self.options
        while load > 0 and 0 <= x <= self.width and 0 <= y <= self.height:
            x += dx
            y += dy
            jx, jy = jitter()
            x += jx
            y += jy

            cell_id = self.geometry.find_cell_at(x, y)
            if cell_id is None:
                continue
            self.samples += 1

            cell = self.cells[cell_id]
            h = cell.height
            if h < opts.sea_level:
                continue
            if h < opts.ridge_height:
                rain = self.rng.random() * h
                load -= rain
                cell.precipitation += rain
            else:
                # Ridge: the remaining moisture never crosses
                load = 0
                self.blocked_rays += 1

    def _frontiers(self, winds: WindToggles, strip: float):
        """Yield (frontier cells, step vector, jitter) for each active wind."""
        opts = self.options
        w, h = self.width, self.height
        x_min, x_max = w * opts.frontier_margin, w * (1 - opts.frontier_margin)
        y_min, y_max = h * opts.frontier_margin, h * (1 - opts.frontier_margin)
        step = opts.step

        def lateral_x(span):
            return lambda: (self.rng.float_in(-span, span), 0.0)

        def lateral_y(span):
            return lambda: (0.0, self.rng.float_in(-span, span))

        if winds.N:
            frontier = [c for c in self.cells if c.y < strip and x_min < c.x < x_max]
            yield "N", frontier, (0.0, step), lateral_x(opts.jitter)
        if winds.E:
            frontier = [c for c in self.cells if c.x > w - strip and y_min < c.y < y_max]
            yield "E", frontier, (-step, 0.0), lateral_y(opts.jitter)
        if winds.S:
            frontier = [c for c in self.cells if c.y > h - strip and x_min < c.x < x_max]
            yield "S", frontier, (0.0, -step), lateral_x(opts.jitter)
        if winds.W:
            frontier = [c for c in self.cells if c.x < strip and y_min < c.y < y_max]
            yield "W", frontier, (step, 0.0), lateral_y(opts.west_jitter)

    def smooth_precipitation(self) -> None:
        """
        Average land precipitation with direct neighbors and seed flux from it.

        Averages are computed into a buffer first so the result does not
        depend on cell order. Water cells keep the base values.
        """
        opts = self.options
        n_cells = len(self.cells)
        smoothed = np.zeros(n_cells, dtype=np.float64)

        for cell in self.cells:
            if cell.height >= opts.sea_level:
                total = cell.precipitation
                count = 1
                for neighbor_id in neighbor_ids(cell, n_cells):
                    total += self.cells[neighbor_id].precipitation
                    count += 1
                smoothed[cell.id] = total / count

        for cell in self.cells:
            if cell.height >= opts.sea_level:
                cell.precipitation = float(smoothed[cell.id])
                cell.flux = cell.precipitation
            else:
                cell.precipitation = opts.base_precipitation
                cell.flux = opts.base_flux

    def calculate_precipitation(self, winds: Optional[WindToggles] = None) -> WindToggles:
        """
        Rain over the map from the active winds, then smooth and seed flux.

        Args:
            winds: Wind toggles (randomized when winds.randomize is set)

        Returns:
            The winds that actually blew
        """
        logger.info("Calculating precipitation")

        resolved = self.resolve_winds(winds or WindToggles())
        sides = resolved.active_count
        load = self.options.precipitation / math.sqrt(sides)
        strip = self.options.frontier_width / sides

        for name, frontier, (dx, dy), jitter in self._frontiers(resolved, strip):
            for cell in frontier:
                self._march_ray(cell.x, cell.y, load, dx, dy, jitter)
            logger.debug("Wind processed", wind=name, rays=len(frontier))

        self.smooth_precipitation()

        land = [c.precipitation for c in self.cells if c.height >= self.options.sea_level]
        logger.info("Precipitation calculated",
                    winds="".join(s for s in "NESW" if getattr(resolved, s)),
                    samples=self.samples,
                    blocked_rays=self.blocked_rays,
                    max_precipitation=max(land) if land else 0.0)
        return resolved
