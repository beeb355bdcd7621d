"""
Hydrology system for river generation and water flow simulation.

This module implements:
- Iterative depression (pit) resolution
- Downhill flux accumulation over land cells
- River id assignment, merging, deltas and estuaries
"""

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import structlog

from .cells import (
    Cell,
    GeometryQueries,
    Point,
    RiverPoint,
    RiverPointKind,
    clamp01,
    get_land,
    get_land_sorted_desc,
    neighbor_ids,
)

logger = structlog.get_logger()


@dataclass
class HydrologyOptions:
    """Hydrology thresholds and loop caps."""

    sea_level: float = 0.2
    max_depression_passes: int = 100       # hard cap on the pit-filling loop
    pit_raise_epsilon: float = 0.01        # lift above the lowest neighbor
    max_lifts_per_pass: Optional[int] = None
    source_flux_threshold: float = 0.6     # start a river when flux exceeds this
    delta_flux_threshold: float = 15.0     # delta when flux exceeds this and >1 water edge
    precipitation_carry: float = 0.9       # downstream precipitation floor factor
    estuary_push: float = 0.1              # outlet nudge along bank-to-midpoint vector


@dataclass
class DepressionStats:
    """Outcome of depression resolution."""

    passes: int = 0
    total_lifts: int = 0
    last_lift_count: int = 0
    remaining: int = 0  # land cells still without a strictly lower neighbor

    @property
    def resolved(self) -> bool:
        return self.last_lift_count == 0 and self.remaining == 0


@dataclass
class RouteResult:
    """River points produced by flux routing and the number of ids issued."""

    points: List[RiverPoint] = field(default_factory=list)
    rivers_count: int = 0


def _min_neighbor(cell: Cell, cells: List[Cell]) -> Tuple[Optional[int], float]:
    """Lowest present neighbor of a cell; the first one wins ties."""
    n_cells = len(cells)
    min_height = float("inf")
    min_id = None
    for neighbor_id in neighbor_ids(cell, n_cells):
        neighbor_height = cells[neighbor_id].height
        if neighbor_height < min_height:
            min_height = neighbor_height
            min_id = neighbor_id
    return min_id, min_height


def count_depressions(cells: List[Cell], sea_level: float = 0.2) -> int:
    """Count land cells with neighbors but no strictly lower neighbor."""
    pits = 0
    for cell in get_land(cells, sea_level):
        min_id, min_height = _min_neighbor(cell, cells)
        if min_id is not None and cell.height <= min_height:
            pits += 1
    return pits


def resolve_depressions(cells: List[Cell], sea_level: float = 0.2,
                        max_passes: int = 100, epsilon: float = 0.01,
                        max_lifts_per_pass: Optional[int] = None) -> DepressionStats:
    """
    Lift pits until every land cell has a strictly lower neighbor.

    Each pass raises any land cell that is not above its lowest neighbor to
    that neighbor's height plus epsilon (clamped to 1). The loop stops after
    a pass with no lifts or at the pass cap; a capped run is approximate and
    reported through the returned stats rather than raised.

    Args:
        cells: Cells to modify in place
        sea_level: Land/water threshold
        max_passes: Hard cap on passes
        epsilon: Lift above the spill height
        max_lifts_per_pass: Optional early exit from a single pass

    Returns:
        DepressionStats with pass and lift counts
    """
    logger.info("Resolving depressions", max_passes=max_passes)

    # Land is fixed at entry; lifting never turns water into land here
    land = get_land(cells, sea_level)
    stats = DepressionStats()
    if not land:
        return stats

    while stats.passes < max_passes:
        lifts = 0
        for cell in land:
            min_id, min_height = _min_neighbor(cell, cells)
            if min_id is None:
                continue

            if cell.height <= min_height:
                before = cell.height
                cell.height = clamp01(min_height + epsilon)
                if cell.height != before:
                    lifts += 1

            if max_lifts_per_pass is not None and lifts >= max_lifts_per_pass:
                break

        stats.passes += 1
        stats.total_lifts += lifts
        stats.last_lift_count = lifts
        if lifts == 0:
            break

    stats.remaining = count_depressions(cells, sea_level)

    if stats.resolved:
        logger.info("Depression resolution converged",
                    passes=stats.passes, lifts=stats.total_lifts)
    else:
        logger.warning("Unresolved depressions",
                       passes=stats.passes,
                       last_lift_count=stats.last_lift_count,
                       remaining=stats.remaining)
    return stats


def _water_outlets(land: List[Cell], cells: List[Cell], geometry: GeometryQueries,
                   sea_level: float) -> Dict[int, List[Tuple[int, Point]]]:
    """Map each coastal land cell to its (water neighbor, edge midpoint) pairs."""
    n_cells = len(cells)
    outlets: Dict[int, List[Tuple[int, Point]]] = {}
    for cell in land:
        entries = [
            (neighbor_id, geometry.edge_midpoint(cell.id, neighbor_id))
            for neighbor_id in neighbor_ids(cell, n_cells)
            if cells[neighbor_id].height < sea_level
        ]
        if entries:
            outlets[cell.id] = entries
    return outlets


def route_flux_and_rivers(cells: List[Cell], geometry: GeometryQueries,
                          options: Optional[HydrologyOptions] = None) -> RouteResult:
    """
    Route flux downhill, assign river ids and emit river points.

    Land cells are processed from highest to lowest, each handing its flux
    to its lowest neighbor. Cells whose flux exceeds the source threshold
    start a river; river ids follow the flow and, where two meet, the id
    with at least as many recorded points wins. Rivers reaching water end
    in a multi-mouth delta (high flux, several water edges) or a single
    estuary point pushed slightly past the coast.

    Args:
        cells: Cells with flux seeded and depressions resolved (modified in place)
        geometry: Edge midpoint lookup for outlet placement
        options: Thresholds

    Returns:
        RouteResult with ordered river points and the number of river ids issued
    """
    opts = options or HydrologyOptions()
    sea_level = opts.sea_level

    land = get_land_sorted_desc(cells, sea_level)
    outlets = _water_outlets(land, cells, geometry, sea_level)

    result = RouteResult()
    point_counts: Counter = Counter()
    deltas = 0
    estuaries = 0

    def add_point(river: int, cell: int, x: float, y: float,
                  kind: RiverPointKind, pour: Optional[int] = None) -> None:
        result.points.append(RiverPoint(river=river, cell=cell, x=x, y=y, kind=kind, pour=pour))
        point_counts[river] += 1

    def new_river() -> int:
        river_id = result.rivers_count
        result.rivers_count += 1
        return river_id

    for cell in land:
        min_id, _ = _min_neighbor(cell, cells)
        if min_id is None:
            continue
        target = cells[min_id]

        if cell.flux > opts.source_flux_threshold and cell.river is None:
            cell.river = new_river()
            add_point(cell.river, cell.id, cell.x, cell.y, RiverPointKind.SOURCE)

        target.flux += cell.flux
        carried = cell.precipitation * opts.precipitation_carry
        if carried > target.precipitation:
            target.precipitation = carried

        if target.height >= sea_level:
            if cell.river is not None:
                if target.river is None:
                    target.river = cell.river
                elif point_counts[cell.river] >= point_counts[target.river]:
                    target.river = cell.river

            if target.river is not None:
                add_point(target.river, target.id, target.x, target.y, RiverPointKind.COURSE)
            continue

        if cell.river is None:
            continue

        pours = outlets.get(cell.id, [])
        if cell.flux > opts.delta_flux_threshold and len(pours) > 1:
            for i, (water_id, (mx, my)) in enumerate(pours):
                if i == 0:
                    add_point(cell.river, cell.id, mx, my, RiverPointKind.DELTA, pour=water_id)
                else:
                    branch = new_river()
                    add_point(branch, cell.id, cell.x, cell.y, RiverPointKind.COURSE)
                    add_point(branch, cell.id, mx, my, RiverPointKind.DELTA, pour=water_id)
            deltas += 1
        else:
            if pours:
                water_id, (mx, my) = pours[0]
            else:
                water_id = min_id
                mx, my = geometry.edge_midpoint(cell.id, min_id)
            x = mx + (mx - cell.x) * opts.estuary_push
            y = my + (my - cell.y) * opts.estuary_push
            add_point(cell.river, cell.id, x, y, RiverPointKind.ESTUARY, pour=water_id)
            estuaries += 1

    logger.info("Flux routed",
                land=len(land),
                rivers=result.rivers_count,
                points=len(result.points),
                deltas=deltas,
                estuaries=estuaries)
    return result


def drop_trivial_rivers(points: List[RiverPoint], min_points: int = 2) -> List[RiverPoint]:
    """
    Remove rivers with fewer than min_points points, keeping point order.

    Args:
        points: River points from routing
        min_points: Smallest point count a river needs to survive

    Returns:
        Filtered river points
    """
    counts = Counter(p.river for p in points)
    kept = [p for p in points if counts[p.river] >= min_points]
    logger.info("Filtered trivial rivers",
                dropped=sum(1 for n in counts.values() if n < min_points))
    return kept
