"""
Geographic features detection and markup.

This module handles:
- Ocean flood from a sea cell near the map origin
- Island identification (connected land components)
- Lake identification (sub-sea components cut off from the ocean)
"""

from collections import deque
from dataclasses import dataclass
from typing import Callable, List, Optional

import structlog

from .cells import Cell, FeatureType, neighbor_ids

logger = structlog.get_logger()

NameProvider = Callable[[FeatureType, int], Optional[str]]


@dataclass
class FeatureSummary:
    """Counts produced by feature markup."""

    islands: int
    lakes: int
    ocean_cells: int


def _find_ocean_seed(cells: List[Cell], sea_level: float,
                     ocean_seed: Optional[int]) -> Optional[int]:
    """Pick the cell the ocean flood starts from, or None when there is no water."""
    if ocean_seed is not None and 0 <= ocean_seed < len(cells):
        if cells[ocean_seed].height < sea_level:
            return ocean_seed

    best = None
    best_d2 = float("inf")
    for cell in cells:
        if cell.height < sea_level:
            d2 = cell.x * cell.x + cell.y * cell.y
            if d2 < best_d2:
                best_d2 = d2
                best = cell.id
    return best


def _flood(cells: List[Cell], start: int, land: bool, sea_level: float,
           kind: FeatureType, number: int,
           name_provider: Optional[NameProvider]) -> int:
    """Label the unlabelled same-category component containing start; return its size."""
    n_cells = len(cells)
    name = name_provider(kind, number) if name_provider else None

    queue = deque([start])
    cells[start].feature_type = kind
    size = 0

    while queue:
        cell = cells[queue.popleft()]
        cell.feature_number = number
        if name_provider:
            cell.feature_name = name
        size += 1

        for neighbor_id in neighbor_ids(cell, n_cells):
            neighbor = cells[neighbor_id]
            if neighbor.feature_type is not None:
                continue
            if (neighbor.height >= sea_level) != land:
                continue
            neighbor.feature_type = kind
            queue.append(neighbor_id)

    return size


def mark_features(cells: List[Cell], sea_level: float = 0.2,
                  ocean_seed: Optional[int] = None,
                  name_provider: Optional[NameProvider] = None) -> FeatureSummary:
    """
    Partition cells into Ocean, Islands and Lakes.

    Previous labels are cleared first. The ocean is the sub-sea component
    containing the seed cell (number 0). Every remaining component is then
    labelled in array order: land components become Islands and water
    components become Lakes, each numbered from 0.

    Args:
        cells: Cells to label in place
        sea_level: Land/water threshold
        ocean_seed: Preferred ocean start cell (used only if it is water)
        name_provider: Optional callback returning a name per (kind, number)

    Returns:
        FeatureSummary with island and lake counts
    """
    for cell in cells:
        cell.feature_type = None
        cell.feature_number = None

    ocean_cells = 0
    start = _find_ocean_seed(cells, sea_level, ocean_seed)
    if start is not None:
        ocean_cells = _flood(cells, start, False, sea_level, FeatureType.OCEAN, 0, name_provider)

    islands = 0
    lakes = 0
    for cell in cells:
        if cell.feature_type is not None:
            continue
        if cell.height >= sea_level:
            _flood(cells, cell.id, True, sea_level, FeatureType.ISLAND, islands, name_provider)
            islands += 1
        else:
            _flood(cells, cell.id, False, sea_level, FeatureType.LAKE, lakes, name_provider)
            lakes += 1

    logger.info("Features marked", ocean_cells=ocean_cells, islands=islands, lakes=lakes)
    return FeatureSummary(islands=islands, lakes=lakes, ocean_cells=ocean_cells)
