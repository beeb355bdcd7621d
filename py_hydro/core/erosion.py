"""
Simple height downcutting applied around the precipitation pass.

Both transforms only ever lower heights and return how many cells changed,
so re-running them once nothing qualifies is a no-op.
"""

from typing import List

import structlog

from .cells import Cell, clamp01

logger = structlog.get_logger()

RIVER_FLUX_THRESHOLD = 0.03
RIVER_DOWNCUT_DIVISOR = 10


def downcut_coastline(cells: List[Cell], amount: float, sea_level: float = 0.2) -> int:
    """
    Lower every land cell by a fixed amount.

    Args:
        cells: Cells to modify in place
        amount: Height removed from each land cell
        sea_level: Land/water threshold

    Returns:
        Number of cells whose height changed
    """
    changed = 0
    for cell in cells:
        if cell.height >= sea_level:
            before = cell.height
            cell.height = clamp01(cell.height - amount)
            if cell.height != before:
                changed += 1

    logger.info("Coastline downcut", amount=amount, changed=changed)
    return changed


def downcut_rivers(cells: List[Cell], amount: float, sea_level: float = 0.2,
                   flux_threshold: float = RIVER_FLUX_THRESHOLD,
                   divisor: float = RIVER_DOWNCUT_DIVISOR) -> int:
    """
    Carve cells that carry enough flux slightly lower.

    Args:
        cells: Cells to modify in place
        amount: Base downcut; each qualifying cell loses amount / divisor
        sea_level: Land/water threshold
        flux_threshold: Minimum flux for a cell to be carved
        divisor: Ratio between coastline and river downcut

    Returns:
        Number of cells whose height changed
    """
    river_cut = amount / divisor
    changed = 0
    for cell in cells:
        if cell.flux >= flux_threshold and cell.height >= sea_level + 0.01:
            before = cell.height
            cell.height = clamp01(cell.height - river_cut)
            if cell.height != before:
                changed += 1

    logger.info("River downcut", amount=river_cut, changed=changed)
    return changed
