"""
Cell graph data model shared by every hydrology stage.

Cells are plain dataclasses mutated in place as the pipeline runs. The
geometry queries later stages need (point lookup, shared edges, edge
midpoints) are expressed by the ``GeometryQueries`` protocol and implemented
once by ``CellGraph``.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Optional, Protocol, Sequence, Tuple

Point = Tuple[float, float]
Edge = Tuple[Point, Point]
Path = List[Point]

# Absent-neighbor marker in adjacency lists
NO_NEIGHBOR = -1

BASE_PRECIPITATION = 0.02
BASE_FLUX = 0.02


class FeatureType(str, Enum):
    """Connected-component label assigned by feature classification."""

    OCEAN = "Ocean"
    ISLAND = "Island"
    LAKE = "Lake"


class RiverPointKind(str, Enum):
    """Role of a point in a river's polyline."""

    SOURCE = "source"
    COURSE = "course"
    DELTA = "delta"
    ESTUARY = "estuary"


@dataclass
class Cell:
    """A Voronoi cell with the scalar fields the pipeline fills in."""

    id: int
    x: float
    y: float
    polygon: List[Point] = field(default_factory=list)  # closed ring
    neighbors: List[int] = field(default_factory=list)

    height: float = 0.0                # 0..1
    precipitation: float = BASE_PRECIPITATION
    flux: float = BASE_FLUX            # accumulated runoff

    feature_type: Optional[FeatureType] = None
    feature_number: Optional[int] = None
    feature_name: Optional[str] = None
    river: Optional[int] = None
    shallow: bool = False              # ocean cell touching a coast

    def is_land(self, sea_level: float) -> bool:
        """Check if the cell is at or above sea level."""
        return self.height >= sea_level


@dataclass
class RiverPoint:
    """One vertex of a river polyline."""

    river: int
    cell: int
    x: float
    y: float
    kind: RiverPointKind
    pour: Optional[int] = None  # water neighbor for outlets


@dataclass
class BezierSegment:
    """Cubic bezier river segment with its stroke widths."""

    sx: float
    sy: float
    cx1: float
    cy1: float
    cx2: float
    cy2: float
    ex: float
    ey: float
    width: float
    shadow_width: float
    river_id: int


class GeometryQueries(Protocol):
    """Point and edge lookups over a built cell graph."""

    def find_cell_at(self, x: float, y: float) -> Optional[int]:
        ...

    def shared_edge(self, a: int, b: int) -> Optional[Edge]:
        ...

    def edge_midpoint(self, a: int, b: int) -> Point:
        ...


def neighbor_ids(cell: Cell, n_cells: int) -> Iterator[int]:
    """Yield the present neighbor ids of a cell, skipping absent markers."""
    for neighbor_id in cell.neighbors:
        if neighbor_id == NO_NEIGHBOR or not 0 <= neighbor_id < n_cells:
            continue
        yield neighbor_id


def clamp01(value: float) -> float:
    """Limit a height to the 0-1 range."""
    if value < 0:
        return 0.0
    if value > 1:
        return 1.0
    return value


def get_land(cells: Sequence[Cell], sea_level: float) -> List[Cell]:
    """Return cells at or above sea level, in array order."""
    return [cell for cell in cells if cell.height >= sea_level]


def get_land_sorted_desc(cells: Sequence[Cell], sea_level: float) -> List[Cell]:
    """Return land cells from highest to lowest (stable for equal heights)."""
    return sorted(get_land(cells, sea_level), key=lambda c: c.height, reverse=True)
