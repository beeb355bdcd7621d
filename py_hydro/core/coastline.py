"""
Coastline extraction.

Land/water border edges are collected per feature (island rings toward the
ocean, lake rings toward each lake) and chained into closed rings.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import structlog

from .cells import Cell, Edge, FeatureType, GeometryQueries, Path, Point, neighbor_ids

logger = structlog.get_logger()

DEFAULT_SNAP_EPSILON = 1e-3


@dataclass
class Coastlines:
    """Closed coastline rings; each ring repeats its first point last."""

    islands: List[Path] = field(default_factory=list)
    lakes: List[Path] = field(default_factory=list)


class _NodeIndex:
    """Snaps points within eps onto shared node ids using a spatial hash."""

    def __init__(self, eps: float):
        self.eps = eps
        self.eps2 = eps * eps
        self.nodes: List[Point] = []
        self._buckets: Dict[Tuple[int, int], List[int]] = {}

    def _key(self, p: Point) -> Tuple[int, int]:
        return (math.floor(p[0] / self.eps), math.floor(p[1] / self.eps))

    def index_of(self, p: Point) -> int:
        kx, ky = self._key(p)
        for dx in (-1, 0, 1):
            for dy in (-1, 0, 1):
                for idx in self._buckets.get((kx + dx, ky + dy), ()):
                    node = self.nodes[idx]
                    ddx = node[0] - p[0]
                    ddy = node[1] - p[1]
                    if ddx * ddx + ddy * ddy <= self.eps2:
                        return idx

        self.nodes.append((p[0], p[1]))
        idx = len(self.nodes) - 1
        self._buckets.setdefault((kx, ky), []).append(idx)
        return idx


def chain_closed_rings(segments: Sequence[Edge], eps: float = DEFAULT_SNAP_EPSILON) -> List[Path]:
    """
    Chain unoriented segments into closed rings.

    Endpoints closer than eps are merged. Starting from each unused
    segment, the walk follows unused segments until it returns to its
    start; chains that dead-end are dropped.

    Args:
        segments: Border edges as ((x1, y1), (x2, y2))
        eps: Endpoint snap distance

    Returns:
        Closed rings (first point repeated last)
    """
    index = _NodeIndex(eps)
    edges: List[Tuple[int, int]] = []
    for a, b in segments:
        i = index.index_of(a)
        j = index.index_of(b)
        if i != j:
            edges.append((i, j))

    adjacency: Dict[int, List[int]] = {}
    for u, v in edges:
        adjacency.setdefault(u, []).append(v)
        adjacency.setdefault(v, []).append(u)

    def edge_key(u: int, v: int) -> Tuple[int, int]:
        return (u, v) if u < v else (v, u)

    used = set()
    rings: List[Path] = []
    dropped = 0

    for u0, v0 in edges:
        key = edge_key(u0, v0)
        if key in used:
            continue
        used.add(key)

        ring = [u0, v0]
        prev, curr = u0, v0
        closed = False
        guard = len(edges) * 4

        while guard > 0:
            guard -= 1
            nxt: Optional[int] = None
            for n in adjacency.get(curr, ()):
                if n != prev and edge_key(curr, n) not in used:
                    nxt = n
                    break
            if nxt is None:
                break

            ring.append(nxt)
            used.add(edge_key(curr, nxt))
            prev, curr = curr, nxt

            if nxt == u0:
                closed = True
                break

        if closed:
            rings.append([index.nodes[i] for i in ring])
        else:
            dropped += 1

    if dropped:
        logger.debug("Dropped open coastline chains", dropped=dropped, rings=len(rings))
    return rings


def build_coastlines(cells: List[Cell], geometry: GeometryQueries, sea_level: float = 0.2,
                     eps: float = DEFAULT_SNAP_EPSILON) -> Coastlines:
    """
    Build island and lake coastline rings from land/water borders.

    Ocean cells bordering land are flagged as shallow. Island rings are
    grouped by the land cell's island number, lake rings by the lake's
    number.

    Args:
        cells: Cells with features marked (shallow flags set in place)
        geometry: Shared-edge lookup
        sea_level: Land/water threshold
        eps: Endpoint snap distance

    Returns:
        Coastlines with island and lake rings
    """
    n_cells = len(cells)
    island_edges: Dict[int, List[Edge]] = {}
    lake_edges: Dict[int, List[Edge]] = {}
    missing = 0

    for land in cells:
        if land.height < sea_level:
            continue

        for neighbor_id in neighbor_ids(land, n_cells):
            neighbor = cells[neighbor_id]
            if neighbor.height >= sea_level:
                continue

            edge = geometry.shared_edge(land.id, neighbor_id)
            if edge is None:
                missing += 1
                continue

            if neighbor.feature_type == FeatureType.OCEAN:
                neighbor.shallow = True
                key = land.feature_number if land.feature_number is not None else 0
                island_edges.setdefault(key, []).append(edge)
            elif neighbor.feature_type == FeatureType.LAKE:
                key = neighbor.feature_number if neighbor.feature_number is not None else 0
                lake_edges.setdefault(key, []).append(edge)

    coastlines = Coastlines()
    for edges in island_edges.values():
        coastlines.islands.extend(chain_closed_rings(edges, eps))
    for edges in lake_edges.values():
        coastlines.lakes.extend(chain_closed_rings(edges, eps))

    logger.info("Coastlines built",
                island_rings=len(coastlines.islands),
                lake_rings=len(coastlines.lakes),
                missing_edges=missing)
    return coastlines
