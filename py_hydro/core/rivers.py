"""
River geometry: meandering polylines converted to cubic Bezier segments.

Each river's ordered points are densified with small meander offsets,
smoothed with a chord-length Catmull-Rom spline and emitted as one Bezier
segment per span. Stroke width grows with distance from the source and with
the flux under the segment start.
"""

import math
from typing import Dict, List, Sequence, Tuple

import structlog

from .cells import BASE_FLUX, BezierSegment, Cell, GeometryQueries, Path, Point, RiverPoint
from .rng import SeededRandom

logger = structlog.get_logger()

MEANDER_MIN = 0.4
MEANDER_SPREAD = 0.3
WIDTH_SOFT_LIMIT = 0.5
WIDTH_SOFT_FACTOR = 0.9
MIN_SHADOW_WIDTH = 0.1

Bezier = Tuple[float, float, float, float, float, float, float, float]


def group_river_points(points: Sequence[RiverPoint]) -> Dict[int, List[RiverPoint]]:
    """Group river points by river id, keeping the order rivers first appear in."""
    groups: Dict[int, List[RiverPoint]] = {}
    for point in points:
        groups.setdefault(point.river, []).append(point)
    return groups


def add_meanders(points: Sequence[Point], rng: SeededRandom) -> Path:
    """
    Insert two offset points at 1/3 and 2/3 of every span.

    The offset magnitude is drawn from [0.4, 0.7) and applied on x or y
    with opposite signs, giving each span a slight S bend.
    """
    if len(points) < 2:
        return list(points)

    out: Path = []
    for i, a in enumerate(points):
        out.append(a)
        if i + 1 >= len(points):
            break
        b = points[i + 1]

        stx, sty = (a[0] * 2 + b[0]) / 3, (a[1] * 2 + b[1]) / 3
        enx, eny = (a[0] + b[0] * 2) / 3, (a[1] + b[1] * 2) / 3

        meander = MEANDER_MIN + rng.random() * MEANDER_SPREAD
        if rng.random() > 0.5:
            stx += meander
            enx -= meander
        else:
            sty += meander
            eny -= meander
        out.append((stx, sty))
        out.append((enx, eny))
    return out


def catmull_rom_to_beziers(points: Sequence[Point], alpha: float = 1.0) -> List[Bezier]:
    """
    Convert a polyline to cubic Beziers following a Catmull-Rom spline.

    Knots use chord length raised to alpha. Endpoints are duplicated as
    phantom neighbors, and zero-length knot intervals fall back to 1.

    Args:
        points: Polyline vertices
        alpha: Knot parameterization exponent (1 = chord length)

    Returns:
        One (sx, sy, cx1, cy1, cx2, cy2, ex, ey) tuple per consecutive pair
    """
    n = len(points)
    if n < 2:
        return []

    def td(p: Point, q: Point) -> float:
        return math.hypot(q[0] - p[0], q[1] - p[1]) ** alpha

    beziers: List[Bezier] = []
    for i in range(n - 1):
        p0 = points[max(0, i - 1)]
        p1 = points[i]
        p2 = points[i + 1]
        p3 = points[min(n - 1, i + 2)]

        t0 = 0.0
        t1 = t0 + td(p0, p1)
        t2 = t1 + td(p1, p2)
        t3 = t2 + td(p2, p3)

        d20 = (t2 - t0) or 1.0
        d31 = (t3 - t1) or 1.0
        m1x = (p2[0] - p0[0]) / d20 * (t1 - t0)
        m1y = (p2[1] - p0[1]) / d20 * (t1 - t0)
        m2x = (p3[0] - p1[0]) / d31 * (t3 - t2)
        m2y = (p3[1] - p1[1]) / d31 * (t3 - t2)

        beziers.append((
            p1[0], p1[1],
            p1[0] + m1x / 3, p1[1] + m1y / 3,
            p2[0] - m2x / 3, p2[1] - m2y / 3,
            p2[0], p2[1],
        ))
    return beziers


def segment_width(index: int, flux: float) -> float:
    """Raw stroke width for the index-th segment of a river starting over flux."""
    width = index / 100 + flux / 30
    if width > WIDTH_SOFT_LIMIT:
        width = WIDTH_SOFT_LIMIT + (width - WIDTH_SOFT_LIMIT) * WIDTH_SOFT_FACTOR
    return width


def build_river_segments(cells: List[Cell], points: Sequence[RiverPoint],
                         geometry: GeometryQueries, rng: SeededRandom) -> List[BezierSegment]:
    """
    Build Bezier segments for every river with at least two points.

    Widths never decrease along a river, so a mouth is always at least as
    wide as its source.

    Args:
        cells: Cells with routed flux
        points: Ordered river points
        geometry: Point lookup used to sample flux under each segment
        rng: Shared seeded generator (meander offsets)

    Returns:
        Segments of all rivers, river by river
    """
    segments: List[BezierSegment] = []
    rivers = 0

    for river_id, river_points in group_river_points(points).items():
        if len(river_points) < 2:
            continue
        rivers += 1

        base = [(p.x, p.y) for p in river_points]
        polyline = add_meanders(base, rng) if len(base) > 2 else base

        width = 0.0
        for s, (sx, sy, cx1, cy1, cx2, cy2, ex, ey) in enumerate(catmull_rom_to_beziers(polyline)):
            cell_id = geometry.find_cell_at(sx, sy)
            flux = cells[cell_id].flux if cell_id is not None else BASE_FLUX

            width = max(width, segment_width(s, flux))
            segments.append(BezierSegment(
                sx=sx, sy=sy,
                cx1=cx1, cy1=cy1,
                cx2=cx2, cy2=cy2,
                ex=ex, ey=ey,
                width=width,
                shadow_width=max(MIN_SHADOW_WIDTH, width / 3),
                river_id=river_id,
            ))

    logger.info("River segments built", rivers=rivers, segments=len(segments))
    return segments
