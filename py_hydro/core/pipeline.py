"""
Hydrology orchestrator.

Runs every stage in a fixed order against one seeded generator:
graph, height seeding, coastline downcut, precipitation, depression
resolution, river downcut, feature markup, coastlines, flux routing and
river geometry.
"""

import threading
import time
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

import structlog
from pydantic import BaseModel, Field

from ..config import settings
from .cells import BezierSegment, Cell, Path, RiverPoint
from .climate import Climate, ClimateOptions, WindToggles
from .coastline import build_coastlines
from .erosion import downcut_coastline, downcut_rivers
from .errors import GenerationCancelled, InvalidConfiguration
from .features import mark_features
from .heightmap_generator import HeightmapGenerator, HeightmapOptions
from .hydrology import HydrologyOptions, drop_trivial_rivers, resolve_depressions, route_flux_and_rivers
from .rivers import build_river_segments
from .rng import SeededRandom
from .voronoi_graph import generate_cell_graph

logger = structlog.get_logger()


class HydroParams(BaseModel):
    """Parameters for one hydrology run."""

    width: float = Field(..., gt=0, description="Map width")
    height: float = Field(..., gt=0, description="Map height")
    poisson_radius: float = Field(4.0, gt=0, description="Minimum spacing between cell sites")
    precip: float = Field(7.0, ge=0, le=10, description="Moisture carried by the winds")
    downcut: float = Field(0.1, ge=0, le=1, description="Coastline downcut amount")
    sea_level: float = Field(0.2, ge=0, le=1, description="Land/water height threshold")
    rng_seed: int = Field(1234, description="Seed for the shared generator")
    winds: WindToggles = Field(default_factory=WindToggles)


@dataclass
class HydroMeta:
    """Run summary."""

    rivers_count: int
    seed_used: int
    cells_count: int
    depression_passes: int
    unresolved_depressions: int
    winds: str = ""
    elapsed_seconds: float = 0.0


@dataclass
class HydroOutputs:
    """Everything a run produces; plain data only."""

    cells: List[Cell]
    coast_islands: List[Path]
    coast_lakes: List[Path]
    river_points: List[RiverPoint]
    river_segments: List[BezierSegment]
    meta: HydroMeta
    islands: int = 0
    lakes: int = 0

    def to_dict(self, include_cells: bool = True) -> Dict[str, Any]:
        """Convert to JSON-serializable primitives."""
        data: Dict[str, Any] = {
            "coast_islands": [[list(p) for p in ring] for ring in self.coast_islands],
            "coast_lakes": [[list(p) for p in ring] for ring in self.coast_lakes],
            "river_points": [asdict(p) for p in self.river_points],
            "river_segments": [asdict(s) for s in self.river_segments],
            "islands": self.islands,
            "lakes": self.lakes,
            "meta": asdict(self.meta),
        }
        if include_cells:
            data["cells"] = [asdict(c) for c in self.cells]
        return data


def validate_params(params: HydroParams) -> None:
    """Reject maps larger than the configured limits."""
    if params.width > settings.max_map_width or params.height > settings.max_map_height:
        raise InvalidConfiguration(
            f"Map {params.width}x{params.height} exceeds the "
            f"{settings.max_map_width}x{settings.max_map_height} limit"
        )


def run_hydrology(params: HydroParams,
                  cancel_event: Optional[threading.Event] = None) -> HydroOutputs:
    """
    Generate a complete hydrology map from params.

    Args:
        params: Map size, climate knobs and seed
        cancel_event: Set to abort between stages

    Returns:
        HydroOutputs with cells, coastlines, rivers and metadata

    Raises:
        InvalidConfiguration: If the map or sampling grid is out of bounds
        GenerationCancelled: If cancel_event is set before the run completes
    """
    start_time = time.time()
    validate_params(params)

    def checkpoint(stage: str) -> None:
        if cancel_event is not None and cancel_event.is_set():
            logger.info("Generation cancelled", stage=stage)
            raise GenerationCancelled(f"Generation cancelled before {stage}")

    logger.info("Starting hydrology generation",
                width=params.width, height=params.height, seed=params.rng_seed)

    rng = SeededRandom(params.rng_seed)
    width, height = params.width, params.height
    sea_level = params.sea_level

    # 1) Cell graph
    checkpoint("graph")
    radius = max(params.poisson_radius, min(width, height) / 100)
    graph = generate_cell_graph(width, height, radius, rng,
                                max_grid_cells=settings.max_sampling_grid_cells)
    cells = graph.cells

    # 2) Heights: central island plus hills
    checkpoint("heightmap")
    heightmap = HeightmapGenerator(
        graph, rng, sea_level=sea_level,
        options=HeightmapOptions(min_blob_height=settings.blob_min_height),
    )
    heightmap.generate()

    # 3) Erosion, precipitation, depressions, river downcut
    checkpoint("erosion")
    downcut_coastline(cells, params.downcut, sea_level)

    checkpoint("precipitation")
    climate = Climate(cells, graph, width, height, rng,
                      ClimateOptions(precipitation=params.precip, sea_level=sea_level))
    winds = climate.calculate_precipitation(params.winds)

    checkpoint("depressions")
    depressions = resolve_depressions(cells, sea_level,
                                      max_passes=settings.depression_max_passes,
                                      epsilon=settings.pit_raise_epsilon)
    downcut_rivers(cells, params.downcut, sea_level)

    # 4) Features and coastlines
    checkpoint("features")
    summary = mark_features(cells, sea_level)
    coastlines = build_coastlines(cells, graph, sea_level, eps=settings.coast_snap_epsilon)

    # 5) Rivers
    checkpoint("rivers")
    routed = route_flux_and_rivers(cells, graph, HydrologyOptions(
        sea_level=sea_level,
        source_flux_threshold=settings.source_flux_threshold,
        delta_flux_threshold=settings.delta_flux_threshold,
    ))
    river_points = drop_trivial_rivers(routed.points)
    segments = build_river_segments(cells, river_points, graph, rng)

    elapsed = time.time() - start_time
    meta = HydroMeta(
        rivers_count=routed.rivers_count,
        seed_used=params.rng_seed,
        cells_count=len(cells),
        depression_passes=depressions.passes,
        unresolved_depressions=depressions.remaining,
        winds="".join(side for side in "NESW" if getattr(winds, side)),
        elapsed_seconds=elapsed,
    )

    logger.info("Hydrology generation completed",
                cells=len(cells),
                rivers=routed.rivers_count,
                segments=len(segments),
                island_rings=len(coastlines.islands),
                lake_rings=len(coastlines.lakes),
                elapsed=round(elapsed, 3))

    return HydroOutputs(
        cells=cells,
        coast_islands=coastlines.islands,
        coast_lakes=coastlines.lakes,
        river_points=river_points,
        river_segments=segments,
        meta=meta,
        islands=summary.islands,
        lakes=summary.lakes,
    )
