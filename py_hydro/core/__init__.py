"""
Core hydrology generation functionality.
"""

from .cells import BezierSegment, Cell, FeatureType, GeometryQueries, RiverPoint, RiverPointKind
from .climate import Climate, ClimateOptions, WindToggles
from .errors import GenerationCancelled, HydrologyError, InvalidConfiguration
from .pipeline import HydroMeta, HydroOutputs, HydroParams, run_hydrology
from .rng import SeededRandom
from .voronoi_graph import CellGraph, generate_cell_graph

__all__ = ['BezierSegment', 'Cell', 'FeatureType', 'GeometryQueries', 'RiverPoint', 'RiverPointKind',
           'Climate', 'ClimateOptions', 'WindToggles',
           'GenerationCancelled', 'HydrologyError', 'InvalidConfiguration',
           'HydroMeta', 'HydroOutputs', 'HydroParams', 'run_hydrology',
           'SeededRandom', 'CellGraph', 'generate_cell_graph']
