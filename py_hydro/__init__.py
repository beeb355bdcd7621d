"""
py-hydro: seeded fantasy-map hydrology generation.
"""

__version__ = "0.1.0"
