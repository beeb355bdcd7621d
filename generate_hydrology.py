#!/usr/bin/env python3
"""
Generate a hydrology map and write it as JSON.

Usage:
    python generate_hydrology.py --width 640 --height 360 --seed 1234 --output map.json
"""

import json
import sys

import structlog

from py_hydro.config import configure_logging
from py_hydro.core.climate import WindToggles
from py_hydro.core.errors import InvalidConfiguration
from py_hydro.core.pipeline import HydroParams, run_hydrology

logger = structlog.get_logger()


def parse_winds(value):
    """Turn a string such as "NW" into fixed wind toggles; "random" keeps them randomized."""
    if value is None or value.lower() == "random":
        return WindToggles()
    sides = set(value.upper())
    unknown = sides - set("NESW")
    if unknown:
        raise ValueError(f"Unknown wind sides: {''.join(sorted(unknown))}")
    return WindToggles(N="N" in sides, E="E" in sides, S="S" in sides, W="W" in sides,
                       randomize=False)


def main(argv=None):
    """Main function."""
    import argparse

    parser = argparse.ArgumentParser(description="Generate a seeded hydrology map")
    parser.add_argument("--width", type=float, default=640, help="Map width")
    parser.add_argument("--height", type=float, default=360, help="Map height")
    parser.add_argument("--seed", type=int, default=1234, help="Generator seed")
    parser.add_argument("--radius", type=float, default=4.0, help="Poisson-disc spacing")
    parser.add_argument("--precip", type=float, default=7.0, help="Precipitation (0-10)")
    parser.add_argument("--downcut", type=float, default=0.1, help="Coastline downcut")
    parser.add_argument("--sea-level", type=float, default=0.2, help="Sea level (0-1)")
    parser.add_argument("--winds", default="random", help='Active winds, e.g. "NW", or "random"')
    parser.add_argument("--include-cells", action="store_true", help="Write per-cell data too")
    parser.add_argument("--output", "-o", default="-", help="Output file (default stdout)")
    parser.add_argument("--log-format", choices=["json", "console"], default="console")

    args = parser.parse_args(argv)
    configure_logging(log_format=args.log_format)

    try:
        params = HydroParams(
            width=args.width,
            height=args.height,
            poisson_radius=args.radius,
            precip=args.precip,
            downcut=args.downcut,
            sea_level=args.sea_level,
            rng_seed=args.seed,
            winds=parse_winds(args.winds),
        )
        outputs = run_hydrology(params)
    except (InvalidConfiguration, ValueError) as e:
        logger.error("Generation failed", error=str(e))
        return 1

    payload = json.dumps(outputs.to_dict(include_cells=args.include_cells))
    if args.output == "-":
        sys.stdout.write(payload + "\n")
    else:
        with open(args.output, "w") as f:
            f.write(payload)
        logger.info("Map written", path=args.output, rivers=outputs.meta.rivers_count)
    return 0


if __name__ == "__main__":
    sys.exit(main())
