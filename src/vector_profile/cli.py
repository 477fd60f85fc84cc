"""Command-line interface for vector profiling.

Usage:
    vector-profile --input wells.shp --east-north 0,0,100,0 --buffer 5
    vector-profile --input roads.shp --profile-map transect.shp --profile-where "name = 'A'" -o profile.txt
"""

from __future__ import annotations

import argparse
import sys

from loguru import logger

from . import profiler
from .config import SEPARATORS, load_options
from .errors import ProfileError


def setup_logging(verbose: bool = False):
    """Configure logging"""
    logger.remove()
    level = "DEBUG" if verbose else "INFO"
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{message}</cyan>",
        level=level,
    )


def _float_list(text: str) -> list[float]:
    try:
        return [float(v) for v in text.replace(" ", ",").split(",") if v]
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"Invalid coordinate list: {text}") from e


def _attach_coordinates(argv: list[str]) -> list[str]:
    """Glue each --east-north value to its flag so a leading minus is not read as an option."""
    out: list[str] = []
    args = iter(argv)
    for arg in args:
        if arg == "--east-north":
            value = next(args, None)
            out.append(arg if value is None else f"{arg}={value}")
        else:
            out.append(arg)
    return out


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="vector-profile",
        description="Output vector point/line values along a sampling line",
    )
    ap.add_argument("--input", "-i", required=True, help="Input point/line shapefile")
    ap.add_argument("--type", default="point,line", help="Feature types to sample: point, line or both")
    ap.add_argument(
        "--east-north",
        type=_float_list,
        action="append",
        help="Profiling line vertices as east,north[,east,north...]; may be repeated",
    )
    ap.add_argument("--profile-map", help="Shapefile or KML/KMZ holding the profiling line")
    ap.add_argument("--profile-where", help="WHERE conditions selecting one line from the profile map")
    ap.add_argument("--profile-layer", type=int, default=1, help="Profiling line map layer")
    ap.add_argument("--buffer", type=float, default=10.0, help="How far points can be from the sampling line")
    ap.add_argument("--output", "-o", default="-", help="Path to output text file or - for stdout")
    ap.add_argument(
        "--separator",
        default="pipe",
        help=f"Field separator: {', '.join(SEPARATORS)} or any literal string",
    )
    ap.add_argument("--dp", type=int, default=2, help="Number of decimal places (0-32)")
    ap.add_argument("--where", help="WHERE conditions selecting input features")
    ap.add_argument("--layer", type=int, default=1, help="Use features only from specified layer")
    ap.add_argument("--database", help="SQLite database holding the attribute table")
    ap.add_argument("--table", help="Attribute table name in --database (default: input map name)")
    ap.add_argument("--map-output", help="Name for profile line and buffer output shapefile")
    ap.add_argument("-c", dest="no_header", action="store_true", help="Do not print column names")
    ap.add_argument("-z", dest="no_z", action="store_true", help="Do not print 3D vector data (z values)")
    ap.add_argument("--verbose", "-v", action="store_true", help="Print debug messages")
    return ap


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    args = build_parser().parse_args(_attach_coordinates(argv))
    setup_logging(args.verbose)

    east_north = [v for chunk in args.east_north for v in chunk] if args.east_north else None
    try:
        options = load_options(
            input=args.input,
            types=[t.strip() for t in args.type.split(",") if t.strip()],
            east_north=east_north,
            profile_map=args.profile_map,
            profile_where=args.profile_where,
            profile_layer=args.profile_layer,
            buffer=args.buffer,
            output=args.output,
            separator=args.separator,
            dp=args.dp,
            where=args.where,
            layer=args.layer,
            database=args.database,
            table=args.table,
            no_header=args.no_header,
            no_z=args.no_z,
            map_output=args.map_output,
        )
        count = profiler.run(options)
    except ProfileError as e:
        logger.error(str(e))
        return 1

    logger.debug(f"Wrote {count} profile records")
    return 0


if __name__ == "__main__":
    sys.exit(main())
