"""Persist the profiling line and its corridor as a shapefile."""

from __future__ import annotations

from pathlib import Path

import shapefile
from loguru import logger

from .errors import ResourceError
from .models import Corridor, Polyline


def write_profile_map(
    path: str | Path,
    profile: Polyline,
    corridor: Corridor,
    category: int = 1,
    prj_wkt: str | None = None,
) -> Path:
    """Write the profile line and the corridor boundary as two 2-D polyline records.

    The line record carries ``category``; the boundary record has no category.
    Returns the base path of the written shapefile.
    """
    base = Path(path)
    if base.suffix.lower() == ".shp":
        base = base.with_suffix("")

    try:
        w = shapefile.Writer(str(base), shapeType=shapefile.POLYLINE)
    except (shapefile.ShapefileException, OSError) as e:
        raise ResourceError(f"Unable to create vector map <{base}>: {e}") from e

    try:
        w.field("cat", "N", 10, 0)
        w.field("kind", "C", 10)
        w.line([[(v.x, v.y) for v in profile.vertices]])
        w.record(cat=category, kind="line")
        w.line([[(x, y) for x, y in corridor.ring]])
        w.record(cat=None, kind="boundary")
    finally:
        w.close()

    if prj_wkt:
        Path(str(base) + ".prj").write_text(prj_wkt)

    logger.info(f"Profile line and buffer written to <{base}.shp>")
    return base
