"""Buffer corridor around a profiling line and point containment against it.

The corridor is the profiling line buffered by the tolerance radius with
round joins at every bend and flat caps at both ends, so nothing beyond the
first or last vertex is sampled.
"""

from __future__ import annotations

import shapely
from loguru import logger
from shapely.geometry import Point

from .models import Corridor, Polyline

# Segments used to approximate a quarter circle in round joins.
JOIN_QUAD_SEGS = 16

# Points closer than this (relative to their coordinate magnitude) to the area lie on it.
BOUNDARY_EPSILON = 1e-9


def build_corridor(polyline: Polyline, tolerance: float) -> Corridor:
    """Build the flat-capped buffer of ``polyline`` with radius ``tolerance``."""
    if tolerance < 0:
        raise ValueError(f"Tolerance can not be less than 0, got {tolerance}")

    line = polyline.to_shape()
    if line.length == 0:
        area = Point(line.coords[0])
    elif tolerance == 0:
        area = line
    else:
        area = line.buffer(tolerance, quad_segs=JOIN_QUAD_SEGS, cap_style="flat", join_style="round")
    shapely.prepare(area)

    logger.debug(f"Corridor {area.geom_type} with {shapely.get_num_coordinates(area)} points for tolerance {tolerance}")
    return Corridor(area=area, tolerance=tolerance)


def point_in_corridor(x: float, y: float, corridor: Corridor) -> bool:
    """Whether (x, y) lies inside the corridor.

    Points on the outline count as inside, which lets a zero tolerance
    corridor match points lying on the line itself.
    """
    point = Point(x, y)
    if corridor.area.covers(point):
        return True
    return corridor.area.distance(point) <= BOUNDARY_EPSILON * max(1.0, abs(x), abs(y))
