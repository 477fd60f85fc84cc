"""Projection of points onto the profiling line."""

from __future__ import annotations

import math

from pydantic import BaseModel
from shapely.geometry import LineString, Point

from .models import Polyline, Vertex


class Projection(BaseModel):
    """Where a point lands on a polyline.

    ``distance`` is measured along the polyline from its first vertex;
    ``offset`` is the planar distance between the point and the line.
    """

    distance: float
    offset: float
    x: float
    y: float
    segment: int
    elevation: float | None = None


def _segment_at(line: LineString, distance: float) -> int:
    """Index of the first segment reaching ``distance`` along ``line``."""
    coords = list(line.coords)
    travelled = 0.0
    for i in range(len(coords) - 1):
        (x1, y1), (x2, y2) = coords[i][:2], coords[i + 1][:2]
        travelled += math.hypot(x2 - x1, y2 - y1)
        if distance <= travelled:
            return i
    return len(coords) - 2


def project_distance(point: Vertex, polyline: Polyline | LineString, is_3d: bool = False) -> Projection:
    """Project ``point`` onto the nearest position of ``polyline``.

    When two segments are equally near (a point on or facing a shared vertex)
    the one that comes first along the line wins. ``polyline`` may be given
    as a ready-made shapely line to save rebuilding it for every point.
    """
    line = polyline if isinstance(polyline, LineString) else polyline.to_shape()
    target = Point(point.x, point.y)
    distance = line.project(target)
    foot = line.interpolate(distance)
    return Projection(
        distance=distance,
        offset=target.distance(foot),
        x=foot.x,
        y=foot.y,
        segment=_segment_at(line, distance),
        elevation=point.z if is_3d else None,
    )
