"""Intersection points between two polylines."""

from __future__ import annotations

import math
from collections.abc import Iterator

from shapely.geometry import Point
from shapely.geometry.base import BaseGeometry

from .models import Polyline, Vertex


def _shape(polyline: Polyline) -> BaseGeometry:
    line = polyline.to_shape()
    return Point(line.coords[0]) if line.length == 0 else line


def _points(geom: BaseGeometry) -> Iterator[tuple[float, float]]:
    """Coordinates of an intersection result.

    Shared stretches of collinear segments come back as lines; every vertex
    of them is reported.
    """
    if geom.is_empty:
        return
    if hasattr(geom, "geoms"):
        for part in geom.geoms:
            yield from _points(part)
        return
    for x, y, *_ in geom.coords:
        yield x, y


def _interpolate_z(polyline: Polyline, travelled: float) -> float | None:
    """z at ``travelled`` along ``polyline``, or None when the segment there lacks z at either end."""
    vertices = polyline.vertices
    start = 0.0
    for i in range(len(vertices) - 1):
        a, b = vertices[i], vertices[i + 1]
        length = math.hypot(b.x - a.x, b.y - a.y)
        if travelled <= start + length or i == len(vertices) - 2:
            if a.z is None or b.z is None:
                return None
            u = 0.0 if length == 0 else min(1.0, max(0.0, (travelled - start) / length))
            return a.z + u * (b.z - a.z)
        start += length
    return None


def intersect(polyline_a: Polyline, polyline_b: Polyline) -> list[Vertex]:
    """All points where ``polyline_a`` and ``polyline_b`` meet, ordered along ``polyline_a``.

    Points where the lines meet at a shared vertex are reported once. The z of
    each point is interpolated along ``polyline_b`` when its segment has z at
    both ends.
    """
    shape_a = _shape(polyline_a)
    shape_b = _shape(polyline_b)
    if not shape_a.intersects(shape_b):
        return []

    seen: set[tuple[float, float]] = set()
    points: list[tuple[float, float]] = []
    for xy in _points(shape_a.intersection(shape_b)):
        if xy not in seen:
            seen.add(xy)
            points.append(xy)
    if shape_a.geom_type == "LineString":
        points.sort(key=lambda xy: shape_a.project(Point(xy)))

    found = []
    for x, y in points:
        travelled = shape_b.project(Point(x, y)) if shape_b.geom_type == "LineString" else 0.0
        found.append(Vertex(x=x, y=y, z=_interpolate_z(polyline_b, travelled)))
    return found
