"""Pydantic data models for the profiling pipeline."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field
from shapely.geometry import LineString, Polygon
from shapely.geometry.base import BaseGeometry


class Vertex(BaseModel):
    """A single 2-D or 3-D coordinate."""

    model_config = ConfigDict(frozen=True)

    x: float
    y: float
    z: float | None = None


class Polyline(BaseModel):
    """An ordered chain of at least two vertices."""

    model_config = ConfigDict(frozen=True)

    vertices: list[Vertex] = Field(min_length=2)

    @classmethod
    def from_coords(cls, coords) -> Polyline:
        """Build a polyline from ``(x, y)`` or ``(x, y, z)`` tuples."""
        return cls(vertices=[Vertex(x=c[0], y=c[1], z=c[2] if len(c) > 2 else None) for c in coords])

    @property
    def length(self) -> float:
        return self.to_shape().length

    def reversed(self) -> Polyline:
        return Polyline(vertices=list(reversed(self.vertices)))

    def to_shape(self) -> LineString:
        """Planar shapely line through the vertices; z is left out."""
        return LineString([(v.x, v.y) for v in self.vertices])


class Corridor(BaseModel):
    """Area around a profiling line that point features must fall in.

    ``area`` is normally a polygon. A zero tolerance leaves the line itself
    and a line collapsed onto one spot leaves a point.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    area: BaseGeometry
    tolerance: float = Field(ge=0)

    @property
    def ring(self) -> list[tuple[float, float]]:
        """Closed outline of the area, first point repeated last."""
        if isinstance(self.area, Polygon):
            return [(x, y) for x, y, *_ in self.area.exterior.coords]
        coords = [(x, y) for x, y, *_ in self.area.coords]
        return coords + coords[-2::-1] if len(coords) > 1 else coords * 2


class PointFeature(BaseModel):
    """A point read from the input dataset."""

    kind: Literal["point"] = "point"
    vertex: Vertex
    category: int | None = None


class LineFeature(BaseModel):
    """A line read from the input dataset."""

    kind: Literal["line"] = "line"
    line: Polyline
    category: int | None = None


Feature = Annotated[PointFeature | LineFeature, Field(discriminator="kind")]


class ResultRecord(BaseModel):
    """A feature match positioned along the profiling line."""

    model_config = ConfigDict(frozen=True)

    distance: float = Field(ge=0)
    category: int | None = None
    elevation: float | None = None


class Column(BaseModel):
    """An attribute table column as declared by the table."""

    name: str
    sql_type: str


class DatasetMetadata(BaseModel):
    """Metadata about an opened vector dataset."""

    name: str
    shape_type_name: str
    crs_epsg: int | None = None
    crs_name: str | None = None
    is_projected: bool | None = None
    num_features: int
    has_z: bool
    fields: list[str]


class ProfileResult(BaseModel):
    """Complete result of profiling a dataset."""

    metadata: DatasetMetadata
    tolerance: float
    profile_length: float
    columns: list[str]
    records: list[ResultRecord]
