"""Vector datasets read from shapefiles, with CRS auto-detection and category indexing."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import BinaryIO

import shapefile
from loguru import logger
from pyproj import CRS
from pyproj.exceptions import CRSError

from .attributes import AttributeStore
from .errors import ConfigurationError, QueryCardinalityError, ResourceError
from .models import DatasetMetadata, Feature, LineFeature, PointFeature, Polyline, Vertex

FEATURE_TYPES = ("point", "line")


def detect_crs(wkt: str | None) -> tuple[int | None, str | None, bool | None]:
    """EPSG code, name and projected flag of a .prj WKT, or Nones when it can't be read."""
    if wkt is None or not wkt.strip():
        return None, None, None
    try:
        crs = CRS.from_wkt(wkt)
    except CRSError:
        logger.warning("Unable to parse CRS from .prj, leaving it undefined")
        return None, None, None
    return crs.to_epsg(), crs.name, crs.is_projected


def category_field(layer: int) -> str:
    """DBF field holding the categories of ``layer``."""
    return "cat" if layer == 1 else f"cat_{layer}"


def _shape_kind(upper_type: str) -> str:
    if "POLYGON" in upper_type:
        raise ResourceError(f"Unsupported shape type: {upper_type}. POLYGON shapes are not supported.")
    if "POINT" in upper_type:
        return "point"
    if "POLYLINE" in upper_type or upper_type in ("ARC", "ARCZ", "ARCM"):
        return "line"
    raise ResourceError(f"Unsupported shape type: {upper_type}")


class VectorDataset:
    """Point or line features of one shapefile, tagged with categories."""

    def __init__(self, reader: shapefile.Reader, name: str, prj_wkt: str | None = None):
        self.reader = reader
        self.name = name
        self.prj_wkt = prj_wkt
        self.shape_type_name = reader.shapeTypeName
        upper = self.shape_type_name.upper()
        self.kind = _shape_kind(upper)
        self.has_z = "Z" in upper
        self.fields = [f[0] for f in reader.fields[1:]]  # skip DeletionFlag
        self._category_index: dict[int, dict[int, list[int]]] = {}

    @property
    def metadata(self) -> DatasetMetadata:
        epsg, crs_name, is_projected = detect_crs(self.prj_wkt)
        return DatasetMetadata(
            name=self.name,
            shape_type_name=self.shape_type_name,
            crs_epsg=epsg,
            crs_name=crs_name,
            is_projected=is_projected,
            num_features=len(self.reader),
            has_z=self.has_z,
            fields=self.fields,
        )

    def _categories(self, layer: int) -> list[int | None]:
        field = category_field(layer)
        if field in self.fields:
            pos = self.fields.index(field)
            categories: list[int | None] = []
            for i, rec in enumerate(self.reader.iterRecords()):
                value = rec[pos]
                try:
                    categories.append(None if value is None or value == "" else int(value))
                except (TypeError, ValueError) as e:
                    raise ResourceError(
                        f"Invalid category {value!r} in field <{field}> of record {i} in <{self.name}>"
                    ) from e
            return categories
        if layer == 1:
            return list(range(1, len(self.reader) + 1))
        return [None] * len(self.reader)

    def _features(self, index: int, shape, category: int | None, types: Iterable[str]):
        if shape.shapeType == shapefile.NULL or self.kind not in types:
            return
        z = list(getattr(shape, "z", [])) if self.has_z else []

        def vertex(v: int) -> Vertex:
            x, y = shape.points[v][:2]
            return Vertex(x=x, y=y, z=z[v] if v < len(z) else None)

        if self.kind == "point":
            for v in range(len(shape.points)):
                yield PointFeature(vertex=vertex(v), category=category)
            return

        part_starts = list(shape.parts)
        for part_idx, start in enumerate(part_starts):
            end = part_starts[part_idx + 1] if part_idx + 1 < len(part_starts) else len(shape.points)
            if end - start < 2:
                logger.warning(f"Skipping degenerate line part in record {index} of <{self.name}>")
                continue
            yield LineFeature(line=Polyline(vertices=[vertex(v) for v in range(start, end)]), category=category)

    def iter_features(self, types: Iterable[str] = FEATURE_TYPES, layer: int = 1) -> Iterator[Feature]:
        """Every feature of the requested types, in file order."""
        types = tuple(types)
        categories = self._categories(layer)
        for i, shape in enumerate(self.reader.iterShapes()):
            yield from self._features(i, shape, categories[i], types)

    def category_index(self, layer: int = 1) -> dict[int, list[int]]:
        """Record numbers of each category of ``layer``."""
        if layer not in self._category_index:
            index: dict[int, list[int]] = {}
            for i, cat in enumerate(self._categories(layer)):
                if cat is not None:
                    index.setdefault(cat, []).append(i)
            self._category_index[layer] = index
        return self._category_index[layer]

    def iter_features_by_category(
        self, categories: Iterable[int], types: Iterable[str] = FEATURE_TYPES, layer: int = 1
    ) -> Iterator[Feature]:
        """Features carrying one of ``categories``, grouped in the order the categories are given."""
        types = tuple(types)
        index = self.category_index(layer)
        for cat in categories:
            for i in index.get(cat, []):
                yield from self._features(i, self.reader.shape(i), cat, types)

    def attribute_store(self, layer: int = 1) -> AttributeStore | None:
        """The attribute table linked to ``layer``, or None when the layer has no table.

        Layer 1 is always linked to the DBF table, with record numbers as
        categories when the DBF has no ``cat`` field. Other layers are linked
        only when their category field exists.
        """
        field = category_field(layer)
        if self.reader.dbf is None or (field not in self.fields and layer != 1):
            return None
        store = AttributeStore.from_dbf(self.reader, self.name, field, add_key=field not in self.fields)
        logger.debug(
            f"Layer:{layer}; Database:<{store.database}>; Table:<{store.table}>; Key:<{store.key}>"
        )
        return store

    def close(self) -> None:
        self.reader.close()

    def __enter__(self) -> VectorDataset:
        return self

    def __exit__(self, *exc) -> None:
        self.close()


def open_dataset(
    shp_path: str | Path | None = None,
    *,
    shp_file: BinaryIO | None = None,
    shx_file: BinaryIO | None = None,
    dbf_file: BinaryIO | None = None,
    prj_wkt: str | None = None,
    name: str = "upload",
) -> VectorDataset:
    """Open a point or line shapefile.

    Supports two modes:
    - File path: pass ``shp_path`` (the .prj is auto-discovered)
    - File objects: pass ``shp_file``, ``shx_file``, ``dbf_file``, and optionally ``prj_wkt``
    """
    if shp_path is not None:
        shp_path = Path(shp_path)
        base = shp_path.with_suffix("") if shp_path.suffix.lower() == ".shp" else shp_path
        try:
            sf = shapefile.Reader(str(base))
        except (shapefile.ShapefileException, OSError) as e:
            raise ResourceError(f"Unable to open vector map <{shp_path}>: {e}") from e
        prj_path = Path(str(base) + ".prj")
        prj_wkt = prj_path.read_text() if prj_path.exists() else None
        name = base.name
    elif shp_file is not None:
        try:
            sf = shapefile.Reader(shp=shp_file, shx=shx_file, dbf=dbf_file)
        except (shapefile.ShapefileException, OSError) as e:
            raise ResourceError(f"Unable to open uploaded vector map: {e}") from e
    else:
        raise ValueError("Provide either shp_path or shp_file")

    try:
        dataset = VectorDataset(sf, name, prj_wkt)
    except ResourceError:
        sf.close()
        raise
    logger.debug(f"Opened <{name}>: {dataset.shape_type_name}, {len(sf)} records")
    return dataset


def read_profile_line(dataset: VectorDataset, where: str | None = None, layer: int = 1) -> Polyline:
    """The single profiling line held by ``dataset``.

    Without ``where`` the dataset must contain exactly one line. With it, the
    clause must select exactly one category and that category exactly one line.
    """
    if dataset.kind != "line":
        raise QueryCardinalityError(f"Profile map <{dataset.name}> contains no lines")

    if where is None:
        lines = list(dataset.iter_features(("line",), layer))
        if len(lines) > 1:
            raise QueryCardinalityError(
                f"Your input profile map <{dataset.name}> contains more than one line. "
                "Currently it's not supported. Provide WHERE conditions to get only one line."
            )
    else:
        store = dataset.attribute_store(layer)
        if store is None:
            raise ConfigurationError(
                f"No database connection defined for map <{dataset.name}> layer {layer}, "
                "but WHERE condition is provided"
            )
        with store:
            cats = store.select_keys(where)
        if not cats:
            raise QueryCardinalityError("No features match your query")
        if len(cats) > 1:
            raise QueryCardinalityError(
                "Your query matches more than one record in input profiling map. "
                "Currently it's not supported. Enhance WHERE conditions to get only one line."
            )
        lines = list(dataset.iter_features_by_category(cats, ("line",), layer))
        if len(lines) > 1:
            raise QueryCardinalityError(
                "Your query matches more than one line in input profiling map. "
                "Currently it's not supported. Enhance WHERE conditions to get only one line."
            )

    if not lines:
        raise QueryCardinalityError(f"No profiling line found in <{dataset.name}>")
    return lines[0].line
