"""Profiling run: corridor, feature scan, sort and output."""

from __future__ import annotations

import contextlib
import sys
from collections.abc import Iterable
from typing import TextIO

from loguru import logger

from .attributes import AttributeStore
from .config import ProfileOptions
from .corridor import build_corridor, point_in_corridor
from .errors import AllocationError, ConfigurationError, QueryCardinalityError, ResourceError
from .formatter import FormatConfig, write_profile
from .intersect import intersect
from .kml_reader import KML_SUFFIXES, read_kml_profile
from .models import Corridor, Feature, LineFeature, PointFeature, Polyline
from .projection import project_distance
from .reader import VectorDataset, category_field, open_dataset, read_profile_line
from .results import ResultSet
from .writer import write_profile_map


def _add(results: ResultSet, distance: float, category: int | None, elevation: float | None) -> None:
    if not results.append(distance, category, elevation):
        count = len(results)
        results.clear()
        raise AllocationError(f"Out of memory after {count} profile records")


def scan_features(
    features: Iterable[Feature],
    profile: Polyline,
    corridor: Corridor,
    with_z: bool,
    results: ResultSet,
) -> None:
    """Add every feature touching the corridor (points) or crossing the profile (lines) to ``results``."""
    line = profile.to_shape()
    for feature in features:
        if isinstance(feature, PointFeature):
            v = feature.vertex
            if point_in_corridor(v.x, v.y, corridor):
                p = project_distance(v, line, with_z)
                _add(results, p.distance, feature.category, p.elevation)
        elif isinstance(feature, LineFeature):
            for point in intersect(profile, feature.line):
                p = project_distance(point, line, with_z)
                _add(results, p.distance, feature.category, p.elevation)
        else:
            raise TypeError(f"Unsupported feature: {feature!r}")


def profile_dataset(
    dataset: VectorDataset,
    profile: Polyline,
    tolerance: float,
    *,
    types: Iterable[str] = ("point", "line"),
    layer: int = 1,
    where: str | None = None,
    with_z: bool = False,
    store: AttributeStore | None = None,
    corridor: Corridor | None = None,
    max_records: int | None = None,
) -> ResultSet:
    """Sorted profile records of ``dataset`` along ``profile``.

    With ``where`` only features whose category is selected by the clause in
    ``store`` are scanned.
    """
    if corridor is None:
        corridor = build_corridor(profile, tolerance)
    results = ResultSet(max_records=max_records)

    if where is not None:
        if store is None:
            raise ConfigurationError(
                f"No database connection defined for map <{dataset.name}> layer {layer}, "
                "but WHERE condition is provided"
            )
        cats = store.select_keys(where)
        if not cats:
            raise QueryCardinalityError("No features match your query")
        features = dataset.iter_features_by_category(cats, types, layer)
    else:
        features = dataset.iter_features(types, layer)

    scan_features(features, profile, corridor, with_z, results)
    logger.debug(f"There are {len(results)} features matching profile line")
    results.sort()
    return results


def load_profile(options: ProfileOptions) -> Polyline:
    """The profiling line from explicit coordinates, a line shapefile or a KML file."""
    if options.profile_map is None:
        return Polyline.from_coords(options.profile_coords)

    if options.profile_map.suffix.lower() in KML_SUFFIXES:
        if options.profile_where is not None:
            raise ConfigurationError("WHERE conditions are not supported for KML profile maps")
        return read_kml_profile(str(options.profile_map))

    with open_dataset(options.profile_map) as pro:
        return read_profile_line(pro, options.profile_where, options.profile_layer)


def _link(dataset: VectorDataset, options: ProfileOptions) -> AttributeStore | None:
    if options.database is not None:
        table = options.table or dataset.name
        return AttributeStore.open(options.database, table, category_field(options.layer))
    return dataset.attribute_store(options.layer)


@contextlib.contextmanager
def _open_sink(output: str):
    if output == "-":
        yield sys.stdout
        return
    try:
        sink: TextIO = open(output, "w", encoding="utf-8", newline="")
    except OSError as e:
        raise ResourceError(f"Unable to open file <{output}>: {e}") from e
    with sink:
        yield sink


def run(options: ProfileOptions) -> int:
    """Profile ``options.input`` and write the table. Returns the number of records written."""
    with contextlib.ExitStack() as stack:
        sink = stack.enter_context(_open_sink(options.output))
        profile = load_profile(options)
        dataset = stack.enter_context(open_dataset(options.input))

        with_z = dataset.has_z and not options.no_z
        store = _link(dataset, options)
        if store is not None:
            stack.callback(store.close)
        elif options.where is not None:
            raise ConfigurationError(
                f"No database connection defined for map <{dataset.name}> layer {options.layer}, "
                "but WHERE condition is provided"
            )

        corridor = build_corridor(profile, options.buffer)
        if options.map_output is not None:
            write_profile_map(options.map_output, profile, corridor, 1, dataset.prj_wkt)

        results = profile_dataset(
            dataset,
            profile,
            options.buffer,
            types=options.types,
            layer=options.layer,
            where=options.where,
            with_z=with_z,
            store=store,
            corridor=corridor,
        )

        config = FormatConfig(
            delimiter=options.delimiter,
            dp=options.dp,
            with_z=with_z,
            columns=store.describe() if store is not None else None,
            header=not options.no_header,
        )
        return write_profile(results, sink, config, store)
