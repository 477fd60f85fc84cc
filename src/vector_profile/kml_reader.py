"""KMZ/KML reader for profiling lines.

KMZ is a ZIP archive containing KML. KML coordinates are always WGS84 (EPSG:4326)
in ``longitude,latitude,altitude`` format, so the profile and the profiled
dataset must share that CRS for distances to make sense.
"""

from __future__ import annotations

import io
import zipfile
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import BinaryIO

from loguru import logger

from .errors import QueryCardinalityError, ResourceError
from .models import Polyline, Vertex

KML_NS = "{http://www.opengis.net/kml/2.2}"
KML_SUFFIXES = (".kml", ".kmz")


def read_kml_profile(file: str | BinaryIO) -> Polyline:
    """Read the single ``LineString`` of a KMZ (or plain KML) file as a profiling line.

    Args:
        file: Path to a .kmz/.kml file, or a file-like object containing KMZ/KML bytes.
    """
    kml_text = _kml_text(file)
    try:
        root = ET.fromstring(kml_text)
    except ET.ParseError as e:
        raise ResourceError(f"Unable to parse KML: {e}") from e

    lines = _extract_linestrings(root)
    if len(lines) != 1:
        raise QueryCardinalityError(
            f"KML profile must contain exactly one LineString, found {len(lines)}"
        )
    vertices = lines[0]
    if len(vertices) < 2:
        raise QueryCardinalityError("At least profile start and end coordinates are required")
    logger.debug(f"KML profile line with {len(vertices)} vertices")
    return Polyline(vertices=vertices)


def _kml_text(file: str | BinaryIO) -> str:
    """KML document text from a KML/KMZ path or file object."""
    if isinstance(file, str):
        try:
            data = Path(file).read_bytes()
        except OSError as e:
            raise ResourceError(f"Unable to open profile map <{file}>: {e}") from e
    else:
        data = file.read()

    if not zipfile.is_zipfile(io.BytesIO(data)):
        return data.decode("utf-8", errors="replace")

    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        kml_names = [n for n in zf.namelist() if n.lower().endswith(".kml")]
        if not kml_names:
            raise ResourceError("No .kml file found in KMZ archive")
        # doc.kml is the root document by convention
        kml_name = next((n for n in kml_names if n.lower() == "doc.kml"), kml_names[0])
        return zf.read(kml_name).decode("utf-8", errors="replace")


def _extract_linestrings(root: ET.Element) -> list[list[Vertex]]:
    """Vertices of every ``LineString`` in the KML tree."""
    lines: list[list[Vertex]] = []
    for elem in root.iter(f"{KML_NS}LineString"):
        coords_elem = elem.find(f"{KML_NS}coordinates")
        if coords_elem is not None and coords_elem.text:
            lines.append(_parse_coordinates_text(coords_elem.text))
    return lines


def _parse_coordinates_text(text: str) -> list[Vertex]:
    """Parse a KML ``<coordinates>`` text block.

    Format: ``lon,lat[,alt] lon,lat[,alt] ...`` (whitespace-separated tuples).
    """
    vertices: list[Vertex] = []
    for token in text.strip().split():
        parts = token.split(",")
        if len(parts) < 2:
            continue
        try:
            lon, lat = float(parts[0]), float(parts[1])
            alt = float(parts[2]) if len(parts) >= 3 else None
        except ValueError as e:
            raise ResourceError(f"Invalid KML coordinate <{token}>") from e
        vertices.append(Vertex(x=lon, y=lat, z=alt))
    return vertices
