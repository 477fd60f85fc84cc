"""Vector map profiling: sample point and line features along a profiling line."""

from .corridor import build_corridor, point_in_corridor
from .formatter import FormatConfig, write_profile
from .intersect import intersect
from .kml_reader import read_kml_profile
from .models import Corridor, LineFeature, PointFeature, Polyline, ResultRecord, Vertex
from .profiler import profile_dataset, scan_features
from .projection import project_distance
from .reader import detect_crs, open_dataset, read_profile_line
from .results import ResultSet, sort_results

__all__ = [
    "Corridor",
    "FormatConfig",
    "LineFeature",
    "PointFeature",
    "Polyline",
    "ResultRecord",
    "ResultSet",
    "Vertex",
    "build_corridor",
    "detect_crs",
    "intersect",
    "open_dataset",
    "point_in_corridor",
    "profile_dataset",
    "project_distance",
    "read_kml_profile",
    "read_profile_line",
    "scan_features",
    "sort_results",
    "write_profile",
]
