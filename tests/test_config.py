import pytest

from vector_profile.config import load_options, resolve_separator
from vector_profile.errors import ConfigurationError


def test_defaults():
    options = load_options(input="wells.shp", east_north=[0, 0, 10, 0])
    assert options.buffer == 10.0
    assert options.dp == 2
    assert options.delimiter == "|"
    assert options.types == ["point", "line"]
    assert options.profile_coords == [(0, 0), (10, 0)]


@pytest.mark.parametrize("name,char", [("pipe", "|"), ("comma", ","), ("tab", "\t"), (";", ";")])
def test_separators(name, char):
    assert resolve_separator(name) == char


@pytest.mark.parametrize(
    "values",
    [
        {"east_north": [0, 0]},
        {"east_north": [0, 0, 10]},
        {},
        {"east_north": [0, 0, 1, 1], "profile_map": "line.shp"},
        {"profile_map": None, "profile_where": "cat = 1", "east_north": [0, 0, 1, 1]},
        {"east_north": [0, 0, 1, 1], "buffer": -1},
        {"east_north": [0, 0, 1, 1], "dp": 33},
        {"east_north": [0, 0, 1, 1], "layer": 0},
        {"east_north": [0, 0, 1, 1], "types": ["area"]},
        {"east_north": [0, 0, 1, 1], "types": []},
        {"east_north": [0, 0, 1, 1], "table": "wells"},
        {"east_north": [0, 0, 1, 1], "map_output": "1st-map"},
    ],
)
def test_rejected(values):
    with pytest.raises(ConfigurationError):
        load_options(input="wells.shp", **values)


def test_error_message_is_readable():
    with pytest.raises(ConfigurationError, match="Please provide only one of them"):
        load_options(input="wells.shp", east_north=[0, 0, 1, 1], profile_map="line.shp")
