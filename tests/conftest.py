from pathlib import Path

import pytest
import shapefile

from vector_profile.models import Polyline

WGS84_UTM30_WKT = (
    'PROJCS["WGS 84 / UTM zone 30N",GEOGCS["WGS 84",DATUM["WGS_1984",'
    'SPHEROID["WGS 84",6378137,298.257223563]],PRIMEM["Greenwich",0],'
    'UNIT["degree",0.0174532925199433]],PROJECTION["Transverse_Mercator"],'
    'PARAMETER["latitude_of_origin",0],PARAMETER["central_meridian",-3],'
    'PARAMETER["scale_factor",0.9996],PARAMETER["false_easting",500000],'
    'PARAMETER["false_northing",0],UNIT["metre",1],AUTHORITY["EPSG","32630"]]'
)


@pytest.fixture
def straight_profile():
    return Polyline.from_coords([(0, 0), (10, 0)])


@pytest.fixture
def wells_path(tmp_path) -> Path:
    """Point shapefile around the (0,0)-(10,0) profile."""
    base = tmp_path / "wells"
    w = shapefile.Writer(str(base), shapeType=shapefile.POINT)
    w.field("cat", "N", 10, 0)
    w.field("name", "C", 20)
    w.field("depth", "N", 10, 2)
    for cat, x, y, name, depth in [
        (7, 5.0, 0.5, "alpha", 12.5),
        (9, 4.0, -0.3, "gamma", 3.25),
        (3, 4.0, 0.2, "beta", 7.5),
        (11, 5.0, 2.0, "outside", 1.0),
    ]:
        w.point(x, y)
        w.record(cat, name, depth)
    w.close()
    Path(str(base) + ".prj").write_text(WGS84_UTM30_WKT)
    return base


@pytest.fixture
def wells_z_path(tmp_path) -> Path:
    """3-D point shapefile without a cat field."""
    base = tmp_path / "soundings"
    w = shapefile.Writer(str(base), shapeType=shapefile.POINTZ)
    w.field("label", "C", 10)
    for x, y, z, label in [(2.0, 0.5, -12.0, "a"), (8.0, -0.5, -15.5, "b"), (8.0, 3.0, -1.0, "c")]:
        w.pointz(x, y, z)
        w.record(label)
    w.close()
    return base


@pytest.fixture
def streams_path(tmp_path) -> Path:
    """Line shapefile crossing the (0,0)-(10,0) profile."""
    base = tmp_path / "streams"
    w = shapefile.Writer(str(base), shapeType=shapefile.POLYLINE)
    w.field("cat", "N", 10, 0)
    w.field("kind", "C", 10)
    w.line([[(3, -5), (3, 5)]])
    w.record(1, "brook")
    w.line([[(6, -2), (7, 2), (8, -2)]])
    w.record(2, "river")
    w.line([[(0, 3), (10, 3)]])
    w.record(4, "canal")
    w.close()
    return base


@pytest.fixture
def transects_path(tmp_path) -> Path:
    """Line shapefile holding two candidate profiling lines."""
    base = tmp_path / "transects"
    w = shapefile.Writer(str(base), shapeType=shapefile.POLYLINE)
    w.field("cat", "N", 10, 0)
    w.field("name", "C", 10)
    w.line([[(0, 0), (10, 0)]])
    w.record(1, "A")
    w.line([[(0, 0), (0, 10)]])
    w.record(2, "B")
    w.close()
    return base


@pytest.fixture
def single_transect_path(tmp_path) -> Path:
    base = tmp_path / "single"
    w = shapefile.Writer(str(base), shapeType=shapefile.POLYLINE)
    w.field("cat", "N", 10, 0)
    w.line([[(0, 0), (10, 0)]])
    w.record(1)
    w.close()
    return base


@pytest.fixture
def text_cat_path(tmp_path) -> Path:
    """Point shapefile whose cat field holds text."""
    base = tmp_path / "labelled"
    w = shapefile.Writer(str(base), shapeType=shapefile.POINT)
    w.field("cat", "C", 10)
    w.point(5.0, 0.5)
    w.record("12")
    w.point(6.0, 0.5)
    w.record("north")
    w.close()
    return base
