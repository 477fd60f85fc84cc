"""End-to-end profiling runs through the library API and the command line."""

import sqlite3

import pytest
import shapefile

from vector_profile import Polyline, open_dataset, profile_dataset, scan_features
from vector_profile.cli import main
from vector_profile.config import load_options
from vector_profile.corridor import build_corridor
from vector_profile.errors import AllocationError, ConfigurationError, QueryCardinalityError
from vector_profile.profiler import load_profile, run
from vector_profile.results import ResultSet


def _pairs(results):
    return [(r.distance, r.category) for r in results]


class TestProfileDataset:
    def test_points_within_buffer(self, wells_path, straight_profile):
        with open_dataset(wells_path) as ds:
            results = profile_dataset(ds, straight_profile, 1.0)
        assert _pairs(results) == [(4.0, 3), (4.0, 9), (5.0, 7)]

    def test_narrow_buffer_drops_far_points(self, wells_path, straight_profile):
        with open_dataset(wells_path) as ds:
            results = profile_dataset(ds, straight_profile, 0.25)
        assert _pairs(results) == [(4.0, 3)]

    def test_reversed_profile(self, wells_path, straight_profile):
        with open_dataset(wells_path) as ds:
            results = profile_dataset(ds, straight_profile.reversed(), 1.0)
        assert _pairs(results) == [(5.0, 7), (6.0, 3), (6.0, 9)]

    def test_line_crossings(self, streams_path, straight_profile):
        with open_dataset(streams_path) as ds:
            results = profile_dataset(ds, straight_profile, 1.0)
        assert [r.category for r in results] == [1, 2, 2]
        assert [r.distance for r in results] == pytest.approx([3.0, 6.5, 7.5])

    def test_type_filter_skips_lines(self, streams_path, straight_profile):
        with open_dataset(streams_path) as ds:
            results = profile_dataset(ds, straight_profile, 1.0, types=("point",))
        assert len(results) == 0

    def test_elevations(self, wells_z_path, straight_profile):
        with open_dataset(wells_z_path) as ds:
            results = profile_dataset(ds, straight_profile, 1.0, with_z=True)
        assert [(r.distance, r.category, r.elevation) for r in results] == [(2.0, 1, -12.0), (8.0, 2, -15.5)]

    def test_where_filter(self, wells_path, straight_profile):
        with open_dataset(wells_path) as ds:
            with ds.attribute_store() as store:
                results = profile_dataset(ds, straight_profile, 1.0, where="depth > 5", store=store)
        assert _pairs(results) == [(4.0, 3), (5.0, 7)]

    def test_where_without_store(self, wells_path, straight_profile):
        with open_dataset(wells_path) as ds:
            with pytest.raises(ConfigurationError):
                profile_dataset(ds, straight_profile, 1.0, where="depth > 5")

    def test_where_matching_nothing(self, wells_path, straight_profile):
        with open_dataset(wells_path) as ds:
            with ds.attribute_store() as store:
                with pytest.raises(QueryCardinalityError):
                    profile_dataset(ds, straight_profile, 1.0, where="depth > 100", store=store)

    def test_record_cap(self, wells_path, straight_profile):
        with open_dataset(wells_path) as ds:
            with pytest.raises(AllocationError):
                profile_dataset(ds, straight_profile, 1.0, max_records=1)


class TestScanFeatures:
    def test_rejects_unknown_feature(self, straight_profile):
        corridor = build_corridor(straight_profile, 1.0)
        with pytest.raises(TypeError):
            scan_features(["not a feature"], straight_profile, corridor, False, ResultSet())


class TestLoadProfile:
    def test_from_coordinates(self, wells_path):
        options = load_options(input=wells_path, east_north=[0, 0, 5, 0, 5, 5])
        line = load_profile(options)
        assert line.length == 10.0

    def test_from_line_map(self, wells_path, transects_path):
        options = load_options(input=wells_path, profile_map=transects_path, profile_where="name = 'B'")
        line = load_profile(options)
        assert [(v.x, v.y) for v in line.vertices] == [(0, 0), (0, 10)]

    def test_from_kml(self, wells_path, tmp_path):
        kml = tmp_path / "route.kml"
        kml.write_text(
            '<kml xmlns="http://www.opengis.net/kml/2.2"><Placemark><LineString>'
            "<coordinates>0,0 10,0</coordinates>"
            "</LineString></Placemark></kml>"
        )
        line = load_profile(load_options(input=wells_path, profile_map=kml))
        assert line == Polyline.from_coords([(0, 0), (10, 0)])

    def test_kml_where_rejected(self, wells_path, tmp_path):
        kml = tmp_path / "route.kml"
        kml.write_text("<kml/>")
        options = load_options(input=wells_path, profile_map=kml, profile_where="cat = 1")
        with pytest.raises(ConfigurationError):
            load_profile(options)


class TestRun:
    def test_writes_table(self, wells_path, tmp_path):
        out = tmp_path / "profile.txt"
        count = run(load_options(input=wells_path, east_north=[0, 0, 10, 0], buffer=1, output=str(out)))
        assert count == 3
        assert out.read_text().splitlines() == [
            "Number|Distance|cat|name|depth",
            '1|4.00|3|"beta"|7.5',
            '2|4.00|9|"gamma"|3.25',
            '3|5.00|7|"alpha"|12.5',
        ]

    def test_record_numbers_as_categories(self, wells_z_path, tmp_path):
        out = tmp_path / "profile.txt"
        run(load_options(input=wells_z_path, east_north=[0, 0, 10, 0], buffer=1, output=str(out)))
        assert out.read_text().splitlines() == [
            "Number|Distance|Z|cat|label",
            '1|2.00|-12.00|1|"a"',
            '2|8.00|-15.50|2|"b"',
        ]

    def test_external_database(self, wells_path, tmp_path):
        db = tmp_path / "attrs.db"
        with sqlite3.connect(db) as conn:
            conn.execute("CREATE TABLE notes (cat INTEGER, note VARCHAR(20))")
            conn.executemany("INSERT INTO notes VALUES (?, ?)", [(3, 'say "hi"'), (7, "plain")])
        conn.close()
        out = tmp_path / "profile.txt"
        run(load_options(
            input=wells_path, east_north=[0, 0, 10, 0], buffer=1, output=str(out),
            database=db, table="notes", where="note IS NOT NULL",
        ))
        assert out.read_text().splitlines() == [
            "Number|Distance|cat|note",
            '1|4.00|3|"say ""hi"""',
            '2|5.00|7|"plain"',
        ]

    def test_where_needs_linked_table(self, wells_path, tmp_path):
        options = load_options(
            input=wells_path, east_north=[0, 0, 10, 0], where="depth > 5", layer=2,
            output=str(tmp_path / "out.txt"),
        )
        with pytest.raises(ConfigurationError):
            run(options)

    def test_map_output(self, wells_path, tmp_path):
        out = tmp_path / "profile.txt"
        run(load_options(
            input=wells_path, east_north=[0, 0, 10, 0], buffer=1, output=str(out),
            map_output=tmp_path / "corridor",
        ))
        r = shapefile.Reader(str(tmp_path / "corridor"))
        try:
            assert len(r) == 2
            assert [rec["kind"] for rec in r.records()] == ["line", "boundary"]
            assert r.record(0)["cat"] == 1
        finally:
            r.close()
        assert (tmp_path / "corridor.prj").exists()


class TestCli:
    def test_stdout(self, streams_path, capsys):
        code = main(["--input", str(streams_path), "--east-north", "0,0,10,0", "--buffer", "1"])
        assert code == 0
        assert capsys.readouterr().out.splitlines() == [
            "Number|Distance|cat|kind",
            '1|3.00|1|"brook"',
            '2|6.50|2|"river"',
            '3|7.50|2|"river"',
        ]

    def test_repeated_coordinates(self, wells_path, capsys):
        code = main([
            "-i", str(wells_path), "--east-north", "0,0", "--east-north", "10,0",
            "--buffer", "1", "--separator", "comma", "--dp", "0", "-c",
        ])
        assert code == 0
        assert capsys.readouterr().out.splitlines() == [
            '1,4,3,"beta",7.5',
            '2,4,9,"gamma",3.25',
            '3,5,7,"alpha",12.5',
        ]

    def test_no_z_flag(self, wells_z_path, tmp_path):
        out = tmp_path / "out.txt"
        code = main([
            "-i", str(wells_z_path), "--east-north", "0,0,10,0", "--buffer", "1", "-z", "-o", str(out),
        ])
        assert code == 0
        assert out.read_text().splitlines()[0] == "Number|Distance|cat|label"

    def test_profile_map(self, wells_path, transects_path, tmp_path):
        out = tmp_path / "out.txt"
        code = main([
            "-i", str(wells_path), "--profile-map", str(transects_path),
            "--profile-where", "name = 'A'", "--buffer", "1", "-o", str(out),
        ])
        assert code == 0
        assert len(out.read_text().splitlines()) == 4

    def test_negative_first_coordinate(self, wells_path, capsys):
        code = main(["-i", str(wells_path), "--east-north", "-5,0,10,0", "--buffer", "1", "-c"])
        assert code == 0
        assert capsys.readouterr().out.splitlines() == [
            '1|9.00|3|"beta"|7.5',
            '2|9.00|9|"gamma"|3.25',
            '3|10.00|7|"alpha"|12.5',
        ]

    def test_negative_repeated_coordinates(self, wells_path, capsys):
        code = main([
            "-i", str(wells_path), "--east-north", "-5,0", "--east-north", "10,0", "--buffer", "1", "-c",
        ])
        assert code == 0
        assert len(capsys.readouterr().out.splitlines()) == 3

    def test_text_category_fails_cleanly(self, text_cat_path):
        assert main(["-i", str(text_cat_path), "--east-north", "0,0,10,0"]) == 1

    def test_both_profile_sources(self, wells_path, transects_path):
        code = main([
            "-i", str(wells_path), "--profile-map", str(transects_path), "--east-north", "0,0,10,0",
        ])
        assert code == 1

    def test_single_coordinate_pair(self, wells_path):
        assert main(["-i", str(wells_path), "--east-north", "0,0"]) == 1

    def test_missing_input(self, tmp_path):
        assert main(["-i", str(tmp_path / "missing"), "--east-north", "0,0,10,0"]) == 1

    def test_ambiguous_profile_map(self, wells_path, transects_path):
        assert main(["-i", str(wells_path), "--profile-map", str(transects_path)]) == 1
