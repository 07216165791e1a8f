import csv
import json

from trailsign import reporting
from trailsign.models.intersection import Intersection


def _intersection(cluster_id="cluster_c2r3cd", trail_count=2, **overrides):
    values = dict(
        cluster_id=cluster_id,
        trail_count=trail_count,
        trail_names=["Ridge", "Creek <Loop>"][:trail_count],
        activities={"snowshoe": True, "nordic_ski": False, "winter_fat_bike": True, "summer_mtb": False},
        lat=49.68125,
        lon=-115.98565,
        radius_m=6.6,
        photos=["a.jpg", "b.jpg"],
    )
    values.update(overrides)
    return Intersection(**values)


def test_write_log_prefixes_level_and_timestamp(tmp_path):
    log_path = tmp_path / "logs" / "trailsign.log"
    reporting.write_log(["[WARNING] careful", "plain entry"], outfile=str(log_path))

    lines = log_path.read_text().splitlines()
    assert lines[0].endswith("[WARNING] careful")
    assert lines[1].endswith("[INFO] plain entry")
    assert lines[0].startswith("[")


def test_ensure_log_initialized_creates_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    path = reporting.ensure_log_initialized()
    assert path == str(tmp_path / "artifacts" / "trailsign.log")
    assert (tmp_path / "artifacts" / "trailsign.log").exists()


def test_csv_quotes_every_cell_and_joins_lists(tmp_path):
    outfile = tmp_path / "data" / "intersections.csv"
    reporting.write_intersections_csv([_intersection(), _intersection("cluster_zzzzzz", 0)], str(outfile))

    text = outfile.read_text()
    lines = text.splitlines()
    assert lines[0] == (
        '"cluster_id","trail_count","trail_names","snowshoe","nordic_ski",'
        '"winter_fat_bike","summer_mtb","lat","lon","radius_m","photos"'
    )
    assert lines[1] == (
        '"cluster_c2r3cd","2","Ridge; Creek <Loop>","true","false","true","false",'
        '"49.68125","-115.98565","6.6","a.jpg; b.jpg"'
    )
    rows = list(csv.DictReader(outfile.open()))
    assert rows[1]["trail_names"] == ""
    assert rows[1]["trail_count"] == "0"


def test_csv_writes_integral_numbers_without_fraction(tmp_path):
    outfile = tmp_path / "intersections.csv"
    reporting.write_intersections_csv([_intersection(lat=49.0, lon=-115.0, radius_m=0.0)], str(outfile))
    row = list(csv.reader(outfile.open()))[1]
    assert row[7:10] == ["49", "-115", "0"]


def test_geojson_points_keep_order_and_properties(tmp_path):
    outfile = tmp_path / "intersections.geojson"
    items = [_intersection("cluster_first"), _intersection("cluster_second", 0)]

    reporting.write_intersections_geojson(items, str(outfile))

    payload = json.loads(outfile.read_text())
    assert payload["type"] == "FeatureCollection"
    first = payload["features"][0]
    assert first["geometry"] == {"type": "Point", "coordinates": [-115.98565, 49.68125]}
    assert first["properties"]["cluster_id"] == "cluster_first"
    assert first["properties"]["snowshoe"] is True
    assert first["properties"]["photos"] == ["a.jpg", "b.jpg"]
    assert [f["properties"]["cluster_id"] for f in payload["features"]] == ["cluster_first", "cluster_second"]


def test_html_report_escapes_names_and_lists_warnings(tmp_path):
    outfile = tmp_path / "artifacts" / "intersections_report.html"

    reporting.write_intersections_html(
        [_intersection(), _intersection("cluster_zzzzzz", 0)],
        str(outfile),
        warnings=["Cluster cluster_zzzzzz has no intersecting trails"],
        buffer_m=30,
    )

    text = outfile.read_text()
    assert "<title>Trailsign Intersections</title>" in text
    assert "Creek &lt;Loop&gt;" in text
    assert "Cluster cluster_zzzzzz has no intersecting trails" in text
    assert "Buffer: 30 m" in text
    assert "class='empty'" in text


def test_html_report_empty(tmp_path):
    outfile = tmp_path / "report.html"
    reporting.write_intersections_html([], str(outfile))
    assert "No entries" in outfile.read_text()
