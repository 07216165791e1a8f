import json

import pytest

from trailsign import trails
from trailsign.exceptions import MissingPrerequisiteError, TrailImportError

ENCODED = "_p~iF~ps|U_ulLnnqC_mqNvxq`@"


def _feature(trail_id, name, activitytypes, *, difficulty=3, color="#0000ff", opacity=None, path=ENCODED):
    properties = {
        "type": "trail",
        "id": trail_id,
        "name": name,
        "difficulty": difficulty,
        "color": color,
        "activitytypes": activitytypes,
    }
    if opacity is not None:
        properties["opacity"] = opacity
    return {"type": "Feature", "geometry": {"encodedpath": path}, "properties": properties}


def _entry(activity_type, features):
    return {
        "request": {"url": f"https://www.example.com/rms/?rmsP=j2&format=geojson&activitytype={activity_type}"},
        "response": {"content": {"text": json.dumps({"type": "FeatureCollection", "features": features})}},
    }


def _write_har(path, entries):
    path.write_text(json.dumps({"log": {"entries": entries}}))


def test_decode_polyline_reference_string():
    points = trails.decode_polyline(ENCODED)
    assert points == [
        pytest.approx((38.5, -120.2)),
        pytest.approx((40.7, -120.95)),
        pytest.approx((43.252, -126.453)),
    ]


def test_decode_polyline_truncated():
    with pytest.raises(ValueError):
        trails.decode_polyline(ENCODED[:-1])


def test_parse_activity_types_ignores_junk():
    assert trails.parse_activity_types("10, 13,x") == [10, 13]
    assert trails.parse_activity_types(None) == []


def test_is_fat_bike_primary():
    assert trails.is_fat_bike_primary({"opacity": 1, "color": "#ff0000"})
    assert trails.is_fat_bike_primary({"color": "#ff0000"})
    assert not trails.is_fat_bike_primary({"opacity": 0.5, "color": "#ff0000"})
    assert not trails.is_fat_bike_primary({"opacity": 1, "color": "#999999"})


def test_import_har_filters_and_flags(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    har = tmp_path / "capture.har"
    _write_har(
        har,
        [
            _entry(
                10,
                [
                    _feature(1, "Ridge", "10,13"),
                    _feature(2, "Chair 1", "11", difficulty=12),
                    _feature(3, "Downhill Run", "11"),
                    _feature(6, "Hiking Only", "6"),
                ],
            ),
            _entry(
                17,
                [
                    _feature(4, "Fatty", "1", opacity=1, color="#ff0000"),
                    _feature(5, "Faded", "", opacity=1, color="#999999"),
                ],
            ),
            {"request": {"url": "https://www.example.com/api/other"}, "response": {"content": {"text": "{}"}}},
        ],
    )

    records = trails.import_har(str(har))

    by_name = {record.name: record for record in records}
    assert sorted(by_name) == ["Fatty", "Ridge"]
    assert by_name["Ridge"].activities == {
        "snowshoe": True,
        "nordic_ski": True,
        "winter_fat_bike": False,
        "summer_mtb": False,
    }
    assert by_name["Fatty"].supports("winter_fat_bike")
    assert by_name["Fatty"].supports("summer_mtb")
    assert by_name["Ridge"].coordinates[0] == pytest.approx((-120.2, 38.5))


def test_import_har_merges_records_by_id(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    har = tmp_path / "capture.har"
    _write_har(
        har,
        [
            _entry(10, [_feature(1, "Ridge", "10")]),
            _entry(17, [_feature(1, "Ridge", "10,17", opacity=1, color="#ff0000")]),
        ],
    )

    records = trails.import_har(str(har))

    assert len(records) == 1
    assert records[0].supports("snowshoe")
    assert records[0].supports("winter_fat_bike")


def test_import_har_missing_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(TrailImportError):
        trails.import_har(str(tmp_path / "missing.har"))


def test_import_har_without_map_responses(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    har = tmp_path / "capture.har"
    _write_har(har, [{"request": {"url": "https://www.example.com/"}, "response": {"content": {}}}])
    with pytest.raises(TrailImportError):
        trails.import_har(str(har))


def test_write_and_load_trails(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    har = tmp_path / "capture.har"
    _write_har(har, [_entry(10, [_feature(1, "Ridge", "10,13")])])
    records = trails.import_har(str(har))
    path = tmp_path / "data" / "trails.json"

    trails.write_trails_geojson(records, str(path))
    payload = json.loads(path.read_text())
    loaded = trails.load_trails(str(path))

    feature = payload["features"][0]
    assert feature["geometry"]["type"] == "LineString"
    assert feature["properties"]["snowshoe"] is True
    assert feature["properties"]["summer_mtb"] is False
    assert loaded[0].name == "Ridge"
    assert loaded[0].coordinates == records[0].coordinates
    assert loaded[0].activities == records[0].activities


def test_load_trails_ignores_non_line_features(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    path = tmp_path / "trails.json"
    path.write_text(
        json.dumps(
            {
                "type": "FeatureCollection",
                "features": [
                    {"type": "Feature", "geometry": {"type": "Point", "coordinates": [1, 2]}, "properties": {}},
                    {
                        "type": "Feature",
                        "geometry": {"type": "LineString", "coordinates": [[1, 2]]},
                        "properties": {"name": "Stub", "snowshoe": "true"},
                    },
                ],
            }
        )
    )

    loaded = trails.load_trails(str(path))

    assert len(loaded) == 1
    assert loaded[0].name == "Stub"
    assert not loaded[0].is_line
    assert loaded[0].activities["snowshoe"] is False


def test_load_trails_missing_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(MissingPrerequisiteError) as excinfo:
        trails.load_trails(str(tmp_path / "trails.json"))
    assert excinfo.value.upstream_step == "trailsign trails"


def test_load_trails_malformed_file(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    path = tmp_path / "trails.json"
    path.write_text("[1, 2")
    with pytest.raises(MissingPrerequisiteError):
        trails.load_trails(str(path))
