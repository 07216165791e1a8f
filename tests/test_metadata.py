import pytest
from PIL import Image
from PIL.TiffImagePlugin import IFDRational

from trailsign import metadata, utils
from trailsign.exceptions import MetadataError


def _write_photo(path, gps=None, datetime_text=None):
    exif = Image.Exif()
    if datetime_text:
        exif[0x0132] = datetime_text  # DateTime
    if gps:
        lat_ref, lat_dms, lon_ref, lon_dms = gps
        exif[0x8825] = {1: lat_ref, 2: lat_dms, 3: lon_ref, 4: lon_dms}
    Image.new("RGB", (4, 4), color="green").save(path, exif=exif)


def test_parse_exif_timestamp_to_iso():
    assert metadata.parse_exif_timestamp("2024:01:15 10:30:00") == "2024-01-15T10:30:00"


def test_parse_exif_timestamp_keeps_unknown_text():
    assert metadata.parse_exif_timestamp("yesterday") == "yesterday"


def test_parse_exif_timestamp_missing_is_empty():
    assert metadata.parse_exif_timestamp(None) == ""
    assert metadata.parse_exif_timestamp("") == ""


def test_parse_exif_timestamp_accepts_bytes():
    assert metadata.parse_exif_timestamp(b"2023:12:31 23:59:58\x00") == "2023-12-31T23:59:58"


def test_convert_gps_applies_hemisphere():
    assert metadata._convert_gps((49, 40, 30), "N") == pytest.approx(49.675)
    assert metadata._convert_gps((115, 59, 6), "W") == pytest.approx(-115.985)
    assert metadata._convert_gps(((49, 1), (30, 1), (0, 1)), b"S") == pytest.approx(-49.5)


def test_convert_gps_rejects_bad_values():
    assert metadata._convert_gps(None, "N") is None
    assert metadata._convert_gps((1, 2), "N") is None


def test_convert_gps_rejects_zero_denominator_rationals():
    value = (IFDRational(49, 1), IFDRational(0, 0), IFDRational(0, 1))

    assert metadata._convert_gps(value, "N") is None
    assert metadata._convert_gps((float("nan"), 0.0, 0.0), "S") is None
    assert metadata._convert_gps((float("inf"), 0.0, 0.0), "W") is None


def test_extract_exif_reads_gps_and_time(tmp_path):
    path = tmp_path / "sign.jpg"
    _write_photo(path, gps=("N", (49, 40, 30), "W", (115, 59, 6)), datetime_text="2024:01:15 10:30:00")

    info = metadata.extract_exif(str(path))

    lat, lon = info["gps"]
    assert lat == pytest.approx(49.675, abs=1e-6)
    assert lon == pytest.approx(-115.985, abs=1e-6)
    assert info["timestamp"] == "2024-01-15T10:30:00"


def test_extract_exif_without_gps(tmp_path):
    path = tmp_path / "plain.jpg"
    Image.new("RGB", (4, 4)).save(path)

    info = metadata.extract_exif(str(path))

    assert "gps" not in info
    assert info["timestamp"] == ""


def test_extract_exif_unreadable_file(tmp_path):
    path = tmp_path / "broken.jpg"
    path.write_bytes(b"not an image")
    with pytest.raises(MetadataError):
        metadata.extract_exif(str(path))


def test_load_observations_skips_photos_without_gps(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    utils.configure_executor_mode("thread")
    with_gps = tmp_path / "a.jpg"
    without_gps = tmp_path / "b.jpg"
    broken = tmp_path / "c.jpg"
    _write_photo(with_gps, gps=("N", (49, 40, 30), "W", (115, 59, 6)))
    Image.new("RGB", (4, 4)).save(without_gps)
    broken.write_bytes(b"nope")

    observations, skipped = metadata.load_observations([str(with_gps), str(without_gps), str(broken)])

    assert [o.filename for o in observations] == ["a.jpg"]
    assert skipped == ["b.jpg", "c.jpg"]
    log_text = (tmp_path / "artifacts" / "trailsign.log").read_text()
    assert "Skipping b.jpg (no GPS)" in log_text


def test_load_observations_empty():
    assert metadata.load_observations([]) == ([], [])
