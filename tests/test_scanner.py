import os

import pytest

from trailsign import scanner
from trailsign.exceptions import ScanError


def test_is_supported_is_case_insensitive():
    assert scanner.is_supported("IMG_0001.JPG")
    assert scanner.is_supported("sign.jpeg")
    assert scanner.is_supported("sign.HEIC")
    assert not scanner.is_supported("notes.txt")
    assert not scanner.is_supported("jpg")


def test_scan_photos_lists_supported_files_sorted(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    photos = tmp_path / "photos"
    photos.mkdir()
    for name in ("b.jpg", "a.HEIC", "c.jpeg", "readme.txt"):
        (photos / name).write_bytes(b"x")
    nested = photos / "nested"
    nested.mkdir()
    (nested / "d.jpg").write_bytes(b"x")

    results = scanner.scan_photos(str(photos))

    assert [os.path.basename(p) for p in results] == ["a.HEIC", "b.jpg", "c.jpeg"]
    assert all(os.path.isabs(p) for p in results)


def test_scan_photos_skips_symlinks(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    photos = tmp_path / "photos"
    photos.mkdir()
    target = tmp_path / "outside.jpg"
    target.write_bytes(b"x")
    try:
        os.symlink(target, photos / "link.jpg")
    except (OSError, NotImplementedError):
        pytest.skip("symlinks unavailable")

    assert scanner.scan_photos(str(photos)) == []


def test_scan_photos_missing_folder(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(ScanError):
        scanner.scan_photos(str(tmp_path / "missing"))


def test_scan_photos_rejects_file_path(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    path = tmp_path / "a.jpg"
    path.write_bytes(b"x")
    with pytest.raises(ScanError):
        scanner.scan_photos(str(path))
