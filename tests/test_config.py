import os

import pytest

from trailsign import config
from trailsign.exceptions import ConfigError


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch, tmp_path):
    for name in (
        config.PHOTOS_DIR_ENV,
        config.DATA_DIR_ENV,
        config.CLUSTER_THRESHOLD_ENV,
        config.INTERSECTION_BUFFER_ENV,
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


def test_defaults(tmp_path):
    cfg = config.load_config()
    assert cfg.cluster_threshold_m == 30.0
    assert cfg.intersection_buffer_m == 30.0
    assert cfg.photos_dir == str(tmp_path / "photos")
    assert cfg.data_dir == str(tmp_path / "data")
    assert set(cfg.sources.values()) == {"default"}


def test_derived_paths(tmp_path):
    cfg = config.load_config(data_dir=str(tmp_path / "out"))
    assert cfg.clusters_path == os.path.join(str(tmp_path / "out"), "clusters.json")
    assert cfg.trails_path.endswith("trails.json")
    assert cfg.har_path.endswith("www.trailforks.com.har")
    assert cfg.intersections_geojson_path.endswith("intersections.geojson")
    assert cfg.intersections_csv_path.endswith("intersections.csv")


def test_environment_overrides_defaults(monkeypatch, tmp_path):
    monkeypatch.setenv(config.CLUSTER_THRESHOLD_ENV, "12.5")
    monkeypatch.setenv(config.PHOTOS_DIR_ENV, str(tmp_path / "survey"))

    cfg = config.load_config()

    assert cfg.cluster_threshold_m == 12.5
    assert cfg.sources["cluster_threshold_m"] == "env"
    assert cfg.photos_dir == str(tmp_path / "survey")
    assert cfg.sources["photos_dir"] == "env"


def test_cli_overrides_environment(monkeypatch):
    monkeypatch.setenv(config.INTERSECTION_BUFFER_ENV, "50")

    cfg = config.load_config(intersection_buffer_m="15")

    assert cfg.intersection_buffer_m == 15.0
    assert cfg.sources["intersection_buffer_m"] == "cli"


def test_invalid_environment_value_falls_back_with_warning(monkeypatch, tmp_path):
    monkeypatch.setenv(config.CLUSTER_THRESHOLD_ENV, "-3")

    cfg = config.load_config()

    assert cfg.cluster_threshold_m == 30.0
    assert cfg.sources["cluster_threshold_m"] == "default"
    log_text = (tmp_path / "artifacts" / "trailsign.log").read_text()
    assert config.CLUSTER_THRESHOLD_ENV in log_text


@pytest.mark.parametrize("value", ["-1", "abc", "nan"])
def test_invalid_cli_value_raises(value):
    with pytest.raises(ConfigError):
        config.load_config(cluster_threshold_m=value)
