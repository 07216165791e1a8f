"""
Module: config
Purpose: Pipeline configuration (paths and distance thresholds).
"""

import os
from dataclasses import dataclass, field
from typing import Dict

from .exceptions import ConfigError
from .utils import log_warning

DEFAULT_PHOTOS_DIR = "photos"
DEFAULT_DATA_DIR = "data"
DEFAULT_CLUSTER_THRESHOLD_M = 30.0
DEFAULT_INTERSECTION_BUFFER_M = 30.0

PHOTOS_DIR_ENV = "TRAILSIGN_PHOTOS_DIR"
DATA_DIR_ENV = "TRAILSIGN_DATA_DIR"
CLUSTER_THRESHOLD_ENV = "TRAILSIGN_CLUSTER_THRESHOLD_M"
INTERSECTION_BUFFER_ENV = "TRAILSIGN_INTERSECTION_BUFFER_M"

CLUSTERS_FILE = "clusters.json"
TRAILS_FILE = "trails.json"
HAR_FILE = "www.trailforks.com.har"
INTERSECTIONS_GEOJSON_FILE = "intersections.geojson"
INTERSECTIONS_CSV_FILE = "intersections.csv"


@dataclass
class PipelineConfig:
    """
    Values every stage reads. Passed explicitly; nothing is read from globals.
    """

    photos_dir: str
    data_dir: str
    cluster_threshold_m: float
    intersection_buffer_m: float
    sources: Dict[str, str] = field(default_factory=dict)

    @property
    def clusters_path(self) -> str:
        return os.path.join(self.data_dir, CLUSTERS_FILE)

    @property
    def trails_path(self) -> str:
        return os.path.join(self.data_dir, TRAILS_FILE)

    @property
    def har_path(self) -> str:
        return os.path.join(self.data_dir, HAR_FILE)

    @property
    def intersections_geojson_path(self) -> str:
        return os.path.join(self.data_dir, INTERSECTIONS_GEOJSON_FILE)

    @property
    def intersections_csv_path(self) -> str:
        return os.path.join(self.data_dir, INTERSECTIONS_CSV_FILE)


def _validate_distance(value: float, label: str) -> float:
    if value != value or value < 0:  # NaN or negative
        raise ValueError(f"{label} must be a non-negative number of meters.")
    return value


def _resolve_distance(cli_value: float | str | None, env_name: str, default: float, label: str) -> tuple[float, str]:
    if cli_value is not None:
        try:
            return _validate_distance(float(cli_value), label), "cli"
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid {label}: {cli_value!r}. {exc}") from exc
    env_value = os.getenv(env_name)
    if env_value:
        try:
            return _validate_distance(float(env_value), label), "env"
        except ValueError:
            log_warning(
                f"Ignoring invalid {env_name} value '{env_value}'. Expected a non-negative number."
            )
    return default, "default"


def _resolve_path(cli_value: str | None, env_name: str, default: str) -> tuple[str, str]:
    if cli_value:
        return os.path.abspath(cli_value), "cli"
    env_value = os.getenv(env_name)
    if env_value:
        return os.path.abspath(env_value), "env"
    return os.path.abspath(default), "default"


def load_config(
    *,
    photos_dir: str | None = None,
    data_dir: str | None = None,
    cluster_threshold_m: float | str | None = None,
    intersection_buffer_m: float | str | None = None,
) -> PipelineConfig:
    """
    Resolve pipeline configuration.
    Preference order: CLI override > environment variable > default.

    Raises:
        ConfigError: If a CLI override is not a non-negative number.
    """
    photos, photos_source = _resolve_path(photos_dir, PHOTOS_DIR_ENV, DEFAULT_PHOTOS_DIR)
    data, data_source = _resolve_path(data_dir, DATA_DIR_ENV, DEFAULT_DATA_DIR)
    threshold, threshold_source = _resolve_distance(
        cluster_threshold_m, CLUSTER_THRESHOLD_ENV, DEFAULT_CLUSTER_THRESHOLD_M, "cluster threshold"
    )
    buffer, buffer_source = _resolve_distance(
        intersection_buffer_m, INTERSECTION_BUFFER_ENV, DEFAULT_INTERSECTION_BUFFER_M, "intersection buffer"
    )
    return PipelineConfig(
        photos_dir=photos,
        data_dir=data,
        cluster_threshold_m=threshold,
        intersection_buffer_m=buffer,
        sources={
            "photos_dir": photos_source,
            "data_dir": data_source,
            "cluster_threshold_m": threshold_source,
            "intersection_buffer_m": buffer_source,
        },
    )
