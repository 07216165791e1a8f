"""
Module: pipeline
Purpose: Run the cluster, trail-import and match stages against the data folder.

Each stage finishes its computation before writing anything, so a fatal error
never leaves a partial output file behind.
"""

import os
from dataclasses import dataclass, field
from typing import Callable, List

from . import clustering, matching, metadata, reporting, scanner, trails
from .config import PipelineConfig
from .exceptions import EmptyInputError, MissingPrerequisiteError, ReportWriteError
from .models.cluster import Cluster
from .models.intersection import MatchResult
from .utils import log_error, log_info

INTERSECTIONS_REPORT = "intersections_report.html"
STAGING_SUFFIX = ".partial"

VerboseReporter = Callable[[str], None]


@dataclass
class ClusterStageResult:
    clusters: List[Cluster]
    photo_count: int
    skipped: List[str] = field(default_factory=list)
    outputs: List[str] = field(default_factory=list)


@dataclass
class MatchStageResult:
    result: MatchResult
    trail_count: int
    outputs: List[str] = field(default_factory=list)


@dataclass
class TrailImportResult:
    trail_count: int
    outputs: List[str] = field(default_factory=list)


def run_cluster_stage(config: PipelineConfig) -> ClusterStageResult:
    """
    Scan the photos folder, read GPS positions and write clusters.json.

    Raises:
        ScanError: If the photos folder is missing.
        EmptyInputError: If no photo carries a GPS position.
    """
    log_info(f"Cluster stage started for {config.photos_dir}")
    paths = scanner.scan_photos(config.photos_dir)
    observations, skipped = metadata.load_observations(paths)
    if not observations:
        raise EmptyInputError(
            f"No geotagged photos found in {config.photos_dir} "
            f"({len(paths)} supported file(s), {len(skipped)} without GPS)."
        )
    clusters = clustering.cluster_observations(observations, config.cluster_threshold_m)
    reporting.write_clusters_json(clusters, config.clusters_path)
    log_info(f"Wrote {len(clusters)} clusters to {config.clusters_path}")
    return ClusterStageResult(
        clusters=clusters,
        photo_count=len(paths),
        skipped=skipped,
        outputs=[config.clusters_path],
    )


def run_trails_import(config: PipelineConfig, har_path: str | None = None) -> TrailImportResult:
    """
    Convert a HAR capture into trails.json.

    Raises:
        TrailImportError: If the HAR cannot be used.
    """
    source = har_path or config.har_path
    log_info(f"Trail import started from {source}")
    records = trails.import_har(source)
    trails.write_trails_geojson(records, config.trails_path)
    log_info(f"Wrote {len(records)} trails to {config.trails_path}")
    return TrailImportResult(trail_count=len(records), outputs=[config.trails_path])


def run_match_stage(config: PipelineConfig, reporter: VerboseReporter | None = None) -> MatchStageResult:
    """
    Match clusters.json against trails.json and write the ranked intersections.

    Raises:
        MissingPrerequisiteError: If either input is unreadable or empty, or no trail has line geometry.
        ReportWriteError: If an output cannot be written. Existing outputs are left untouched.
    """
    log_info("Match stage started")
    clusters = clustering.load_clusters(config.clusters_path)
    if not clusters:
        raise MissingPrerequisiteError(
            os.path.basename(config.clusters_path),
            clustering.CLUSTER_STEP,
            detail="file holds no clusters",
        )
    trail_records = trails.load_trails(config.trails_path)
    if not any(trail.is_line for trail in trail_records):
        raise MissingPrerequisiteError(
            os.path.basename(config.trails_path),
            trails.TRAILS_STEP,
            detail="no trail has two or more coordinates",
        )

    result = matching.match_intersections(
        clusters,
        trail_records,
        config.intersection_buffer_m,
        reporter=reporter,
    )

    report_path = reporting.artifact_path(INTERSECTIONS_REPORT)
    outputs = [config.intersections_geojson_path, config.intersections_csv_path, report_path]
    staged = [path + STAGING_SUFFIX for path in outputs]
    try:
        reporting.write_intersections_geojson(result.intersections, staged[0])
        reporting.write_intersections_csv(result.intersections, staged[1])
        reporting.write_intersections_html(
            result.intersections,
            staged[2],
            warnings=[str(w) for w in result.warnings],
            buffer_m=config.intersection_buffer_m,
        )
        for temp_path, path in zip(staged, outputs):
            os.replace(temp_path, path)
    except OSError as exc:
        _discard(staged)
        log_error(f"Failed to write match outputs: {exc}")
        raise ReportWriteError(f"Could not write match outputs: {exc}") from exc
    for path in outputs:
        log_info(f"Wrote {path}")
    return MatchStageResult(result=result, trail_count=len(trail_records), outputs=outputs)


def _discard(paths: List[str]) -> None:
    for path in paths:
        try:
            os.remove(path)
        except FileNotFoundError:
            continue
