"""
Module: matching
Purpose: Cross-reference photo clusters with trail geometry.
"""

from typing import Callable, Dict, List, Sequence

from .exceptions import DegenerateGeometryWarning, NoMatchWarning, TrailsignWarning
from .geo import point_to_line_m
from .models.cluster import Cluster
from .models.intersection import Intersection, MatchResult
from .models.trail import ACTIVITY_FLAGS, TrailRecord
from .utils import log_info, log_warning

UNKNOWN_TRAIL_NAME = "Unknown"

VerboseReporter = Callable[[str], None]


def trails_near(cluster: Cluster, trails: Sequence[TrailRecord], buffer_m: float) -> List[TrailRecord]:
    """
    Return trails whose geometry passes within radius_m + buffer_m of the cluster centre.

    Trails with fewer than two coordinates are ignored.
    """
    reach = cluster.radius_m + buffer_m
    nearby: List[TrailRecord] = []
    for trail in trails:
        if not trail.is_line:
            continue
        if point_to_line_m(cluster.center_lat, cluster.center_lon, trail.coordinates) <= reach:
            nearby.append(trail)
    return nearby


def summarize(cluster: Cluster, matched: Sequence[TrailRecord]) -> Intersection:
    """
    Aggregate matched trails into an Intersection for one cluster.
    """
    names = [trail.name or UNKNOWN_TRAIL_NAME for trail in matched]
    activities: Dict[str, bool] = {
        flag: any(trail.supports(flag) for trail in matched) for flag in ACTIVITY_FLAGS
    }
    return Intersection(
        cluster_id=cluster.cluster_id,
        trail_count=len(matched),
        trail_names=[name for name in names if name],
        activities=activities,
        lat=cluster.center_lat,
        lon=cluster.center_lon,
        radius_m=cluster.radius_m,
        photos=cluster.filenames,
    )


def match_intersections(
    clusters: Sequence[Cluster],
    trails: Sequence[TrailRecord],
    buffer_m: float,
    reporter: VerboseReporter | None = None,
) -> MatchResult:
    """
    Compute the trails meeting at each cluster and rank the clusters.

    Args:
        clusters: Clusters produced by the cluster engine.
        trails: Trail reference records.
        buffer_m: Margin in meters added to each cluster radius.
        reporter: Optional callback for per-cluster tracing.

    Returns:
        MatchResult with one Intersection per cluster, sorted by trail_count
        descending (ties keep cluster order), and the non-fatal warnings raised
        along the way.

    Raises:
        ValueError: If buffer_m is negative.
    """
    if buffer_m < 0:
        raise ValueError("buffer_m must be zero or positive")

    warnings: List[TrailsignWarning] = []
    for trail in trails:
        if not trail.is_line:
            warning = DegenerateGeometryWarning(trail.name or UNKNOWN_TRAIL_NAME, len(trail.coordinates))
            log_warning(str(warning))
            warnings.append(warning)

    intersections: List[Intersection] = []
    for cluster in clusters:
        matched = trails_near(cluster, trails, buffer_m)
        if not matched:
            warning = NoMatchWarning(cluster.cluster_id)
            log_warning(str(warning))
            warnings.append(warning)
        elif reporter:
            reporter(f"[{cluster.cluster_id}] {len(matched)} trail(s): {', '.join(t.name or UNKNOWN_TRAIL_NAME for t in matched)}")
        intersections.append(summarize(cluster, matched))

    # sorted() is stable, so equal counts keep cluster order.
    ranked = sorted(intersections, key=lambda item: item.trail_count, reverse=True)
    log_info(
        f"Matched {len(clusters)} clusters against {len(trails)} trails "
        f"(buffer {buffer_m} m, {len(warnings)} warnings)"
    )
    return MatchResult(intersections=ranked, warnings=warnings)
