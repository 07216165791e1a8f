"""
Module: clustering
Purpose: Single-linkage grouping of photo observations into signage-site clusters.

Every unordered pair of observations is compared once, so the cost is
O(N^2) haversine evaluations. That is fine for a few thousand photos; larger
surveys would need a spatial index that yields the same pairs within the
threshold.
"""

import json
import os
from typing import Dict, List, Sequence

from .exceptions import EmptyInputError, MissingPrerequisiteError
from .geo import geohash_encode, haversine_m
from .models.cluster import Cluster, ClusterMember
from .models.observation import PhotoObservation
from .utils import log_error, log_info

CLUSTER_ID_PREFIX = "cluster_"
GEOHASH_PRECISION = 6
DISTANCE_DECIMALS = 2
CLUSTER_STEP = "trailsign cluster"


class UnionFind:
    """
    A Union-Find data structure over the indices 0..n-1.
    """

    def __init__(self, size: int):
        self.parent: List[int] = list(range(size))
        self.rank: List[int] = [0] * size

    def find(self, element: int) -> int:
        """Finds the representative (root) of the set containing element."""
        if self.parent[element] == element:
            return element
        self.parent[element] = self.find(self.parent[element])  # Path compression
        return self.parent[element]

    def union(self, element1: int, element2: int) -> None:
        """Merges the sets containing element1 and element2."""
        root1 = self.find(element1)
        root2 = self.find(element2)

        if root1 == root2:
            return
        if self.rank[root1] < self.rank[root2]:
            self.parent[root1] = root2
        elif self.rank[root1] > self.rank[root2]:
            self.parent[root2] = root1
        else:
            self.parent[root2] = root1
            self.rank[root1] += 1


def single_linkage_groups(observations: Sequence[PhotoObservation], threshold_m: float) -> List[List[int]]:
    """
    Partition observation indices into connected components.

    Two observations share a component when a chain of observations links
    them with every hop no longer than threshold_m.

    Returns:
        Index groups ordered by their first member; indices ascend within a group.
    """
    count = len(observations)
    uf = UnionFind(count)
    for i in range(count):
        first = observations[i]
        for j in range(i + 1, count):
            second = observations[j]
            if haversine_m(first.lat, first.lon, second.lat, second.lon) <= threshold_m:
                uf.union(i, j)

    groups: Dict[int, List[int]] = {}
    for index in range(count):
        groups.setdefault(uf.find(index), []).append(index)
    return list(groups.values())


def build_cluster(members: Sequence[PhotoObservation]) -> Cluster:
    """
    Derive centre, radius and id for one group of observations.

    The centre is the plain arithmetic mean of latitudes and longitudes.
    """
    center_lat = sum(p.lat for p in members) / len(members)
    center_lon = sum(p.lon for p in members) / len(members)

    radius = 0.0
    enriched: List[ClusterMember] = []
    for photo in members:
        distance = haversine_m(center_lat, center_lon, photo.lat, photo.lon)
        radius = max(radius, distance)
        enriched.append(
            ClusterMember(
                filename=photo.filename,
                lat=photo.lat,
                lon=photo.lon,
                timestamp=photo.timestamp,
                distance_from_center_m=round(distance, DISTANCE_DECIMALS),
            )
        )

    return Cluster(
        cluster_id=f"{CLUSTER_ID_PREFIX}{geohash_encode(center_lat, center_lon, GEOHASH_PRECISION)}",
        center_lat=center_lat,
        center_lon=center_lon,
        radius_m=round(radius, DISTANCE_DECIMALS),
        members=enriched,
    )


def cluster_observations(observations: Sequence[PhotoObservation], threshold_m: float) -> List[Cluster]:
    """
    Group observations into clusters using single-linkage distance clustering.

    Args:
        observations: Photos with a GPS fix.
        threshold_m: Maximum hop distance in meters.

    Returns:
        One Cluster per connected component, in input order of first member.

    Raises:
        EmptyInputError: If no observations are supplied.
        ValueError: If threshold_m is negative.
    """
    if not observations:
        log_error("No geotagged photos supplied to the cluster engine")
        raise EmptyInputError("No geotagged photos to cluster. Check the photos folder.")
    if threshold_m < 0:
        raise ValueError("threshold_m must be zero or positive")

    groups = single_linkage_groups(observations, threshold_m)
    clusters = [build_cluster([observations[i] for i in group]) for group in groups]
    log_info(
        f"Clustered {len(observations)} photos into {len(clusters)} clusters (threshold {threshold_m} m)"
    )
    return clusters


def load_clusters(path: str) -> List[Cluster]:
    """
    Read clusters.json written by the cluster stage.

    Raises:
        MissingPrerequisiteError: When the file is missing or malformed.
    """
    name = os.path.basename(path)
    try:
        with open(path, "r", encoding="utf-8") as handle:
            payload = json.load(handle)
        return [Cluster.from_dict(item) for item in payload["clusters"]]
    except FileNotFoundError as exc:
        log_error(f"Cluster file not found: {path}")
        raise MissingPrerequisiteError(name, CLUSTER_STEP) from exc
    except (OSError, ValueError, KeyError, TypeError) as exc:
        log_error(f"Cluster file unreadable: {path}: {exc}")
        raise MissingPrerequisiteError(name, CLUSTER_STEP, detail=str(exc)) from exc
