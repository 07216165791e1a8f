"""
Module: cluster
Purpose: Photo cluster dataclasses.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List


@dataclass(frozen=True)
class ClusterMember:
    filename: str
    lat: float
    lon: float
    timestamp: str
    distance_from_center_m: float


@dataclass(frozen=True)
class Cluster:
    """
    Group of photos taken at the same spot on the trail network.
    """

    cluster_id: str
    center_lat: float
    center_lon: float
    radius_m: float
    members: List[ClusterMember] = field(default_factory=list)

    @property
    def filenames(self) -> List[str]:
        return [member.filename for member in self.members]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "cluster_id": self.cluster_id,
            "center": {"lat": self.center_lat, "lon": self.center_lon},
            "radius_m": self.radius_m,
            "photos": [
                {
                    "filename": member.filename,
                    "lat": member.lat,
                    "lon": member.lon,
                    "timestamp": member.timestamp,
                    "distance_from_center_m": member.distance_from_center_m,
                }
                for member in self.members
            ],
        }

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "Cluster":
        """
        Build a Cluster from its clusters.json form.

        Raises:
            KeyError, TypeError, ValueError: When required fields are missing or malformed.
        """
        center = payload["center"]
        members = [
            ClusterMember(
                filename=str(photo["filename"]),
                lat=float(photo.get("lat", 0.0)),
                lon=float(photo.get("lon", 0.0)),
                timestamp=str(photo.get("timestamp") or ""),
                distance_from_center_m=float(photo.get("distance_from_center_m", 0.0)),
            )
            for photo in payload.get("photos", [])
        ]
        return cls(
            cluster_id=str(payload["cluster_id"]),
            center_lat=float(center["lat"]),
            center_lon=float(center["lon"]),
            radius_m=float(payload["radius_m"]),
            members=members,
        )
