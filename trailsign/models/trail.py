"""
Module: trail
Purpose: Trail reference record.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

ACTIVITY_FLAGS = ("snowshoe", "nordic_ski", "winter_fat_bike", "summer_mtb")


@dataclass
class TrailRecord:
    """
    A named polyline with the activities it supports.

    Coordinates are (lon, lat) pairs in GeoJSON order.
    """

    name: str
    coordinates: List[Tuple[float, float]]
    activities: Dict[str, bool] = field(default_factory=dict)
    trail_id: Optional[int] = None
    color: Optional[str] = None
    difficulty: Optional[int] = None

    @property
    def is_line(self) -> bool:
        return len(self.coordinates) >= 2

    def supports(self, activity: str) -> bool:
        return self.activities.get(activity, False) is True
