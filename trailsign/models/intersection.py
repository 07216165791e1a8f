"""
Module: intersection
Purpose: Candidate signage site and match result dataclasses.
"""

from dataclasses import dataclass, field
from typing import Dict, List

from ..exceptions import TrailsignWarning


@dataclass
class Intersection:
    """
    A photo cluster together with the trails passing through it.
    """

    cluster_id: str
    trail_count: int
    trail_names: List[str]
    activities: Dict[str, bool]
    lat: float
    lon: float
    radius_m: float
    photos: List[str]


@dataclass
class MatchResult:
    intersections: List[Intersection]
    warnings: List[TrailsignWarning] = field(default_factory=list)
