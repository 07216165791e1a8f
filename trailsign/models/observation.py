"""
Module: observation
Purpose: Dataclass representing a geotagged photo.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class PhotoObservation:
    """
    A single photo with a GPS fix, as read from its EXIF block.
    """

    filename: str
    lat: float
    lon: float
    timestamp: str = ""
