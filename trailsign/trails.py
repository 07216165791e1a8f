"""
Module: trails
Purpose: Trail reference data: GeoJSON loading and import from recorded map traffic (HAR).
"""

import json
import os
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .exceptions import MissingPrerequisiteError, TrailImportError
from .models.trail import ACTIVITY_FLAGS, TrailRecord
from .utils import ensure_directory, log_error, log_info, log_warning

TRAILS_STEP = "trailsign trails"

# Map service activity type ids.
ACTIVITY_SUMMER_MTB = 1
ACTIVITY_SNOWSHOE = 10
ACTIVITY_DOWNHILL_SKI = 11
ACTIVITY_NORDIC_SKI = 13
ACTIVITY_FAT_BIKE = 17
TARGET_ACTIVITIES = {ACTIVITY_SUMMER_MTB, ACTIVITY_SNOWSHOE, ACTIVITY_NORDIC_SKI, ACTIVITY_FAT_BIKE}

DIFFICULTY_LIFT = 12
PRIMARY_MIN_OPACITY = 0.9
GREY_COLORS = {"#8a8679", "#999999", "#cccccc", "#888888", "#666666", "#333333"}
DEFAULT_COLOR = "#333"
POLYLINE_PRECISION = 5

ACTIVITY_TYPE_PATTERN = re.compile(r"activitytype=(\d+)")


def decode_polyline(encoded: str, precision: int = POLYLINE_PRECISION) -> List[Tuple[float, float]]:
    """
    Decode a Google encoded polyline into (lat, lon) pairs.

    Raises:
        ValueError: If the string ends in the middle of a value.
    """
    factor = 10 ** precision
    points: List[Tuple[float, float]] = []
    index = 0
    lat = 0
    lon = 0
    length = len(encoded)
    while index < length:
        deltas = []
        for _ in range(2):
            shift = 0
            result = 0
            while True:
                if index >= length:
                    raise ValueError("Truncated polyline")
                byte = ord(encoded[index]) - 63
                index += 1
                result |= (byte & 0x1F) << shift
                shift += 5
                if byte < 0x20:
                    break
            deltas.append(~(result >> 1) if result & 1 else result >> 1)
        lat += deltas[0]
        lon += deltas[1]
        points.append((lat / factor, lon / factor))
    return points


def parse_activity_types(value: Optional[str]) -> List[int]:
    if not value:
        return []
    parsed: List[int] = []
    for part in str(value).split(","):
        try:
            parsed.append(int(part.strip()))
        except ValueError:
            continue
    return parsed


def is_fat_bike_primary(properties: Dict[str, Any]) -> bool:
    """
    True when a trail is drawn at full strength on the fat-bike layer.

    Dimmed or grey trails on that layer are not fat-bike trails.
    """
    opacity = properties.get("opacity")
    if opacity is None:
        opacity = 1
    if opacity < PRIMARY_MIN_OPACITY:
        return False
    color = str(properties.get("color") or "").lower()
    return color not in GREY_COLORS


def _decode_geometry(geometry: Dict[str, Any]) -> Optional[List[Tuple[float, float]]]:
    encoded = geometry.get("encodedpath") or geometry.get("simplepath")
    if not encoded or not isinstance(encoded, str):
        return None
    try:
        decoded = decode_polyline(encoded)
    except ValueError:
        return None
    return [(lon, lat) for lat, lon in decoded]


def extract_rms_responses(har: Dict[str, Any]) -> List[Tuple[Dict[str, Any], int]]:
    """
    Collect GeoJSON map responses from a HAR log.

    Returns:
        List of (response payload, activity type from the request URL or 0).
    """
    results: List[Tuple[Dict[str, Any], int]] = []
    for entry in (har.get("log") or {}).get("entries") or []:
        url = (entry.get("request") or {}).get("url") or ""
        if "rms" not in url or "format=geojson" not in url:
            continue
        match = ACTIVITY_TYPE_PATTERN.search(url)
        activity_type = int(match.group(1)) if match else 0
        text = ((entry.get("response") or {}).get("content") or {}).get("text")
        if not text:
            continue
        try:
            data = json.loads(text)
        except ValueError:
            continue
        if isinstance(data, dict) and "features" in data:
            results.append((data, activity_type))
    return results


@dataclass
class _RawTrail:
    trail_id: int
    name: str
    coordinates: List[Tuple[float, float]]
    difficulty: Optional[int]
    color: str
    activity_types: List[int] = field(default_factory=list)
    fat_bike_primary: bool = False


def _merge_features(responses: Iterable[Tuple[Dict[str, Any], int]]) -> Dict[int, _RawTrail]:
    merged: Dict[int, _RawTrail] = {}
    for data, activity_type in responses:
        for feature in data.get("features") or []:
            properties = feature.get("properties") or {}
            if properties.get("type") != "trail":
                continue
            if properties.get("difficulty") == DIFFICULTY_LIFT:
                continue
            trail_id = properties.get("id")
            if trail_id is None:
                continue
            coords = _decode_geometry(feature.get("geometry") or {})
            if not coords or len(coords) < 2:
                continue

            activity_types = parse_activity_types(properties.get("activitytypes"))
            primary = activity_type == ACTIVITY_FAT_BIKE and is_fat_bike_primary(properties)

            record = merged.get(trail_id)
            if record is None:
                merged[trail_id] = _RawTrail(
                    trail_id=trail_id,
                    name=properties.get("name") or "Unknown",
                    coordinates=coords,
                    difficulty=properties.get("difficulty"),
                    color=properties.get("color") or DEFAULT_COLOR,
                    activity_types=activity_types,
                    fat_bike_primary=primary,
                )
            else:
                if activity_types:
                    record.activity_types = activity_types
                record.fat_bike_primary = record.fat_bike_primary or primary
    return merged


def _to_record(raw: _RawTrail) -> Optional[TrailRecord]:
    types = raw.activity_types
    if types and all(t == ACTIVITY_DOWNHILL_SKI for t in types):
        return None
    if not (TARGET_ACTIVITIES.intersection(types) or raw.fat_bike_primary):
        return None
    activities = {
        "snowshoe": ACTIVITY_SNOWSHOE in types,
        "nordic_ski": ACTIVITY_NORDIC_SKI in types,
        "winter_fat_bike": ACTIVITY_FAT_BIKE in types or raw.fat_bike_primary,
        "summer_mtb": ACTIVITY_SUMMER_MTB in types,
    }
    if not any(activities.values()):
        return None
    return TrailRecord(
        name=raw.name,
        coordinates=raw.coordinates,
        activities=activities,
        trail_id=raw.trail_id,
        color=raw.color,
        difficulty=raw.difficulty,
    )


def import_har(har_path: str) -> List[TrailRecord]:
    """
    Build trail records from a HAR capture of the map's RMS GeoJSON requests.

    Args:
        har_path: Path to the saved HAR file.

    Returns:
        Trails supporting at least one tracked activity, in first-seen order.

    Raises:
        TrailImportError: If the HAR is missing, malformed, or holds no RMS GeoJSON.
    """
    try:
        with open(har_path, "r", encoding="utf-8") as handle:
            har = json.load(handle)
    except (OSError, ValueError) as exc:
        log_error(f"Failed to read HAR {har_path}: {exc}")
        raise TrailImportError(
            f"No readable HAR at {har_path}. Capture the region map with the Snowshoe, Nordic ski, "
            "Winter fat bike and Summer MTB layers and save it there."
        ) from exc
    if not isinstance(har, dict):
        raise TrailImportError(f"HAR file {har_path} is not a HAR log")

    responses = extract_rms_responses(har)
    if not responses:
        log_error(f"No RMS GeoJSON responses in {har_path}")
        raise TrailImportError("No RMS GeoJSON found. Ensure the HAR includes rms?format=geojson requests.")

    merged = _merge_features(responses)
    trails = [record for record in (_to_record(raw) for raw in merged.values()) if record is not None]
    counts = {flag: sum(1 for t in trails if t.supports(flag)) for flag in ACTIVITY_FLAGS}
    summary = ", ".join(f"{flag}: {count}" for flag, count in counts.items())
    log_info(f"Merged {len(responses)} RMS response(s) into {len(trails)} trails ({summary})")
    return trails


def trail_to_feature(trail: TrailRecord) -> Dict[str, Any]:
    properties: Dict[str, Any] = {"name": trail.name}
    if trail.trail_id is not None:
        properties["id"] = trail.trail_id
    properties["difficulty"] = trail.difficulty
    properties["color"] = trail.color
    for flag in ACTIVITY_FLAGS:
        properties[flag] = trail.supports(flag)
    return {
        "type": "Feature",
        "geometry": {"type": "LineString", "coordinates": [list(pair) for pair in trail.coordinates]},
        "properties": properties,
    }


def write_trails_geojson(trails: List[TrailRecord], outfile: str) -> None:
    """
    Save trails as a GeoJSON FeatureCollection of LineStrings.
    """
    ensure_directory(os.path.dirname(os.path.abspath(outfile)) or ".")
    payload = {"type": "FeatureCollection", "features": [trail_to_feature(t) for t in trails]}
    with open(outfile, "w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2)


def feature_to_trail(feature: Dict[str, Any]) -> Optional[TrailRecord]:
    """
    Convert one GeoJSON feature into a TrailRecord.

    Returns None for anything that is not a LineString feature.
    """
    if feature.get("type") != "Feature":
        return None
    geometry = feature.get("geometry") or {}
    if geometry.get("type") != "LineString":
        return None
    coordinates: List[Tuple[float, float]] = []
    for pair in geometry.get("coordinates") or []:
        if isinstance(pair, (list, tuple)) and len(pair) >= 2:
            coordinates.append((float(pair[0]), float(pair[1])))
    properties = feature.get("properties") or {}
    return TrailRecord(
        name=str(properties.get("name") or ""),
        coordinates=coordinates,
        activities={flag: properties.get(flag) is True for flag in ACTIVITY_FLAGS},
        trail_id=properties.get("id"),
        color=properties.get("color"),
        difficulty=properties.get("difficulty"),
    )


def load_trails(path: str) -> List[TrailRecord]:
    """
    Read the trails GeoJSON file.

    Raises:
        MissingPrerequisiteError: When the file is missing or malformed.
    """
    name = os.path.basename(path)
    try:
        with open(path, "r", encoding="utf-8") as handle:
            payload = json.load(handle)
        features = payload.get("features") or []
        trails = [trail for trail in (feature_to_trail(f) for f in features) if trail is not None]
    except FileNotFoundError as exc:
        log_error(f"Trail file not found: {path}")
        raise MissingPrerequisiteError(name, TRAILS_STEP) from exc
    except (OSError, ValueError, AttributeError, TypeError) as exc:
        log_error(f"Trail file unreadable: {path}: {exc}")
        raise MissingPrerequisiteError(name, TRAILS_STEP, detail=str(exc)) from exc
    skipped = len(features) - len(trails)
    if skipped:
        log_warning(f"Ignored {skipped} non-LineString feature(s) in {name}")
    return trails
