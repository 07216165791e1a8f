"""
Module: metadata
Purpose: EXIF GPS and capture-time extraction.
"""

import math
import os
import re
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor
from typing import Dict, List, Optional, Tuple

from PIL import ExifTags, Image

from .exceptions import MetadataError
from .models.observation import PhotoObservation
from .utils import ensure_heif_registered, executor_mode, log_error, log_warning

EXIF_TIMESTAMP_PATTERN = re.compile(r"^(\d{4}):(\d{2}):(\d{2})\s+(\d{2}):(\d{2}):(\d{2})")
TIMESTAMP_TAGS = ("DateTimeOriginal", "DateTimeDigitized", "DateTime")


def parse_exif_timestamp(value) -> str:
    """
    Convert an EXIF "YYYY:MM:DD HH:MM:SS" value to ISO-8601.

    Unrecognised text is returned unchanged; missing values become "".
    """
    if value is None:
        return ""
    if isinstance(value, bytes):
        value = value.decode("ascii", errors="ignore")
    text = str(value).strip().rstrip("\x00")
    if not text:
        return ""
    match = EXIF_TIMESTAMP_PATTERN.match(text)
    if not match:
        return text
    year, month, day, hour, minute, second = match.groups()
    return f"{year}-{month}-{day}T{hour}:{minute}:{second}"


def extract_exif(path: str) -> Dict:
    """
    Extract GPS position and capture time from a photo.

    Args:
        path: File path to read.

    Returns:
        Dictionary with "timestamp" (possibly "") and, when present, "gps" as (lat, lon).

    Raises:
        MetadataError: When the file cannot be opened as an image.
    """
    ensure_heif_registered()
    normalized = os.path.abspath(path)
    try:
        with Image.open(normalized) as image:
            exif = image.getexif()
            base_tags = {ExifTags.TAGS.get(k, k): v for k, v in exif.items()}
            detail_tags = {ExifTags.TAGS.get(k, k): v for k, v in exif.get_ifd(ExifTags.IFD.Exif).items()}
            gps_info = exif.get_ifd(ExifTags.IFD.GPSInfo)
    except Exception as exc:
        log_error(f"Corrupted or unreadable EXIF for {path}: {exc}")
        raise MetadataError(f"Unable to read EXIF for {path}") from exc

    result: Dict = {"timestamp": ""}
    for tag in TIMESTAMP_TAGS:
        value = detail_tags.get(tag) or base_tags.get(tag)
        if value:
            result["timestamp"] = parse_exif_timestamp(value)
            break

    if gps_info:
        # GPSInfo uses numeric keys
        gps_tags = {ExifTags.GPSTAGS.get(key, key): value for key, value in gps_info.items()}
        lat = _convert_gps(gps_tags.get("GPSLatitude"), gps_tags.get("GPSLatitudeRef"))
        lon = _convert_gps(gps_tags.get("GPSLongitude"), gps_tags.get("GPSLongitudeRef"))
        if lat is not None and lon is not None:
            result["gps"] = (lat, lon)
    return result


def _convert_gps(value, ref) -> Optional[float]:
    """
    Convert GPS degrees/minutes/seconds to decimal degrees.
    """
    if not value:
        return None
    try:
        deg, minute, sec = value
        degrees = deg[0] / deg[1] if isinstance(deg, tuple) else float(deg)
        minutes = minute[0] / minute[1] if isinstance(minute, tuple) else float(minute)
        seconds = sec[0] / sec[1] if isinstance(sec, tuple) else float(sec)
    except (TypeError, ValueError, ZeroDivisionError):
        return None
    coord = degrees + (minutes / 60.0) + (seconds / 3600.0)
    if not math.isfinite(coord):
        return None
    if isinstance(ref, bytes):
        ref = ref.decode("ascii", errors="ignore")
    if ref and str(ref).strip().upper() in ("S", "W"):
        coord = -coord
    return coord


def _read_observation(path: str) -> Optional[PhotoObservation]:
    """
    Build a PhotoObservation for one file, or None when it has no usable GPS.
    Designed for use with a process pool.
    """
    try:
        exif = extract_exif(path)
    except MetadataError:
        return None
    gps = exif.get("gps")
    if not gps:
        return None
    lat, lon = gps
    return PhotoObservation(
        filename=os.path.basename(path),
        lat=lat,
        lon=lon,
        timestamp=exif.get("timestamp", ""),
    )


def load_observations(paths: List[str]) -> Tuple[List[PhotoObservation], List[str]]:
    """
    Read EXIF for each photo in parallel and keep those with a GPS fix.

    Args:
        paths: Photo file paths.

    Returns:
        Tuple of (observations in input order, skipped filenames).
    """
    if not paths:
        return [], []
    results: List[Optional[PhotoObservation]]
    if len(paths) == 1:
        results = [_read_observation(paths[0])]
    elif executor_mode() == "process":
        try:
            with ProcessPoolExecutor() as executor:
                results = list(executor.map(_read_observation, paths))
        except (NotImplementedError, PermissionError, OSError, RuntimeError) as exc:
            log_warning(f"ProcessPool unavailable, falling back to ThreadPool for EXIF: {exc}")
            with ThreadPoolExecutor() as executor:
                results = list(executor.map(_read_observation, paths))
    else:
        with ThreadPoolExecutor() as executor:
            results = list(executor.map(_read_observation, paths))

    observations: List[PhotoObservation] = []
    skipped: List[str] = []
    for path, observation in zip(paths, results):
        if observation is None:
            name = os.path.basename(path)
            log_warning(f"Skipping {name} (no GPS)")
            skipped.append(name)
        else:
            observations.append(observation)
    return observations, skipped
