"""
Module: reporting
Purpose: Logging and report generation utilities.
"""

import csv
import html
import json
import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Sequence

from .models.cluster import Cluster
from .models.intersection import Intersection
from .models.trail import ACTIVITY_FLAGS
from .utils import ensure_directory

ARTIFACTS_DIR = "artifacts"
LOG_FILE_NAME = os.path.join(ARTIFACTS_DIR, "trailsign.log")
INTERSECTIONS_CSV_HEADER = [
    "cluster_id",
    "trail_count",
    "trail_names",
    *ACTIVITY_FLAGS,
    "lat",
    "lon",
    "radius_m",
    "photos",
]
LIST_SEPARATOR = "; "


def artifact_path(filename: str) -> str:
    return os.path.abspath(os.path.join(ARTIFACTS_DIR, filename))


def ensure_log_initialized() -> str:
    """Ensure the Trailsign log file exists and return its absolute path."""
    path = os.path.abspath(LOG_FILE_NAME)
    directory = os.path.dirname(path) or "."
    os.makedirs(directory, exist_ok=True)
    with open(path, "a", encoding="utf-8"):
        pass
    return path


def write_log(entries: List[str], outfile: str = LOG_FILE_NAME):
    """
    Append entries to logfile.
    """
    directory = os.path.dirname(os.path.abspath(outfile)) or "."
    os.makedirs(directory, exist_ok=True)
    timestamp = datetime.now(timezone.utc).replace(tzinfo=None).isoformat()
    with open(outfile, "a", encoding="utf-8") as handle:
        for entry in entries:
            normalized = entry if entry.startswith("[") else f"[INFO] {entry}"
            handle.write(f"[{timestamp}] {normalized}\n")


def _prepare_parent(outfile: str) -> None:
    ensure_directory(os.path.dirname(os.path.abspath(outfile)) or ".")


def _format_number(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def _intersection_properties(item: Intersection) -> Dict[str, Any]:
    properties: Dict[str, Any] = {
        "cluster_id": item.cluster_id,
        "trail_count": item.trail_count,
        "trail_names": list(item.trail_names),
    }
    for flag in ACTIVITY_FLAGS:
        properties[flag] = bool(item.activities.get(flag, False))
    properties.update(
        {
            "lat": item.lat,
            "lon": item.lon,
            "radius_m": item.radius_m,
            "photos": list(item.photos),
        }
    )
    return properties


def write_clusters_json(clusters: Sequence[Cluster], outfile: str) -> None:
    """
    Save clusters as {"clusters": [...]}.
    """
    _prepare_parent(outfile)
    payload = {"clusters": [cluster.to_dict() for cluster in clusters]}
    with open(outfile, "w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2)


def write_intersections_geojson(intersections: Sequence[Intersection], outfile: str) -> None:
    """
    Save intersections as a GeoJSON FeatureCollection of points, in the given order.
    """
    _prepare_parent(outfile)
    features = [
        {
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [item.lon, item.lat]},
            "properties": _intersection_properties(item),
        }
        for item in intersections
    ]
    with open(outfile, "w", encoding="utf-8") as handle:
        json.dump({"type": "FeatureCollection", "features": features}, handle, indent=2)


def intersection_csv_row(item: Intersection) -> List[str]:
    row = [
        item.cluster_id,
        str(item.trail_count),
        LIST_SEPARATOR.join(item.trail_names),
    ]
    row.extend("true" if item.activities.get(flag, False) else "false" for flag in ACTIVITY_FLAGS)
    row.extend(
        [
            _format_number(item.lat),
            _format_number(item.lon),
            _format_number(item.radius_m),
            LIST_SEPARATOR.join(item.photos),
        ]
    )
    return row


def write_intersections_csv(intersections: Sequence[Intersection], outfile: str) -> None:
    """
    Save intersections as CSV with every cell quoted.
    """
    _prepare_parent(outfile)
    with open(outfile, "w", encoding="utf-8", newline="") as handle:
        writer = csv.writer(handle, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerow(INTERSECTIONS_CSV_HEADER)
        for item in intersections:
            writer.writerow(intersection_csv_row(item))


def _text(value: str) -> str:
    return html.escape(value, quote=True)


def write_intersections_html(
    intersections: Sequence[Intersection],
    outfile: str,
    *,
    warnings: Sequence[str] = (),
    buffer_m: float | None = None,
) -> None:
    """
    Generate a printable HTML table of candidate signage sites.
    """
    _prepare_parent(outfile)
    matched = sum(1 for item in intersections if item.trail_count)
    meta = f"Sites: {len(intersections)} • With trails: {matched}"
    if buffer_m is not None:
        meta += f" • Buffer: {_format_number(buffer_m)} m"
    flag_headers = "".join(f"<th>{_text(flag.replace('_', ' '))}</th>" for flag in ACTIVITY_FLAGS)
    html_doc = [
        "<!DOCTYPE html>",
        "<html>",
        "<head>",
        '<meta charset="UTF-8" />',
        "<title>Trailsign Intersections</title>",
        "<style>"
        "body{font-family:system-ui,-apple-system,sans-serif;margin:0;padding:24px;background:#f8fafc;color:#0f172a;}"
        "h1{margin:0 0 6px;font-size:26px;color:#0f172a;}"
        ".meta{color:#64748b;font-size:13px;margin-bottom:16px;}"
        "table{width:100%;border-collapse:collapse;background:#fff;border-radius:10px;overflow:hidden;}"
        "th,td{text-align:left;padding:10px;border-bottom:1px solid #e2e8f0;font-size:13px;word-break:break-word;}"
        "th{background:#f1f5f9;color:#475569;text-transform:uppercase;letter-spacing:0.04em;font-size:12px;}"
        "tr.empty td{color:#b45309;}"
        ".warn{color:#b45309;font-size:13px;margin:4px 0;}"
        "</style>",
        "</head>",
        "<body>",
        "<h1>Trailsign Intersections</h1>",
        f"<div class='meta'>{_text(meta)}</div>",
    ]
    for message in warnings:
        html_doc.append(f"<div class='warn'>{_text(message)}</div>")
    html_doc.extend(
        [
            "<table>",
            "<tr><th>Cluster</th><th>Trails</th><th>Trail names</th>"
            f"{flag_headers}<th>Lat</th><th>Lon</th><th>Radius (m)</th><th>Photos</th></tr>",
        ]
    )
    if not intersections:
        html_doc.append(f"<tr><td colspan='{7 + len(ACTIVITY_FLAGS)}'>No entries</td></tr>")
    for item in intersections:
        css = " class='empty'" if item.trail_count == 0 else ""
        flags = "".join(
            f"<td>{'✓' if item.activities.get(flag, False) else ''}</td>" for flag in ACTIVITY_FLAGS
        )
        html_doc.append(
            f"<tr{css}>"
            f"<td>{_text(item.cluster_id)}</td>"
            f"<td>{item.trail_count}</td>"
            f"<td>{_text(LIST_SEPARATOR.join(item.trail_names))}</td>"
            f"{flags}"
            f"<td>{item.lat:.6f}</td>"
            f"<td>{item.lon:.6f}</td>"
            f"<td>{_format_number(item.radius_m)}</td>"
            f"<td>{_text(LIST_SEPARATOR.join(item.photos))}</td>"
            "</tr>"
        )
    html_doc.extend(["</table>", "</body>", "</html>"])
    with open(outfile, "w", encoding="utf-8") as handle:
        handle.write("\n".join(html_doc))
