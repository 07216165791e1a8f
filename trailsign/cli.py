"""
Module: cli
Purpose: Command-line interface entry point.
"""

import argparse
import io
import json
import os
import sys
from typing import Any, Dict

from . import pipeline, reporting
from .cli_formatter import CLIFormatter, detect_terminal_capabilities
from .config import PipelineConfig, load_config
from .exceptions import (
    ConfigError,
    EmptyInputError,
    MissingPrerequisiteError,
    ReportWriteError,
    ScanError,
    TrailImportError,
    TrailsignError,
)
from .matching import UNKNOWN_TRAIL_NAME
from .utils import EXECUTOR_ENV, configure_executor_mode

TOP_INTERSECTIONS = 5
PIPE_SCHEMA_VERSION = "1.0"

_RUN_LOG_PATH: str | None = None


def _ensure_run_log_path() -> str:
    """
    Guarantee trailsign.log exists and return its absolute path.
    """
    global _RUN_LOG_PATH
    if _RUN_LOG_PATH:
        return _RUN_LOG_PATH
    _RUN_LOG_PATH = reporting.ensure_log_initialized()
    return _RUN_LOG_PATH


def _current_log_path() -> str:
    if _RUN_LOG_PATH:
        return _RUN_LOG_PATH
    return os.path.abspath(reporting.LOG_FILE_NAME)


def _render_summary_box(formatter: CLIFormatter, rows: list[tuple[str, str]], *, title: str = "SUMMARY") -> None:
    """
    Render SUMMARY box with deterministic width.
    """
    if formatter.config.pipe_mode:
        return
    width = formatter.line_width
    unicode = formatter.config.unicode_enabled and not formatter.config.plain_mode
    tl, tr, bl, br, horiz, vert = ("┌", "┐", "└", "┘", "─", "│") if unicode else ("+", "+", "+", "+", "-", "|")
    formatter.line(f"{tl}{horiz * (width - 2)}{tr}")
    formatter.line(f"{vert}{f' {title} '.center(width - 2)}{vert}")
    formatter.line(f"{vert}{' ' * (width - 2)}{vert}")
    for label, value in rows:
        text = f"{label:<24} {value}"
        if len(text) > width - 4:
            text = text[: width - 7] + "..."
        formatter.line(f"{vert} {text.ljust(width - 3)}{vert}")
    formatter.line(f"{vert}{' ' * (width - 2)}{vert}")
    formatter.line(f"{bl}{horiz * (width - 2)}{br}")


def _render_warnings_frame(formatter: CLIFormatter, warnings: list[str]) -> None:
    if formatter.config.pipe_mode or not warnings:
        return
    formatter.frame("WARNINGS", warnings)


def _render_next_steps(formatter: CLIFormatter, steps: list[str]) -> None:
    if formatter.config.pipe_mode or not steps:
        return
    formatter.line("Next steps:")
    for step in steps:
        formatter.bullet(step)


def _link_with_fallback(formatter: CLIFormatter, path: str, label: str) -> str:
    """
    Render hyperlink with textual fallback when OSC8 is unavailable.
    """
    link_text = formatter.link(path, label)
    if formatter.config.osc8_links:
        return link_text
    return f"{link_text} ({path})"


def _report_open_command(path: str) -> str:
    if os.name == "nt" or sys.platform.startswith("win"):
        return f'start "" "{path}"'
    if sys.platform.startswith("darwin"):
        return f'open "{path}"'
    return f'xdg-open "{path}"'


def _render_reports_block(formatter: CLIFormatter, reports: list[str]) -> None:
    if formatter.config.pipe_mode or not reports:
        return
    formatter.line("Outputs:")
    for path in reports:
        formatter.bullet(_link_with_fallback(formatter, path, os.path.basename(path)))
        if path.endswith(".html"):
            formatter.line(f"    OPEN: {_report_open_command(path)}")


def _emit_pipe_summary(formatter: CLIFormatter, *, command: str, fields: Dict[str, Any]) -> None:
    if not formatter.config.pipe_mode:
        return
    payload: Dict[str, Any] = {
        "schema_version": PIPE_SCHEMA_VERSION,
        "status": "OK",
        "command": command,
    }
    payload.update(fields)
    target = getattr(formatter, "pipe_target", sys.stdout)
    target.write(json.dumps(payload, separators=(",", ":")) + "\n")


def _emit_pipe_failure(
    formatter: CLIFormatter,
    *,
    status: str,
    command: str,
    reason: str,
    remediation: list[str],
    log_path: str,
) -> None:
    if not formatter.config.pipe_mode:
        return
    payload = {
        "schema_version": PIPE_SCHEMA_VERSION,
        "status": status.upper(),
        "command": command,
        "reason": reason,
        "remediation": remediation,
        "log": log_path,
    }
    target = getattr(formatter, "pipe_target", sys.stdout)
    target.write(json.dumps(payload, separators=(",", ":")) + "\n")


def _render_failure_summary(
    formatter: CLIFormatter,
    *,
    status: str,
    command: str,
    reason: str,
    remediation: list[str],
) -> None:
    log_path = _current_log_path()
    _emit_pipe_failure(
        formatter,
        status=status,
        command=command,
        reason=reason,
        remediation=remediation,
        log_path=log_path,
    )
    if formatter.config.pipe_mode:
        return
    formatter.failure_summary(
        reason=reason,
        log_hint=_link_with_fallback(formatter, log_path, "trailsign.log"),
        required=remediation[0] if remediation else None,
    )


def _remediation_for(exc: TrailsignError) -> list[str]:
    """
    Map a fatal error to the action that unblocks it.
    """
    if isinstance(exc, MissingPrerequisiteError):
        return [f"Run '{exc.upstream_step}' first, then rerun this command."]
    if isinstance(exc, EmptyInputError):
        return ["Add geotagged photos (JPEG or HEIC with GPS EXIF) to the photos folder."]
    if isinstance(exc, ScanError):
        return ["Create the photos folder or pass --photos-dir."]
    if isinstance(exc, TrailImportError):
        return ["Save a HAR capture of the map with the trail layers enabled, then pass --har."]
    if isinstance(exc, ReportWriteError):
        return ["Check free space and write permissions for the data and artifacts folders, then rerun match."]
    if isinstance(exc, ConfigError):
        return ["Pass --threshold and --buffer as non-negative numbers of meters."]
    return ["Review the error message and trailsign.log, then rerun the command."]


def _cluster_flow(config: PipelineConfig, formatter: CLIFormatter) -> Dict[str, Any]:
    formatter.section("Cluster photos")
    formatter.kv("Photos folder", config.photos_dir)
    formatter.kv("Threshold", f"{config.cluster_threshold_m:g} m ({config.sources.get('cluster_threshold_m')})")
    stage = pipeline.run_cluster_stage(config)
    for name in stage.skipped:
        formatter.verbose(f"Skipped {name} (no GPS)")
    for cluster in stage.clusters:
        formatter.verbose(
            f"{cluster.cluster_id}: {len(cluster.members)} photo(s), radius {cluster.radius_m:g} m"
        )
    formatter.blank()
    _render_summary_box(
        formatter,
        [
            ("Photos scanned", str(stage.photo_count)),
            ("Geotagged", str(stage.photo_count - len(stage.skipped))),
            ("Skipped (no GPS)", str(len(stage.skipped))),
            ("Clusters", str(len(stage.clusters))),
        ],
        title="CLUSTER SUMMARY",
    )
    if stage.skipped:
        _render_warnings_frame(formatter, [f"{len(stage.skipped)} photo(s) without GPS were skipped."])
    _render_reports_block(formatter, stage.outputs)
    return {
        "photos": stage.photo_count,
        "skipped": stage.skipped,
        "clusters": len(stage.clusters),
        "reports": list(stage.outputs),
    }


def _trails_flow(config: PipelineConfig, formatter: CLIFormatter, har_path: str | None) -> Dict[str, Any]:
    formatter.section("Import trails")
    formatter.kv("HAR file", os.path.abspath(har_path) if har_path else config.har_path)
    stage = pipeline.run_trails_import(config, har_path)
    formatter.blank()
    _render_summary_box(formatter, [("Trails imported", str(stage.trail_count))], title="TRAILS SUMMARY")
    _render_reports_block(formatter, stage.outputs)
    return {"trails": stage.trail_count, "reports": list(stage.outputs)}


def _match_flow(config: PipelineConfig, formatter: CLIFormatter) -> Dict[str, Any]:
    formatter.section("Match intersections")
    formatter.kv("Buffer", f"{config.intersection_buffer_m:g} m ({config.sources.get('intersection_buffer_m')})")
    reporter = formatter.verbose if formatter.config.verbose else None
    stage = pipeline.run_match_stage(config, reporter=reporter)
    intersections = stage.result.intersections
    warnings = [str(warning) for warning in stage.result.warnings]
    matched = [item for item in intersections if item.trail_count > 0]
    formatter.blank()
    _render_summary_box(
        formatter,
        [
            ("Clusters", str(len(intersections))),
            ("Trails", str(stage.trail_count)),
            ("Clusters on trails", str(len(matched))),
            ("Warnings", str(len(warnings))),
        ],
        title="MATCH SUMMARY",
    )
    if matched and not formatter.config.pipe_mode:
        formatter.line("Top intersections:")
        for item in matched[:TOP_INTERSECTIONS]:
            names = ", ".join(item.trail_names) or UNKNOWN_TRAIL_NAME
            formatter.bullet(f"{item.cluster_id}  {item.trail_count} trail(s): {names}")
    _render_warnings_frame(formatter, warnings)
    _render_reports_block(formatter, stage.outputs)
    return {
        "clusters": len(intersections),
        "trails": stage.trail_count,
        "intersections": len(matched),
        "warnings": warnings,
        "reports": list(stage.outputs),
    }


def _run_flow(config: PipelineConfig, formatter: CLIFormatter) -> Dict[str, Any]:
    clustered = _cluster_flow(config, formatter)
    matched = _match_flow(config, formatter)
    return {
        "photos": clustered["photos"],
        "skipped": clustered["skipped"],
        "clusters": matched["clusters"],
        "trails": matched["trails"],
        "intersections": matched["intersections"],
        "warnings": matched["warnings"],
        "reports": clustered["reports"] + matched["reports"],
    }


def main():
    """
    Argument parser entry point.

    Raises:
        SystemExit: When execution fails.
    """
    parser = argparse.ArgumentParser(
        prog="trailsign",
        description="Find trail intersections from geotagged sign photos.",
    )
    parser.add_argument(
        "--mode",
        choices=["auto", "tty", "plain", "pipe"],
        default="auto",
        help="Force output mode: auto (default), tty, plain, or pipe (single-line JSON).",
    )
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable ANSI colors regardless of terminal support.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Print per-photo and per-cluster decisions.",
    )
    parser.add_argument(
        "--executor",
        choices=["auto", "process", "thread"],
        default=None,
        help=f"Executor mode for EXIF extraction: auto (default), process, or thread. Also ${EXECUTOR_ENV}.",
    )
    parser.add_argument("--photos-dir", default=None, help="Folder of survey photos (default: photos/).")
    parser.add_argument("--data-dir", default=None, help="Folder for JSON/CSV inputs and outputs (default: data/).")
    parser.add_argument("--threshold", default=None, help="Cluster threshold in meters (default: 30).")
    parser.add_argument("--buffer", default=None, help="Intersection buffer in meters (default: 30).")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("cluster", help="Group geotagged photos into clusters (writes clusters.json)")
    trails_parser = subparsers.add_parser("trails", help="Import trails from a HAR capture (writes trails.json)")
    trails_parser.add_argument("--har", default=None, help="HAR file path (default: <data-dir>/www.trailforks.com.har)")
    subparsers.add_parser("match", help="Match clusters against trails and write the ranked intersections")
    subparsers.add_parser("run", help="Run cluster then match")

    args = parser.parse_args()

    formatter_config = detect_terminal_capabilities(
        no_color_flag=args.no_color,
        stdout_isatty=sys.stdout.isatty(),
        mode_preference=args.mode,
    )
    formatter_config.verbose = args.verbose
    pipe_stream = None
    if formatter_config.pipe_mode:
        pipe_stream = io.StringIO()
    formatter = CLIFormatter(formatter_config, stream=pipe_stream or sys.stdout)
    if pipe_stream:
        formatter.pipe_target = sys.stdout

    _ensure_run_log_path()
    configure_executor_mode(args.executor)

    try:
        reporting.write_log([f"[INFO] Command {args.command} started"])
        config = load_config(
            photos_dir=args.photos_dir,
            data_dir=args.data_dir,
            cluster_threshold_m=args.threshold,
            intersection_buffer_m=args.buffer,
        )

        if args.command == "cluster":
            fields = _cluster_flow(config, formatter)
            _render_next_steps(formatter, ["trailsign trails --har <capture.har>", "trailsign match"])
        elif args.command == "trails":
            fields = _trails_flow(config, formatter, args.har)
            _render_next_steps(formatter, ["trailsign match"])
        elif args.command == "match":
            fields = _match_flow(config, formatter)
        else:
            fields = _run_flow(config, formatter)

        _emit_pipe_summary(formatter, command=args.command, fields=fields)
        formatter.success(f"{args.command.capitalize()} complete.")
        reporting.write_log([f"[INFO] Command {args.command} finished"])

    except KeyboardInterrupt:
        reporting.write_log(["[WARNING] Operation aborted via Ctrl+C"])
        _render_failure_summary(
            formatter,
            status="ABORTED",
            command=args.command,
            reason="Interrupted by user (Ctrl+C).",
            remediation=["Re-run the command when ready."],
        )
        sys.exit(1)
    except TrailsignError as exc:
        reporting.write_log([f"[ERROR] {exc}"])
        _render_failure_summary(
            formatter,
            status="FAILED",
            command=args.command,
            reason=str(exc),
            remediation=_remediation_for(exc),
        )
        sys.exit(1)
    except Exception as exc:  # pragma: no cover - last-resort catch for CLI UX
        reporting.write_log([f"[ERROR] Unexpected failure: {exc}"])
        _render_failure_summary(
            formatter,
            status="FAILED",
            command=args.command,
            reason=f"Unexpected failure: {exc}",
            remediation=["Inspect trailsign.log for details."],
        )
        sys.exit(1)


if __name__ == "__main__":
    main()
