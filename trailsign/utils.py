"""
Module: utils
Purpose: Shared helper utilities for Trailsign.
"""

import os
import urllib.parse
from concurrent.futures import ProcessPoolExecutor

from .exceptions import TrailsignError

EXECUTOR_ENV = "TRAILSIGN_EXECUTOR"
_EXECUTOR_MODE: str | None = None
_EXECUTOR_SOURCE: str | None = None
_PROCESS_POOL_SUPPORTED: bool | None = None


def ensure_heif_registered() -> None:
    try:
        from pillow_heif import register_heif_opener
    except ImportError:
        return
    try:
        register_heif_opener()
    except Exception as exc:
        log_error(f"HEIF registration failed: {exc}")


def _process_pool_probe() -> int:
    return 1


def _supports_process_pool() -> bool:
    global _PROCESS_POOL_SUPPORTED
    if _PROCESS_POOL_SUPPORTED is not None:
        return _PROCESS_POOL_SUPPORTED
    try:
        with ProcessPoolExecutor(max_workers=1) as executor:
            future = executor.submit(_process_pool_probe)
            future.result(timeout=2)
        _PROCESS_POOL_SUPPORTED = True
    except Exception:
        _PROCESS_POOL_SUPPORTED = False
    return _PROCESS_POOL_SUPPORTED


def configure_executor_mode(cli_override: str | None = None) -> tuple[str, str]:
    """
    Determine executor mode for EXIF extraction.
    Preference order: CLI override > environment variable > auto.
    Returns tuple of (mode, source), where mode is "process" or "thread".
    """
    global _EXECUTOR_MODE, _EXECUTOR_SOURCE
    source = "auto"
    requested = "auto"
    if cli_override:
        requested = cli_override.lower()
        source = "cli"
    else:
        env_value = os.getenv(EXECUTOR_ENV)
        if env_value:
            requested = env_value.lower()
            source = "env"

    if requested not in {"auto", "process", "thread"}:
        log_warning(
            f"Ignoring invalid {EXECUTOR_ENV} value '{requested}'. Expected auto, process, or thread."
        )
        requested = "auto"
        source = "auto"

    if requested == "thread":
        mode = "thread"
    elif _supports_process_pool():
        mode = "process"
    else:
        if requested == "process":
            log_warning("ProcessPool unavailable; falling back to ThreadPool for EXIF extraction.")
        mode = "thread"

    _EXECUTOR_MODE = mode
    _EXECUTOR_SOURCE = source
    log_info(f"Executor selected: {mode} (source={source}, requested={requested})")
    return mode, source


def executor_mode() -> str:
    if _EXECUTOR_MODE is None:
        configure_executor_mode(None)
    return _EXECUTOR_MODE or "thread"


COLOR_RESET = "\033[0m"
BOLD = "\033[1m"


def color_256(code: int) -> str:
    return f"\033[38;5;{code}m"


def ensure_directory(path: str):
    """
    Create directory if it does not exist.

    Args:
        path: Directory path to create.

    Raises:
        TrailsignError: If the directory cannot be created.
    """
    normalized = os.path.abspath(path)
    try:
        os.makedirs(normalized, exist_ok=True)
    except OSError as exc:
        log_error(f"Failed to create directory: {normalized} ({exc})")
        raise TrailsignError(f"Unable to create directory: {normalized}") from exc


def log_error(message: str):
    """
    Log an error message.
    """
    from . import reporting  # Local import to avoid circular dependency rules

    reporting.write_log([f"[ERROR] {message}"])


def log_warning(message: str):
    """
    Log a warning message.
    """
    from . import reporting  # Local import to avoid circular dependency rules

    reporting.write_log([f"[WARNING] {message}"])


def log_info(message: str):
    from . import reporting  # Local import to avoid circular dependency rules

    reporting.write_log([f"[INFO] {message}"])


def osc8_link(path: str, label: str | None = None) -> str:
    """
    Build an OSC-8 hyperlink escape for supported terminals.
    """
    abs_path = os.path.abspath(path)
    uri = "file://" + urllib.parse.quote(abs_path)
    display = label if label is not None else abs_path
    # OSC 8: ESC ] 8 ; ; URI BEL  label  ESC ] 8 ; ; BEL
    return f"\033]8;;{uri}\a{display}\033]8;;\a"
