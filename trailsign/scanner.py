"""
Module: scanner
Purpose: Photo folder scanning.
"""

import os
from typing import List

from .exceptions import ScanError
from .utils import log_error, log_warning

SUPPORTED_FORMATS = {"jpg", "jpeg", "heic"}


def is_supported(name: str) -> bool:
    _, ext = os.path.splitext(name)
    return bool(ext) and ext.lstrip(".").lower() in SUPPORTED_FORMATS


def scan_photos(directory: str) -> List[str]:
    """
    List supported photos directly inside a folder.

    Args:
        directory: Folder holding the survey photos.

    Returns:
        Absolute paths sorted by filename.

    Raises:
        ScanError: If the folder is missing or not a directory.
    """
    path = os.path.abspath(directory)
    if not os.path.exists(path):
        log_error(f"Path does not exist: {path}")
        raise ScanError(f"Photos folder does not exist: {path}")
    if not os.path.isdir(path):
        log_error(f"Path is not a directory: {path}")
        raise ScanError(f"Photos path is not a directory: {path}")

    results: List[str] = []
    with os.scandir(path) as entries:
        for entry in entries:
            if entry.is_symlink():
                log_warning(f"Skipping symlink during scan: {entry.path}")
                continue
            if not entry.is_file():
                continue
            if is_supported(entry.name):
                results.append(os.path.abspath(entry.path))
    results.sort(key=os.path.basename)
    return results
