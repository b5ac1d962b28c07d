"""
File discovery module for the scanner package.

Enumerates image files and subdirectories with the pruning rules shared by
the planner and the comparison scopes: hidden entries are skipped, symlinked
directories are not followed, and directories whose name matches the ignored
folder name are pruned with their whole subtree.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from ..config import IMAGE_EXTENSIONS, HEIF_EXTENSIONS
from .dependencies import HAS_HEIF_SUPPORT

_logger = logging.getLogger(__name__)


def _supported_extensions() -> set[str]:
    if HAS_HEIF_SUPPORT:
        return set(IMAGE_EXTENSIONS)
    return {ext for ext in IMAGE_EXTENSIONS if ext not in HEIF_EXTENSIONS}


def _scan_entries(directory: str) -> list[os.DirEntry]:
    """List directory entries sorted by name; unreadable directories are empty."""
    try:
        with os.scandir(directory) as it:
            entries = list(it)
    except OSError as e:
        _logger.debug(f"Cannot read directory {directory}: {e}")
        return []
    return sorted(entries, key=lambda entry: entry.name)


def _is_qualifying_dir(entry: os.DirEntry, ignored_folder_name: str) -> bool:
    if entry.name.startswith('.'):
        return False
    if ignored_folder_name and entry.name == ignored_folder_name:
        return False
    try:
        return entry.is_dir(follow_symlinks=False)
    except OSError:
        return False


def list_subdirectories(directory: str | Path, ignored_folder_name: str = '') -> list[str]:
    """
    Return the qualifying direct subdirectories of a directory.

    Args:
        directory: Directory to list
        ignored_folder_name: Exact (case-sensitive) directory name to skip

    Returns:
        Subdirectory paths sorted by name
    """
    return [
        entry.path
        for entry in _scan_entries(os.fspath(directory))
        if _is_qualifying_dir(entry, ignored_folder_name)
    ]


def find_image_files(
    directory: str | Path,
    recursive: bool = True,
    ignored_folder_name: str = '',
) -> list[str]:
    """
    Find image files in a directory.

    Args:
        directory: Directory path to search for images
        recursive: If True, descend into qualifying subdirectories
        ignored_folder_name: Exact directory name whose subtree is skipped

    Returns:
        Sorted list of normalized absolute file paths

    Notes:
        - Automatically filters out HEIC/HEIF files if pillow-heif is not installed
        - Hidden files and directories are skipped
        - Unreadable directories contribute no files
    """
    extensions = _supported_extensions()
    images = []
    pending = [os.path.normpath(os.path.abspath(os.fspath(directory)))]

    while pending:
        current = pending.pop()
        for entry in _scan_entries(current):
            if entry.name.startswith('.'):
                continue
            try:
                is_file = entry.is_file()
            except OSError:
                continue
            if is_file:
                if os.path.splitext(entry.name)[1].lower() in extensions:
                    images.append(entry.path)
            elif recursive and _is_qualifying_dir(entry, ignored_folder_name):
                pending.append(entry.path)

    return sorted(images)


__all__ = ['find_image_files', 'list_subdirectories']
