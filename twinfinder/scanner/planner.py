"""
Scan planning for the scanner package.

Turns the user's selected root folders into the ordered list of leaf
directories that will be compared, and groups their images into
comparison scopes.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from ..models import normalize_path
from .file_discovery import find_image_files, list_subdirectories

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanPlan:
    """
    Directories to scan for one analysis run.

    Attributes:
        directories: Leaf directories in discovery order, without duplicates
        top_level_only: Compare each directory only against itself
        ignored_folder_name: Directory name pruned while collecting files
    """
    directories: tuple = ()
    top_level_only: bool = False
    ignored_folder_name: str = ''

    def __len__(self) -> int:
        return len(self.directories)

    @property
    def is_empty(self) -> bool:
        return not self.directories

    def scopes(self) -> list[list[str]]:
        """
        Group the planned images into comparison scopes.

        With top_level_only each directory's direct images form their own
        scope. Otherwise every image under every planned directory is pooled
        into a single scope. Empty scopes are omitted.
        """
        if self.top_level_only:
            scopes = []
            for directory in self.directories:
                files = find_image_files(
                    directory,
                    recursive=False,
                    ignored_folder_name=self.ignored_folder_name,
                )
                if files:
                    scopes.append(files)
            return scopes

        pooled = []
        seen = set()
        for directory in self.directories:
            for path in find_image_files(
                directory,
                recursive=True,
                ignored_folder_name=self.ignored_folder_name,
            ):
                if path not in seen:
                    seen.add(path)
                    pooled.append(path)
        return [pooled] if pooled else []


def _collect_leaves(root: str, ignored_folder_name: str) -> list[str]:
    """Leaf descendants of root in depth-first, name-sorted order."""
    leaves = []
    stack = [(root, list_subdirectories(root, ignored_folder_name))]
    while stack:
        directory, children = stack.pop()
        if not children:
            leaves.append(directory)
            continue
        # Reversed so the alphabetically first child is visited first
        for child in reversed(children):
            stack.append((child, list_subdirectories(child, ignored_folder_name)))
    return leaves


def plan_scan(
    roots: Iterable[str | Path],
    top_level_only: bool = False,
    ignored_folder_name: str = '',
    excluded_folders: Iterable[str | Path] = (),
) -> ScanPlan:
    """
    Build the scan plan for a set of root folders.

    A root without qualifying subdirectories is scanned itself. Otherwise
    only its leaf descendants are scanned and the root's own files are not.

    Args:
        roots: User-selected root directories
        top_level_only: Compare each leaf directory only against itself
        ignored_folder_name: Exact (case-sensitive) directory name to prune
        excluded_folders: Discovered leaf directories the user left out

    Returns:
        ScanPlan with de-duplicated directories in discovery order
    """
    directories = []
    seen = set()
    excluded = {normalize_path(folder) for folder in excluded_folders or ()}

    for root in roots:
        root_path = normalize_path(root)
        if not os.path.isdir(root_path):
            _logger.debug(f"Skipping root that is not a directory: {root_path}")
            continue

        for directory in _collect_leaves(root_path, ignored_folder_name or ''):
            if directory in excluded:
                _logger.debug(f"Excluded leaf directory: {directory}")
                continue
            if directory not in seen:
                seen.add(directory)
                directories.append(directory)

    _logger.debug(f"Planned {len(directories)} leaf directories")
    return ScanPlan(
        directories=tuple(directories),
        top_level_only=top_level_only,
        ignored_folder_name=ignored_folder_name or '',
    )


__all__ = ['ScanPlan', 'plan_scan']
