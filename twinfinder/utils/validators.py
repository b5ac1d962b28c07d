"""
Input validation and security checks for TwinFinder.

Provides validators for analysis parameters, directories, and path
containment checks used before any file operation.
"""

from __future__ import annotations

import math
import os
from pathlib import Path
from typing import Any, Iterable, Optional

from ..config import STRATEGIES


def validate_path_in_roots(filepath: str, roots: Iterable[str]) -> bool:
    """
    Validate that a path lies inside one of the analysed root directories.

    Prevents callers from deleting or opening paths outside the folders
    that were scanned.

    Args:
        filepath: Path to validate
        roots: Root directories of the current analysis

    Returns:
        True if path is inside (or equal to) one of the roots

    Examples:
        >>> validate_path_in_roots('/home/user/photos/img.jpg', ['/home/user/photos'])
        True
        >>> validate_path_in_roots('/etc/passwd', ['/home/user/photos'])
        False
    """
    try:
        file_resolved = str(Path(filepath).resolve())
    except (OSError, RuntimeError, TypeError, ValueError):
        return False

    for root in roots:
        try:
            base_resolved = str(Path(root).resolve())
        except (OSError, RuntimeError, TypeError, ValueError):
            continue
        if file_resolved == base_resolved or file_resolved.startswith(base_resolved.rstrip(os.sep) + os.sep):
            return True
    return False


def validate_directory(directory: str) -> tuple[bool, str]:
    """
    Validate that a directory exists and is accessible.

    Args:
        directory: Directory path to validate

    Returns:
        Tuple of (is_valid, error_message)

    Examples:
        >>> validate_directory('/nonexistent/directory')
        (False, 'Directory not found: /nonexistent/directory')
    """
    if not directory:
        return False, "Directory path is required"

    if not os.path.isabs(directory):
        return False, "Directory must be an absolute path"

    if not os.path.exists(directory):
        return False, f"Directory not found: {directory}"

    if not os.path.isdir(directory):
        return False, f"Path is not a directory: {directory}"

    if not os.access(directory, os.R_OK):
        return False, f"Cannot read directory (permission denied): {directory}"

    return True, ""


def validate_threshold(threshold: Any) -> tuple[bool, str]:
    """
    Validate that a similarity threshold is a number in [0, 1].

    Examples:
        >>> validate_threshold(0.7)
        (True, '')
        >>> validate_threshold(1.5)
        (False, 'Threshold must be between 0.0 and 1.0')
    """
    if isinstance(threshold, bool):
        return False, "Threshold must be a number"
    try:
        value = float(threshold)
    except (ValueError, TypeError):
        return False, "Threshold must be a number"
    if math.isnan(value) or not 0.0 <= value <= 1.0:
        return False, "Threshold must be between 0.0 and 1.0"
    return True, ""


def validate_strategy(strategy: Any) -> tuple[bool, str]:
    """
    Validate a fingerprint strategy name or strategy object.

    Examples:
        >>> validate_strategy('hash')
        (True, '')
        >>> validate_strategy('sift')
        (False, 'Unknown strategy: sift. Choose from: hash, embedding')
    """
    if isinstance(strategy, str):
        if strategy in STRATEGIES:
            return True, ""
        return False, f"Unknown strategy: {strategy}. Choose from: {', '.join(STRATEGIES)}"
    if callable(getattr(strategy, 'extract', None)) and callable(getattr(strategy, 'similarity', None)):
        return True, ""
    return False, "Strategy must be a name or provide extract() and similarity()"


def validate_roots(roots: Any) -> tuple[bool, str]:
    """
    Validate the list of root directories passed to an analysis.

    Missing directories are allowed here; the planner treats them as empty.
    """
    if roots is None or isinstance(roots, (str, bytes, os.PathLike)):
        return False, "Roots must be a list of directories"
    try:
        roots = list(roots)
    except TypeError:
        return False, "Roots must be a list of directories"
    if not roots:
        return False, "At least one root directory is required"
    for root in roots:
        if not isinstance(root, (str, os.PathLike)) or not str(root).strip():
            return False, "Root directories must be non-empty paths"
    return True, ""


def validate_excluded_folders(excluded_folders: Any) -> tuple[bool, str]:
    """
    Validate the leaf directories left out of an analysis.

    None and empty collections are valid; a single bare path is not.
    """
    if excluded_folders is None:
        return True, ""
    if isinstance(excluded_folders, (str, bytes, os.PathLike)):
        return False, "Excluded folders must be a list of directories"
    try:
        folders = list(excluded_folders)
    except TypeError:
        return False, "Excluded folders must be a list of directories"
    for folder in folders:
        if not isinstance(folder, (str, os.PathLike)) or not str(folder).strip():
            return False, "Excluded folders must be non-empty paths"
    return True, ""


def validate_workers(workers: Any) -> tuple[bool, str]:
    """Validate a worker count (1-32)."""
    if isinstance(workers, bool):
        return False, "Workers must be an integer"
    try:
        workers = int(workers)
    except (ValueError, TypeError):
        return False, "Workers must be an integer"
    if not 1 <= workers <= 32:
        return False, "Workers must be between 1 and 32"
    return True, ""


def validate_analysis_params(
    roots: Any,
    threshold: Any,
    strategy: Any = 'hash',
    workers: Optional[Any] = None,
    excluded_folders: Optional[Any] = None,
) -> tuple[bool, str]:
    """
    Validate all analysis parameters before any work starts.

    Args:
        roots: Root directories
        threshold: Similarity threshold in [0, 1]
        strategy: Strategy name or object
        workers: Number of worker threads (optional)
        excluded_folders: Leaf directories left out of the scan (optional)

    Returns:
        Tuple of (is_valid, error_message)

    Examples:
        >>> validate_analysis_params(['/photos'], 0.8)
        (True, '')
    """
    for is_valid, error in (
        validate_roots(roots),
        validate_threshold(threshold),
        validate_strategy(strategy),
        validate_excluded_folders(excluded_folders),
    ):
        if not is_valid:
            return False, error

    if workers is not None:
        is_valid, error = validate_workers(workers)
        if not is_valid:
            return False, error

    return True, ""


__all__ = [
    'validate_path_in_roots',
    'validate_directory',
    'validate_threshold',
    'validate_strategy',
    'validate_roots',
    'validate_workers',
    'validate_excluded_folders',
    'validate_analysis_params',
]
