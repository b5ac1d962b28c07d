"""
Platform-specific file operations for TwinFinder.

Wraps the operating system services the application delegates to:
moving files to the trash and revealing folders in the file manager.
"""

from __future__ import annotations

import logging
import os
import platform as platform_module
import subprocess

from send2trash import send2trash

_logger = logging.getLogger(__name__)


def move_to_trash(path: str) -> None:
    """
    Move a file or folder to the operating system trash.

    Raises:
        FileNotFoundError: If the path does not exist
        OSError: If the trash operation fails
    """
    if not os.path.lexists(path):
        raise FileNotFoundError(f"File not found: {path}")
    send2trash(path)
    _logger.info(f"Moved to trash: {path}")


def open_in_file_manager(path: str) -> tuple[bool, str]:
    """
    Open a folder in the platform file manager.

    If path is a file, its containing folder is opened instead.

    Args:
        path: Folder (or file) to reveal

    Returns:
        Tuple of (success, error_message)

    Notes:
        - Best effort: the file manager process is not waited for
        - Windows uses os.startfile, macOS 'open', others 'xdg-open'
    """
    folder = path if os.path.isdir(path) else os.path.dirname(path)
    if not folder or not os.path.isdir(folder):
        return False, f"Folder not found: {folder or path}"

    system = platform_module.system()
    try:
        if system == 'Windows':
            os.startfile(folder)  # type: ignore[attr-defined]
        elif system == 'Darwin':
            subprocess.Popen(['open', folder])
        else:
            subprocess.Popen(['xdg-open', folder])
    except OSError as e:
        _logger.warning(f"Could not open folder {folder}: {e}")
        return False, f"Could not open folder: {e}"

    return True, ""


__all__ = ['move_to_trash', 'open_in_file_manager']
