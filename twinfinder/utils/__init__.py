"""
Utilities package for TwinFinder.

Provides:
- formatters: Human-readable formatting for numbers, time, and percentages
- validators: Input validation and security checks
- platform: Trash and file manager integration
- exporters: Export match rows to CSV
"""

from __future__ import annotations

from . import formatters
from . import validators
from . import platform
from . import exporters

from .formatters import format_number, format_percent
from .validators import (
    validate_path_in_roots,
    validate_directory,
    validate_threshold,
    validate_strategy,
    validate_roots,
    validate_workers,
    validate_excluded_folders,
    validate_analysis_params,
)
from .platform import move_to_trash, open_in_file_manager
from .exporters import export_rows_csv, write_rows_csv, sort_rows

__all__ = [
    # Submodules
    'formatters',
    'validators',
    'platform',
    'exporters',
    # Formatters
    'format_number',
    'format_percent',
    # Validators
    'validate_path_in_roots',
    'validate_directory',
    'validate_threshold',
    'validate_strategy',
    'validate_roots',
    'validate_workers',
    'validate_excluded_folders',
    'validate_analysis_params',
    # Platform
    'move_to_trash',
    'open_in_file_manager',
    # Exporters
    'export_rows_csv',
    'write_rows_csv',
    'sort_rows',
]
