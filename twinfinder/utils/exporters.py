"""
Export functionality for TwinFinder.

Writes the flattened reference/match rows of an analysis to CSV. The file
is meant for review in a spreadsheet and is never read back.
"""

from __future__ import annotations

import csv
from pathlib import Path
from typing import TextIO, Union

from ..models import FlattenedRow
from .formatters import format_percent

CSV_HEADER = [
    'Reference',
    'Match',
    'Similarity',
    'Cross-Folder',
    'Reference Folder',
    'Match Folder',
]


def sort_rows(rows: list[FlattenedRow]) -> list[FlattenedRow]:
    """Order rows by similarity (highest first), then reference and match."""
    return sorted(rows, key=lambda row: (-row.percent, row.reference, row.match))


def write_rows_csv(rows: list[FlattenedRow], file_handle: TextIO) -> int:
    """
    Write rows as CSV to an open text handle.

    Args:
        rows: Flattened rows to export
        file_handle: Handle opened with newline=''

    Returns:
        Number of data rows written
    """
    writer = csv.writer(file_handle)
    writer.writerow(CSV_HEADER)
    ordered = sort_rows(rows)
    for row in ordered:
        writer.writerow([
            row.reference,
            row.match,
            format_percent(row.percent),
            'Yes' if row.is_cross_folder else 'No',
            row.reference_folder,
            row.match_folder,
        ])
    return len(ordered)


def export_rows_csv(rows: list[FlattenedRow], output_path: Union[str, Path]) -> int:
    """
    Export flattened rows to a CSV file.

    Args:
        rows: Flattened rows to export
        output_path: Destination file

    Returns:
        Number of data rows written

    Raises:
        OSError: If the file cannot be written

    Examples:
        >>> export_rows_csv(views.rows, Path('matches.csv'))
        12
    """
    with open(output_path, 'w', encoding='utf-8', newline='') as f:
        return write_rows_csv(rows, f)


__all__ = ['CSV_HEADER', 'sort_rows', 'write_rows_csv', 'export_rows_csv']
