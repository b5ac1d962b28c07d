"""
Report formatting and display for the CLI interface.

Prints similarity groups and folder relationships in a human-readable
format.
"""

from __future__ import annotations

from ..models import ResultViews, SimilarityGroup
from ..utils.formatters import format_number, format_percent


def _print_section_header(title: str) -> None:
    """Print a section header with divider lines."""
    print("\n" + "-" * 70)
    print(title)
    print("-" * 70)


def _print_group(group_number: int, group: SimilarityGroup) -> None:
    cross = " (cross-folder)" if group.is_cross_folder else ""
    print(f"\nGroup {group_number} ({group.size} files){cross}:")
    print(f"  [REF ] {group.reference}")
    for member in group.matches:
        print(f"  [{format_percent(member.percent):>6}] {member.path}")


def print_similarity_report(groups: list[SimilarityGroup], views: ResultViews) -> None:
    """
    Print every similarity group with its reference and matches.

    Args:
        groups: Groups from the analysis
        views: Views derived from the same groups
    """
    print("\n" + "=" * 70)
    print("SIMILAR IMAGE REPORT")
    print("=" * 70)

    print(f"\nGroups found: {format_number(len(groups))}")
    print(f"Matches: {format_number(len(views.rows))} "
          f"({format_number(len(views.cross_folder_rows))} across folders)")

    if groups:
        _print_section_header("GROUPS")
        for i, group in enumerate(groups, 1):
            _print_group(i, group)

    print("\n" + "=" * 70)


def print_folder_report(views: ResultViews) -> None:
    """
    Print folder clusters and the strongest cross-folder pairs.

    Args:
        views: Derived result views
    """
    if not views.clusters:
        print("\nNo folders share similar images.")
        return

    _print_section_header("FOLDER CLUSTERS")
    for i, cluster in enumerate(views.clusters, 1):
        print(f"\nCluster {i} ({len(cluster)} folders):")
        for folder in cluster:
            count = views.duplicate_counts.get(folder, 0)
            name = views.display_names.get(folder, folder)
            print(f"  {name:<40} {format_number(count):>6} images  {folder}")

    if views.folder_pairs:
        _print_section_header("CROSS-FOLDER PAIRS")
        for pair in views.folder_pairs:
            reference = views.display_names.get(pair.reference_folder, pair.reference_folder)
            match = views.display_names.get(pair.match_folder, pair.match_folder)
            print(f"  {reference} -> {match}: {format_number(pair.count)} matches")


__all__ = ['print_similarity_report', 'print_folder_report']
