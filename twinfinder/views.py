"""
Derived result views for TwinFinder.

Everything the CLI and API display is derived from the current list of
similarity groups by the pure function derive_views(). Nothing here keeps
state between calls, so recomputing from the same groups gives identical
output.
"""

from __future__ import annotations

import logging
from collections import defaultdict

from .models import (
    FlattenedRow,
    FolderPair,
    ResultViews,
    SimilarityGroup,
    folder_display_name,
    parent_folder,
)

_logger = logging.getLogger(__name__)


def flatten_groups(groups: list[SimilarityGroup]) -> list[FlattenedRow]:
    """Expand every match of every group into a (reference, match, percent) row."""
    rows = []
    for group in groups:
        for member in group.matches:
            rows.append(FlattenedRow(group.reference, member.path, member.percent))
    return rows


def build_folder_graph(groups: list[SimilarityGroup]) -> dict[str, set[str]]:
    """
    Build the undirected folder co-occurrence graph.

    Every folder appearing in a group is a node; two folders are joined
    when they hold members of the same group.
    """
    graph: dict[str, set[str]] = {}
    for group in groups:
        folders = group.folders
        for folder in folders:
            graph.setdefault(folder, set())
        for i, first in enumerate(folders):
            for second in folders[i + 1:]:
                graph[first].add(second)
                graph[second].add(first)
    return graph


def find_folder_clusters(graph: dict[str, set[str]]) -> list[list[str]]:
    """
    Connected components of the folder graph with two or more folders.

    Traversal starts from folders in sorted order. Each component is
    sorted, and components are ordered by size (largest first), then by
    their first folder.
    """
    visited: set[str] = set()
    clusters = []

    for start in sorted(graph):
        if start in visited:
            continue
        component = []
        stack = [start]
        visited.add(start)
        while stack:
            folder = stack.pop()
            component.append(folder)
            for neighbour in sorted(graph.get(folder, ()), reverse=True):
                if neighbour not in visited:
                    visited.add(neighbour)
                    stack.append(neighbour)
        if len(component) > 1:
            clusters.append(sorted(component))

    clusters.sort(key=lambda cluster: (-len(cluster), cluster[0]))
    return clusters


def folder_statistics(
    groups: list[SimilarityGroup],
    folders: set[str],
) -> tuple[dict[str, int], dict[str, str]]:
    """
    Duplicate counts and representative images for the given folders.

    Returns:
        (folder -> number of distinct images in any group,
         folder -> first image met for the folder, reference first)
    """
    images: dict[str, set[str]] = defaultdict(set)
    representatives: dict[str, str] = {}

    for group in groups:
        for path in group.paths:
            folder = parent_folder(path)
            if folder not in folders:
                continue
            images[folder].add(path)
            representatives.setdefault(folder, path)

    counts = {folder: len(paths) for folder, paths in images.items()}
    return counts, representatives


def find_folder_pairs(rows: list[FlattenedRow]) -> list[FolderPair]:
    """
    Directed cross-folder relationships.

    Rows between the same two folders are counted together; the pair points
    the way most of those rows point (reference folder -> match folder),
    with ties going to the alphabetically first folder as reference.
    """
    directed: dict[tuple[str, str], int] = defaultdict(int)
    for row in rows:
        if row.is_cross_folder:
            directed[(row.reference_folder, row.match_folder)] += 1

    pairs = []
    seen: set[frozenset] = set()
    for (first, second) in directed:
        key = frozenset((first, second))
        if key in seen:
            continue
        seen.add(key)
        low, high = sorted((first, second))
        forward = directed.get((low, high), 0)
        backward = directed.get((high, low), 0)
        if backward > forward:
            pairs.append(FolderPair(high, low, forward + backward))
        else:
            pairs.append(FolderPair(low, high, forward + backward))

    pairs.sort(key=lambda pair: (-pair.count, pair.reference_folder, pair.match_folder))
    return pairs


def derive_views(groups: list[SimilarityGroup]) -> ResultViews:
    """
    Recompute every derived view from a group list.

    Args:
        groups: Current similarity groups

    Returns:
        ResultViews with rows, folder graph, clusters, per-folder counts
        and representatives, folder pairs and display names
    """
    rows = flatten_groups(groups)
    graph = build_folder_graph(groups)
    clusters = find_folder_clusters(graph)
    clustered = {folder for cluster in clusters for folder in cluster}
    counts, representatives = folder_statistics(groups, clustered)

    views = ResultViews(
        rows=rows,
        graph=graph,
        clusters=clusters,
        duplicate_counts=counts,
        representatives=representatives,
        folder_pairs=find_folder_pairs(rows),
        display_names={folder: folder_display_name(folder) for folder in graph},
    )
    _logger.debug(
        f"Derived {len(rows):,} rows and {len(clusters):,} folder clusters "
        f"from {len(groups):,} groups"
    )
    return views


__all__ = [
    'flatten_groups',
    'build_folder_graph',
    'find_folder_clusters',
    'folder_statistics',
    'find_folder_pairs',
    'derive_views',
]
