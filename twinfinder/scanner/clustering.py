"""
Clustering module for the scanner package.

Groups fingerprinted images into reference + matches groups with a greedy,
threshold-based single pass. The pass is not a transitive closure: an image
joins the first earlier unused image it is similar enough to, and is never
reconsidered. Inputs are sorted by path first so the same files always give
the same groups.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from ..config import NEAR_EXACT_SIMILARITY
from ..models import SimilarityGroup

_logger = logging.getLogger(__name__)

SimilarityFunc = Callable[[Any, Any], float]


def _snap(value: float) -> float:
    if value >= NEAR_EXACT_SIMILARITY:
        return 1.0
    return min(1.0, max(0.0, value))


def _pairwise_matrix(
    fingerprints: list[Any],
    similarity: SimilarityFunc,
) -> list[list[float]]:
    """Symmetric similarity matrix with 1.0 on the diagonal."""
    size = len(fingerprints)
    matrix = [[1.0] * size for _ in range(size)]
    for i in range(size):
        for j in range(i + 1, size):
            value = similarity(fingerprints[i], fingerprints[j])
            matrix[i][j] = value
            matrix[j][i] = value
    return matrix


def choose_reference(paths: list[str], matrix: list[list[float]]) -> int:
    """
    Pick the index of the group's reference image.

    Members of any near-identical pair win, smallest path first. Without
    such a pair the member with the highest mean similarity to the others
    is chosen, ties going to the smaller path.

    Args:
        paths: Member paths
        matrix: Pairwise similarity matrix over the members

    Returns:
        Index into paths
    """
    size = len(paths)
    near_exact = {
        index
        for i in range(size)
        for j in range(i + 1, size)
        if matrix[i][j] >= NEAR_EXACT_SIMILARITY
        for index in (i, j)
    }
    if near_exact:
        return min(near_exact, key=lambda index: paths[index])

    def mean_similarity(index: int) -> float:
        others = [matrix[index][j] for j in range(size) if j != index]
        return sum(others) / len(others) if others else 0.0

    return min(range(size), key=lambda index: (-mean_similarity(index), paths[index]))


def best_similarities(matrix: list[list[float]]) -> list[float]:
    """Maximum similarity of every member to any other member, snapped."""
    size = len(matrix)
    return [
        _snap(max((matrix[i][j] for j in range(size) if j != i), default=0.0))
        for i in range(size)
    ]


def build_group(
    members: list[tuple[str, Any]],
    similarity: SimilarityFunc,
) -> SimilarityGroup:
    """
    Turn clustered members into a SimilarityGroup.

    Args:
        members: (path, fingerprint) pairs, at least two
        similarity: Fingerprint similarity function

    Returns:
        Group with the chosen reference first and the matches sorted by
        percent (descending), then path
    """
    paths = [path for path, _ in members]
    matrix = _pairwise_matrix([fp for _, fp in members], similarity)
    reference = choose_reference(paths, matrix)
    percents = best_similarities(matrix)

    matches = sorted(
        ((paths[i], percents[i]) for i in range(len(paths)) if i != reference),
        key=lambda item: (-item[1], item[0]),
    )
    return SimilarityGroup.create(paths[reference], matches)


def cluster_fingerprints(
    entries: list[tuple[str, Any]],
    similarity: SimilarityFunc,
    threshold: float,
    progress_callback: Optional[Callable[[int, int], None]] = None,
    should_cancel: Optional[Callable[[], bool]] = None,
) -> Optional[list[SimilarityGroup]]:
    """
    Greedily cluster fingerprints of one comparison scope.

    Args:
        entries: (path, fingerprint) pairs
        similarity: Fingerprint similarity function returning [0, 1]
        threshold: Minimum similarity for an image to join a group
        progress_callback: Optional callback(current, total) per outer step
        should_cancel: Optional predicate polled per outer step

    Returns:
        Groups with at least two members in order of their first member,
        or None if cancelled
    """
    ordered = sorted(entries, key=lambda entry: entry[0])
    total = len(ordered)
    used: set[int] = set()
    groups = []

    for i in range(total):
        if should_cancel is not None and should_cancel():
            return None

        if i not in used:
            members = [ordered[i]]
            for j in range(i + 1, total):
                if j in used:
                    continue
                if similarity(ordered[i][1], ordered[j][1]) >= threshold:
                    members.append(ordered[j])
                    used.add(j)
            used.add(i)

            if len(members) > 1:
                groups.append(build_group(members, similarity))

        if progress_callback:
            progress_callback(i + 1, total)

    _logger.debug(f"Clustered {total:,} images into {len(groups):,} groups")
    return groups


__all__ = [
    'cluster_fingerprints',
    'build_group',
    'choose_reference',
    'best_similarities',
]
