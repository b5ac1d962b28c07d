"""
Result mutation for TwinFinder.

Prunes deleted images out of an existing group list. Both functions return
a new list and leave their input untouched; derived views must be
recomputed from the returned list afterwards.
"""

from __future__ import annotations

import os
from typing import Callable

from .models import GroupMember, SimilarityGroup, normalize_path, parent_folder


def _prune(
    groups: list[SimilarityGroup],
    removed: Callable[[GroupMember], bool],
) -> list[SimilarityGroup]:
    kept = []
    for group in groups:
        if not group.members or removed(group.members[0]):
            continue
        matches = [member for member in group.matches if not removed(member)]
        if not matches:
            continue
        kept.append(SimilarityGroup(members=[group.members[0]] + matches))
    return kept


def remove_path(groups: list[SimilarityGroup], path: str) -> list[SimilarityGroup]:
    """
    Remove one image from every group.

    A group is dropped when the image was its reference or when no match
    would remain.

    Examples:
        >>> group = SimilarityGroup.create('/a/1.jpg', [('/a/2.jpg', 0.9)])
        >>> remove_path([group], '/a/2.jpg')
        []
    """
    target = normalize_path(path)
    return _prune(groups, lambda member: member.path == target)


def remove_folder(groups: list[SimilarityGroup], folder: str) -> list[SimilarityGroup]:
    """
    Remove every image inside a folder, subfolders included.

    The same pruning rule as remove_path applies to each affected group.
    """
    target = normalize_path(folder)
    prefix = target.rstrip(os.sep) + os.sep

    def inside(member: GroupMember) -> bool:
        return parent_folder(member.path) == target or member.path.startswith(prefix)

    return _prune(groups, inside)


__all__ = ['remove_path', 'remove_folder']
