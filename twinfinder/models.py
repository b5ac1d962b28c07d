"""
Data models for TwinFinder.

Contains dataclasses for similarity groups, their flattened match rows,
folder level relationships, and the bundle of derived result views.
"""

from dataclasses import dataclass, field
from typing import Optional
import os


def normalize_path(path) -> str:
    """Return the absolute, normalized string form of a path."""
    return os.path.normpath(os.path.abspath(os.fspath(path)))


def parent_folder(path: str) -> str:
    """Return the directory containing an image path."""
    return os.path.dirname(path)


def folder_display_name(folder: str) -> str:
    """
    Short label for a folder: its parent's name and its own name.

    Examples:
        >>> folder_display_name('/photos/2021/summer')
        '2021/summer'
    """
    name = os.path.basename(folder)
    parent = os.path.basename(os.path.dirname(folder))
    if not parent:
        return name or folder
    return f"{parent}/{name}"


@dataclass
class GroupMember:
    """
    One image inside a similarity group.

    Attributes:
        path: Normalized absolute image path
        percent: Similarity score in [0, 1]; 1.0 for the reference
    """
    path: str
    percent: float = 1.0

    @property
    def filename(self) -> str:
        """Return just the filename portion of the path."""
        return os.path.basename(self.path)

    @property
    def folder(self) -> str:
        """Return the directory containing this image."""
        return parent_folder(self.path)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'path': self.path,
            'filename': self.filename,
            'folder': self.folder,
            'percent': round(self.percent, 6),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'GroupMember':
        """Create GroupMember from dictionary."""
        return cls(path=data['path'], percent=float(data.get('percent', 1.0)))


@dataclass
class SimilarityGroup:
    """
    A reference image and the images found similar to it.

    members[0] is always the reference with percent 1.0, followed by the
    matches in descending percent order.

    Attributes:
        members: Reference first, then matches
    """
    members: list = field(default_factory=list)

    @classmethod
    def create(cls, reference: str, matches: list) -> 'SimilarityGroup':
        """Build a group from a reference path and (path, percent) pairs."""
        members = [GroupMember(reference, 1.0)]
        members.extend(GroupMember(path, percent) for path, percent in matches)
        return cls(members=members)

    @property
    def reference(self) -> Optional[str]:
        """Path of the reference image."""
        return self.members[0].path if self.members else None

    @property
    def matches(self) -> list:
        """All members except the reference."""
        return self.members[1:]

    @property
    def paths(self) -> list:
        """Every member path, reference first."""
        return [m.path for m in self.members]

    @property
    def folders(self) -> list:
        """Distinct parent folders in member order."""
        seen = []
        for member in self.members:
            if member.folder not in seen:
                seen.append(member.folder)
        return seen

    @property
    def size(self) -> int:
        """Number of images in this group."""
        return len(self.members)

    @property
    def is_cross_folder(self) -> bool:
        """True when members span more than one folder."""
        return len(self.folders) > 1

    def contains(self, path: str) -> bool:
        """Check whether a path is a member of this group."""
        return any(m.path == path for m in self.members)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'reference': self.reference,
            'size': self.size,
            'cross_folder': self.is_cross_folder,
            'members': [m.to_dict() for m in self.members],
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'SimilarityGroup':
        """Create SimilarityGroup from dictionary."""
        return cls(members=[GroupMember.from_dict(m) for m in data.get('members', [])])


@dataclass(frozen=True)
class FlattenedRow:
    """
    One (reference, match, percent) pair expanded from a group.

    Attributes:
        reference: Reference image path
        match: Matching image path
        percent: Similarity of the match
    """
    reference: str
    match: str
    percent: float

    @property
    def id(self) -> str:
        """Stable identity of the pair."""
        return f"{self.reference}::{self.match}"

    @property
    def reference_folder(self) -> str:
        return parent_folder(self.reference)

    @property
    def match_folder(self) -> str:
        return parent_folder(self.match)

    @property
    def is_cross_folder(self) -> bool:
        """True when the two images live in different folders."""
        return self.reference_folder != self.match_folder

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'id': self.id,
            'reference': self.reference,
            'match': self.match,
            'percent': round(self.percent, 6),
            'cross_folder': self.is_cross_folder,
            'reference_folder': self.reference_folder,
            'match_folder': self.match_folder,
        }


@dataclass(frozen=True)
class FolderPair:
    """
    Directed cross-folder relationship.

    The direction follows whichever way most reference -> match rows
    point between the two folders.

    Attributes:
        reference_folder: Folder that mostly holds the references
        match_folder: Folder that mostly holds the matches
        count: Number of rows between the two folders (either direction)
    """
    reference_folder: str
    match_folder: str
    count: int

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            'reference_folder': self.reference_folder,
            'match_folder': self.match_folder,
            'count': self.count,
        }


@dataclass
class ResultViews:
    """
    Every view derived from one list of similarity groups.

    Attributes:
        rows: Flattened reference/match rows
        graph: Undirected folder adjacency
        clusters: Connected folder components of size >= 2
        duplicate_counts: folder -> distinct images taking part in groups
        representatives: folder -> first image encountered for the folder
        folder_pairs: Directed cross-folder pairs
        display_names: folder -> short "parent/folder" label
    """
    rows: list = field(default_factory=list)
    graph: dict = field(default_factory=dict)
    clusters: list = field(default_factory=list)
    duplicate_counts: dict = field(default_factory=dict)
    representatives: dict = field(default_factory=dict)
    folder_pairs: list = field(default_factory=list)
    display_names: dict = field(default_factory=dict)

    @property
    def cross_folder_rows(self) -> list:
        """Rows whose images live in different folders."""
        return [row for row in self.rows if row.is_cross_folder]

    def to_dict(self) -> dict:
        """Convert the folder level views to a JSON-friendly dictionary."""
        return {
            'clusters': [
                {
                    'folders': [
                        {
                            'path': folder,
                            'display_name': self.display_names.get(folder, folder),
                            'duplicate_count': self.duplicate_counts.get(folder, 0),
                            'representative': self.representatives.get(folder),
                        }
                        for folder in cluster
                    ],
                }
                for cluster in self.clusters
            ],
            'folder_pairs': [pair.to_dict() for pair in self.folder_pairs],
        }
