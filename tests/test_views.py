"""
Unit tests for derived result views.
"""

import pytest
from twinfinder.models import FlattenedRow, FolderPair, SimilarityGroup
from twinfinder.views import (
    build_folder_graph,
    derive_views,
    find_folder_clusters,
    find_folder_pairs,
    flatten_groups,
)


@pytest.fixture
def groups():
    """Groups spread over folders a/b (linked), c (alone) and d/e (linked)."""
    return [
        SimilarityGroup.create('/p/a/1.jpg', [('/p/b/1.jpg', 0.9), ('/p/a/2.jpg', 0.8)]),
        SimilarityGroup.create('/p/b/3.jpg', [('/p/a/4.jpg', 0.85)]),
        SimilarityGroup.create('/p/a/5.jpg', [('/p/b/5.jpg', 0.85)]),
        SimilarityGroup.create('/p/c/1.jpg', [('/p/c/2.jpg', 0.9)]),
        SimilarityGroup.create('/p/d/1.jpg', [('/p/e/1.jpg', 0.9)]),
    ]


class TestFlattenGroups:
    """Test flatten_groups function."""

    def test_one_row_per_match(self, groups):
        rows = flatten_groups(groups)
        assert len(rows) == 6
        assert rows[0] == FlattenedRow('/p/a/1.jpg', '/p/b/1.jpg', 0.9)
        assert rows[1] == FlattenedRow('/p/a/1.jpg', '/p/a/2.jpg', 0.8)

    def test_empty(self):
        assert flatten_groups([]) == []


class TestFolderGraph:
    """Test folder graph and cluster functions."""

    def test_graph_edges(self, groups):
        graph = build_folder_graph(groups)
        assert graph['/p/a'] == {'/p/b'}
        assert graph['/p/b'] == {'/p/a'}
        assert graph['/p/c'] == set()

    def test_clusters_need_two_folders(self, groups):
        clusters = find_folder_clusters(build_folder_graph(groups))
        assert clusters == [['/p/a', '/p/b'], ['/p/d', '/p/e']]

    def test_clusters_ordered_by_size(self):
        graph = {
            '/a': {'/b'},
            '/b': {'/a'},
            '/x': {'/y'},
            '/y': {'/x', '/z'},
            '/z': {'/y'},
        }
        assert find_folder_clusters(graph) == [['/x', '/y', '/z'], ['/a', '/b']]


class TestFolderPairs:
    """Test find_folder_pairs function."""

    def test_majority_direction(self, groups):
        pairs = find_folder_pairs(flatten_groups(groups))
        assert pairs == [FolderPair('/p/a', '/p/b', 3), FolderPair('/p/d', '/p/e', 1)]

    def test_tie_points_from_alphabetically_first(self):
        rows = [
            FlattenedRow('/p/b/1.jpg', '/p/a/1.jpg', 0.9),
            FlattenedRow('/p/a/2.jpg', '/p/b/2.jpg', 0.9),
        ]
        assert find_folder_pairs(rows) == [FolderPair('/p/a', '/p/b', 2)]

    def test_same_folder_rows_ignored(self):
        assert find_folder_pairs([FlattenedRow('/p/a/1.jpg', '/p/a/2.jpg', 0.9)]) == []


class TestDeriveViews:
    """Test derive_views function."""

    def test_duplicate_counts_and_representatives(self, groups):
        views = derive_views(groups)
        assert views.duplicate_counts == {'/p/a': 4, '/p/b': 3, '/p/d': 1, '/p/e': 1}
        assert views.representatives['/p/a'] == '/p/a/1.jpg'
        assert views.representatives['/p/b'] == '/p/b/1.jpg'

    def test_unclustered_folder_has_display_name_only(self, groups):
        views = derive_views(groups)
        assert '/p/c' not in views.duplicate_counts
        assert views.display_names['/p/c'] == 'p/c'

    def test_cross_folder_rows(self, groups):
        views = derive_views(groups)
        assert len(views.cross_folder_rows) == 4

    def test_deterministic(self, groups):
        assert derive_views(groups).to_dict() == derive_views(groups).to_dict()

    def test_empty_groups(self):
        views = derive_views([])
        assert views.rows == []
        assert views.clusters == []
        assert views.folder_pairs == []
