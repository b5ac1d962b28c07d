"""
Scanner package for TwinFinder.

Provides scan planning, fingerprint extraction, and similarity clustering.

Public API:
- plan_scan / ScanPlan: Turn root folders into leaf directories and scopes
- find_image_files: Discover image files in a directory
- calculate_block_hash: 64-bit structural hash of an image
- compute_embedding: Default embedding vector of an image
- HashStrategy / EmbeddingStrategy / get_strategy: Fingerprint strategies
- extract_fingerprints_parallel: Fingerprint many images in parallel
- cluster_fingerprints: Greedy threshold clustering
- has_heif_support: Check if HEIC/HEIF support is available
"""

from __future__ import annotations

from .file_discovery import find_image_files, list_subdirectories
from .planner import ScanPlan, plan_scan
from .hashing import calculate_block_hash, hamming_distance, hash_similarity
from .embedding import compute_embedding, euclidean_distance
from .fingerprints import (
    FingerprintStrategy,
    HashStrategy,
    EmbeddingStrategy,
    get_strategy,
)
from .parallel import extract_fingerprints_parallel
from .clustering import cluster_fingerprints
from .dependencies import HAS_HEIF_SUPPORT


def has_heif_support() -> bool:
    """Check if HEIC/HEIF support is available."""
    return HAS_HEIF_SUPPORT


__all__ = [
    # File discovery and planning
    'find_image_files',
    'list_subdirectories',
    'ScanPlan',
    'plan_scan',
    # Fingerprints
    'calculate_block_hash',
    'hamming_distance',
    'hash_similarity',
    'compute_embedding',
    'euclidean_distance',
    'FingerprintStrategy',
    'HashStrategy',
    'EmbeddingStrategy',
    'get_strategy',
    'extract_fingerprints_parallel',
    # Clustering
    'cluster_fingerprints',
    # Feature detection
    'has_heif_support',
]
