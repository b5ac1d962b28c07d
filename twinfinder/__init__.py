"""
TwinFinder
==========
Find near-duplicate and visually similar images across folder trees.

Features:
- Leaf-folder scan planning with an ignored folder name
- Two fingerprint strategies: 64-bit structural hash or embedding vector
- Greedy threshold clustering into reference + matches groups
- Folder clusters, cross-folder pairs and per-folder duplicate counts
- Background analysis with throttled progress and cancellation
- Trash integration, CSV export, JSON API and CLI
"""

__version__ = "1.0.0"

from .models import (
    GroupMember,
    SimilarityGroup,
    FlattenedRow,
    FolderPair,
    ResultViews,
)
from .config import IMAGE_EXTENSIONS, DEFAULT_THRESHOLD, NEAR_EXACT_SIMILARITY
from .scanner import (
    ScanPlan,
    plan_scan,
    find_image_files,
    calculate_block_hash,
    compute_embedding,
    FingerprintStrategy,
    HashStrategy,
    EmbeddingStrategy,
    get_strategy,
    cluster_fingerprints,
)
from .views import derive_views
from .results import remove_path, remove_folder
from .orchestrator import AnalysisController, AnalysisPhase, AnalysisRun, analyze
from .state import AnalysisSession, analysis_session

__all__ = [
    "GroupMember",
    "SimilarityGroup",
    "FlattenedRow",
    "FolderPair",
    "ResultViews",
    "IMAGE_EXTENSIONS",
    "DEFAULT_THRESHOLD",
    "NEAR_EXACT_SIMILARITY",
    "ScanPlan",
    "plan_scan",
    "find_image_files",
    "calculate_block_hash",
    "compute_embedding",
    "FingerprintStrategy",
    "HashStrategy",
    "EmbeddingStrategy",
    "get_strategy",
    "cluster_fingerprints",
    "derive_views",
    "remove_path",
    "remove_folder",
    "AnalysisController",
    "AnalysisPhase",
    "AnalysisRun",
    "analyze",
    "AnalysisSession",
    "analysis_session",
]
