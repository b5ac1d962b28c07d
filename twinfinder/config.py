"""
Configuration constants for TwinFinder.

This module contains all configurable settings including:
- Supported image extensions
- Similarity thresholds and fingerprint parameters
- Progress reporting and worker pool defaults
"""

# Image extensions considered during scanning
IMAGE_EXTENSIONS = {
    # Common formats
    '.jpg', '.jpeg', '.png', '.gif', '.bmp', '.webp', '.tiff', '.tif',
    # Apple formats (require pillow-heif)
    '.heic', '.heif',
    # RAW formats (decoded through their embedded previews where Pillow can)
    '.dng', '.cr2', '.nef', '.arw',
}

# Extensions that need the pillow-heif opener registered
HEIF_EXTENSIONS = {'.heic', '.heif'}

# Default similarity threshold (0.0-1.0, higher = stricter matching)
DEFAULT_THRESHOLD = 0.7

# Directories with this exact name are pruned from every scan
DEFAULT_IGNORED_FOLDER = 'thumb'

# Fingerprint strategy used when none is requested
DEFAULT_STRATEGY = 'hash'

# Known strategy names
STRATEGIES = ('hash', 'embedding')

# Structural hash algorithms. 'block' is the 8x8 mean-threshold hash,
# the others are computed with imagehash at the same 64-bit size.
HASH_ALGORITHMS = ('block', 'average', 'phash', 'dhash')
DEFAULT_HASH_ALGORITHM = 'block'

# Bits in a structural hash fingerprint (8x8 grid)
HASH_GRID_SIZE = 8
HASH_BITS = HASH_GRID_SIZE * HASH_GRID_SIZE

# Images are shrunk to fit this box before the 8x8 reduction
HASH_DOWNSAMPLE_SIZE = 32

# Similarities at or above this count as identical
NEAR_EXACT_SIMILARITY = 0.9995

# Default number of parallel workers for fingerprint extraction
DEFAULT_WORKERS = 4

# Minimum seconds between progress notifications
PROGRESS_UPDATE_INTERVAL = 0.1

# Share of the overall progress bar allotted to fingerprint extraction;
# clustering fills the remainder
EXTRACTION_PROGRESS_SHARE = 0.9

# Embedding extractor parameters
EMBEDDING_HISTOGRAM_BINS = 32
EMBEDDING_LAYOUT_SIZE = 16

# Decompression bomb limit for Pillow
MAX_IMAGE_PIXELS = 500_000_000
