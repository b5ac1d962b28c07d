"""
Hashing module for the scanner package.

Provides the 64-bit structural hash used by the default fingerprint strategy:
the image is reduced to an 8x8 grayscale grid and every cell at or above the
grid's mean brightness sets one bit. Alternative algorithms from imagehash
(average, perceptual, difference) are packed into the same 64-bit integer so
they compare identically.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional
import logging

from ..config import (
    HASH_ALGORITHMS,
    HASH_BITS,
    HASH_DOWNSAMPLE_SIZE,
    HASH_GRID_SIZE,
)
from .dependencies import Image, ImageOps, imagehash, np

_logger = logging.getLogger(__name__)

_IMAGEHASH_FUNCTIONS = {
    'average': imagehash.average_hash,
    'phash': imagehash.phash,
    'dhash': imagehash.dhash,
}


def load_grayscale_grid(filepath: str | Path, grid_size: int = HASH_GRID_SIZE) -> np.ndarray:
    """
    Decode an image and shrink it to a square grayscale grid.

    The image is oriented according to its EXIF tag, shrunk to fit a
    32x32 box, then resized to grid_size x grid_size.

    Args:
        filepath: Path to the image
        grid_size: Edge length of the output grid

    Returns:
        2-D uint8 array of shape (grid_size, grid_size)

    Raises:
        OSError, ValueError: If the file cannot be decoded
    """
    with Image.open(filepath) as img:
        # JPEG decoders can shrink during decode, which is much cheaper
        img.draft('L', (HASH_DOWNSAMPLE_SIZE, HASH_DOWNSAMPLE_SIZE))
        oriented = ImageOps.exif_transpose(img)
        gray = oriented.convert('L')

    gray.thumbnail((HASH_DOWNSAMPLE_SIZE, HASH_DOWNSAMPLE_SIZE))
    grid = gray.resize((grid_size, grid_size), Image.Resampling.BILINEAR)
    return np.asarray(grid, dtype=np.uint8)


def block_hash_from_grid(grid: np.ndarray) -> int:
    """
    Pack a grayscale grid into a mean-threshold hash.

    Bit i (least significant first) is set when cell i, in row-major order,
    is at or above the integer mean of all cells.

    Examples:
        >>> block_hash_from_grid(np.zeros((8, 8), dtype=np.uint8)) == 2 ** 64 - 1
        True
    """
    cells = np.asarray(grid, dtype=np.int64).reshape(-1)
    mean = int(cells.sum()) // cells.size
    value = 0
    for i, cell in enumerate(cells):
        if cell >= mean:
            value |= 1 << i
    return value


def calculate_block_hash(filepath: str | Path, algorithm: str = 'block') -> Optional[int]:
    """
    Calculate the 64-bit structural hash of an image.

    Args:
        filepath: Path to the image
        algorithm: 'block' (default), 'average', 'phash' or 'dhash'

    Returns:
        Hash as an int in [0, 2**64), or None when the image cannot be read
    """
    if algorithm not in HASH_ALGORITHMS:
        raise ValueError(f"Unknown hash algorithm: {algorithm}")

    try:
        if algorithm == 'block':
            return block_hash_from_grid(load_grayscale_grid(filepath))

        with Image.open(filepath) as img:
            oriented = ImageOps.exif_transpose(img)
            hashed = _IMAGEHASH_FUNCTIONS[algorithm](oriented, hash_size=HASH_GRID_SIZE)
        return int(str(hashed), 16)
    except Exception as e:
        _logger.debug(f"Structural hash calculation failed for {filepath}: {e}")
        return None


def hamming_distance(a: int, b: int) -> int:
    """Number of differing bits between two hashes."""
    return bin(a ^ b).count('1')


def hash_similarity(a: int, b: int) -> float:
    """
    Similarity of two 64-bit hashes in [0, 1].

    Examples:
        >>> hash_similarity(0, 0)
        1.0
        >>> hash_similarity(0, 0xFF)
        0.875
    """
    return 1.0 - hamming_distance(a, b) / HASH_BITS


__all__ = [
    'load_grayscale_grid',
    'block_hash_from_grid',
    'calculate_block_hash',
    'hamming_distance',
    'hash_similarity',
]
