"""
Default embedding extractor for the scanner package.

The embedding strategy treats its extractor as a black box that maps an
image path to a fixed-length vector. This module provides the extractor used
when no model is plugged in: a colour histogram (per-channel, normalized)
concatenated with a small zero-mean grayscale layout vector. Both halves have
unit L1/L2 scale so neither dominates the Euclidean distance.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional
import logging

from ..config import EMBEDDING_HISTOGRAM_BINS, EMBEDDING_LAYOUT_SIZE, HASH_DOWNSAMPLE_SIZE
from .dependencies import Image, ImageOps, np

_logger = logging.getLogger(__name__)


def _color_histogram(rgb: np.ndarray, bins: int) -> np.ndarray:
    channels = []
    for channel in range(3):
        hist = np.histogram(rgb[:, :, channel], bins=bins, range=(0, 256))[0].astype(np.float64)
        channels.append(hist / (hist.sum() + 1e-10))
    # Each channel sums to 1; scale so the whole histogram sums to 1
    return np.concatenate(channels) / 3.0


def _layout_vector(gray: np.ndarray) -> np.ndarray:
    values = gray.astype(np.float64).reshape(-1)
    values -= values.mean()
    norm = np.linalg.norm(values)
    if norm > 0:
        values /= norm
    return values


def compute_embedding(
    filepath: str | Path,
    bins: int = EMBEDDING_HISTOGRAM_BINS,
    layout_size: int = EMBEDDING_LAYOUT_SIZE,
) -> Optional[np.ndarray]:
    """
    Compute the default embedding vector of an image.

    Args:
        filepath: Path to the image
        bins: Histogram bins per colour channel
        layout_size: Edge length of the grayscale layout grid

    Returns:
        1-D float array of length 3 * bins + layout_size ** 2,
        or None when the image cannot be decoded
    """
    try:
        with Image.open(filepath) as img:
            img.draft('RGB', (HASH_DOWNSAMPLE_SIZE * 4, HASH_DOWNSAMPLE_SIZE * 4))
            rgb_image = ImageOps.exif_transpose(img).convert('RGB')
    except Exception as e:
        _logger.debug(f"Embedding extraction failed for {filepath}: {e}")
        return None

    rgb_image.thumbnail((HASH_DOWNSAMPLE_SIZE * 4, HASH_DOWNSAMPLE_SIZE * 4))
    rgb = np.asarray(rgb_image, dtype=np.uint8)
    gray = np.asarray(
        rgb_image.convert('L').resize((layout_size, layout_size), Image.Resampling.BILINEAR),
        dtype=np.uint8,
    )
    return np.concatenate([_color_histogram(rgb, bins), _layout_vector(gray)])


def euclidean_distance(a: np.ndarray, b: np.ndarray) -> float:
    """
    Euclidean distance between two vectors of the same shape.

    Raises:
        ValueError: If the vectors have different shapes
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    if a.shape != b.shape:
        raise ValueError(f"Embedding shapes differ: {a.shape} vs {b.shape}")
    return float(np.linalg.norm(a - b))


__all__ = ['compute_embedding', 'euclidean_distance']
