"""
Fingerprint strategies for the scanner package.

A strategy turns one image into a fingerprint and scores two fingerprints of
its own kind with a similarity in [0, 1]. One strategy is chosen per
analysis run, so clustering never sees mixed fingerprint types.

Strategies:
- HashStrategy: 64-bit structural hash, similarity = 1 - hamming / 64
- EmbeddingStrategy: vector from an opaque extractor,
  similarity = 1 / (1 + distance)
"""

from __future__ import annotations

import logging
import math
from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from ..config import DEFAULT_HASH_ALGORITHM, HASH_ALGORITHMS, STRATEGIES
from .embedding import compute_embedding, euclidean_distance
from .hashing import calculate_block_hash, hash_similarity

_logger = logging.getLogger(__name__)


class FingerprintStrategy(ABC):
    """Common contract for fingerprint strategies."""

    name: str = ''

    @abstractmethod
    def extract(self, path: str) -> Optional[Any]:
        """Return the fingerprint of an image, or None if it cannot be read."""

    @abstractmethod
    def similarity(self, a: Any, b: Any) -> float:
        """Return the similarity of two fingerprints in [0, 1]."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"


class HashStrategy(FingerprintStrategy):
    """Structural 64-bit hash strategy."""

    name = 'hash'

    def __init__(self, algorithm: str = DEFAULT_HASH_ALGORITHM):
        if algorithm not in HASH_ALGORITHMS:
            raise ValueError(
                f"Unknown hash algorithm: {algorithm}. "
                f"Choose from: {', '.join(HASH_ALGORITHMS)}"
            )
        self.algorithm = algorithm

    def extract(self, path: str) -> Optional[int]:
        return calculate_block_hash(path, self.algorithm)

    def similarity(self, a: int, b: int) -> float:
        return hash_similarity(a, b)

    def __repr__(self) -> str:
        return f"HashStrategy(algorithm={self.algorithm!r})"


class EmbeddingStrategy(FingerprintStrategy):
    """
    Embedding vector strategy.

    Args:
        extractor: Callable mapping an image path to a vector (or None)
        metric: Distance between two vectors; Euclidean by default
    """

    name = 'embedding'

    def __init__(
        self,
        extractor: Optional[Callable[[str], Any]] = None,
        metric: Optional[Callable[[Any, Any], float]] = None,
    ):
        self.extractor = extractor or compute_embedding
        self.metric = metric or euclidean_distance

    def extract(self, path: str) -> Optional[Any]:
        try:
            return self.extractor(path)
        except Exception as e:
            _logger.debug(f"Embedding extractor failed for {path}: {e}")
            return None

    def similarity(self, a: Any, b: Any) -> float:
        try:
            distance = float(self.metric(a, b))
        except ValueError:
            return 0.0
        if math.isnan(distance) or distance < 0:
            return 0.0
        return 1.0 / (1.0 + distance)


def get_strategy(name: str, **kwargs) -> FingerprintStrategy:
    """
    Create a fingerprint strategy by name.

    Args:
        name: 'hash' or 'embedding'
        **kwargs: Passed to the strategy constructor

    Returns:
        Strategy instance

    Raises:
        ValueError: If the name is unknown
    """
    if name == 'hash':
        return HashStrategy(**kwargs)
    if name == 'embedding':
        return EmbeddingStrategy(**kwargs)
    raise ValueError(f"Unknown strategy: {name}. Choose from: {', '.join(STRATEGIES)}")


__all__ = [
    'FingerprintStrategy',
    'HashStrategy',
    'EmbeddingStrategy',
    'get_strategy',
]
