"""
Unit tests for fingerprint extraction (hashing, embeddings, strategies).
"""

import math

import numpy as np
import pytest
from twinfinder.scanner import (
    EmbeddingStrategy,
    HashStrategy,
    calculate_block_hash,
    compute_embedding,
    euclidean_distance,
    extract_fingerprints_parallel,
    get_strategy,
    hamming_distance,
    hash_similarity,
)
from twinfinder.scanner.hashing import block_hash_from_grid
from conftest import (
    PATTERN_A,
    PATTERN_B,
    pattern_hash,
    write_pattern_image,
    write_solid_image,
)


class TestBlockHash:
    """Test the structural block hash."""

    def test_pattern_image_hash(self, temp_dir):
        """Bright cells map to set bits, least significant bit first."""
        path = write_pattern_image(temp_dir / "a.png", PATTERN_A)
        assert calculate_block_hash(path) == pattern_hash(PATTERN_A)

    def test_identical_images_same_hash(self, duplicate_pair):
        assert calculate_block_hash(duplicate_pair['a']) == calculate_block_hash(duplicate_pair['b'])

    def test_solid_image_sets_every_bit(self, temp_dir):
        """Every cell equals the mean, so every bit is set."""
        path = write_solid_image(temp_dir / "red.png", 'red')
        assert calculate_block_hash(path) == 2 ** 64 - 1

    def test_large_image_is_downsampled(self, temp_dir):
        path = write_solid_image(temp_dir / "big.png", 'white', size=(640, 480))
        assert calculate_block_hash(path) == 2 ** 64 - 1

    def test_integer_floor_mean(self):
        """63 cells of 1 and one of 2 give a floor mean of 1, so all bits set."""
        grid = np.ones((8, 8), dtype=np.uint8)
        grid[7, 7] = 2
        assert block_hash_from_grid(grid) == 2 ** 64 - 1

    def test_cell_below_mean_clears_bit(self):
        grid = np.full((8, 8), 100, dtype=np.uint8)
        grid[0, 0] = 0
        assert block_hash_from_grid(grid) == (2 ** 64 - 1) & ~1

    def test_corrupted_file_returns_none(self, temp_dir):
        path = temp_dir / "broken.jpg"
        path.write_bytes(b"not really a jpeg")
        assert calculate_block_hash(path) is None

    def test_nonexistent_file_returns_none(self, temp_dir):
        assert calculate_block_hash(temp_dir / "missing.png") is None

    @pytest.mark.parametrize('algorithm', ['average', 'phash', 'dhash'])
    def test_imagehash_algorithms_fit_64_bits(self, duplicate_pair, algorithm):
        first = calculate_block_hash(duplicate_pair['a'], algorithm)
        second = calculate_block_hash(duplicate_pair['b'], algorithm)
        assert first == second
        assert 0 <= first < 2 ** 64

    def test_unknown_algorithm(self, duplicate_pair):
        with pytest.raises(ValueError):
            calculate_block_hash(duplicate_pair['a'], 'wavelet')


class TestHashSimilarity:
    """Test hamming distance and hash similarity."""

    def test_identical(self):
        assert hamming_distance(0xABCDEF, 0xABCDEF) == 0
        assert hash_similarity(0xABCDEF, 0xABCDEF) == 1.0

    def test_eight_bits_apart(self):
        assert hash_similarity(pattern_hash(PATTERN_A), pattern_hash(PATTERN_B)) == 0.875

    def test_complement(self):
        assert hash_similarity(0, 2 ** 64 - 1) == 0.0

    def test_symmetric(self):
        assert hash_similarity(0b1011, 0b0110) == hash_similarity(0b0110, 0b1011)


class TestEmbedding:
    """Test the default embedding extractor."""

    def test_vector_length(self, temp_dir):
        path = write_solid_image(temp_dir / "red.png", 'red')
        vector = compute_embedding(path)
        assert vector.shape == (3 * 32 + 16 * 16,)

    def test_identical_images_zero_distance(self, temp_dir):
        first = compute_embedding(write_solid_image(temp_dir / "a.png", 'red'))
        second = compute_embedding(write_solid_image(temp_dir / "b.png", 'red'))
        assert euclidean_distance(first, second) == pytest.approx(0.0)

    def test_different_colours_positive_distance(self, temp_dir):
        red = compute_embedding(write_solid_image(temp_dir / "a.png", 'red'))
        blue = compute_embedding(write_solid_image(temp_dir / "b.png", 'blue'))
        assert euclidean_distance(red, blue) > 0

    def test_unreadable_file_returns_none(self, temp_dir):
        path = temp_dir / "broken.png"
        path.write_bytes(b"garbage")
        assert compute_embedding(path) is None

    def test_shape_mismatch(self):
        with pytest.raises(ValueError):
            euclidean_distance(np.zeros(3), np.zeros(4))


class TestStrategies:
    """Test fingerprint strategy objects."""

    def test_get_strategy_by_name(self):
        assert isinstance(get_strategy('hash'), HashStrategy)
        assert isinstance(get_strategy('embedding'), EmbeddingStrategy)

    def test_get_strategy_unknown(self):
        with pytest.raises(ValueError, match="Unknown strategy"):
            get_strategy('sift')

    def test_hash_strategy_algorithm(self):
        assert get_strategy('hash', algorithm='dhash').algorithm == 'dhash'
        with pytest.raises(ValueError):
            HashStrategy('wavelet')

    def test_hash_strategy_extract(self, temp_dir):
        path = write_pattern_image(temp_dir / "a.png", PATTERN_A)
        strategy = HashStrategy()
        assert strategy.extract(path) == pattern_hash(PATTERN_A)
        assert strategy.similarity(pattern_hash(PATTERN_A), pattern_hash(PATTERN_B)) == 0.875

    def test_embedding_similarity_from_distance(self):
        """Similarity is 1 / (1 + distance)."""
        strategy = EmbeddingStrategy(extractor=lambda path: None)
        assert strategy.similarity(np.zeros(2), np.zeros(2)) == 1.0
        assert strategy.similarity(np.zeros(2), np.array([3.0, 4.0])) == pytest.approx(1 / 6)

    def test_embedding_similarity_mismatched_shapes(self):
        strategy = EmbeddingStrategy()
        assert strategy.similarity(np.zeros(2), np.zeros(3)) == 0.0

    def test_embedding_similarity_nan_distance(self):
        strategy = EmbeddingStrategy(metric=lambda a, b: math.nan)
        assert strategy.similarity(1, 2) == 0.0

    def test_embedding_extractor_failure_returns_none(self):
        def explode(path):
            raise RuntimeError("model unavailable")

        assert EmbeddingStrategy(extractor=explode).extract('/x.png') is None

    def test_custom_extractor_is_used(self):
        strategy = EmbeddingStrategy(extractor=lambda path: np.array([len(path)], dtype=float))
        assert strategy.extract('/abc').tolist() == [4.0]


class TestExtractFingerprintsParallel:
    """Test extract_fingerprints_parallel function."""

    def test_results_in_input_order(self, many_images):
        results = extract_fingerprints_parallel(many_images['paths'], HashStrategy(), max_workers=4)
        assert [path for path, _ in results] == many_images['paths']
        assert results[0][1] == pattern_hash(PATTERN_A)

    def test_unreadable_files_dropped(self, temp_dir):
        good = write_pattern_image(temp_dir / "good.png", PATTERN_A)
        bad = temp_dir / "bad.png"
        bad.write_bytes(b"garbage")
        results = extract_fingerprints_parallel([str(bad), good], HashStrategy())
        assert results == [(good, pattern_hash(PATTERN_A))]

    def test_empty_input(self):
        assert extract_fingerprints_parallel([], HashStrategy()) == []

    def test_progress_reports_every_file(self, many_images):
        calls = []
        extract_fingerprints_parallel(
            many_images['paths'],
            HashStrategy(),
            max_workers=2,
            progress_callback=lambda done, total: calls.append((done, total)),
        )
        assert calls == [(i, 20) for i in range(1, 21)]

    def test_cancel_returns_none_without_further_progress(self, many_images):
        """Once cancellation is observed no progress callback fires."""
        calls = []
        result = extract_fingerprints_parallel(
            many_images['paths'],
            HashStrategy(),
            max_workers=1,
            progress_callback=lambda done, total: calls.append(done),
            should_cancel=lambda: len(calls) >= 3,
        )
        assert result is None
        assert calls == [1, 2, 3]
