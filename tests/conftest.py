"""
Pytest configuration and shared fixtures for test suite.
"""

import pytest
import tempfile
import shutil
from pathlib import Path
from PIL import Image


BRIGHT = 200
DARK = 50

# Three 32-cell patterns sharing 28 cells; every pair differs in 8 cells,
# so their block hashes are 8 bits apart (similarity 0.875)
BASE_CELLS = set(range(28))
PATTERN_A = BASE_CELLS | {28, 29, 30, 31}
PATTERN_B = BASE_CELLS | {32, 33, 34, 35}
PATTERN_C = BASE_CELLS | {36, 37, 38, 39}


def pattern_hash(bright_cells) -> int:
    """Block hash expected for an image written by write_pattern_image."""
    return sum(1 << cell for cell in bright_cells)


def write_pattern_image(path, bright_cells) -> str:
    """
    Write an 8x8 grayscale PNG with the given cells bright.

    At 8x8 the hash pipeline leaves pixels untouched, so the block hash is
    exactly the set of bright cells.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    img = Image.new('L', (8, 8), color=DARK)
    pixels = [BRIGHT if i in bright_cells else DARK for i in range(64)]
    img.putdata(pixels)
    img.save(path, 'PNG')
    return str(path)


def write_solid_image(path, color='red', size=(32, 32)) -> str:
    """Write a solid colour RGB PNG."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    Image.new('RGB', size, color=color).save(path, 'PNG')
    return str(path)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    tmpdir = tempfile.mkdtemp()
    yield Path(tmpdir).resolve()
    shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def duplicate_pair(temp_dir):
    """
    Two images with identical block hashes, written in reverse name order.

    Returns:
        dict with 'a', 'b' paths and the containing 'folder'
    """
    folder = temp_dir / "pair"
    b = write_pattern_image(folder / "b.png", PATTERN_A)
    a = write_pattern_image(folder / "a.png", PATTERN_A)
    return {'a': a, 'b': b, 'folder': str(folder)}


@pytest.fixture
def distance_eight_images(temp_dir):
    """
    Three images whose block hashes are pairwise 8 bits apart.

    Returns:
        dict with 'a', 'b', 'c' paths and the containing 'folder'
    """
    folder = temp_dir / "trio"
    return {
        'a': write_pattern_image(folder / "a.png", PATTERN_A),
        'b': write_pattern_image(folder / "b.png", PATTERN_B),
        'c': write_pattern_image(folder / "c.png", PATTERN_C),
        'folder': str(folder),
    }


@pytest.fixture
def cross_folder_tree(temp_dir):
    """
    Root with two leaf folders holding copies of the same pattern.

    Layout:
        root/left/one.png    (pattern A)
        root/left/two.png    (pattern C)
        root/right/one.png   (pattern A)
        root/thumb/one.png   (pattern A, ignored folder)

    Returns:
        dict of paths
    """
    root = temp_dir / "root"
    return {
        'root': str(root),
        'left': str(root / "left"),
        'right': str(root / "right"),
        'left_one': write_pattern_image(root / "left" / "one.png", PATTERN_A),
        'left_two': write_pattern_image(root / "left" / "two.png", PATTERN_C),
        'right_one': write_pattern_image(root / "right" / "one.png", PATTERN_A),
        'thumb_one': write_pattern_image(root / "thumb" / "one.png", PATTERN_A),
    }


@pytest.fixture
def many_images(temp_dir):
    """Twenty small images in one folder, half of them identical."""
    folder = temp_dir / "many"
    paths = []
    for i in range(20):
        cells = PATTERN_A if i % 2 == 0 else set(range(i, i + 32))
        paths.append(write_pattern_image(folder / f"img_{i:02d}.png", cells))
    return {'folder': str(folder), 'paths': paths}
