import shutil
import tempfile
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

GRADIENT_SIZE = (64, 48)
# name -> colour of the uniform sample image
GRADIENT_SAMPLES = {
    "a.png": (200, 120, 40),
    "b.jpg": (30, 160, 220),
}
GRADIENT_RESULTS = ["x.png", "y.png"]

generated_data_key = pytest.StashKey[Path]()


def gradient_golden(color, size):
    """Expected output of a full-height black gradient over a uniform image."""
    width, height = size
    keep = 1.0 - np.linspace(0.0, 1.0, height)
    rows = np.outer(keep, np.array(color, dtype=np.float64))
    pixels = np.repeat(rows[:, np.newaxis, :], width, axis=1)
    return Image.fromarray(np.round(pixels).astype(np.uint8))


def build_image_data(data_dir):
    """Write uniform samples and their gradient goldens below data_dir."""
    samples_dir = data_dir / "images" / "samples"
    results_dir = data_dir / "images" / "results" / "gradient"
    samples_dir.mkdir(parents=True)
    results_dir.mkdir(parents=True)

    for (sample_name, color), result_name in zip(GRADIENT_SAMPLES.items(), GRADIENT_RESULTS):
        Image.new("RGB", GRADIENT_SIZE, color).save(samples_dir / sample_name, quality=95)
        gradient_golden(color, GRADIENT_SIZE).save(results_dir / result_name)


def pytest_configure(config):
    if config.getoption("image_data_dir"):
        return
    data_dir = Path(tempfile.mkdtemp(prefix="effectcheck-data-"))
    build_image_data(data_dir)
    config.option.image_data_dir = str(data_dir)
    config.stash[generated_data_key] = data_dir


def pytest_unconfigure(config):
    data_dir = config.stash.get(generated_data_key, None)
    if data_dir is not None:
        shutil.rmtree(data_dir, ignore_errors=True)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_dir = tempfile.mkdtemp()
    yield Path(temp_dir)
    shutil.rmtree(temp_dir)


@pytest.fixture
def mock_logger():
    from unittest.mock import MagicMock

    return MagicMock()


@pytest.fixture
def image_data_dir(temp_dir):
    """Fixture layout with two samples and two gradient goldens."""
    build_image_data(temp_dir)
    return temp_dir


@pytest.fixture
def sample_image(temp_dir):
    """Create a small RGB image file."""
    image_path = temp_dir / "test_image.png"
    Image.new("RGB", (8, 6), (10, 20, 30)).save(image_path)
    return image_path
