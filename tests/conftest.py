"""
Shared fixtures for the SEM graphene analysis tests.

Synthetic images only: a bright square on a dark background stands in for a
graphene sheet, a footer with two tick lines for the calibration bar.
"""

import sys
from pathlib import Path

import cv2
import numpy as np
import pytest

# Add the project root to Python path for imports
current_dir = Path(__file__).parent
project_root = current_dir.parent
sys.path.insert(0, str(project_root))

from graphene_analysis.configuration import AnalysisConfig  # noqa: E402


def solid_square_mask(size=100, low=45, high=54):
    """Binary mask with the pixels low..high (inclusive) on in both directions."""
    mask = np.zeros((size, size), dtype=np.uint8)
    mask[low:high + 1, low:high + 1] = 255
    return mask


def brute_force_exclusion_count(shape, low, high, radius):
    """Pixels closer than ``radius`` to the inclusive square low..high."""
    ys, xs = np.mgrid[0:shape[0], 0:shape[1]]
    dx = np.maximum(np.maximum(low - xs, 0), xs - high)
    dy = np.maximum(np.maximum(low - ys, 0), ys - high)
    return int(np.count_nonzero(dx ** 2 + dy ** 2 < radius ** 2))


@pytest.fixture
def square_mask():
    return solid_square_mask()


@pytest.fixture
def override_config():
    """Defaults with a manual scale of 0.1 μm/pixel and a 20 pixel footer."""
    config = AnalysisConfig()
    config.scale_detection.override_scale = True
    config.scale_detection.scale_bar_height = 20
    config.scale_detection.override_scale_micrometers = 10.0
    config.scale_detection.override_scale_pixels = 100
    return config


@pytest.fixture
def sem_like_image():
    """
    120x100 gray image: a bright square, a long bright bar and a 20 pixel black footer.
    """
    image = np.full((120, 100), 100, dtype=np.uint8)
    cv2.rectangle(image, (20, 20), (39, 39), 255, thickness=-1)
    cv2.rectangle(image, (10, 70), (89, 75), 255, thickness=-1)
    image[100:, :] = 0
    return image


@pytest.fixture
def sem_like_tif(tmp_path, sem_like_image):
    path = tmp_path / 'sample.tif'
    cv2.imwrite(str(path), sem_like_image)
    return path
