"""
SEM Graphene Analysis System - Image Preprocessing Module
Handles image loading and preparation for analysis.
"""

import logging
from pathlib import Path
from typing import Tuple, Union

import cv2
import numpy as np

from .configuration import PreProcessingConfig

logger = logging.getLogger(__name__)


def load_image(image_path: Union[str, Path]) -> np.ndarray:
    """
    Load an SEM image as 8-bit grayscale.

    Color images are converted to grayscale and 16-bit images are scaled
    down to the 0-255 range.

    Args:
        image_path: Path to the image file

    Returns:
        Loaded image as a 2D uint8 numpy array
    """
    img = cv2.imread(str(image_path), cv2.IMREAD_UNCHANGED)
    if img is None:
        raise ValueError(f"Could not load image from {image_path}")

    if img.ndim == 3:
        code = cv2.COLOR_BGRA2GRAY if img.shape[2] == 4 else cv2.COLOR_BGR2GRAY
        img = cv2.cvtColor(img, code)

    if img.dtype != np.uint8:
        logger.debug(f"Converting {img.dtype} image {image_path} to 8 bits")
        if np.issubdtype(img.dtype, np.integer):
            img = (img.astype(np.float64) / np.iinfo(img.dtype).max * 255.0)
        else:
            img = normalize_image(img.astype(np.float64))
        img = np.clip(np.rint(img), 0, 255).astype(np.uint8)

    return img


def normalize_image(image: np.ndarray, target_range: Tuple[int, int] = (0, 255)) -> np.ndarray:
    """
    Normalize image intensity to specified range.

    Args:
        image: Input image
        target_range: Target intensity range (min, max)

    Returns:
        Normalized image
    """
    min_val, max_val = target_range
    img_min, img_max = image.min(), image.max()

    if img_max == img_min:
        # Uniform image
        return np.full_like(image, min_val)

    normalized = (image - img_min) / (img_max - img_min)
    return normalized * (max_val - min_val) + min_val


def crop_footer(image: np.ndarray, footer_height: int) -> np.ndarray:
    """Remove the calibration footer at the bottom of the image."""
    if footer_height <= 0:
        return image
    if footer_height >= image.shape[0]:
        raise ValueError(f"Footer height {footer_height} leaves nothing of a {image.shape[0]} pixel high image")

    return image[:image.shape[0] - footer_height, :]


def pre_process(image: np.ndarray, config: PreProcessingConfig) -> np.ndarray:
    """Apply the configured preprocessing steps, returning a new image."""
    if config.equalize_histogram:
        return cv2.equalizeHist(image)

    return image.copy()
