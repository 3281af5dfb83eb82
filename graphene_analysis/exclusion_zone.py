"""
SEM Graphene Analysis System - Bacteria Exclusion Zone
Measures the share of an image lying within a physical distance of a graphene edge.

Pipeline:
1. Directional contrast detection finds the graphene edges
2. The contour area filter removes edge noise
3. A squared Euclidean distance transform of the edges is thresholded at the
   exclusion radius, giving the exclusion mask and its area ratio
4. Optionally the ratio is normalized for stitched radial images
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np
from scipy import ndimage

from .area_filter import filter_by_minimum_area
from .configuration import BacteriaExclusionConfig
from .contrast_detection import absolute_contrast_threshold
from .errors import ExclusionRadiusTooSmall
from .radius_normalization import RadialNormalization, normalize_exclusion

logger = logging.getLogger(__name__)


@dataclass
class ExclusionResult:
    """Exclusion ratio of one image plus the intermediate buffers for diagnostics."""
    ratio: float
    uncorrected_ratio: float
    radius_pixels: float
    contrast: np.ndarray
    edges: np.ndarray
    filtered_edges: np.ndarray
    exclusion_mask: np.ndarray
    normalization: Optional[RadialNormalization] = None

    @property
    def percentage(self) -> float:
        return 100.0 * self.ratio


def exclusion_radius_pixels(exclusion_radius: float, scale_factor: float) -> float:
    """
    Convert the physical exclusion radius to pixels.

    Raises:
        ExclusionRadiusTooSmall: If the radius is below one pixel
    """
    if scale_factor <= 0:
        raise ValueError(f"Scale factor must be positive, got {scale_factor}")

    radius_pixels = exclusion_radius / scale_factor
    if radius_pixels < 1.0:
        raise ExclusionRadiusTooSmall(exclusion_radius, scale_factor)

    return radius_pixels


def squared_distance_transform(mask: np.ndarray) -> np.ndarray:
    """
    Squared Euclidean distance from every pixel to the nearest "on" pixel.

    A mask without any "on" pixel yields infinity everywhere.
    """
    on = mask > 0
    if not on.any():
        return np.full(mask.shape, np.inf)

    # The exact transform gives sqrt of integer squared distances, rounding restores them
    distances = ndimage.distance_transform_edt(~on)
    return np.rint(distances ** 2)


def build_exclusion_mask(edge_mask: np.ndarray, radius_pixels: float) -> np.ndarray:
    """Pixels closer than ``radius_pixels`` to an edge are set to 255."""
    distances = squared_distance_transform(edge_mask)
    return np.where(distances < radius_pixels ** 2, 255, 0).astype(np.uint8)


def mask_ratio(mask: np.ndarray) -> float:
    return float(np.count_nonzero(mask == 255)) / mask.size


def compute_exclusion(image: np.ndarray,
                      config: BacteriaExclusionConfig,
                      scale_factor: float) -> ExclusionResult:
    """
    Compute the bacteria exclusion ratio of a grayscale image.

    Args:
        image: Grayscale uint8 image without the calibration footer
        config: Resolved bacteria exclusion configuration
        scale_factor: Micrometers per pixel

    Returns:
        ExclusionResult, radius adjusted when ``config.radius_adjusted`` is set

    Raises:
        ExclusionRadiusTooSmall: If the exclusion radius is below one pixel
    """
    edges, contrast = absolute_contrast_threshold(image, config.contrast_threshold)
    filtered_edges = filter_by_minimum_area(edges, config.minimum_edge_area)

    radius_pixels = exclusion_radius_pixels(config.exclusion_radius, scale_factor)
    exclusion_mask = build_exclusion_mask(filtered_edges, radius_pixels)

    ratio = mask_ratio(exclusion_mask)
    result = ExclusionResult(
        ratio=ratio,
        uncorrected_ratio=ratio,
        radius_pixels=radius_pixels,
        contrast=contrast,
        edges=edges,
        filtered_edges=filtered_edges,
        exclusion_mask=exclusion_mask,
    )

    if config.radius_adjusted:
        result.normalization = normalize_exclusion(image, exclusion_mask)
        result.ratio = result.normalization.ratio

    logger.debug(f"Exclusion ratio {result.ratio:.4f} (radius {radius_pixels:.2f} px)")
    return result
