"""
SEM Graphene Analysis System - Field of View Normalization
Corrects the exclusion ratio of stitched radial micrographs.

The stitched image is assumed to run from the rim of a circular sample to its
center, with the optical center at the right edge, halfway down. Pixels outside
the stitched region (black margins) are ignored and the remaining pixels are
averaged per integer distance from the center. Every radius is then weighted by
the area of its annulus so that the result is the excluded share of the whole
circular sample.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
import pandas as pd

from .contours import convex_hull, points_inside_hull, trace_contours

logger = logging.getLogger(__name__)

# Intensity separating the stitched image from its zero filled margins
STITCH_THRESHOLD = 1


def optical_center(shape: Tuple[int, int]) -> Tuple[int, int]:
    """Assumed (x, y) center of the sample: right edge, vertically centered.

    This is a fixed modelling assumption; flipped or rotated inputs would need
    the center passed in from outside.
    """
    height, width = shape
    return width, height // 2


@dataclass
class RadialBucketTable:
    """Mean exclusion value and sample count per integer distance from the center."""
    means: np.ndarray
    counts: np.ndarray

    def __len__(self) -> int:
        return len(self.means)

    def to_dataframe(self, scale_factor: float) -> pd.DataFrame:
        """Physical distance versus exclusion ratio, one row per bucket."""
        return pd.DataFrame({
            'radial_distance': np.arange(len(self.means)) * scale_factor,
            'ratio': self.means,
        })


@dataclass
class RadialNormalization:
    ratio: float
    buckets: RadialBucketTable
    hull: np.ndarray
    valid_region: Optional[np.ndarray] = None


def stitched_region_hull(image: np.ndarray) -> np.ndarray:
    """Convex hull of every contour in the raw image, approximating the stitched region."""
    contours = trace_contours(image, threshold=STITCH_THRESHOLD)
    if not contours:
        return np.empty((0, 2), dtype=np.int64)

    points = np.concatenate([contour.points for contour in contours])
    return convex_hull(points)


def radial_buckets(exclusion_mask: np.ndarray, valid_region: np.ndarray) -> RadialBucketTable:
    """
    Average the exclusion mask over rings of equal rounded distance from the center.

    Args:
        exclusion_mask: Binary 0/255 exclusion mask
        valid_region: Boolean mask of the pixels to take into account

    Returns:
        Table with one bucket per pixel of image width. Distances beyond the
        last bucket are dropped, not clamped.
    """
    height, width = exclusion_mask.shape
    center_x, center_y = optical_center(exclusion_mask.shape)

    ys, xs = np.nonzero(valid_region)
    distances = np.rint(np.sqrt((center_x - xs) ** 2 + (ys - center_y) ** 2)).astype(np.int64)
    excluded = (exclusion_mask[ys, xs] == 255).astype(np.float64)

    in_range = distances < width
    dropped = len(distances) - int(np.count_nonzero(in_range))
    if dropped:
        logger.debug(f"Dropped {dropped} pixels beyond the radial bucket table")

    sums = np.bincount(distances[in_range], weights=excluded[in_range], minlength=width)
    counts = np.bincount(distances[in_range], minlength=width)

    means = np.zeros(width, dtype=np.float64)
    np.divide(sums, counts, out=means, where=counts > 0)

    return RadialBucketTable(means=means, counts=counts)


def annulus_weighted_ratio(buckets: RadialBucketTable, width: int) -> float:
    """Sum of bucket means weighted by ring area, relative to the circle of radius width - 1."""
    if width < 2:
        raise ValueError(f"Radius normalization needs an image at least 2 pixels wide, got {width}")

    distances = np.arange(len(buckets), dtype=np.float64)
    ring_areas = distances ** 2 * np.pi - (distances - 1.0) ** 2 * np.pi

    excluded_area = float(np.sum(ring_areas * buckets.means))
    return excluded_area / ((width - 1.0) ** 2 * np.pi)


def normalize_exclusion(image: np.ndarray, exclusion_mask: np.ndarray) -> RadialNormalization:
    """
    Compute the distortion corrected exclusion ratio of a stitched image.

    Args:
        image: Raw grayscale image the exclusion mask was computed from
        exclusion_mask: Binary 0/255 exclusion mask of the same shape

    Returns:
        Corrected ratio together with the bucket table and the hull used
    """
    if image.shape != exclusion_mask.shape:
        raise ValueError(f"Image {image.shape} and exclusion mask {exclusion_mask.shape} differ in shape")

    hull = stitched_region_hull(image)
    if len(hull) == 0:
        logger.warning("No stitched region found, every pixel is outside the field of view")

    valid_region = points_inside_hull(hull, image.shape)
    buckets = radial_buckets(exclusion_mask, valid_region)
    ratio = annulus_weighted_ratio(buckets, image.shape[1])

    logger.debug(f"Radius adjusted exclusion ratio {ratio:.4f} from {int(valid_region.sum())} pixels inside the hull")
    return RadialNormalization(ratio=ratio, buckets=buckets, hull=hull, valid_region=valid_region)
