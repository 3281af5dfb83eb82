"""
SEM Graphene Analysis System - Contour Geometry Module
Contour tracing, polygon areas and convex hull helpers shared by the
edge area filter, the field-of-view normalizer and the flake analyzer.
"""

import logging
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import cv2
import numpy as np

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Contour:
    """Closed boundary of a connected mask region.

    ``points`` is an (N, 2) integer array of (x, y) pixel coordinates in tracing
    order. ``is_hole`` is True for the boundary of an interior hole.
    """
    points: np.ndarray
    is_hole: bool = False

    def __len__(self) -> int:
        return len(self.points)


def trace_contours(image: np.ndarray, threshold: int = 1) -> List[Contour]:
    """
    Trace the borders of every foreground region in an image.

    Pixels with an intensity of at least ``threshold`` are foreground. Outer
    borders and hole borders are both returned, hole borders tagged with
    ``is_hole``.

    Args:
        image: 2D uint8 image or mask
        threshold: Minimum intensity of a foreground pixel

    Returns:
        List of traced contours, every one holding at least one point
    """
    if image.ndim != 2:
        raise ValueError(f"Expected a single channel image, got shape {image.shape}")

    binary = np.where(image >= threshold, 255, 0).astype(np.uint8)

    # Two level hierarchy: top level entries are outer borders, their children are holes
    found, hierarchy = cv2.findContours(binary, cv2.RETR_CCOMP, cv2.CHAIN_APPROX_NONE)
    if hierarchy is None:
        return []

    contours = []
    for contour, (_, _, _, parent) in zip(found, hierarchy[0]):
        points = contour.reshape(-1, 2).astype(np.int64)
        if len(points) == 0:
            continue
        contours.append(Contour(points=points, is_hole=bool(parent != -1)))

    return contours


def signed_polygon_area(points: np.ndarray) -> float:
    """Shoelace area of a closed polygon, positive for counter-clockwise order (y up)."""
    if len(points) == 0:
        return 0.0

    x = points[:, 0].astype(np.float64)
    y = points[:, 1].astype(np.float64)
    x_next = np.roll(x, -1)
    y_next = np.roll(y, -1)

    return float(np.sum(x * y_next - x_next * y) / 2.0)


def contour_area(contour: Contour) -> int:
    """Absolute polygon area of a contour rounded to the nearest pixel (halves round up)."""
    return int(np.floor(abs(signed_polygon_area(contour.points)) + 0.5))


def fill_contours(contours: Sequence[Contour], shape: Tuple[int, int]) -> np.ndarray:
    """Rasterize contours as filled polygons into a new blank mask."""
    mask = np.zeros(shape, dtype=np.uint8)

    # One polygon per call, several polygons in one call would be filled even-odd
    for contour in contours:
        cv2.fillPoly(mask, [contour.points.astype(np.int32).reshape(-1, 1, 2)], 255)

    return mask


def convex_hull(points: np.ndarray) -> np.ndarray:
    """
    Convex hull of a point set.

    The returned (M, 2) vertex array is ordered so that its signed polygon area
    is positive, which is the orientation ``points_inside_hull`` expects.
    """
    if len(points) == 0:
        return np.empty((0, 2), dtype=np.int64)

    hull = cv2.convexHull(np.ascontiguousarray(points, dtype=np.int32)).reshape(-1, 2).astype(np.int64)
    if signed_polygon_area(hull) < 0:
        hull = hull[::-1].copy()

    return hull


def points_inside_hull(hull: np.ndarray, shape: Tuple[int, int]) -> np.ndarray:
    """
    Boolean mask of the pixels lying strictly inside a convex hull.

    Every hull edge is tested with the same cross product; a pixel on the
    outer side of any edge, or exactly on an edge, is outside.

    Args:
        hull: Hull vertices as returned by ``convex_hull``
        shape: (height, width) of the mask to build

    Returns:
        Boolean array of the given shape
    """
    height, width = shape
    if len(hull) < 3:
        logger.debug(f"Degenerate hull with {len(hull)} vertices, no pixel lies inside")
        return np.zeros(shape, dtype=bool)

    xs = np.arange(width, dtype=np.int64)[np.newaxis, :]
    ys = np.arange(height, dtype=np.int64)[:, np.newaxis]

    inside = np.ones(shape, dtype=bool)
    previous = hull[-1]
    for point in hull:
        side = (previous[0] - point[0]) * (ys - point[1]) - (xs - point[0]) * (previous[1] - point[1])
        inside &= side < 0
        previous = point

    return inside
