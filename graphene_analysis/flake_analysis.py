"""
SEM Graphene Analysis System - Graphene Flake Orientation
Extracts the orientation and length of individual graphene flakes.

The blurred and thresholded image is traced for outer contours. The two
furthest apart contour points give the long axis of a flake, the point furthest
from that axis gives its width. Small and round contours are skipped silently,
so statistics are only ever computed over accepted flakes.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np
from scipy.spatial.distance import cdist
from skimage import filters

from .configuration import GrapheneAnglesConfig
from .contours import Contour, trace_contours

logger = logging.getLogger(__name__)

# Only every Nth contour point is compared when searching the long axis
SAMPLE_STEP = 5
# Distance matrix rows computed at once in the long axis search
LONG_AXIS_CHUNK_ROWS = 256


@dataclass(frozen=True)
class FlakeRecord:
    center: Tuple[float, float]
    angle: float                  # Radians in (-pi/2, pi/2]
    length: float                 # Micrometers
    # Marker points (x, y) for overlays: both long axis ends and the widest point
    p1: Tuple[int, int] = (0, 0)
    p2: Tuple[int, int] = (0, 0)
    p3: Tuple[int, int] = (0, 0)

    @property
    def angle_degrees(self) -> float:
        return float(np.degrees(self.angle))


@dataclass
class LongAxis:
    p1: np.ndarray
    p2: np.ndarray
    p3: np.ndarray
    length: float                 # Pixels
    width: float                  # Pixels, maximum distance of p3 from the axis


@dataclass
class FlakeAnalysisResult:
    flakes: List[FlakeRecord] = field(default_factory=list)
    mask: Optional[np.ndarray] = None
    contours_considered: int = 0

    @property
    def angles(self) -> List[float]:
        return [flake.angle for flake in self.flakes]

    @property
    def lengths(self) -> List[float]:
        return [flake.length for flake in self.flakes]


def measure_long_axis(samples: np.ndarray) -> LongAxis:
    """
    Find the furthest apart pair of points and the point furthest from the line between them.

    Ties keep the first pair / point in sample order.
    """
    samples = np.asarray(samples, dtype=np.float64)

    # Rows of the distance matrix are built a block at a time to bound memory
    length, i, j = -1.0, 0, 0
    for start in range(0, len(samples), LONG_AXIS_CHUNK_ROWS):
        block = cdist(samples[start:start + LONG_AXIS_CHUNK_ROWS], samples)
        row, column = np.unravel_index(np.argmax(block), block.shape)
        if block[row, column] > length:
            length, i, j = float(block[row, column]), start + int(row), int(column)

    p1, p2 = samples[i], samples[j]

    if length == 0.0:
        return LongAxis(p1=p1, p2=p2, p3=samples[0], length=0.0, width=0.0)

    # Point to line distance: |cross product| / segment length
    cross = np.abs((p2[1] - p1[1]) * (p1[0] - samples[:, 0]) - (p1[1] - samples[:, 1]) * (p2[0] - p1[0]))
    line_distances = cross / length
    k = int(np.argmax(line_distances))

    return LongAxis(p1=p1, p2=p2, p3=samples[k], length=length, width=float(line_distances[k]))


def orientation_angle(p1: np.ndarray, p2: np.ndarray) -> float:
    """
    Angle of the normal of the line from p1 to p2, in (-pi/2, pi/2].

    Opposite directions are the same orientation: swapping p1 and p2 gives the same angle.
    """
    direction = np.arctan2(p2[1] - p1[1], p2[0] - p1[0]) % np.pi
    if direction >= np.pi:
        direction -= np.pi

    return float(np.pi / 2 - direction)


def flake_from_samples(samples: np.ndarray,
                       config: GrapheneAnglesConfig,
                       scale_factor: float) -> Optional[FlakeRecord]:
    """
    Measure a flake from its sampled contour points.

    Returns:
        FlakeRecord, or None if the shape is too small, too round or degenerate
    """
    axis = measure_long_axis(samples)

    if axis.length == 0.0 or axis.length * scale_factor < config.min_graphene_size:
        return None

    # A perfectly straight contour has no width and no meaningful elongation
    if axis.width == 0.0:
        return None

    if axis.length / axis.width < config.min_graphene_ratio:
        return None

    center = ((axis.p1[0] + axis.p2[0]) / 2.0, (axis.p1[1] + axis.p2[1]) / 2.0)

    return FlakeRecord(
        center=(float(center[0]), float(center[1])),
        angle=orientation_angle(axis.p1, axis.p2),
        length=axis.length * scale_factor,
        p1=(int(axis.p1[0]), int(axis.p1[1])),
        p2=(int(axis.p2[0]), int(axis.p2[1])),
        p3=(int(axis.p3[0]), int(axis.p3[1])),
    )


def analyze_contour(contour: Contour,
                    config: GrapheneAnglesConfig,
                    scale_factor: float) -> Optional[FlakeRecord]:
    """Measure a single outer contour, comparing only every SAMPLE_STEP-th point."""
    return flake_from_samples(contour.points[::SAMPLE_STEP], config, scale_factor)


def flake_mask(image: np.ndarray, blur: float, threshold: int) -> np.ndarray:
    """Gaussian blur the image and keep the pixels brighter than ``threshold``."""
    blurred = filters.gaussian(image, sigma=blur, preserve_range=True)
    blurred = np.clip(np.rint(blurred), 0, 255).astype(np.uint8)
    return np.where(blurred > threshold, 255, 0).astype(np.uint8)


def compute_flakes(image: np.ndarray,
                   config: GrapheneAnglesConfig,
                   scale_factor: float) -> FlakeAnalysisResult:
    """
    Find the orientation and length of every graphene flake in an image.

    Args:
        image: Grayscale uint8 image without the calibration footer
        config: Resolved graphene angle configuration
        scale_factor: Micrometers per pixel

    Returns:
        FlakeAnalysisResult holding one FlakeRecord per accepted contour
    """
    if scale_factor <= 0:
        raise ValueError(f"Scale factor must be positive, got {scale_factor}")

    mask = flake_mask(image, config.blur, config.threshold)
    outer_contours = [contour for contour in trace_contours(mask) if not contour.is_hole]

    flakes = []
    for contour in outer_contours:
        flake = analyze_contour(contour, config, scale_factor)
        if flake is not None:
            flakes.append(flake)

    logger.debug(f"Accepted {len(flakes)} of {len(outer_contours)} flake contours")
    return FlakeAnalysisResult(flakes=flakes, mask=mask, contours_considered=len(outer_contours))
