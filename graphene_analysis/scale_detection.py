"""
SEM Graphene Analysis System - Scale Detection Module
Reads the physical scale of an SEM image from the calibration footer.

The footer is the dark information bar at the bottom of the micrograph. Its
scale bar is delimited by two horizontal tick lines, and the printed length
between them is read with Tesseract OCR. A manual scale can be configured
instead when the footer cannot be recognized.
"""

import logging
import re
from collections import Counter
from dataclasses import dataclass
from typing import Optional, Tuple

import cv2
import numpy as np
from skimage import filters

from .configuration import ScaleDetectionConfig
from .contours import trace_contours
from .errors import (
    ConfigurationError,
    InsufficientCalibrationLines,
    NonHorizontalCalibrationLine,
    ScaleDetectionError,
    ScaleTextNotRecognized,
)
from .image_preprocessing import crop_footer

logger = logging.getLogger(__name__)

# Bottom rows skipped when looking for the footer edge, these hold white letters
SKIP_BOTTOM_PIXELS = 40
# Brightness step (0-255) marking the top of the footer
FOOTER_EDGE_STEP = 16
# Pixels brighter than this are never the start of the footer edge
FOOTER_EDGE_MAX_BRIGHTNESS = 200
# Width of the bottom right corner holding the scale bar
SCALE_REGION_WIDTH = 650
SCALE_BAR_THRESHOLD = 240
MIN_LINE_LENGTH = 16
# The tick lines must be at least this many times wider apart than they are offset vertically
MIN_HORIZONTAL_RATIO = 20
TEXT_HEIGHT = 45
TEXT_OFFSET = 18

TESSERACT_CONFIG = '--psm 7 -c tessedit_char_whitelist=1234567890um'

UNIT_FACTORS = {
    'um': 1.0,
    'μm': 1.0,
    'µm': 1.0,
    'nm': 0.001,
    'mm': 1000.0,
}
SCALE_TEXT_PATTERN = re.compile(r'^\s*(\d+(?:[.,]\d+)?)\s*(um|μm|µm|nm|mm)\s*$', re.IGNORECASE)


@dataclass
class ScaleCalibration:
    micrometers_per_pixel: float
    micrometers: float
    pixels: int
    footer_height: int
    image: np.ndarray             # Input image with the footer cropped away


@dataclass
class CalibrationLine:
    """A horizontal tick line: its extreme x, the x of its other end and its row."""
    x: int
    other_x: int
    y: int


def parse_scale_text(text: Optional[str]) -> float:
    """
    Parse a printed scale length such as ``"10 um"`` into micrometers.

    Raises:
        ScaleTextNotRecognized: If the text isn't a number followed by a length unit
    """
    match = SCALE_TEXT_PATTERN.match(text or '')
    if match is None:
        raise ScaleTextNotRecognized(text)

    value = float(match.group(1).replace(',', '.'))
    return value * UNIT_FACTORS[match.group(2).lower()]


def find_footer_top(image: np.ndarray) -> int:
    """
    Row where the calibration footer starts.

    Every column is scanned upwards from just above the footer text until the
    brightness jumps; the most common jump row wins.
    """
    height, width = image.shape
    if height <= SKIP_BOTTOM_PIXELS + 1:
        raise ScaleDetectionError(f"Image is too small ({height} rows) to hold a calibration footer")

    start_row = height - SKIP_BOTTOM_PIXELS - 1
    column_edges = Counter()
    for x in range(width):
        column = image[:start_row + 1, x].astype(np.int32)
        previous_brightness = column[start_row]
        for y in range(start_row, -1, -1):
            brightness = column[y]

            # Ignore completely white pixels, or pixels where the previous pixel was brighter
            if previous_brightness > FOOTER_EDGE_MAX_BRIGHTNESS or brightness < previous_brightness:
                continue

            if brightness - previous_brightness > FOOTER_EDGE_STEP:
                column_edges[y] += 1
                break

            previous_brightness = brightness

    if not column_edges:
        raise ScaleDetectionError("Couldn't locate the top of the calibration footer")

    return column_edges.most_common(1)[0][0]


def find_calibration_lines(region: np.ndarray) -> Tuple[CalibrationLine, CalibrationLine]:
    """
    Find the leftmost and rightmost horizontal tick lines in the thresholded scale region.

    Raises:
        InsufficientCalibrationLines: If no long enough horizontal line exists
        NonHorizontalCalibrationLine: If the extreme lines are not on the same level
    """
    minimum_line: Optional[CalibrationLine] = None
    maximum_line: Optional[CalibrationLine] = None

    for contour in trace_contours(region):
        # Walk the contour and collect runs of points on the same row
        line_start = contour.points[0]
        line_end = contour.points[0]
        for point in contour.points:
            if point[1] == line_start[1]:
                line_end = point
                continue

            left, right = (line_start, line_end) if line_start[0] < line_end[0] else (line_end, line_start)
            line_start = point
            line_end = point

            if right[0] - left[0] < MIN_LINE_LENGTH:
                continue

            if minimum_line is None or left[0] < minimum_line.x:
                minimum_line = CalibrationLine(x=int(left[0]), other_x=int(right[0]), y=int(left[1]))
            if maximum_line is None or right[0] > maximum_line.x:
                maximum_line = CalibrationLine(x=int(right[0]), other_x=int(left[0]), y=int(right[1]))

    if minimum_line is None or maximum_line is None:
        raise InsufficientCalibrationLines()

    if abs(maximum_line.x - minimum_line.x) < abs(maximum_line.y - minimum_line.y) * MIN_HORIZONTAL_RATIO:
        raise NonHorizontalCalibrationLine()

    return minimum_line, maximum_line


def read_scale_text(text_image: np.ndarray) -> str:
    """Run Tesseract on a cropped, thresholded image of the scale text."""
    try:
        import pytesseract
    except ImportError as e:
        raise ScaleDetectionError(
            "pytesseract is required to read the scale bar, install the 'ocr' extra or override the scale"
        ) from e

    try:
        return pytesseract.image_to_string(text_image, lang='eng', config=TESSERACT_CONFIG)
    except pytesseract.TesseractNotFoundError as e:
        raise ScaleDetectionError("Couldn't run Tesseract, is it installed and on the path?") from e


class ScaleBarDetector:
    """Determines the micrometers per pixel of SEM images with a calibration footer."""

    def __init__(self, config: Optional[ScaleDetectionConfig] = None):
        self.config = config or ScaleDetectionConfig()

    def detect(self, image: np.ndarray) -> ScaleCalibration:
        """
        Determine the scale of an image and remove its footer.

        Args:
            image: Full grayscale image including the calibration footer

        Returns:
            ScaleCalibration with the footer-free image

        Raises:
            ScaleDetectionError: If the calibration bar can't be recognized
        """
        if image.ndim != 2:
            raise ValueError(f"Expected a single channel image, got shape {image.shape}")

        if self.config.override_scale:
            return self._override(image)

        height, width = image.shape
        footer_top = find_footer_top(image)
        logger.debug(f"Calibration footer starts at row {footer_top}")

        # Bottom right corner of the footer, black and white
        region_left = max(0, width - SCALE_REGION_WIDTH)
        region = image[footer_top:, region_left:]
        region = np.where(region > SCALE_BAR_THRESHOLD, 255, 0).astype(np.uint8)

        minimum_line, maximum_line = find_calibration_lines(region)
        pixel_distance = maximum_line.x - minimum_line.x

        micrometers = parse_scale_text(read_scale_text(self._crop_text(
            image, region_left, footer_top, minimum_line, maximum_line
        )))

        return ScaleCalibration(
            micrometers_per_pixel=micrometers / pixel_distance,
            micrometers=micrometers,
            pixels=pixel_distance,
            footer_height=height - footer_top,
            image=crop_footer(image, height - footer_top).copy(),
        )

    def _override(self, image: np.ndarray) -> ScaleCalibration:
        config = self.config
        if config.override_scale_pixels <= 0 or config.override_scale_micrometers <= 0:
            raise ConfigurationError("A scale override needs positive micrometers and pixels")

        height = image.shape[0]
        if not 0 <= config.scale_bar_height < height:
            raise ConfigurationError(f"Scale bar height {config.scale_bar_height} doesn't fit a {height} pixel high image")

        return ScaleCalibration(
            micrometers_per_pixel=config.override_scale_micrometers / config.override_scale_pixels,
            micrometers=config.override_scale_micrometers,
            pixels=config.override_scale_pixels,
            footer_height=config.scale_bar_height,
            image=crop_footer(image, config.scale_bar_height).copy(),
        )

    @staticmethod
    def _crop_text(image: np.ndarray, region_left: int, footer_top: int,
                   minimum_line: CalibrationLine, maximum_line: CalibrationLine) -> np.ndarray:
        """Cut out the text between the two tick lines, thresholded and slightly blurred."""
        left = region_left + minimum_line.other_x + 2
        right = region_left + maximum_line.other_x - 2
        top = max(0, footer_top + maximum_line.y - TEXT_OFFSET)

        text = image[top:top + TEXT_HEIGHT, max(0, left):max(0, right)]
        if text.size == 0:
            raise ScaleTextNotRecognized(None)

        text = np.where(text > SCALE_BAR_THRESHOLD, 255, 0).astype(np.uint8)
        blurred = filters.gaussian(text, sigma=1.0, preserve_range=True)
        return cv2.convertScaleAbs(blurred)


def detect_scale_bar(image: np.ndarray, config: Optional[ScaleDetectionConfig] = None) -> ScaleCalibration:
    """Convenience function to detect the scale of a single image."""
    return ScaleBarDetector(config).detect(image)


def pixels_to_micrometers(pixel_measurement: float, micrometers_per_pixel: float) -> float:
    """Convert pixel measurements to micrometers."""
    return pixel_measurement * micrometers_per_pixel
