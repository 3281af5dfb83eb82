"""
SEM Graphene Analysis System - Contour Area Filter
Denoises a binary mask by dropping every traced region below a minimum area.
"""

import logging
from typing import List

import numpy as np

from .contours import Contour, contour_area, fill_contours, trace_contours

logger = logging.getLogger(__name__)


def contours_above_area(mask: np.ndarray, minimum_area: int) -> List[Contour]:
    """
    Trace the contours of a mask and keep those larger than ``minimum_area``.

    Args:
        mask: Binary 0/255 mask
        minimum_area: Area in pixels a contour must exceed to be kept

    Returns:
        Surviving contours, both outer and hole borders
    """
    if minimum_area < 0:
        raise ValueError(f"Minimum area must be non-negative, got {minimum_area}")

    contours = trace_contours(mask)
    kept = [contour for contour in contours if contour_area(contour) > minimum_area]

    logger.debug(f"Area filter kept {len(kept)} of {len(contours)} contours (minimum area {minimum_area} px²)")
    return kept


def filter_by_minimum_area(mask: np.ndarray, minimum_area: int) -> np.ndarray:
    """Remove every contour with too few pixels and redraw the rest as filled polygons."""
    return fill_contours(contours_above_area(mask, minimum_area), mask.shape)
