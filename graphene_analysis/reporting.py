"""
SEM Graphene Analysis System - Reporting
CSV export, histograms and diagnostic overlays for the analysis results.

Nothing in the analysis pipelines depends on these outputs; they are written
only when a caller asks for them.
"""

import logging
from pathlib import Path
from typing import List, Sequence, Tuple, Union

import cv2
import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from .flake_analysis import FlakeRecord
from .radius_normalization import RadialBucketTable, optical_center
from .scale_detection import pixels_to_micrometers

logger = logging.getLogger(__name__)

HISTOGRAM_BINS = 25
ARROW_LENGTH = 25.0
ARROW_HEAD_LENGTH = 10.0

# BGR colors
EDGE_COLOR = (255, 255, 0)
HULL_COLOR = (0, 0, 255)
P1_COLOR = (0, 255, 0)
P2_COLOR = (0, 0, 255)
P3_COLOR = (255, 0, 0)
ARROW_COLOR = (255, 0, 255)


def save_image(image: np.ndarray, path: Union[str, Path]) -> Path:
    path = Path(path)
    if not cv2.imwrite(str(path), image):
        raise IOError(f"Could not write image to {path}")
    logger.debug(f"Saved {path}")
    return path


# ===== CSV EXPORT =====

def save_radial_profile_csv(buckets: RadialBucketTable, scale_factor: float, path: Union[str, Path]) -> Path:
    """Write the exclusion ratio per radial distance (micrometers)."""
    path = Path(path)
    buckets.to_dataframe(scale_factor).to_csv(path, index=False)
    return path


def flakes_dataframe(flakes: Sequence[FlakeRecord], image_shape: Tuple[int, int], scale_factor: float) -> pd.DataFrame:
    """
    Tabulate flakes by distance of their center from the optical center.

    Args:
        flakes: Accepted flake records
        image_shape: (height, width) of the analysed image
        scale_factor: Micrometers per pixel

    Returns:
        DataFrame with radial_distance (μm), angle (degrees) and length (μm) columns
    """
    rows = []
    for flake in flakes:
        distance = np.rint(radial_distance_of(flake.center, image_shape))
        rows.append({
            'radial_distance': pixels_to_micrometers(float(distance), scale_factor),
            'angle': round(flake.angle_degrees, 3),
            'length': round(flake.length, 3),
        })

    return pd.DataFrame(rows, columns=['radial_distance', 'angle', 'length'])


def save_flake_csvs(flakes: Sequence[FlakeRecord], image_shape: Tuple[int, int],
                    scale_factor: float, prefix: str) -> List[Path]:
    """Write ``<prefix>angles.csv`` and the header-less ``<prefix>lengths.csv``."""
    table = flakes_dataframe(flakes, image_shape, scale_factor)

    angles_path = Path(prefix + 'angles.csv')
    table[['radial_distance', 'angle']].to_csv(angles_path, index=False)

    lengths_path = Path(prefix + 'lengths.csv')
    table[['length']].to_csv(lengths_path, index=False, header=False, float_format='%.3f')

    return [angles_path, lengths_path]


# ===== PLOTS =====

def _caption(prefix: str) -> str:
    return Path(prefix).name.rstrip('_')


def plot_histogram(values: Sequence[float], value_range: Tuple[float, float], x_label: str,
                   caption: str, path: Union[str, Path]) -> Path:
    """Bar histogram with values outside the range clamped into the outer bins."""
    low, high = value_range
    if high <= low:
        high = low + 1.0

    clamped = np.clip(np.asarray(values, dtype=np.float64), low, high)

    fig, ax = plt.subplots(figsize=(6.4, 4.8))
    ax.hist(clamped, bins=HISTOGRAM_BINS, range=(low, high), color='black', rwidth=0.9)
    ax.set_xlabel(x_label)
    ax.set_ylabel('Count (number of flakes)')
    ax.set_title(caption)
    fig.tight_layout()
    fig.savefig(path)
    plt.close(fig)

    return Path(path)


def plot_flake_statistics(flakes: Sequence[FlakeRecord], prefix: str) -> List[Path]:
    """Angle histogram, length histogram and angle-length scatterplot."""
    angles = [flake.angle_degrees for flake in flakes]
    lengths = [flake.length for flake in flakes]
    max_length = max(lengths) if lengths else 0.0
    caption = _caption(prefix)

    paths = [
        plot_histogram(angles, (-90.0, 90.0), 'Direction (°)', caption, prefix + 'angle-histogram.png'),
        plot_histogram(lengths, (0.0, max_length), 'Length (μm)', caption, prefix + 'length-histogram.png'),
    ]

    fig, ax = plt.subplots(figsize=(6.4, 4.8))
    ax.scatter(angles, lengths, s=25, color='black')
    ax.set_xlim(-90.0, 90.0)
    ax.set_ylim(0.0, max_length if max_length > 0 else 1.0)
    ax.set_xlabel('Angle (°)')
    ax.set_ylabel('Length (μm)')
    ax.set_title(caption)
    fig.tight_layout()
    scatter_path = Path(prefix + 'angle-length-scatterplot.png')
    fig.savefig(scatter_path)
    plt.close(fig)
    paths.append(scatter_path)

    return paths


# ===== OVERLAYS =====

def edge_overlay(image: np.ndarray, edge_mask: np.ndarray) -> np.ndarray:
    """Color the detected graphene edges cyan on top of the image."""
    overlay = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    overlay[edge_mask > 0] = EDGE_COLOR
    return overlay


def hull_overlay(image: np.ndarray, hull: np.ndarray) -> np.ndarray:
    overlay = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    if len(hull) > 0:
        cv2.polylines(overlay, [hull.astype(np.int32).reshape(-1, 1, 2)], True, HULL_COLOR, 1)
    return overlay


def flake_overlay(image: np.ndarray, flakes: Sequence[FlakeRecord]) -> np.ndarray:
    """Mark the long axis ends, the widest point and the orientation of every flake."""
    overlay = cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)

    for flake in flakes:
        cv2.circle(overlay, flake.p1, 2, P1_COLOR, -1)
        cv2.circle(overlay, flake.p2, 2, P2_COLOR, -1)
        cv2.circle(overlay, flake.p3, 2, P3_COLOR, -1)

        center_x, center_y = flake.center
        tip_x = center_x + np.cos(flake.angle) * ARROW_LENGTH
        tip_y = center_y + np.sin(flake.angle) * ARROW_LENGTH
        tip = (int(round(tip_x)), int(round(tip_y)))

        cv2.line(overlay, (int(round(center_x)), int(round(center_y))), tip, ARROW_COLOR, 1)
        for side in (np.pi / 8, -np.pi / 8):
            head = (
                int(round(tip_x - np.cos(flake.angle + side) * ARROW_HEAD_LENGTH)),
                int(round(tip_y - np.sin(flake.angle + side) * ARROW_HEAD_LENGTH)),
            )
            cv2.line(overlay, tip, head, ARROW_COLOR, 1)

    return overlay


def radial_distance_of(point: Tuple[float, float], image_shape: Tuple[int, int]) -> float:
    """Distance in pixels of a point from the assumed optical center."""
    center_x, center_y = optical_center(image_shape)
    return float(np.hypot(center_x - point[0], point[1] - center_y))
