"""
SEM Graphene Analysis System - Single Image Analysis
Runs scale detection, preprocessing and the enabled analysis pipelines on one image.
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np

from . import reporting
from .configuration import AnalysisConfig, save_config
from .debug_config import DEBUG_CONFIG
from .exclusion_zone import ExclusionResult, compute_exclusion
from .flake_analysis import FlakeAnalysisResult, compute_flakes
from .image_preprocessing import load_image, pre_process
from .scale_detection import ScaleBarDetector, ScaleCalibration

logger = logging.getLogger(__name__)


@dataclass
class ImageAnalysisResult:
    image_name: str
    calibration: ScaleCalibration
    image: np.ndarray
    exclusion: Optional[ExclusionResult] = None
    flakes: Optional[FlakeAnalysisResult] = None
    processing_time: float = 0.0

    def summary(self) -> Dict[str, Any]:
        """Flat dictionary of the scalar results, one row of a batch table."""
        summary = {
            'image_name': self.image_name,
            'micrometers_per_pixel': self.calibration.micrometers_per_pixel,
            'scale_micrometers': self.calibration.micrometers,
            'scale_pixels': self.calibration.pixels,
            'footer_height': self.calibration.footer_height,
            'processing_time_s': self.processing_time,
        }
        if self.exclusion is not None:
            summary['exclusion_percent'] = self.exclusion.percentage
            summary['uncorrected_exclusion_percent'] = 100.0 * self.exclusion.uncorrected_ratio
        if self.flakes is not None:
            summary['flake_count'] = len(self.flakes.flakes)
            summary['mean_flake_length_um'] = float(np.mean(self.flakes.lengths)) if self.flakes.flakes else 0.0
        return summary


def analyze_array(image: np.ndarray, config: AnalysisConfig, image_name: str = 'image') -> ImageAnalysisResult:
    """
    Analyse an in-memory grayscale image that still carries its calibration footer.

    Raises:
        AnalysisError: If the scale can't be determined or an analysis step fails
    """
    start_time = time.time()

    calibration = ScaleBarDetector(config.scale_detection).detect(image)
    logger.info(
        f"{image_name}: scale {calibration.micrometers_per_pixel:.4f} μm/pixel "
        f"(px: {calibration.pixels}, μm: {calibration.micrometers}, footer: {calibration.footer_height})"
    )

    processed = pre_process(calibration.image, config.pre_processing)
    result = ImageAnalysisResult(image_name=image_name, calibration=calibration, image=processed)

    if config.bacteria_exclusion.enabled:
        result.exclusion = compute_exclusion(processed, config.bacteria_exclusion, calibration.micrometers_per_pixel)
        logger.info(f"{image_name}: area within range of graphene edge {result.exclusion.percentage:.2f}%")

    if config.graphene_angles.enabled:
        result.flakes = compute_flakes(processed, config.graphene_angles, calibration.micrometers_per_pixel)
        logger.info(f"{image_name}: {len(result.flakes.flakes)} graphene flakes measured")

    result.processing_time = time.time() - start_time
    return result


def save_diagnostics(result: ImageAnalysisResult, prefix: str) -> List[Path]:
    """Write every intermediate image, CSV file and plot of an analysis."""
    scale_factor = result.calibration.micrometers_per_pixel
    written = []

    if result.exclusion is not None:
        exclusion = result.exclusion
        written.append(reporting.save_image(exclusion.contrast, prefix + 'edge_sharpness.png'))
        written.append(reporting.save_image(
            reporting.edge_overlay(result.image, exclusion.filtered_edges), prefix + 'graphene.png'
        ))
        written.append(reporting.save_image(exclusion.exclusion_mask, prefix + 'bacteria-exclusion.png'))

        if exclusion.normalization is not None:
            written.append(reporting.save_image(
                reporting.hull_overlay(result.image, exclusion.normalization.hull), prefix + 'radius_hull.png'
            ))
            written.append(reporting.save_radial_profile_csv(
                exclusion.normalization.buckets, scale_factor, prefix + 'graphene_by_radius.csv'
            ))

    if result.flakes is not None:
        flakes = result.flakes.flakes
        written.append(reporting.save_image(reporting.flake_overlay(result.image, flakes), prefix + 'angles.png'))
        written.extend(reporting.save_flake_csvs(flakes, result.image.shape, scale_factor, prefix))
        written.extend(reporting.plot_flake_statistics(flakes, prefix))

    return written


def analyze_image(image_path: Union[str, Path],
                  config: Optional[AnalysisConfig] = None,
                  output_dir: Optional[Union[str, Path]] = None,
                  debug: Optional[bool] = None) -> ImageAnalysisResult:
    """
    Analyse a single image file.

    Args:
        image_path: Path to the SEM image
        config: Resolved configuration, defaults if None
        output_dir: Directory for the diagnostic outputs, the debug output directory if None
        debug: Write diagnostic images, CSV files and plots; follows the global debug switch if None

    Returns:
        ImageAnalysisResult of the image
    """
    image_path = Path(image_path)
    config = config or AnalysisConfig()
    if debug is None:
        debug = DEBUG_CONFIG.enabled

    result = analyze_array(load_image(image_path), config, image_name=image_path.name)

    if debug:
        prefix = DEBUG_CONFIG.diagnostics_prefix(image_path, output_dir)
        written = save_diagnostics(result, prefix)
        written.append(save_config(config, prefix + 'config.json'))
        logger.debug(f"{image_path.name}: wrote {len(written)} diagnostic files with prefix {prefix}")

    return result
