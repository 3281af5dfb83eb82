"""
SEM Graphene Analysis System - Error Types
Exceptions raised by the analysis pipelines and the scale recognition step.
"""

from typing import Optional


class AnalysisError(Exception):
    """Base class for all errors raised while analysing a single image."""


class ConfigurationError(AnalysisError):
    """Invalid or unknown configuration values."""


class ExclusionRadiusTooSmall(AnalysisError):
    """The physical exclusion radius converts to less than one pixel."""

    def __init__(self, exclusion_radius: float, scale_factor: float):
        self.exclusion_radius = exclusion_radius
        self.scale_factor = scale_factor
        self.radius_pixels = exclusion_radius / scale_factor
        super().__init__(
            f"The bacteria exclusion radius ({exclusion_radius} μm) is smaller than 1 pixel "
            f"({self.radius_pixels:.3f} px at {scale_factor:.4f} μm/pixel) which effectively makes it non-existent"
        )


class ScaleDetectionError(AnalysisError):
    """Base class for calibration bar recognition failures."""


class NonHorizontalCalibrationLine(ScaleDetectionError):
    def __init__(self):
        super().__init__("The two lines creating the scale are not on the same y level")


class InsufficientCalibrationLines(ScaleDetectionError):
    def __init__(self):
        super().__init__("Less than two lines that meet the requirements were found when trying to detect scale")


class ScaleTextNotRecognized(ScaleDetectionError):
    def __init__(self, text: Optional[str]):
        self.text = text
        super().__init__(f"Couldn't detect the scale using OCR (detected: {text!r})")
