"""
SEM Graphene Analysis System - Unified Module Interface
This file exposes all public functions and classes from the package.
"""

from ._version import __version__

# Configuration and errors
from .configuration import (
    AnalysisConfig,
    PreProcessingConfig,
    ScaleDetectionConfig,
    BacteriaExclusionConfig,
    GrapheneAnglesConfig,
    load_config,
    save_config,
)
from .errors import (
    AnalysisError,
    ConfigurationError,
    ExclusionRadiusTooSmall,
    ScaleDetectionError,
    NonHorizontalCalibrationLine,
    InsufficientCalibrationLines,
    ScaleTextNotRecognized,
)

# Geometry primitives
from .contours import Contour, trace_contours, convex_hull, points_inside_hull

# Exclusion pipeline
from .contrast_detection import absolute_contrast_threshold
from .area_filter import filter_by_minimum_area
from .exclusion_zone import ExclusionResult, compute_exclusion, squared_distance_transform
from .radius_normalization import RadialBucketTable, normalize_exclusion

# Flake pipeline
from .flake_analysis import FlakeRecord, FlakeAnalysisResult, compute_flakes

# Scale detection and preprocessing
from .image_preprocessing import load_image, pre_process
from .scale_detection import ScaleBarDetector, ScaleCalibration, detect_scale_bar, parse_scale_text

# Orchestration
from .image_analyzer import ImageAnalysisResult, analyze_array, analyze_image
from .batch_processing import BatchAnalyzer, BatchSummary

# Debug
from .debug_config import enable_global_debug, disable_global_debug, is_debug_enabled, DEBUG_CONFIG

__all__ = [
    '__version__',

    # Configuration and errors
    'AnalysisConfig', 'PreProcessingConfig', 'ScaleDetectionConfig',
    'BacteriaExclusionConfig', 'GrapheneAnglesConfig', 'load_config', 'save_config',
    'AnalysisError', 'ConfigurationError', 'ExclusionRadiusTooSmall', 'ScaleDetectionError',
    'NonHorizontalCalibrationLine', 'InsufficientCalibrationLines', 'ScaleTextNotRecognized',

    # Geometry
    'Contour', 'trace_contours', 'convex_hull', 'points_inside_hull',

    # Exclusion pipeline
    'absolute_contrast_threshold', 'filter_by_minimum_area', 'ExclusionResult',
    'compute_exclusion', 'squared_distance_transform', 'RadialBucketTable', 'normalize_exclusion',

    # Flake pipeline
    'FlakeRecord', 'FlakeAnalysisResult', 'compute_flakes',

    # Scale detection and preprocessing
    'load_image', 'pre_process', 'ScaleBarDetector', 'ScaleCalibration',
    'detect_scale_bar', 'parse_scale_text',

    # Orchestration
    'ImageAnalysisResult', 'analyze_array', 'analyze_image', 'BatchAnalyzer', 'BatchSummary',

    # Debug
    'enable_global_debug', 'disable_global_debug', 'is_debug_enabled', 'DEBUG_CONFIG',
]
