"""
SEM Graphene Analysis System - Configuration
Typed configuration sections for every analysis step, with JSON load/save.

Partial configuration files are merged over the defaults section by section,
so a file only needs to contain the values it changes.
"""

import json
import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Union

from ._version import __version__
from .errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class PreProcessingConfig:
    equalize_histogram: bool = False


@dataclass
class ScaleDetectionConfig:
    """Calibration bar recognition, or a manual scale when ``override_scale`` is set."""
    override_scale: bool = False
    scale_bar_height: int = 0             # Footer height in pixels (override mode)
    override_scale_micrometers: float = 0.0
    override_scale_pixels: int = 0


@dataclass
class BacteriaExclusionConfig:
    enabled: bool = True
    contrast_threshold: float = 45.0      # Directional contrast an edge pixel must exceed
    minimum_edge_area: int = 5            # Pixels², smaller edge regions are noise
    exclusion_radius: float = 0.9         # Micrometers around every graphene edge
    radius_adjusted: bool = False         # Normalize for stitched radial images


@dataclass
class GrapheneAnglesConfig:
    enabled: bool = False
    blur: float = 1.0                     # Gaussian sigma
    threshold: int = 150                  # Intensity a flake pixel must exceed after blurring
    min_graphene_size: float = 0.5        # Micrometers along the long axis
    min_graphene_ratio: float = 3.0       # Long axis / width, rounder shapes are rejected


SECTION_TYPES = {
    'pre_processing': PreProcessingConfig,
    'scale_detection': ScaleDetectionConfig,
    'bacteria_exclusion': BacteriaExclusionConfig,
    'graphene_angles': GrapheneAnglesConfig,
}


@dataclass
class AnalysisConfig:
    program_version: str = __version__
    pre_processing: PreProcessingConfig = field(default_factory=PreProcessingConfig)
    scale_detection: ScaleDetectionConfig = field(default_factory=ScaleDetectionConfig)
    bacteria_exclusion: BacteriaExclusionConfig = field(default_factory=BacteriaExclusionConfig)
    graphene_angles: GrapheneAnglesConfig = field(default_factory=GrapheneAnglesConfig)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AnalysisConfig':
        """
        Build a configuration from a (possibly partial) nested dictionary.

        Args:
            data: Mapping of section name to a mapping of overridden values

        Returns:
            Configuration with the given values merged over the defaults
        """
        config = cls()

        for key, value in data.items():
            if key == 'program_version':
                config.program_version = str(value)
                continue

            if key not in SECTION_TYPES:
                raise ConfigurationError(f"Unknown configuration section: {key}")
            if not isinstance(value, dict):
                raise ConfigurationError(f"Configuration section {key} must be a mapping")

            section = getattr(config, key)
            known = {f.name for f in fields(section)}
            for name, section_value in value.items():
                if name not in known:
                    raise ConfigurationError(f"Unknown configuration value: {key}.{name}")
                setattr(section, name, _coerce(section_value, getattr(section, name), f"{key}.{name}"))

        return config

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _coerce(value: Any, default: Any, name: str) -> Any:
    """Convert a loaded value to the type of the section default."""
    if isinstance(default, bool):
        if not isinstance(value, bool):
            raise ConfigurationError(f"{name} must be true or false, got {value!r}")
        return value

    # JSON true/false would otherwise pass as 1/0
    if isinstance(value, bool):
        raise ConfigurationError(f"{name} must be a number, got {value!r}")

    if isinstance(default, int) and isinstance(value, float):
        if not value.is_integer():
            raise ConfigurationError(f"{name} must be a whole number, got {value!r}")
        return int(value)

    try:
        return type(default)(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{name} has an invalid value {value!r}: {e}") from e


def load_config(path: Union[str, Path]) -> AnalysisConfig:
    """Load a JSON configuration file, warning if another program version wrote it."""
    path = Path(path)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Couldn't parse the config file {path} as JSON: {e}") from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"The config file {path} must contain a JSON object")

    config = AnalysisConfig.from_dict(data)
    if config.program_version != __version__:
        logger.warning(
            f"The config you have provided was made by another version of the program. "
            f"It might not reproduce the same results (config: {config.program_version}, program: {__version__})"
        )

    return config


def save_config(config: AnalysisConfig, path: Union[str, Path]) -> Path:
    path = Path(path)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(config.to_dict(), f, indent=2)
    return path
