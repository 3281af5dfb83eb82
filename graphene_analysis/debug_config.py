"""
Process wide switch for diagnostic output of SEM Graphene Analysis System.

When enabled, every analysed image writes its intermediate masks, CSV files,
plots and the configuration used into the diagnostics directory.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_DIR = Path("output")


@dataclass
class DebugConfig:
    enabled: bool = False
    output_dir: Path = field(default_factory=lambda: DEFAULT_OUTPUT_DIR)

    def enable_debug(self, output_dir: Optional[Union[str, Path]] = None):
        self.enabled = True
        if output_dir:
            self.output_dir = Path(output_dir)
        logger.info(f"Diagnostics enabled, writing to {self.output_dir}")

    def disable_debug(self):
        self.enabled = False
        logger.info("Diagnostics disabled")

    def diagnostics_prefix(self, image_path: Union[str, Path],
                           output_dir: Optional[Union[str, Path]] = None) -> str:
        """
        File name prefix for the diagnostics of one image, ``<dir>/<stem>_``.

        The directory is created if needed; ``output_dir`` overrides the configured one.
        """
        directory = Path(output_dir) if output_dir is not None else self.output_dir
        directory.mkdir(parents=True, exist_ok=True)
        return str(directory / f"{Path(image_path).stem}_")


# Global debug instance
DEBUG_CONFIG = DebugConfig()


def enable_global_debug(output_dir: Optional[Union[str, Path]] = None):
    DEBUG_CONFIG.enable_debug(output_dir)


def disable_global_debug():
    DEBUG_CONFIG.disable_debug()


def is_debug_enabled() -> bool:
    return DEBUG_CONFIG.enabled
