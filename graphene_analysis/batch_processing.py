"""
SEM Graphene Analysis System - Parallel Batch Processing
Analyses every image of a directory in a process pool and aggregates the results.

Each image is analysed independently. A failing image either aborts the whole
batch or, with ``discard_errors``, is logged and left out of the statistics.
"""

import logging
import multiprocessing as mp
import time
from concurrent.futures import ProcessPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np
import pandas as pd

from .configuration import AnalysisConfig
from .errors import AnalysisError
from .image_analyzer import analyze_image

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = ('.tif', '.tiff')


class BatchAbortedError(AnalysisError):
    """An image failed while the batch was running without discarding errors."""


def find_images(image_directory: Union[str, Path]) -> List[Path]:
    """TIFF images of a directory in alphabetical order."""
    image_dir = Path(image_directory)
    if not image_dir.is_dir():
        raise FileNotFoundError(f"Directory not found: {image_dir}")

    return sorted(path for path in image_dir.iterdir()
                  if path.is_file() and path.suffix.lower() in IMAGE_EXTENSIONS)


def process_single_image_worker(image_info: Dict) -> Dict:
    """
    Worker function analysing one image. Designed to be pickle-able for multiprocessing.

    Every per-image failure, expected or not, is returned as ``success=False``
    with the error message instead of being raised, so the parent process
    decides what to do with it.
    """
    image_path = Path(image_info['image_path'])
    start_time = time.time()

    try:
        result = analyze_image(
            image_path,
            image_info['config'],
            output_dir=image_info.get('output_dir'),
            debug=image_info.get('debug', False),
        )
    except Exception as e:
        if not isinstance(e, (AnalysisError, ValueError)):
            logger.exception(f"Unexpected failure while analysing {image_path}")
        return {
            'image_path': str(image_path),
            'image_name': image_path.name,
            'success': False,
            'error': str(e),
            'total_processing_time': time.time() - start_time,
        }

    summary = result.summary()
    summary.update({
        'image_path': str(image_path),
        'success': True,
        'total_processing_time': time.time() - start_time,
    })
    return summary


@dataclass
class BatchSummary:
    results: List[Dict[str, Any]] = field(default_factory=list)
    total_images: int = 0
    successful: int = 0
    mean_exclusion_percent: Optional[float] = None
    std_exclusion_percent: Optional[float] = None
    total_processing_time: float = 0.0
    summary_path: Optional[Path] = None

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(self.results)


class BatchAnalyzer:
    """Analyses directories of SEM images in parallel."""

    def __init__(self,
                 config: Optional[AnalysisConfig] = None,
                 num_processes: Optional[int] = None,
                 discard_errors: bool = False,
                 debug: bool = False):
        self.config = config or AnalysisConfig()
        self.num_processes = num_processes or mp.cpu_count()
        self.discard_errors = discard_errors
        self.debug = debug

    def analyze_directory(self, image_directory: Union[str, Path],
                          output_dir: Optional[Union[str, Path]] = None) -> BatchSummary:
        """
        Analyse every TIFF image of a directory.

        Args:
            image_directory: Directory holding the images
            output_dir: Directory for diagnostics and the summary CSV, ``output`` if None

        Returns:
            BatchSummary with per-image rows and aggregated exclusion statistics

        Raises:
            BatchAbortedError: If an image fails and errors aren't discarded
        """
        image_files = find_images(image_directory)
        output_dir = Path(output_dir) if output_dir is not None else Path('output')
        output_dir.mkdir(parents=True, exist_ok=True)

        for i, path in enumerate(image_files):
            logger.info(f" - {i}: {path}")
        logger.info(f"Processing {len(image_files)} images with {self.num_processes} processes")

        summary = BatchSummary(total_images=len(image_files))
        if not image_files:
            logger.warning(f"No images found in {image_directory}")
            return summary

        worker_args = [{
            'image_path': str(path),
            'config': self.config,
            'output_dir': str(output_dir),
            'debug': self.debug,
        } for path in image_files]

        start_time = time.time()
        with ProcessPoolExecutor(max_workers=self.num_processes) as executor:
            future_to_image = {
                executor.submit(process_single_image_worker, arg): arg['image_path']
                for arg in worker_args
            }

            for completed, future in enumerate(as_completed(future_to_image), start=1):
                result = future.result()
                self._handle_result(result, completed, len(image_files), executor)
                if result['success']:
                    summary.results.append(result)

        summary.successful = len(summary.results)
        summary.total_processing_time = time.time() - start_time
        summary.results.sort(key=lambda row: row['image_name'])

        self._aggregate(summary)
        if summary.results:
            summary.summary_path = output_dir / 'batch_summary.csv'
            summary.to_dataframe().to_csv(summary.summary_path, index=False)

        return summary

    def _handle_result(self, result: Dict, completed: int, total: int, executor: ProcessPoolExecutor):
        if result['success']:
            message = f"[{completed:3d}/{total}] {result['image_name']}: scale {result['micrometers_per_pixel']:.4f} μm/px"
            if 'exclusion_percent' in result:
                message += f", graphene edge area {result['exclusion_percent']:.2f}%"
            if 'flake_count' in result:
                message += f", {result['flake_count']} flakes"
            logger.info(message)
            return

        message = f"[{completed:3d}/{total}] Failed to analyse {result['image_path']} ({result['error']})"
        if self.discard_errors:
            logger.warning(message)
            return

        executor.shutdown(wait=False, cancel_futures=True)
        raise BatchAbortedError(message)

    @staticmethod
    def _aggregate(summary: BatchSummary):
        """Mean and population standard deviation of the exclusion percentages."""
        exclusion = [row['exclusion_percent'] for row in summary.results if 'exclusion_percent' in row]
        if not exclusion:
            return

        summary.mean_exclusion_percent = float(np.mean(exclusion))
        summary.std_exclusion_percent = float(np.std(exclusion))
        logger.info(
            f"Mean graphene edge exclusion area: {summary.mean_exclusion_percent:.2f}% "
            f"(standard deviation: {summary.std_exclusion_percent:.5f})"
        )
