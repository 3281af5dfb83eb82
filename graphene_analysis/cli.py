"""
SEM Graphene Analysis System - Command Line Interface

    graphene-analysis analyse [-c config.json] IMAGE
    graphene-analysis batch [-c config.json] [-d] [-p N] DIRECTORY
    graphene-analysis export PATH
"""

import argparse
import logging
import multiprocessing as mp
import sys
from pathlib import Path
from typing import List, Optional

from .batch_processing import BatchAnalyzer
from .configuration import AnalysisConfig, load_config, save_config
from .errors import AnalysisError
from .image_analyzer import analyze_image

logger = logging.getLogger(__name__)


def _load(config_path: Optional[str]) -> AnalysisConfig:
    return load_config(config_path) if config_path else AnalysisConfig()


def run_analyse(args: argparse.Namespace) -> int:
    config = _load(args.config)
    result = analyze_image(args.path, config, output_dir=args.output, debug=True)

    calibration = result.calibration
    print(f"Scale: {calibration.micrometers_per_pixel:.4f} (px: {calibration.pixels}, "
          f"um: {calibration.micrometers}, height: {calibration.footer_height})")
    if result.exclusion is not None:
        print(f"Area within range of graphene edge (for correlation): {result.exclusion.percentage:.2f}%")
    if result.flakes is not None:
        print(f"Graphene flakes measured: {len(result.flakes.flakes)}, see image or .csv file")
    return 0


def run_batch(args: argparse.Namespace) -> int:
    config = _load(args.config)
    analyzer = BatchAnalyzer(config, num_processes=args.processes,
                             discard_errors=args.discard_error, debug=True)
    summary = analyzer.analyze_directory(args.path, args.output)

    print(f"\nImages, both output and intermediates, have been exported to '{args.output}'")
    print(f"Analysed {summary.successful} of {summary.total_images} images")
    if summary.mean_exclusion_percent is not None:
        print(f" - Mean graphene edge exclusion area: {summary.mean_exclusion_percent:.2f}% "
              f"(standard deviation: {summary.std_exclusion_percent:.5f})")
    return 0


def run_export(args: argparse.Namespace) -> int:
    path = save_config(AnalysisConfig(), args.path)
    print(f"Default configuration written to {path}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='graphene-analysis',
        description='Analyse SEM pictures of graphene and bacteria to determine some metrics'
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Show debug logging')
    subparsers = parser.add_subparsers(dest='action', required=True)

    analyse = subparsers.add_parser('analyse', help='Analyse a single image')
    analyse.add_argument('-c', '--config', help='The path to the configuration file to load (JSON)')
    analyse.add_argument('-o', '--output', default='output', help='Output directory for results')
    analyse.add_argument('path', type=Path, help='The path to the image to analyse')
    analyse.set_defaults(func=run_analyse)

    batch = subparsers.add_parser('batch', help='Analyse all images in a folder and aggregate the result')
    batch.add_argument('-c', '--config', help='The path to the configuration file to load (JSON)')
    batch.add_argument('-o', '--output', default='output', help='Output directory for results')
    batch.add_argument('-d', '--discard-error', action='store_true', help='Discard all images that error in some way')
    batch.add_argument('-p', '--processes', type=int, help='Number of processes (all cores if omitted)')
    batch.add_argument('path', type=Path, help='The path to the directory containing the images')
    batch.set_defaults(func=run_batch)

    export = subparsers.add_parser('export', help='Exports the default configuration')
    export.add_argument('path', type=Path, help='The path to write default configuration to')
    export.set_defaults(func=run_export)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    try:
        return args.func(args)
    except (AnalysisError, FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        return 1


if __name__ == '__main__':
    mp.freeze_support()  # Required for Windows
    sys.exit(main())
