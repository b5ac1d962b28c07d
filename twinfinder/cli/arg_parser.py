"""
Argument parsing for the CLI interface.

Provides functions to create and configure the argument parser for the
TwinFinder command-line interface. Defaults come from the user
configuration (~/.twinfinder/config.json and TWINFINDER_* variables).
"""

from __future__ import annotations

import argparse
from pathlib import Path

from ..config import HASH_ALGORITHMS, STRATEGIES
from ..user_config import get_user_config


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance
    """
    config = get_user_config()

    parser = argparse.ArgumentParser(
        description='Find visually similar images across folders',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s ~/Pictures
      Compare every image under ~/Pictures against every other

  %(prog)s ~/Pictures/2021 ~/Backup/2021 --threshold 0.9
      Stricter matching across two trees

  %(prog)s ~/Pictures --top-level-only
      Only compare images that live in the same folder

  %(prog)s ~/Pictures --exclude ~/Pictures/screenshots
      Skip one leaf folder

  %(prog)s ~/Pictures --strategy embedding --export matches.csv
      Use embedding vectors and export the match table to CSV
        """
    )

    parser.add_argument(
        'roots',
        type=Path,
        nargs='+',
        help='Root directories to analyse'
    )

    parser.add_argument(
        '-t', '--threshold',
        type=float,
        default=config.default_threshold,
        help=f'Similarity threshold (0.0-1.0, higher=stricter). Default: {config.default_threshold}'
    )

    parser.add_argument(
        '-s', '--strategy',
        choices=list(STRATEGIES),
        default=config.default_strategy,
        help=f'Fingerprint strategy. Default: {config.default_strategy}'
    )

    parser.add_argument(
        '--hash-algorithm',
        choices=list(HASH_ALGORITHMS),
        default=config.hash_algorithm,
        help=f'Structural hash used by the hash strategy. Default: {config.hash_algorithm}'
    )

    parser.add_argument(
        '--top-level-only',
        action='store_true',
        default=config.top_level_only,
        help='Compare images only against others in the same leaf folder'
    )

    parser.add_argument(
        '--ignore',
        metavar='NAME',
        default=config.ignored_folder_name,
        help=f'Skip directories with this exact name. Default: "{config.ignored_folder_name}"'
    )

    parser.add_argument(
        '--exclude',
        type=Path,
        action='append',
        default=[],
        metavar='DIR',
        help='Leave this leaf folder out of the scan (repeatable)'
    )

    parser.add_argument(
        '-w', '--workers',
        type=int,
        default=config.default_workers,
        help=f'Number of parallel workers. Default: {config.default_workers}'
    )

    parser.add_argument(
        '-e', '--export',
        type=Path,
        help='Export the match table to a CSV file'
    )

    parser.add_argument(
        '--folders',
        action='store_true',
        help='Also print folder clusters and cross-folder pairs'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Verbose output'
    )

    parser.add_argument(
        '--no-progress',
        action='store_true',
        help='Disable progress bars (useful for piping output)'
    )

    return parser


def parse_arguments(argv=None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Args:
        argv: List of argument strings (default: sys.argv)

    Returns:
        Parsed arguments as Namespace object

    Examples:
        >>> args = parse_arguments(['/photos', '--threshold', '0.9'])
        >>> args.threshold
        0.9
    """
    parser = create_parser()
    return parser.parse_args(argv)


__all__ = [
    'create_parser',
    'parse_arguments',
]
