"""
CLI workflow orchestration for TwinFinder.

Provides the CLIOrchestrator class that coordinates the CLI workflow from
argument parsing through analysis, reporting, and export.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..models import ResultViews
from ..orchestrator import AnalysisController
from ..scanner import HashStrategy, get_strategy, has_heif_support
from ..scanner.dependencies import HAS_TQDM
from ..utils.exporters import export_rows_csv
from ..utils.validators import validate_directory, validate_threshold, validate_workers
from ..views import derive_views
from .arg_parser import parse_arguments
from .reporting import print_folder_report, print_similarity_report


def setup_logging(verbose: bool = False) -> logging.Logger:
    """
    Configure logging for the CLI.

    Args:
        verbose: Enable verbose (DEBUG level) logging

    Returns:
        Configured logger instance
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%H:%M:%S'
    )
    return logging.getLogger(__name__)


class CLIOrchestrator:
    """
    Orchestrates the CLI analysis workflow.

    Args:
        argv: Argument list to parse instead of sys.argv
    """

    def __init__(self, argv: Optional[list] = None):
        self.argv = argv
        self.logger = logging.getLogger(__name__)
        self.args = None
        self.roots: list[str] = []
        self.excluded: list[str] = []
        self.groups: list = []
        self.views = ResultViews()
        self.last_progress = 0.0

    def run(self) -> int:
        """
        Execute the complete CLI workflow.

        Returns:
            Exit code (0 for success, 1 for error, 130 if interrupted)

        Workflow phases:
        1. Setup & argument parsing
        2. Validation
        3. Analysis
        4. Reporting
        5. Export
        """
        exit_code = self._setup_phase()
        if exit_code != 0:
            return exit_code

        exit_code = self._validate_phase()
        if exit_code != 0:
            return exit_code

        exit_code = self._analyze_phase()
        if exit_code != 0:
            return exit_code

        self._report_phase()

        return self._export_phase()

    def _setup_phase(self) -> int:
        """Phase 1: Parse arguments and setup logging."""
        self.args = parse_arguments(self.argv)
        self.logger = setup_logging(self.args.verbose)
        return 0

    def _validate_phase(self) -> int:
        """
        Phase 2: Validate arguments.

        Returns:
            0 for success, 1 for validation error
        """
        for root in self.args.roots:
            root_path = str(root.expanduser().resolve())
            is_valid, error = validate_directory(root_path)
            if not is_valid:
                self.logger.error(error)
                return 1
            self.roots.append(root_path)

        self.excluded = [str(folder.expanduser().resolve()) for folder in self.args.exclude]

        for is_valid, error in (
            validate_threshold(self.args.threshold),
            validate_workers(self.args.workers),
        ):
            if not is_valid:
                self.logger.error(error)
                return 1

        if not has_heif_support():
            self.logger.debug("HEIC/HEIF files will be skipped")

        return 0

    def _on_progress(self, value: float) -> None:
        # Without tqdm, log every 10%
        if value >= 1.0 or value - self.last_progress >= 0.1:
            self.last_progress = value
            self.logger.info(f"Progress: {value * 100:.0f}%")

    def _analyze_phase(self) -> int:
        """
        Phase 3: Run the analysis and wait for it.

        Returns:
            0 for success, 1 on failure, 130 if interrupted
        """
        show_progress = not self.args.no_progress
        controller = AnalysisController(
            max_workers=self.args.workers,
            show_progress=show_progress and HAS_TQDM,
        )

        if self.args.strategy == 'hash':
            strategy = HashStrategy(self.args.hash_algorithm)
        else:
            strategy = get_strategy(self.args.strategy)

        self.logger.info(
            f"Analysing {len(self.roots)} folder(s) with {strategy!r} "
            f"at threshold {self.args.threshold}"
        )

        run = controller.analyze(
            self.roots,
            self.args.threshold,
            top_level_only=self.args.top_level_only,
            strategy=strategy,
            on_progress=self._on_progress if show_progress and not HAS_TQDM else None,
            ignored_folder_name=self.args.ignore or '',
            excluded_folders=self.excluded,
        )

        try:
            while not run.wait(0.2):
                pass
        except KeyboardInterrupt:
            self.logger.warning("Interrupted, cancelling analysis...")
            run.cancel()
            run.wait()
            return 130

        if run.error is not None:
            self.logger.error(f"Analysis failed: {run.error}")
            return 1

        self.groups = run.result or []
        self.views = derive_views(self.groups)
        return 0

    def _report_phase(self) -> None:
        """Phase 4: Print the report."""
        print_similarity_report(self.groups, self.views)
        if self.args.folders:
            print_folder_report(self.views)

    def _export_phase(self) -> int:
        """
        Phase 5: Export the match table if requested.

        Returns:
            0 for success, 1 if the file could not be written
        """
        if not self.args.export:
            return 0

        try:
            count = export_rows_csv(self.views.rows, self.args.export)
        except OSError as e:
            self.logger.error(f"Cannot write export file {self.args.export}: {e}")
            return 1

        self.logger.info(f"Exported {count:,} matches to: {self.args.export}")
        return 0


__all__ = ['CLIOrchestrator', 'setup_logging']
