"""
Session state for TwinFinder.

AnalysisSession is the single owner of the current similarity groups and
the views derived from them. Analyses run through its controller; their
results replace the groups wholesale, and deletions prune them. Every
change recomputes the derived views from scratch. Nothing is persisted.
"""

import logging
import threading
from collections.abc import Iterator
from datetime import datetime
from typing import Optional

from .config import DEFAULT_STRATEGY, DEFAULT_HASH_ALGORITHM
from .models import ResultViews, SimilarityGroup, normalize_path
from .orchestrator import AnalysisController, AnalysisPhase, AnalysisRun, current_run
from .results import remove_folder, remove_path
from .scanner import HashStrategy
from .utils.exporters import export_rows_csv
from .utils.platform import move_to_trash, open_in_file_manager
from .utils.validators import validate_excluded_folders, validate_path_in_roots, validate_roots
from .views import derive_views

_logger = logging.getLogger(__name__)

# Session statuses that mean an analysis is in flight
ACTIVE_STATUSES = (
    AnalysisPhase.PLANNING.value,
    AnalysisPhase.EXTRACTING.value,
    AnalysisPhase.CLUSTERING.value,
    AnalysisPhase.CANCELLING.value,
)


class AnalysisSession:
    """
    Coordinates analyses and owns their results.

    Callbacks from older runs are ignored once a newer analysis has been
    started, so the group list always belongs to the latest run.
    """

    def __init__(self, controller: Optional[AnalysisController] = None):
        self.controller = controller or AnalysisController()
        self._lock = threading.Lock()
        self._generation = 0
        self.run: Optional[AnalysisRun] = None
        self.reset()

    def reset(self):
        """Clear results and return to idle. Does not cancel a running analysis."""
        with self._lock:
            self._generation += 1
            self.status = 'idle'  # idle, planning, extracting, clustering, cancelling, complete, cancelled, error
            self.progress = 0.0
            self.message = ''
            self.roots: list[str] = []
            self.groups: list[SimilarityGroup] = []
            self.views = ResultViews()
            self.started_at: Optional[str] = None
            self.finished_at: Optional[str] = None
            self.settings = {
                'threshold': None,
                'top_level_only': False,
                'strategy': DEFAULT_STRATEGY,
                'hash_algorithm': DEFAULT_HASH_ALGORITHM,
                'ignored_folder_name': '',
                'excluded_folders': [],
                'workers': None,
            }

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self.status in ACTIVE_STATUSES

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    def start_analysis(
        self,
        roots: list,
        threshold: float,
        top_level_only: bool = False,
        strategy: str = DEFAULT_STRATEGY,
        ignored_folder_name: str = '',
        max_workers: Optional[int] = None,
        hash_algorithm: str = DEFAULT_HASH_ALGORITHM,
        excluded_folders: Optional[list] = None,
    ) -> AnalysisRun:
        """
        Start a new analysis, cancelling any analysis already running.

        Args:
            roots: Folders to analyse, as a list of paths
            excluded_folders: Discovered leaf folders to leave out

        Raises:
            ValueError: If the parameters are invalid
        """
        if isinstance(roots, Iterator):
            roots = list(roots)
        if isinstance(excluded_folders, Iterator):
            excluded_folders = list(excluded_folders)
        for is_valid, error in (validate_roots(roots), validate_excluded_folders(excluded_folders)):
            if not is_valid:
                raise ValueError(error)
        normalized_roots = [normalize_path(root) for root in roots]
        normalized_excluded = [normalize_path(folder) for folder in excluded_folders or ()]
        fingerprint_strategy = HashStrategy(hash_algorithm) if strategy == 'hash' else strategy

        with self._lock:
            self._generation += 1
            generation = self._generation
            previous = (self.status, self.message)
            self.status = AnalysisPhase.PLANNING.value
            self.progress = 0.0
            self.message = 'Planning scan...'
            self.started_at = datetime.now().isoformat()
            self.finished_at = None

        # The session lock is not held while the controller waits for a
        # previous run, since that run's callbacks take it
        try:
            run = self.controller.analyze(
                normalized_roots,
                threshold,
                top_level_only=top_level_only,
                strategy=fingerprint_strategy,
                on_progress=lambda value: self._on_progress(generation, value),
                on_complete=lambda groups: self._on_complete(generation, groups),
                ignored_folder_name=ignored_folder_name,
                excluded_folders=normalized_excluded,
                max_workers=max_workers,
            )
        except ValueError:
            with self._lock:
                if generation == self._generation:
                    self.status, self.message = previous
            raise

        with self._lock:
            if generation == self._generation:
                self.run = run
                self.roots = normalized_roots
                self.settings = {
                    'threshold': float(threshold),
                    'top_level_only': bool(top_level_only),
                    'strategy': strategy,
                    'hash_algorithm': hash_algorithm,
                    'ignored_folder_name': ignored_folder_name or '',
                    'excluded_folders': normalized_excluded,
                    'workers': max_workers,
                }
        _logger.info(f"Started analysis of {len(normalized_roots)} folder(s) at threshold {threshold}")
        return run

    def _on_progress(self, generation: int, value: float):
        run = current_run()
        with self._lock:
            if generation != self._generation:
                return
            self.progress = value
            if run is not None:
                self.status = run.phase.value
                self.message = f'{run.phase.value.capitalize()}... {value * 100:.0f}%'

    def _on_complete(self, generation: int, groups: list):
        run = current_run()
        with self._lock:
            if generation != self._generation:
                _logger.debug("Ignoring result of a superseded analysis")
                return
            self.finished_at = datetime.now().isoformat()

            if run is not None and run.cancelled:
                self.status = 'cancelled'
                self.message = 'Analysis cancelled'
                self._set_groups([])
                return
            if run is not None and run.error is not None:
                self.status = 'error'
                self.message = f'Analysis failed: {run.error}'
                self._set_groups([])
                return

            self.status = 'complete'
            self.progress = 1.0
            self._set_groups(groups)
            if groups:
                self.message = (
                    f'Found {len(groups):,} groups with {len(self.views.rows):,} matches'
                )
            else:
                self.message = 'No similar images found'

    def cancel(self) -> bool:
        """Request cancellation of the running analysis."""
        cancelled = self.controller.cancel()
        if cancelled:
            with self._lock:
                if self.status in ACTIVE_STATUSES:
                    self.status = AnalysisPhase.CANCELLING.value
                    self.message = 'Cancelling...'
        return cancelled

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the latest analysis has resolved."""
        run = self.run
        if run is None:
            return True
        return run.wait(timeout)

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def _set_groups(self, groups: list):
        """Replace the groups and recompute views. Caller holds the lock."""
        self.groups = list(groups)
        self.views = derive_views(self.groups)

    def contains_path(self, path: str) -> bool:
        target = normalize_path(path)
        with self._lock:
            return any(group.contains(target) for group in self.groups)

    def delete_file(self, path: str) -> tuple[bool, str]:
        """
        Move an image to the trash and prune it from the results.

        A file that no longer exists is treated as deleted. Any other
        trash failure leaves the results untouched.

        Returns:
            Tuple of (success, error_message)
        """
        target = normalize_path(path)
        if not self.contains_path(target):
            return False, "File is not part of the current results"

        try:
            move_to_trash(target)
        except FileNotFoundError:
            _logger.info(f"File already gone, removing from results: {target}")
        except OSError as e:
            _logger.warning(f"Could not move {target} to trash: {e}")
            return False, f"Could not move file to trash: {e}"
        except Exception as e:
            _logger.exception(f"Unexpected error moving {target} to trash: {e}")
            return False, f"Could not move file to trash: {e}"

        with self._lock:
            self._set_groups(remove_path(self.groups, target))
        return True, ""

    def delete_folder(self, folder: str) -> tuple[bool, str]:
        """
        Move a whole folder to the trash and prune its images from the results.

        Returns:
            Tuple of (success, error_message)
        """
        target = normalize_path(folder)
        with self._lock:
            known = target in self.views.graph
            roots = list(self.roots)
        if not known:
            return False, "Folder is not part of the current results"
        if target in roots:
            return False, "Cannot delete a selected root folder"

        try:
            move_to_trash(target)
        except FileNotFoundError:
            _logger.info(f"Folder already gone, removing from results: {target}")
        except OSError as e:
            _logger.warning(f"Could not move folder {target} to trash: {e}")
            return False, f"Could not move folder to trash: {e}"
        except Exception as e:
            _logger.exception(f"Unexpected error moving folder {target} to trash: {e}")
            return False, f"Could not move folder to trash: {e}"

        with self._lock:
            self._set_groups(remove_folder(self.groups, target))
        return True, ""

    def open_folder(self, path: str) -> tuple[bool, str]:
        """Reveal a folder from the current analysis in the file manager."""
        with self._lock:
            roots = list(self.roots)
        if not roots or not validate_path_in_roots(path, roots):
            return False, "Path is outside the analysed folders"
        return open_in_file_manager(path)

    def current_rows(self) -> list:
        """Snapshot of the current flattened match rows."""
        with self._lock:
            return list(self.views.rows)

    def export_csv(self, output_path) -> int:
        """Write the current match rows to a CSV file. Returns rows written."""
        return export_rows_csv(self.current_rows(), output_path)

    # ------------------------------------------------------------------
    # API views
    # ------------------------------------------------------------------

    def to_status_dict(self) -> dict:
        """Return current status for API response."""
        with self._lock:
            return {
                'status': self.status,
                'progress': round(self.progress, 4),
                'message': self.message,
                'roots': self.roots,
                'has_results': len(self.groups) > 0,
                'group_count': len(self.groups),
                'match_count': len(self.views.rows),
                'started_at': self.started_at,
                'finished_at': self.finished_at,
                'settings': dict(self.settings),
            }

    def to_groups_dict(self) -> dict:
        """Return groups data for API response."""
        with self._lock:
            return {
                'groups': [group.to_dict() for group in self.groups],
                'roots': self.roots,
                'settings': dict(self.settings),
            }

    def to_rows_dict(self, cross_folder_only: bool = False) -> dict:
        """Return flattened match rows for API response."""
        with self._lock:
            rows = self.views.cross_folder_rows if cross_folder_only else self.views.rows
            return {'rows': [row.to_dict() for row in rows]}

    def to_folders_dict(self) -> dict:
        """Return folder clusters and cross-folder pairs for API response."""
        with self._lock:
            return self.views.to_dict()


# Global session instance for the application
analysis_session = AnalysisSession()
