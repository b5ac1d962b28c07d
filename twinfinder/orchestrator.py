"""
Analysis orchestration for TwinFinder.

Provides the AnalysisController that runs one analysis at a time on a
background thread: planning, parallel fingerprint extraction, and
per-scope clustering, with throttled progress and cooperative cancellation.

Contract of a run:
- Progress values are non-decreasing; a completed run ends with exactly
  one 1.0.
- A cancelled run delivers an empty result and emits no progress after
  the cancellation was observed.
- on_complete is called exactly once per run.
- Starting a new run cancels the active one and waits for it to resolve.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Iterator
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Union

from .config import (
    DEFAULT_WORKERS,
    EXTRACTION_PROGRESS_SHARE,
    PROGRESS_UPDATE_INTERVAL,
)
from .models import SimilarityGroup
from .scanner import (
    FingerprintStrategy,
    cluster_fingerprints,
    extract_fingerprints_parallel,
    get_strategy,
    plan_scan,
)
from .utils.validators import validate_analysis_params

_logger = logging.getLogger(__name__)

ProgressSink = Callable[[float], None]
CancelPredicate = Callable[[], bool]
ResultSink = Callable[[list], None]

# Run executing on the current worker thread
_current = threading.local()


class AnalysisPhase(str, Enum):
    """Lifecycle phases of one analysis run."""
    IDLE = 'idle'
    PLANNING = 'planning'
    EXTRACTING = 'extracting'
    CLUSTERING = 'clustering'
    DONE = 'done'
    CANCELLING = 'cancelling'


_TRANSITIONS = {
    AnalysisPhase.IDLE: {AnalysisPhase.PLANNING},
    AnalysisPhase.PLANNING: {AnalysisPhase.EXTRACTING, AnalysisPhase.DONE, AnalysisPhase.CANCELLING},
    AnalysisPhase.EXTRACTING: {AnalysisPhase.CLUSTERING, AnalysisPhase.CANCELLING},
    AnalysisPhase.CLUSTERING: {AnalysisPhase.DONE, AnalysisPhase.CANCELLING},
    AnalysisPhase.CANCELLING: {AnalysisPhase.IDLE},
    AnalysisPhase.DONE: set(),
}


class ProgressThrottle:
    """
    Rate-limited, monotonic progress emitter.

    Intermediate values are emitted at most once per interval and never
    decrease; values of 1.0 or more are held back until complete(). Once
    the cancel predicate returns True or close() is called, nothing more
    is emitted.
    """

    def __init__(
        self,
        sink: Optional[ProgressSink],
        interval: float = PROGRESS_UPDATE_INTERVAL,
        should_cancel: Optional[CancelPredicate] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._sink = sink
        self._interval = max(0.0, interval)
        self._should_cancel = should_cancel
        self._clock = clock
        self._lock = threading.Lock()
        self._last_value = 0.0
        self._last_time: Optional[float] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    def _cancelled(self) -> bool:
        return self._should_cancel is not None and self._should_cancel()

    def update(self, value: float) -> None:
        """Emit an intermediate progress value if the throttle allows it."""
        if self._sink is None:
            return
        with self._lock:
            if self._closed:
                return
            if self._cancelled():
                self._closed = True
                return
            value = max(0.0, value)
            if value >= 1.0 or value < self._last_value:
                return
            now = self._clock()
            if self._last_time is not None:
                if value == self._last_value or now - self._last_time < self._interval:
                    return
            self._last_value = value
            self._last_time = now
            self._sink(value)

    def complete(self) -> None:
        """Emit the final 1.0 exactly once."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            if self._sink is not None:
                self._sink(1.0)

    def close(self) -> None:
        """Stop all further emissions."""
        with self._lock:
            self._closed = True


class CancellationToken:
    """Thread-safe cancellation flag shared between a run and its owner."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()


class _ResultChannel:
    """Delivers a run's result to its sink exactly once."""

    def __init__(self, sink: Optional[ResultSink]):
        self._sink = sink
        self._lock = threading.Lock()
        self._delivered = False

    def deliver(self, groups: list) -> bool:
        with self._lock:
            if self._delivered:
                return False
            self._delivered = True
        if self._sink is not None:
            try:
                self._sink(groups)
            except Exception:
                _logger.exception("Result callback raised an exception")
        return True


class AnalysisRun:
    """
    Handle on one analysis run.

    Attributes:
        run_id: Sequential id assigned by the controller
        result: Delivered groups once the run has resolved
        error: Unexpected exception that ended the run, if any
        cancelled: True when the run resolved through cancellation
    """

    def __init__(self, run_id: int):
        self.run_id = run_id
        self.token = CancellationToken()
        self.result: Optional[list] = None
        self.error: Optional[BaseException] = None
        self.cancelled = False
        self.thread: Optional[threading.Thread] = None
        self._phase = AnalysisPhase.IDLE
        self._phase_lock = threading.Lock()
        self._finished = threading.Event()

    @property
    def phase(self) -> AnalysisPhase:
        with self._phase_lock:
            return self._phase

    @property
    def finished(self) -> bool:
        return self._finished.is_set()

    def transition(self, phase: AnalysisPhase) -> None:
        """
        Move to a new phase.

        Raises:
            RuntimeError: If the transition is not allowed
        """
        with self._phase_lock:
            if phase not in _TRANSITIONS[self._phase]:
                raise RuntimeError(
                    f"Invalid analysis phase transition: {self._phase.value} -> {phase.value}"
                )
            self._phase = phase

    def _fail(self) -> None:
        with self._phase_lock:
            self._phase = AnalysisPhase.DONE

    def cancel(self) -> None:
        """Request cancellation; takes effect at the next file boundary."""
        self.token.cancel()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the run has resolved. Returns False on timeout."""
        return self._finished.wait(timeout)

    def __repr__(self) -> str:
        return f"AnalysisRun(run_id={self.run_id}, phase={self.phase.value})"


class AnalysisController:
    """
    Runs analyses one at a time on a background thread.

    Args:
        max_workers: Default worker count for fingerprint extraction
        progress_interval: Default minimum seconds between progress values
        show_progress: Show tqdm bars while extracting (CLI use)
    """

    def __init__(
        self,
        max_workers: int = DEFAULT_WORKERS,
        progress_interval: float = PROGRESS_UPDATE_INTERVAL,
        show_progress: bool = False,
    ):
        self.max_workers = max_workers
        self.progress_interval = progress_interval
        self.show_progress = show_progress
        self._lock = threading.Lock()
        self._active: Optional[AnalysisRun] = None
        self._run_counter = 0

    @property
    def active_run(self) -> Optional[AnalysisRun]:
        """The most recent run if it has not resolved yet."""
        with self._lock:
            run = self._active
        if run is not None and not run.finished:
            return run
        return None

    @property
    def is_running(self) -> bool:
        return self.active_run is not None

    def cancel(self) -> bool:
        """Cancel the active run. Returns False if nothing was running."""
        run = self.active_run
        if run is None:
            return False
        run.cancel()
        return True

    def analyze(
        self,
        roots: Iterable[Union[str, Path]],
        threshold: float,
        top_level_only: bool = False,
        strategy: Union[str, FingerprintStrategy] = 'hash',
        on_progress: Optional[ProgressSink] = None,
        should_cancel: Optional[CancelPredicate] = None,
        on_complete: Optional[ResultSink] = None,
        ignored_folder_name: str = '',
        excluded_folders: Optional[Iterable[Union[str, Path]]] = None,
        max_workers: Optional[int] = None,
        progress_interval: Optional[float] = None,
    ) -> AnalysisRun:
        """
        Start an analysis on a background thread.

        Args:
            roots: Directories selected by the user
            threshold: Minimum similarity in [0, 1] for images to group
            top_level_only: Compare each leaf folder only against itself
            strategy: 'hash', 'embedding', or a FingerprintStrategy instance
            on_progress: Receives progress values in [0, 1]
            should_cancel: Polled between files; True cancels the run
            on_complete: Receives the list of SimilarityGroup exactly once
            ignored_folder_name: Directory name pruned from the scan
            excluded_folders: Discovered leaf directories left out of the scan
            max_workers: Extraction workers (controller default if None)
            progress_interval: Progress throttle (controller default if None)

        Returns:
            AnalysisRun handle

        Raises:
            ValueError: If the parameters are invalid
        """
        if isinstance(roots, Iterator):
            roots = list(roots)
        if isinstance(excluded_folders, Iterator):
            excluded_folders = list(excluded_folders)
        is_valid, error = validate_analysis_params(
            roots, threshold, strategy, excluded_folders=excluded_folders
        )
        if not is_valid:
            raise ValueError(error)
        roots = [str(root) for root in roots]
        excluded = [str(folder) for folder in excluded_folders or ()]

        if isinstance(strategy, FingerprintStrategy):
            fingerprint_strategy = strategy
        else:
            fingerprint_strategy = get_strategy(strategy)

        with self._lock:
            previous = self._active
            self._run_counter += 1
            run = AnalysisRun(self._run_counter)
            self._active = run

        # Must not hold the lock here: the previous run's callbacks may
        # call back into the controller while it winds down
        if previous is not None and not previous.finished:
            _logger.info(f"Cancelling analysis run {previous.run_id} to start a new one")
            previous.cancel()
            if previous.thread is not threading.current_thread():
                previous.wait()

        def cancelled() -> bool:
            if run.token.is_cancelled:
                return True
            return should_cancel is not None and bool(should_cancel())

        throttle = ProgressThrottle(
            on_progress,
            interval=self.progress_interval if progress_interval is None else progress_interval,
            should_cancel=cancelled,
        )
        channel = _ResultChannel(on_complete)

        run.thread = threading.Thread(
            target=self._execute,
            args=(
                run,
                roots,
                float(threshold),
                top_level_only,
                fingerprint_strategy,
                ignored_folder_name or '',
                excluded,
                max_workers or self.max_workers,
                throttle,
                channel,
                cancelled,
            ),
            name=f"twinfinder-analysis-{run.run_id}",
            daemon=True,
        )
        run.thread.start()
        return run

    def _resolve(self, run: AnalysisRun, channel: _ResultChannel, groups: list) -> None:
        run.result = groups
        channel.deliver(groups)

    def _resolve_cancelled(
        self,
        run: AnalysisRun,
        throttle: ProgressThrottle,
        channel: _ResultChannel,
    ) -> None:
        run.transition(AnalysisPhase.CANCELLING)
        throttle.close()
        run.cancelled = True
        _logger.info(f"Analysis run {run.run_id} cancelled")
        self._resolve(run, channel, [])
        run.transition(AnalysisPhase.IDLE)

    def _execute(
        self,
        run: AnalysisRun,
        roots: list[str],
        threshold: float,
        top_level_only: bool,
        strategy: FingerprintStrategy,
        ignored_folder_name: str,
        excluded_folders: list[str],
        max_workers: int,
        throttle: ProgressThrottle,
        channel: _ResultChannel,
        cancelled: CancelPredicate,
    ) -> None:
        start_time = time.time()
        _current.run = run
        try:
            # Planning
            run.transition(AnalysisPhase.PLANNING)
            plan = plan_scan(roots, top_level_only, ignored_folder_name, excluded_folders)
            if cancelled():
                self._resolve_cancelled(run, throttle, channel)
                return

            scopes = plan.scopes()
            if cancelled():
                self._resolve_cancelled(run, throttle, channel)
                return

            if not scopes:
                _logger.info("No images found in the selected folders")
                run.transition(AnalysisPhase.DONE)
                throttle.complete()
                self._resolve(run, channel, [])
                return

            # Extraction
            run.transition(AnalysisPhase.EXTRACTING)
            filepaths = [path for scope in scopes for path in scope]
            _logger.info(
                f"Fingerprinting {len(filepaths):,} images from {len(plan)} folders "
                f"with {strategy!r}"
            )

            def on_extracted(done: int, total: int) -> None:
                throttle.update(EXTRACTION_PROGRESS_SHARE * done / total)

            fingerprints = extract_fingerprints_parallel(
                filepaths,
                strategy,
                max_workers=max_workers,
                progress_callback=on_extracted,
                should_cancel=cancelled,
                show_progress=self.show_progress,
            )
            if fingerprints is None or cancelled():
                self._resolve_cancelled(run, throttle, channel)
                return

            # Clustering
            run.transition(AnalysisPhase.CLUSTERING)
            lookup = dict(fingerprints)
            groups: list[SimilarityGroup] = []
            scope_share = (1.0 - EXTRACTION_PROGRESS_SHARE) / len(scopes)

            for index, scope in enumerate(scopes):
                entries = [(path, lookup[path]) for path in scope if path in lookup]
                base = EXTRACTION_PROGRESS_SHARE + index * scope_share

                def on_clustered(done: int, total: int, base: float = base) -> None:
                    throttle.update(base + scope_share * done / total)

                scope_groups = cluster_fingerprints(
                    entries,
                    strategy.similarity,
                    threshold,
                    progress_callback=on_clustered,
                    should_cancel=cancelled,
                )
                if scope_groups is None:
                    self._resolve_cancelled(run, throttle, channel)
                    return
                groups.extend(scope_groups)

            if cancelled():
                self._resolve_cancelled(run, throttle, channel)
                return

            run.transition(AnalysisPhase.DONE)
            elapsed = time.time() - start_time
            _logger.info(
                f"Analysis run {run.run_id} found {len(groups):,} groups in {elapsed:.1f}s"
            )
            throttle.complete()
            self._resolve(run, channel, groups)

        except Exception as e:
            _logger.exception(f"Analysis run {run.run_id} failed: {e}")
            run.error = e
            run._fail()
            throttle.close()
            self._resolve(run, channel, [])
        finally:
            _current.run = None
            run._finished.set()


def current_run() -> Optional[AnalysisRun]:
    """
    The run executing on the calling thread.

    Only set inside a run's worker thread, which is where on_progress and
    on_complete are invoked; None everywhere else.
    """
    return getattr(_current, 'run', None)


# Controller behind the module-level analyze()
_default_controller = AnalysisController()


def analyze(
    roots: Iterable[Union[str, Path]],
    threshold: float,
    top_level_only: bool = False,
    strategy: Union[str, FingerprintStrategy] = 'hash',
    on_progress: Optional[ProgressSink] = None,
    should_cancel: Optional[CancelPredicate] = None,
    on_complete: Optional[ResultSink] = None,
    **kwargs: Any,
) -> AnalysisRun:
    """Start an analysis on the shared controller. See AnalysisController.analyze."""
    return _default_controller.analyze(
        roots,
        threshold,
        top_level_only=top_level_only,
        strategy=strategy,
        on_progress=on_progress,
        should_cancel=should_cancel,
        on_complete=on_complete,
        **kwargs,
    )


__all__ = [
    'AnalysisPhase',
    'ProgressThrottle',
    'CancellationToken',
    'AnalysisRun',
    'AnalysisController',
    'current_run',
    'analyze',
]
