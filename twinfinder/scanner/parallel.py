"""
Parallel processing module for the scanner package.

Provides parallel fingerprint extraction with progress tracking,
cooperative cancellation, and callback support.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, Optional

from ..config import DEFAULT_WORKERS
from .dependencies import HAS_TQDM, _tqdm_class
from .fingerprints import FingerprintStrategy

_logger = logging.getLogger(__name__)


def extract_fingerprints_parallel(
    filepaths: list[str],
    strategy: FingerprintStrategy,
    max_workers: int = DEFAULT_WORKERS,
    progress_callback: Optional[Callable[[int, int], None]] = None,
    should_cancel: Optional[Callable[[], bool]] = None,
    show_progress: bool = False,
) -> Optional[list[tuple[str, Any]]]:
    """
    Extract fingerprints for many images in parallel.

    Args:
        filepaths: Image paths to fingerprint
        strategy: Strategy used for every file
        max_workers: Number of parallel workers
        progress_callback: Optional callback(current, total) after each file
        should_cancel: Optional predicate polled after each file
        show_progress: Whether to show a tqdm progress bar

    Returns:
        (path, fingerprint) pairs in input order, without the files that
        produced no fingerprint; None if cancelled

    Notes:
        - The cancel predicate is checked before each progress callback, so
          no callback fires once cancellation has been observed
        - On cancel, queued files are dropped and files already being
          decoded are allowed to finish
    """
    total = len(filepaths)
    if total == 0:
        return []

    fingerprints: list[Any] = [None] * total
    cancelled = False

    pbar: Optional[Any] = None
    if HAS_TQDM and show_progress and _tqdm_class is not None:
        pbar = _tqdm_class(
            total=total,
            desc="Fingerprinting images",
            unit="img",
            ncols=80,
        )

    executor = ThreadPoolExecutor(max_workers=max(1, max_workers))
    try:
        futures = {
            executor.submit(strategy.extract, path): index
            for index, path in enumerate(filepaths)
        }

        for done, future in enumerate(as_completed(futures), 1):
            index = futures[future]
            try:
                fingerprints[index] = future.result()
            except Exception as e:
                _logger.debug(f"Fingerprint extraction failed for {filepaths[index]}: {e}")

            if pbar is not None:
                pbar.update(1)

            if should_cancel is not None and should_cancel():
                cancelled = True
                break

            if progress_callback:
                progress_callback(done, total)
    finally:
        executor.shutdown(wait=True, cancel_futures=cancelled)
        if pbar is not None:
            pbar.close()

    if cancelled:
        _logger.debug("Fingerprint extraction cancelled")
        return None

    results = [
        (path, fingerprint)
        for path, fingerprint in zip(filepaths, fingerprints)
        if fingerprint is not None
    ]
    skipped = total - len(results)
    if skipped:
        _logger.info(f"Skipped {skipped:,} unreadable images")
    return results


__all__ = ['extract_fingerprints_parallel']
