"""
Batch Print Orchestrator
========================

Runs a list of print items one at a time, with pause, resume and cancel
between items and a running success/failure tally.

Usage:
    runner = BatchPrintRunner()
    result = runner.run(records, print_one=lambda r: service.print_record(r))
    print(f"{result.success} printed, {result.failed} failed")
"""

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional

from .delivery.cancellation import CancellationToken
from .errors import BatchAlreadyRunningError

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    """Outcome of one batch run."""

    success: int = 0
    failed: int = 0
    total: int = 0
    elapsed_seconds: float = 0.0
    cancelled: bool = False
    errors: List[Dict[str, Any]] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return self.success + self.failed

    @property
    def skipped(self) -> int:
        return self.total - self.attempted

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'failed': self.failed,
            'attempted': self.attempted,
            'skipped': self.skipped,
            'total': self.total,
            'elapsed_seconds': round(self.elapsed_seconds, 3),
            'cancelled': self.cancelled,
            'errors': list(self.errors),
        }


def _item_label(item: Any, index: int) -> str:
    if isinstance(item, dict):
        return str(item.get('label') or item.get('sku') or item.get('id') or f'Item {index + 1}')
    return str(getattr(item, 'label', None) or getattr(item, 'id', None) or f'Item {index + 1}')


class BatchPrintRunner:
    """Sequential batch printing; one batch at a time per runner."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._lock = threading.Lock()
        self._active = False
        self._token: Optional[CancellationToken] = None
        self._result: Optional[BatchResult] = None
        self._thread: Optional[threading.Thread] = None

        self._current = 0
        self._current_label = ''
        self._started = 0.0
        self._paused_seconds = 0.0
        self._pause_started: Optional[float] = None

    # =========================================================================
    # Running
    # =========================================================================

    def _begin(self, total: int) -> CancellationToken:
        with self._lock:
            if self._active:
                raise BatchAlreadyRunningError()
            self._active = True
            self._token = CancellationToken()
            self._result = BatchResult(total=total)
            self._current = 0
            self._current_label = ''
            self._started = self._clock()
            self._paused_seconds = 0.0
            self._pause_started = None
            return self._token

    def run(self, items: Iterable[Any], print_one: Callable[[Any], Any],
            on_complete: Optional[Callable[[BatchResult], None]] = None,
            on_cancel: Optional[Callable[[], None]] = None) -> BatchResult:
        """
        Print items in order, waiting for each before starting the next.

        Args:
            items: Items to print
            print_one: Prints one item; truthy return means success.
                A falsy return or an exception counts as a failure.
            on_complete: Called once with the result, also after a cancel
            on_cancel: Called once if the batch was cancelled

        Raises:
            BatchAlreadyRunningError: This runner already has a batch going
        """
        items = list(items)
        token = self._begin(len(items))
        return self._execute(items, token, print_one, on_complete, on_cancel)

    def start(self, items: Iterable[Any], print_one: Callable[[Any], Any],
              on_complete: Optional[Callable[[BatchResult], None]] = None,
              on_cancel: Optional[Callable[[], None]] = None) -> threading.Thread:
        """Same as run(), on a background thread. Raises immediately if busy."""
        items = list(items)
        token = self._begin(len(items))
        thread = threading.Thread(
            target=self._execute,
            args=(items, token, print_one, on_complete, on_cancel),
            name='batch-print',
            daemon=True,
        )
        self._thread = thread
        thread.start()
        return thread

    def join(self, timeout: Optional[float] = None):
        """Wait for a background batch to finish."""
        if self._thread:
            self._thread.join(timeout)

    def _execute(self, items, token, print_one, on_complete, on_cancel) -> BatchResult:
        result = self._result
        logger.info("Batch started: %d item(s)", len(items))

        try:
            for index, item in enumerate(items):
                if token.paused and not token.cancelled:
                    with self._lock:
                        self._pause_started = self._clock()
                    token.wait_while_paused()
                    with self._lock:
                        self._paused_seconds += self._clock() - self._pause_started
                        self._pause_started = None
                if token.cancelled:
                    break

                label = _item_label(item, index)
                with self._lock:
                    self._current = index + 1
                    self._current_label = label

                error = None
                try:
                    ok = bool(print_one(item))
                    if not ok:
                        error = 'Print failed'
                except Exception as e:
                    logger.warning("Batch item %d (%s) raised: %s", index + 1, label, e)
                    ok = False
                    error = str(e) or e.__class__.__name__

                with self._lock:
                    if ok:
                        result.success += 1
                    else:
                        result.failed += 1
                        result.errors.append({'index': index, 'item': label, 'error': error})

            result.cancelled = token.cancelled
        finally:
            with self._lock:
                result.elapsed_seconds = self._clock() - self._started - self._paused_seconds
                self._active = False

        if result.cancelled:
            logger.info("Batch cancelled after %d of %d item(s)", result.attempted, result.total)
            if on_cancel:
                on_cancel()
        else:
            logger.info("Batch finished: %d printed, %d failed in %.1fs",
                        result.success, result.failed, result.elapsed_seconds)

        if on_complete:
            on_complete(result)
        return result

    # =========================================================================
    # Control
    # =========================================================================

    @property
    def running(self) -> bool:
        return self._active

    def pause(self) -> bool:
        """Hold before the next item. Returns False when nothing is running."""
        if not self._active:
            return False
        self._token.pause()
        logger.info("Batch paused at item %d", self._current)
        return True

    def resume(self) -> bool:
        if not self._active:
            return False
        self._token.resume()
        logger.info("Batch resumed")
        return True

    def cancel(self) -> bool:
        """Stop before the next item; the item in progress finishes."""
        if not self._active:
            return False
        self._token.cancel()
        logger.info("Batch cancel requested at item %d", self._current)
        return True

    def progress(self) -> Dict[str, Any]:
        """Live snapshot, or the last result once the batch has ended."""
        with self._lock:
            result = self._result
            if result is None:
                return {'running': False}

            if self._active:
                now = self._clock()
                paused = self._paused_seconds
                if self._pause_started is not None:
                    paused += now - self._pause_started
                elapsed = now - self._started - paused
            else:
                elapsed = result.elapsed_seconds

            snapshot = result.to_dict()
            snapshot.update({
                'running': self._active,
                'paused': bool(self._active and self._token.paused),
                'current': self._current,
                'current_item': self._current_label,
                'elapsed_seconds': round(elapsed, 3),
            })
            return snapshot
