"""
Cooperative pause/cancel token.

Loops check the token at their own yield points (between jobs, between
batch items); nothing is interrupted mid-send.
"""

import threading
import time
from typing import Optional


class CancellationToken:
    """Pause and cancel flags shared between a worker loop and its controllers."""

    def __init__(self):
        self._cond = threading.Condition()
        self._cancelled = False
        self._paused = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def paused(self) -> bool:
        return self._paused

    def cancel(self):
        with self._cond:
            self._cancelled = True
            self._cond.notify_all()

    def pause(self):
        with self._cond:
            self._paused = True
            self._cond.notify_all()

    def resume(self):
        with self._cond:
            self._paused = False
            self._cond.notify_all()

    def wait_while_paused(self, timeout: Optional[float] = None) -> float:
        """
        Block while paused and not cancelled.

        Returns:
            Seconds spent waiting
        """
        started = time.monotonic()
        with self._cond:
            self._cond.wait_for(lambda: not self._paused or self._cancelled, timeout)
        return time.monotonic() - started

    def sleep(self, seconds: float) -> bool:
        """
        Sleep up to ``seconds``, waking early on cancel.

        Returns:
            True if the full delay elapsed, False if cancelled
        """
        if seconds <= 0:
            return not self._cancelled
        with self._cond:
            self._cond.wait_for(lambda: self._cancelled, seconds)
            return not self._cancelled
