"""
Delivery Queue
==============

Ordered, retrying delivery of print jobs to one printer destination.

Each queue owns a single worker thread, so exactly one delivery per
destination is in flight at a time and jobs leave in enqueue order. A job
that fails stays at the head of the queue and is retried after a backoff
delay; once it has failed ``max_attempts`` times it is moved, together with
any still-pending jobs from the same batch, to the dead-letter store and
the worker carries on with the next job.

Usage:
    queue = DeliveryQueue(bridge, 'Zebra ZD410')
    job = queue.enqueue_safe(PrintJob(payload=zpl))
    queue.drain()
"""

import logging
import threading
from collections import deque
from datetime import datetime
from typing import Any, Callable, Deque, Dict, List, Optional, Set

from .backoff import BackoffPolicy
from .cancellation import CancellationToken
from ..bridge.base import BaseBridgeClient
from ..compiler.validator import validate_device_code
from ..config import DELIVERED_HISTORY, RETRY_MAX_ATTEMPTS
from ..errors import (
    BridgeUnavailableError,
    DeadLetterNotFoundError,
    DuplicateJobError,
    PrintServiceError,
    ValidationError,
)
from ..models.job import DeadLetterEntry, PrintJob, QUEUED

logger = logging.getLogger(__name__)

# listener(event, job, queue); events: queued, retry, delivered, dead_lettered
Listener = Callable[[str, PrintJob, 'DeliveryQueue'], None]


class DeliveryQueue:
    """FIFO delivery queue for a single printer."""

    def __init__(self, bridge: BaseBridgeClient, printer_name: str,
                 max_attempts: int = RETRY_MAX_ATTEMPTS,
                 backoff: Optional[BackoffPolicy] = None,
                 clock: Callable[[], datetime] = datetime.now,
                 listener: Optional[Listener] = None):
        """
        Args:
            bridge: Transport to the printer
            printer_name: Destination for every job in this queue
            max_attempts: Failed attempts before a job is dead-lettered
            backoff: Delay policy between attempts
            clock: Timestamp source
            listener: Progress callback
        """
        if max_attempts < 1:
            raise ValueError('max_attempts must be at least 1')

        self.bridge = bridge
        self.printer_name = printer_name
        self.max_attempts = max_attempts
        self.backoff = backoff or BackoffPolicy()
        self._clock = clock
        self._listener = listener

        self._cond = threading.Condition()
        self._token = CancellationToken()
        self._pending: Deque[PrintJob] = deque()
        self._pending_ids: Set[str] = set()
        self._in_flight: Optional[PrintJob] = None
        self._delivered: Deque[PrintJob] = deque(maxlen=DELIVERED_HISTORY)
        self._dead_letters: List[DeadLetterEntry] = []
        self._worker: Optional[threading.Thread] = None
        self._closed = False

        self._delivered_total = 0
        self._failed_attempts = 0
        self._dead_lettered_total = 0

    # =========================================================================
    # Admission
    # =========================================================================

    def _admit(self, job: PrintJob):
        """Append a job. Caller holds the lock."""
        if self._closed:
            raise PrintServiceError(f'Delivery queue for {self.printer_name} is closed')
        if job.id in self._pending_ids:
            raise DuplicateJobError(job.id)
        if job.status != QUEUED:
            raise ValidationError(f'Job {job.id} is already {job.status}')

        if not job.printer_name:
            job.printer_name = self.printer_name
        self._pending.append(job)
        self._pending_ids.add(job.id)

    def enqueue(self, job: PrintJob) -> PrintJob:
        """Queue a job and return immediately; delivery runs on the worker."""
        with self._cond:
            self._admit(job)
            self._cond.notify_all()

        self._ensure_worker()
        logger.info("Queued %s for %s (%d pending)", job.id, self.printer_name, len(self._pending))
        self._notify('queued', job)
        return job

    def enqueue_many(self, jobs: List[PrintJob]) -> List[PrintJob]:
        """
        Queue several jobs in order under one lock.

        Either every job is admitted or none is: duplicates, a closed queue
        or a job that is no longer queued reject the whole group.
        """
        jobs = list(jobs)
        with self._cond:
            seen = set(self._pending_ids)
            for job in jobs:
                if self._closed:
                    raise PrintServiceError(f'Delivery queue for {self.printer_name} is closed')
                if job.id in seen:
                    raise DuplicateJobError(job.id)
                if job.status != QUEUED:
                    raise ValidationError(f'Job {job.id} is already {job.status}')
                seen.add(job.id)
            for job in jobs:
                self._admit(job)
            self._cond.notify_all()

        if jobs:
            self._ensure_worker()
            logger.info("Queued %d job(s) for %s (%d pending)", len(jobs), self.printer_name,
                        len(self._pending))
            for job in jobs:
                self._notify('queued', job)
        return jobs

    def enqueue_safe(self, job: PrintJob) -> PrintJob:
        """
        Validate, then queue.

        Raises:
            DeviceCodeError: Payload is empty or malformed
            BridgeUnavailableError: Bridge cannot be reached
        """
        validate_device_code(job.payload)

        if not self.bridge.is_connected():
            result = self.bridge.connect()
            if not result.get('success'):
                raise BridgeUnavailableError(result.get('error', ''))

        return self.enqueue(job)

    # =========================================================================
    # Flow control
    # =========================================================================

    def pause(self):
        """Stop before the next attempt; an attempt in flight completes."""
        self._token.pause()
        with self._cond:
            self._cond.notify_all()
        logger.info("Paused delivery to %s", self.printer_name)

    def resume(self):
        self._token.resume()
        with self._cond:
            self._cond.notify_all()
        logger.info("Resumed delivery to %s", self.printer_name)

    @property
    def paused(self) -> bool:
        return self._token.paused

    def _is_idle(self) -> bool:
        return not self._pending and self._in_flight is None

    def drain(self, timeout: Optional[float] = None) -> bool:
        """
        Block until every pending job is delivered or dead-lettered.

        Returns:
            True when the queue is empty; False on timeout, or when the
            queue is paused with work still pending
        """
        self._ensure_worker()
        with self._cond:
            self._cond.wait_for(
                lambda: self._is_idle() or self._token.paused or self._closed,
                timeout,
            )
            return self._is_idle()

    def wait(self, job: PrintJob, timeout: Optional[float] = None) -> str:
        """Block until ``job`` leaves the queue; returns its final status."""
        with self._cond:
            self._cond.wait_for(lambda: job.status != QUEUED or self._closed, timeout)
            return job.status

    def close(self, timeout: Optional[float] = 5.0):
        """Stop the worker after any attempt in flight. Pending jobs are kept."""
        with self._cond:
            self._closed = True
            self._cond.notify_all()
        self._token.cancel()

        worker = self._worker
        if worker and worker is not threading.current_thread():
            worker.join(timeout)

    # =========================================================================
    # Dead letters
    # =========================================================================

    def get_dead_letter_queue(self) -> List[DeadLetterEntry]:
        with self._cond:
            return list(self._dead_letters)

    def clear_dead_letter_queue(self) -> int:
        """Discard every entry. Returns how many were removed."""
        with self._cond:
            removed = len(self._dead_letters)
            self._dead_letters.clear()
        if removed:
            logger.info("Cleared %d dead-letter entr%s for %s",
                        removed, 'y' if removed == 1 else 'ies', self.printer_name)
        return removed

    def _find_dead_letter(self, entry_id: str) -> DeadLetterEntry:
        for entry in self._dead_letters:
            if entry.id == entry_id:
                return entry
        raise DeadLetterNotFoundError(entry_id)

    def retry_dead_letter(self, entry_id: str) -> List[PrintJob]:
        """Re-queue an entry's jobs under fresh ids and remove the entry."""
        with self._cond:
            entry = self._find_dead_letter(entry_id)
            fresh = [job.fresh_copy(self._clock()) for job in entry.jobs]
            for job in fresh:
                self._admit(job)
            self._dead_letters.remove(entry)
            self._cond.notify_all()

        self._ensure_worker()
        logger.info("Retrying dead-letter %s: %d job(s) re-queued for %s",
                    entry_id, len(fresh), self.printer_name)
        for job in fresh:
            self._notify('queued', job)
        return fresh

    def discard_dead_letter(self, entry_id: str) -> DeadLetterEntry:
        with self._cond:
            entry = self._find_dead_letter(entry_id)
            self._dead_letters.remove(entry)
        logger.info("Discarded dead-letter %s for %s", entry_id, self.printer_name)
        return entry

    def _dead_letter(self, job: PrintJob, error: str) -> DeadLetterEntry:
        """Move a job and its pending batch mates out of the queue. Caller holds the lock."""
        batch = [job]
        if job.batch_id:
            batch += [p for p in self._pending if p is not job and p.batch_id == job.batch_id]

        for member in batch:
            self._pending.remove(member)
            self._pending_ids.discard(member.id)
            member.dead_letter()

        entry = DeadLetterEntry(jobs=batch, error=error, timestamp=self._clock())
        self._dead_letters.append(entry)
        self._dead_lettered_total += len(batch)
        return entry

    # =========================================================================
    # Status
    # =========================================================================

    def pending(self) -> List[PrintJob]:
        with self._cond:
            return list(self._pending)

    def delivered(self) -> List[PrintJob]:
        with self._cond:
            return list(self._delivered)

    def stats(self) -> Dict[str, Any]:
        with self._cond:
            return {
                'printer': self.printer_name,
                'pending': len(self._pending),
                'in_flight': self._in_flight.id if self._in_flight else None,
                'paused': self._token.paused,
                'running': bool(self._worker and self._worker.is_alive()),
                'delivered': self._delivered_total,
                'failed_attempts': self._failed_attempts,
                'dead_lettered': self._dead_lettered_total,
                'dead_letter_entries': len(self._dead_letters),
            }

    # =========================================================================
    # Worker
    # =========================================================================

    def _ensure_worker(self):
        with self._cond:
            if self._closed or (self._worker and self._worker.is_alive()):
                return
            self._worker = threading.Thread(
                target=self._run, name=f'delivery-{self.printer_name}', daemon=True
            )
            self._worker.start()

    def _notify(self, event: str, job: PrintJob):
        if not self._listener:
            return
        try:
            self._listener(event, job, self)
        except Exception:
            logger.exception("Delivery listener failed on %s for %s", event, job.id)

    def _attempt(self, job: PrintJob) -> Dict[str, Any]:
        """One send through the bridge; exceptions count as a failed attempt."""
        try:
            result = self.bridge.send(job.printer_name or self.printer_name, job.payload)
        except Exception as e:
            logger.exception("Bridge raised while sending %s", job.id)
            return {'success': False, 'error': str(e) or e.__class__.__name__}

        if not isinstance(result, dict):
            return {'success': bool(result)}
        return result

    def _run(self):
        logger.debug("Delivery worker started for %s", self.printer_name)

        while True:
            with self._cond:
                self._cond.wait_for(
                    lambda: self._closed or (self._pending and not self._token.paused)
                )
                if self._closed:
                    break
                job = self._pending[0]
                self._in_flight = job

            result = self._attempt(job)

            delay = 0.0
            entry = None
            with self._cond:
                self._in_flight = None
                if result.get('success'):
                    self._pending.popleft()
                    self._pending_ids.discard(job.id)
                    job.deliver(self._clock())
                    self._delivered.append(job)
                    self._delivered_total += 1
                    event = 'delivered'
                else:
                    error = result.get('error') or 'Print failed'
                    job.record_failure(error)
                    self._failed_attempts += 1
                    if job.attempts >= self.max_attempts:
                        entry = self._dead_letter(job, error)
                        event = 'dead_lettered'
                    else:
                        delay = self.backoff.delay(job.attempts)
                        event = 'retry'
                self._cond.notify_all()

            if event == 'delivered':
                logger.info("Delivered %s to %s", job.id, self.printer_name)
            elif event == 'retry':
                logger.warning("Attempt %d/%d for %s failed: %s; retrying in %.1fs",
                               job.attempts, self.max_attempts, job.id, job.last_error, delay)
            else:
                logger.error("Dead-lettered %s (%d job(s)) for %s after %d attempts: %s",
                             entry.id, len(entry.jobs), self.printer_name, job.attempts, entry.error)
            self._notify(event, job)

            if delay:
                self._token.sleep(delay)

        logger.debug("Delivery worker stopped for %s", self.printer_name)
