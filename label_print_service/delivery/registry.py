"""
One delivery queue per printer destination, created on demand.
"""

import logging
import threading
from typing import Any, Dict, List, Tuple

from .queue import DeliveryQueue
from ..bridge.base import BaseBridgeClient
from ..errors import DeadLetterNotFoundError
from ..models.job import DeadLetterEntry, PrintJob

logger = logging.getLogger(__name__)


class QueueRegistry:
    """Holds the queues sharing one bridge."""

    def __init__(self, bridge: BaseBridgeClient, **queue_options):
        """
        Args:
            bridge: Transport shared by every queue
            **queue_options: Passed to each DeliveryQueue (max_attempts,
                backoff, clock, listener)
        """
        self.bridge = bridge
        self.queue_options = queue_options
        self._queues: Dict[str, DeliveryQueue] = {}
        self._lock = threading.Lock()

    def get(self, printer_name: str) -> DeliveryQueue:
        """Queue for ``printer_name``, created on first use."""
        with self._lock:
            queue = self._queues.get(printer_name)
            if queue is None:
                queue = DeliveryQueue(self.bridge, printer_name, **self.queue_options)
                self._queues[printer_name] = queue
                logger.debug("Created delivery queue for %s", printer_name)
            return queue

    def __contains__(self, printer_name: str) -> bool:
        return printer_name in self._queues

    def queues(self) -> List[DeliveryQueue]:
        with self._lock:
            return list(self._queues.values())

    def stats(self) -> List[Dict[str, Any]]:
        return [queue.stats() for queue in self.queues()]

    # =========================================================================
    # Dead letters across all printers
    # =========================================================================

    def dead_letters(self) -> List[Tuple[str, DeadLetterEntry]]:
        """(printer, entry) pairs, oldest first."""
        entries = [
            (queue.printer_name, entry)
            for queue in self.queues()
            for entry in queue.get_dead_letter_queue()
        ]
        return sorted(entries, key=lambda pair: pair[1].timestamp)

    def _owner(self, entry_id: str) -> DeliveryQueue:
        for queue in self.queues():
            if any(entry.id == entry_id for entry in queue.get_dead_letter_queue()):
                return queue
        raise DeadLetterNotFoundError(entry_id)

    def retry_dead_letter(self, entry_id: str) -> List[PrintJob]:
        return self._owner(entry_id).retry_dead_letter(entry_id)

    def discard_dead_letter(self, entry_id: str) -> DeadLetterEntry:
        return self._owner(entry_id).discard_dead_letter(entry_id)

    def clear_dead_letters(self) -> int:
        return sum(queue.clear_dead_letter_queue() for queue in self.queues())

    def close(self):
        for queue in self.queues():
            queue.close()
