"""
Label Print Service Delivery
============================

Per-printer job queues with retry, backoff, pause and dead-letter handling.
"""

from .backoff import BackoffPolicy
from .cancellation import CancellationToken
from .queue import DeliveryQueue
from .registry import QueueRegistry

__all__ = ['BackoffPolicy', 'CancellationToken', 'DeliveryQueue', 'QueueRegistry']
