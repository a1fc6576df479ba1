"""
Print Job Model
===============

Represents a print job in a delivery queue, and the dead-letter entries
that hold jobs whose retries ran out.
"""

import uuid
from datetime import datetime
from dataclasses import dataclass, field, asdict, replace
from typing import Optional, Dict, Any, List

QUEUED = 'queued'
DELIVERED = 'delivered'
DEAD_LETTERED = 'dead_lettered'


def _new_job_id() -> str:
    return f"JOB-{str(uuid.uuid4())[:8].upper()}"


@dataclass
class PrintJob:
    """Print job payload and delivery state."""

    # Device program, immutable once set
    payload: str = ""
    quantity: int = 1

    # Identification
    id: str = field(default_factory=_new_job_id)
    printer_name: str = ""
    batch_id: Optional[str] = None

    # Delivery state
    status: str = QUEUED
    attempts: int = 0
    last_error: Optional[str] = None

    # Timestamps
    created_at: datetime = field(default_factory=datetime.now)
    delivered_at: Optional[datetime] = None

    # Source
    source: str = "api"  # api, batch, dead_letter_retry

    def __setattr__(self, name, value):
        if name in ('id', 'payload') and name in self.__dict__:
            raise AttributeError(f'PrintJob.{name} cannot be changed once set')
        super().__setattr__(name, value)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = asdict(self)
        for key in ['created_at', 'delivered_at']:
            if data.get(key):
                data[key] = data[key].isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PrintJob':
        """Create from dictionary."""
        data = dict(data)
        for key in ['created_at', 'delivered_at']:
            if data.get(key) and isinstance(data[key], str):
                data[key] = datetime.fromisoformat(data[key])
        return cls(**data)

    def fresh_copy(self, created_at: Optional[datetime] = None) -> 'PrintJob':
        """Same payload under a new identity, with delivery state reset."""
        return replace(
            self,
            id=_new_job_id(),
            status=QUEUED,
            attempts=0,
            last_error=None,
            created_at=created_at or datetime.now(),
            delivered_at=None,
            source='dead_letter_retry',
        )

    def record_failure(self, error: str):
        """Count a failed delivery attempt."""
        self.attempts += 1
        self.last_error = error

    def deliver(self, when: datetime):
        """Mark job as delivered."""
        self.status = DELIVERED
        self.delivered_at = when
        self.last_error = None

    def dead_letter(self):
        """Mark job as dead-lettered."""
        self.status = DEAD_LETTERED


@dataclass
class DeadLetterEntry:
    """Jobs that exhausted their retries, pending operator action."""

    jobs: List[PrintJob]
    error: str
    timestamp: datetime = field(default_factory=datetime.now)
    id: str = field(default_factory=lambda: f"DLQ-{str(uuid.uuid4())[:8].upper()}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'error': self.error,
            'timestamp': self.timestamp.isoformat(),
            'jobs': [job.to_dict() for job in self.jobs],
        }
