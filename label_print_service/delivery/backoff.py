"""
Retry delay policy for failed deliveries.
"""

from dataclasses import dataclass

from ..config import RETRY_BASE_SECONDS, RETRY_FACTOR, RETRY_MAX_SECONDS


@dataclass(frozen=True)
class BackoffPolicy:
    """Bounded exponential backoff: base * factor ** (attempt - 1), capped."""

    base_seconds: float = RETRY_BASE_SECONDS
    factor: float = RETRY_FACTOR
    max_seconds: float = RETRY_MAX_SECONDS

    @classmethod
    def fixed(cls, seconds: float) -> 'BackoffPolicy':
        """Same delay before every retry."""
        return cls(base_seconds=seconds, factor=1.0, max_seconds=seconds)

    def delay(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        if attempt < 1 or self.base_seconds <= 0:
            return 0.0
        return min(self.max_seconds, self.base_seconds * self.factor ** (attempt - 1))
