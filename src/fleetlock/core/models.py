"""Result types returned by the lock manager."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class AcquireOutcome(str, Enum):
    """Why an acquisition attempt (or loop of attempts) ended."""

    ACQUIRED = "acquired"
    CONTENDED = "contended"
    STORE_ERROR = "store_error"
    CANCELLED = "cancelled"


@dataclass(slots=True, frozen=True)
class AcquireResult:
    """Outcome of ``LockManager.try_acquire_with_retry``.

    ``attempts`` counts store round trips, so a cancelled loop may report fewer
    attempts than the retry budget. ``outcome`` reflects the last attempt.
    """

    key: str
    token: str
    outcome: AcquireOutcome
    attempts: int
    elapsed: float = 0.0

    @property
    def acquired(self) -> bool:
        return self.outcome is AcquireOutcome.ACQUIRED

    def __bool__(self) -> bool:
        return self.acquired
