"""
Injectable time source.

The ticket store stamps ``created_at`` from a Clock rather than reading the
wall clock itself, so archive summaries rendered in tests are stable.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

_EPOCH_FOR_TESTS = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    """Source of timezone-aware UTC timestamps."""

    @abstractmethod
    def now(self) -> datetime: ...


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """Frozen clock; moves only when ``advance()`` is called."""

    def __init__(self, start: datetime | None = None):
        self._current = start or _EPOCH_FOR_TESTS

    def now(self) -> datetime:
        return self._current

    def advance(self, seconds: float = 1) -> datetime:
        self._current += timedelta(seconds=seconds)
        return self._current
