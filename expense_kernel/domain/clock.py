"""
Clock -- Deterministic time abstraction.

Responsibility:
    Provides an injectable clock interface so that engine code never calls
    ``datetime.now()`` or ``date.today()`` directly.  "What is the current
    mileage rate?" is answered by passing a clock in, not by reading the
    system time.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O (except SystemClock,
    which is the one sanctioned I/O boundary for time).

Failure modes:
    None.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone


class Clock(ABC):
    """
    Abstract clock interface.

    Contract:
        Callers that need "today" receive a Clock instance explicitly.

    Guarantees:
        - ``now()`` returns a timezone-aware ``datetime``.
        - ``today()`` returns the calendar date of ``now()``.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Get the current time."""
        ...

    def today(self) -> date:
        """Get the current calendar date."""
        return self.now().date()


class SystemClock(Clock):
    """Production clock that returns actual system time (UTC)."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    Guarantees:
        - ``now()`` returns the same value on repeated calls until
          ``advance()`` is called.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._fixed_time = fixed_time or datetime(
            2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc
        )
        self._advance = timedelta(0)

    def now(self) -> datetime:
        return self._fixed_time + self._advance

    def advance(self, days: int = 0, seconds: int = 0) -> None:
        """Advance the clock by the given number of days and seconds."""
        self._advance += timedelta(days=days, seconds=seconds)
