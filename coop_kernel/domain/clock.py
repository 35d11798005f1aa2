"""
Clock -- injectable source of "now".

Services never call ``datetime.now()`` or ``date.today()`` directly.
Liquidation dates, ledger entry dates and receipt years all come from the
Clock a service was built with, so one batch sees one "today".

SystemClock is the only place that reads the system time.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, time, timedelta, timezone


class Clock(ABC):
    """``now()`` is timezone-aware; ``today()`` is its calendar date."""

    @abstractmethod
    def now(self) -> datetime:
        ...

    def today(self) -> date:
        return self.now().date()


class SystemClock(Clock):
    """
    Wall-clock time.

    Args:
        tz: Zone whose calendar defines "today".  Defaults to UTC.
    """

    def __init__(self, tz: timezone | None = None):
        self._tz = tz or timezone.utc

    def now(self) -> datetime:
        return datetime.now(self._tz)


class DeterministicClock(Clock):
    """Test clock that only moves when told to."""

    def __init__(self, fixed_time: datetime):
        if fixed_time.tzinfo is None:
            raise ValueError("DeterministicClock needs a timezone-aware datetime")
        self._now = fixed_time

    @classmethod
    def on(cls, day: date) -> "DeterministicClock":
        """Clock fixed at noon UTC on ``day``."""
        return cls(datetime.combine(day, time(12, 0), tzinfo=timezone.utc))

    def now(self) -> datetime:
        return self._now

    def move_to(self, day: date) -> None:
        self._now = datetime.combine(day, self._now.timetz())

    def advance_days(self, days: int) -> None:
        self._now += timedelta(days=days)
