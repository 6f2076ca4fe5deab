"""
Clock sources.

SystemClock is the only place in the engine that reads real time. Everything
else receives `now` explicitly, which keeps every derivation deterministic.

All instants are naive wall-clock datetimes: reminder times and appointment
times are stored as local wall-clock values, so the engine compares against a
single wall-clock reading rather than an absolute instant.
"""

from datetime import datetime, timedelta, tzinfo
from typing import Protocol
from zoneinfo import ZoneInfo


class Clock(Protocol):
    """Supplies the current wall-clock instant."""

    def now(self) -> datetime: ...


def wall_clock(moment: datetime) -> datetime:
    """Reduce an aware datetime to its wall-clock reading; naive values pass through."""
    if moment.tzinfo is None:
        return moment
    return moment.replace(tzinfo=None)


class SystemClock:
    """Real time, read in the host's local zone or in an explicit one."""

    def __init__(self, tz: tzinfo | str | None = None) -> None:
        self.tz: tzinfo | None = ZoneInfo(tz) if isinstance(tz, str) else tz

    def now(self) -> datetime:
        if self.tz is None:
            return datetime.now()
        return wall_clock(datetime.now(self.tz))


class FixedClock:
    """A clock that only moves when told to. Used by tests and replays."""

    def __init__(self, moment: datetime) -> None:
        self._moment = wall_clock(moment)

    def now(self) -> datetime:
        return self._moment

    def set(self, moment: datetime) -> None:
        self._moment = wall_clock(moment)

    def advance(self, delta: timedelta | None = None, **kwargs: float) -> datetime:
        """Move forward by `delta` or by timedelta keyword arguments; returns the new now."""
        self._moment += delta if delta is not None else timedelta(**kwargs)
        return self._moment
