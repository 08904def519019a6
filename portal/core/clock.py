"""
Canonical local time for the portal.

Deadlines are stored as naive timestamps in the portal's local timezone, so
every comparison against them must go through the same clock.
"""

from datetime import datetime
from zoneinfo import ZoneInfo

from portal.core.config import settings


class Clock:
    """Returns naive local time in the configured timezone."""

    def __init__(self, timezone: str = None):
        self.timezone = ZoneInfo(timezone or settings.TIMEZONE)

    def now(self) -> datetime:
        return datetime.now(self.timezone).replace(tzinfo=None)


class FrozenClock(Clock):
    """Clock pinned to a fixed instant; used by tests and dry runs."""

    def __init__(self, instant: datetime):
        self.instant = instant

    def now(self) -> datetime:
        return self.instant

    def advance(self, delta) -> None:
        self.instant = self.instant + delta


default_clock = Clock()
