"""
Time sources for the check-in scheduler.

Every scheduler decision takes an explicit ``now``; the clock only
supplies the default when a caller (usually a view) has none.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Protocol

from django.utils import timezone


class Clock(Protocol):
    def now(self) -> datetime:
        ...


class SystemClock:
    """Current time as an aware datetime in the clinic's time zone."""

    def now(self) -> datetime:
        return timezone.localtime(timezone.now())


class FixedClock:
    """A clock that only moves when told to; used by tests and replays."""

    def __init__(self, at: datetime):
        if timezone.is_naive(at):
            at = timezone.make_aware(at)
        self._at = at

    def now(self) -> datetime:
        return self._at

    def set(self, at: datetime) -> None:
        if timezone.is_naive(at):
            at = timezone.make_aware(at)
        self._at = at

    def advance(self, **delta) -> datetime:
        self._at = self._at + timedelta(**delta)
        return self._at
