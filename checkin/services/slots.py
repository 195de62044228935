"""
Weekday / time-slot resolution.

A decision resolves its window once and reuses the resulting
:class:`SlotWindow` for every catalog lookup, so a request that straddles
the slot boundary cannot see two different slots.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from django.conf import settings
from django.utils import timezone

from ..models import SLOT_AFTERNOON, SLOT_MORNING

WEEKDAY_CODES = ('mon', 'tue', 'wed', 'thu', 'fri', 'sat', 'sun')
WEEKEND = frozenset({'sat', 'sun'})

SLOT_DISPLAY = {
    SLOT_MORNING: '8:00 AM - 12:00 PM',
    SLOT_AFTERNOON: '1:00 PM - 5:00 PM',
}


@dataclass(frozen=True)
class SlotWindow:
    weekday: str
    slot: str
    date: date

    @property
    def is_weekend(self) -> bool:
        return self.weekday in WEEKEND

    @property
    def display_time(self) -> str:
        return SLOT_DISPLAY[self.slot]

    def as_dict(self) -> dict:
        return {
            'dayOfWeek': self.weekday,
            'timeSlot': self.slot,
            'date': self.date.isoformat(),
            'displayTime': self.display_time,
        }


def resolve_slot(now: datetime) -> SlotWindow:
    """Map an instant to the clinic-local weekday, slot and date.

    Aware datetimes are converted to the configured ``TIME_ZONE``; naive
    ones are taken as already local.
    """
    local = timezone.localtime(now) if timezone.is_aware(now) else now
    boundary = getattr(settings, 'CHECKIN_AFTERNOON_START_HOUR', 13)
    slot = SLOT_MORNING if local.hour < boundary else SLOT_AFTERNOON
    return SlotWindow(weekday=WEEKDAY_CODES[local.weekday()], slot=slot, date=local.date())
