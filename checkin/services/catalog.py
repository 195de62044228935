"""
Service catalog: which services are offered on a weekday slot.

Lookups go through Django's cache with a short TTL so that a burst of QR
scans does not hit the schedule tables on every request.  Edits to the
schedule invalidate the affected keys through the signals in
``checkin.signals``.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Optional

from django.conf import settings
from django.core.cache import cache

from ..models import TIME_SLOT_CHOICES, WEEKDAY_CHOICES, ServiceOffering

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ServiceEntry:
    service_type: str
    requires_vital_signs: bool
    max_capacity: int
    estimated_duration_minutes: int
    description: str = ''

    def as_dict(self) -> dict:
        return {
            'serviceType': self.service_type,
            'requiresVitalSigns': self.requires_vital_signs,
            'maxCapacity': self.max_capacity,
            'estimatedDuration': self.estimated_duration_minutes,
            'description': self.description,
        }


def _cache_key(weekday: str, slot: str) -> str:
    return f'checkin:catalog:{weekday}:{slot}'


class ServiceCatalog:
    """Read side of the weekly service schedule."""

    def __init__(self, ttl: Optional[int] = None):
        if ttl is None:
            ttl = getattr(settings, 'CHECKIN_CATALOG_CACHE_SECONDS', 10)
        self.ttl = int(ttl)

    def _load(self, weekday: str, slot: str) -> list[ServiceEntry]:
        rows = (
            ServiceOffering.objects
            .filter(schedule__weekday=weekday, schedule__time_slot=slot, schedule__is_active=True)
            .order_by('position', 'id')
        )
        return [
            ServiceEntry(
                service_type=o.service_type,
                requires_vital_signs=o.requires_vital_signs,
                max_capacity=o.max_capacity,
                estimated_duration_minutes=o.estimated_duration_minutes,
                description=o.description,
            )
            for o in rows
        ]

    def available_services(self, weekday: str, slot: str) -> list[ServiceEntry]:
        """Ordered services for the slot; empty when closed or not configured."""
        if self.ttl <= 0:
            return self._load(weekday, slot)
        key = _cache_key(weekday, slot)
        cached = cache.get(key)
        if cached is not None:
            return [ServiceEntry(**row) for row in cached]
        entries = self._load(weekday, slot)
        cache.set(key, [asdict(e) for e in entries], self.ttl)
        return entries

    def get_entry(self, weekday: str, slot: str, service_type: str) -> Optional[ServiceEntry]:
        for entry in self.available_services(weekday, slot):
            if entry.service_type == service_type:
                return entry
        return None

    def is_service_available(self, weekday: str, slot: str, service_type: str) -> bool:
        return self.get_entry(weekday, slot, service_type) is not None

    def invalidate(self, weekday: Optional[str] = None, slot: Optional[str] = None) -> None:
        weekdays = [weekday] if weekday else [code for code, _ in WEEKDAY_CHOICES]
        slots = [slot] if slot else [code for code, _ in TIME_SLOT_CHOICES]
        keys = [_cache_key(w, s) for w in weekdays for s in slots]
        cache.delete_many(keys)
        logger.debug("catalog cache invalidated", extra={'keys': keys})
