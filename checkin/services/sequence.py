"""
Human readable sequential identifiers: ``<PREFIX>-<YYYYMMDD>-<NNNNN>``.

Each (prefix, date) pair owns one :class:`~checkin.models.SequenceCounter`
row.  The row is bumped with an ``F()`` update before anything reads it,
so the first statement of an allocation already holds the write lock and
two concurrent writers can never be handed the same number.  A missing
row is inserted (conflicts ignored) and bumped again.  Gaps are fine: a
number taken by a transaction that later rolls back at an outer
savepoint is simply never used.
"""
from __future__ import annotations

import logging
import re
import time
from datetime import date

from django.db import DatabaseError, OperationalError, transaction
from django.db.models import F
from django.db.models.functions import Length
from prometheus_client import Counter

from ..exceptions import AllocationUnavailable
from ..models import Appointment, MedicalRecord, Prescription, SequenceCounter

logger = logging.getLogger(__name__)

ID_ALLOCATIONS = Counter(
    'checkin_id_allocations_total',
    'Sequential identifiers issued',
    ['prefix'],
)

PREFIX_APPOINTMENT = 'APT'
PREFIX_MEDICAL_RECORD = 'MR'
PREFIX_PRESCRIPTION = 'RX'

# where ids of each prefix end up; used to seed a fresh counter row
SEED_SOURCES = {
    PREFIX_APPOINTMENT: (Appointment, 'appointment_number'),
    PREFIX_MEDICAL_RECORD: (MedicalRecord, 'record_number'),
    PREFIX_PRESCRIPTION: (Prescription, 'prescription_number'),
}

_PREFIX_RE = re.compile(r'^[A-Z]{1,8}$')
SUFFIX_WIDTH = 5

ALLOCATION_ATTEMPTS = 3
RETRY_DELAY_SECONDS = 0.05
# MySQL lock wait timeout / deadlock
_MYSQL_LOCK_ERRORS = {1205, 1213}


def format_id(prefix: str, on_date: date, value: int) -> str:
    return f"{prefix}-{on_date:%Y%m%d}-{value:0{SUFFIX_WIDTH}d}"


def is_lock_error(exc: OperationalError) -> bool:
    code = exc.args[0] if exc.args else None
    return code in _MYSQL_LOCK_ERRORS or 'locked' in str(exc).lower()


class SequentialIdAllocator:

    def _seed(self, prefix: str, on_date: date) -> int:
        source = SEED_SOURCES.get(prefix)
        if source is None:
            return 0
        model, field = source
        stem = f"{prefix}-{on_date:%Y%m%d}-"
        # longer suffix first: '...-100000' sorts below '...-99999' as text
        highest = (
            model.objects
            .filter(**{f'{field}__startswith': stem})
            .order_by(Length(field).desc(), f'-{field}')
            .values_list(field, flat=True)
            .first()
        )
        if not highest:
            return 0
        try:
            return int(highest[len(stem):])
        except ValueError:
            return 0

    def _advance(self, prefix: str, on_date: date) -> int:
        counters = SequenceCounter.objects.filter(prefix=prefix, scope_date=on_date)
        if not counters.update(value=F('value') + 1):
            SequenceCounter.objects.bulk_create(
                [SequenceCounter(prefix=prefix, scope_date=on_date, value=self._seed(prefix, on_date))],
                ignore_conflicts=True,
            )
            counters.update(value=F('value') + 1)
        return counters.values_list('value', flat=True).get()

    def _unavailable(self, prefix: str, on_date: date, exc: DatabaseError) -> AllocationUnavailable:
        logger.error(
            "sequence allocation failed",
            extra={'prefix': prefix, 'date': on_date.isoformat()},
            exc_info=exc,
        )
        return AllocationUnavailable()

    def next(self, prefix: str, on_date: date) -> str:
        """Issue the next id for ``prefix`` on ``on_date``.

        Lock contention is retried a few times when the call owns its
        transaction; inside a caller's transaction the first failure is
        final.  Raises :class:`AllocationUnavailable` if the counter cannot
        be advanced; nothing is left half-written in that case.
        """
        if not _PREFIX_RE.match(prefix or ''):
            raise ValueError(f'invalid id prefix: {prefix!r}')
        attempts = 1 if transaction.get_connection().in_atomic_block else ALLOCATION_ATTEMPTS
        for attempt in range(1, attempts + 1):
            try:
                with transaction.atomic():
                    value = self._advance(prefix, on_date)
                break
            except OperationalError as exc:
                if attempt < attempts and is_lock_error(exc):
                    logger.warning("sequence counter busy, retrying", extra={'prefix': prefix, 'attempt': attempt})
                    time.sleep(RETRY_DELAY_SECONDS * attempt)
                    continue
                raise self._unavailable(prefix, on_date, exc) from exc
            except DatabaseError as exc:
                raise self._unavailable(prefix, on_date, exc) from exc
        ID_ALLOCATIONS.labels(prefix=prefix).inc()
        return format_id(prefix, on_date, value)

    def peek(self, prefix: str, on_date: date) -> int:
        """Last value issued for the scope, 0 if none yet."""
        value = (
            SequenceCounter.objects
            .filter(prefix=prefix, scope_date=on_date)
            .values_list('value', flat=True)
            .first()
        )
        if value is None:
            return self._seed(prefix, on_date)
        return value
