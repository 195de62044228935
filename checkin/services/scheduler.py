"""
Walk-in check-in scheduler.

This module owns the check-in session state machine::

    active ──► completed
      │
      ├──────► cancelled
      │
      └──────► expired      (reaper, or lazily once ``expires_at`` passes)

All terminal states are final.  Every mutating operation locks the
session row inside a transaction and checks expiry against the caller's
``now`` before touching it, so a rejected call never leaves a partial
update behind.  Creating a session also creates its same-day appointment
in the same transaction; the ``(patient, day_claim)`` unique constraint
on :class:`~checkin.models.CheckInSession` is the last line against two
terminals checking the same patient in at once.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterable, Optional

import bleach
from django.conf import settings
from django.db import IntegrityError, InterfaceError, OperationalError, transaction
from django.db.models import Case, IntegerField, Value, When
from prometheus_client import Counter

from ..exceptions import (
    AlreadyCheckedIn,
    CheckInError,
    ClinicClosed,
    NoServicesAvailable,
    PatientInactive,
    ServiceNoLongerAvailable,
    SessionNotActive,
    SessionNotFound,
    StorageUnavailable,
    VitalsPending,
)
from ..models import Appointment, CheckInSession, Patient, ServiceOffering, User
from .audit import log_action
from .catalog import ServiceCatalog, ServiceEntry
from .clock import Clock, SystemClock
from .notifications import ChannelsNotificationSink, NotificationSink
from .sequence import PREFIX_APPOINTMENT, SequentialIdAllocator
from .slots import SlotWindow, resolve_slot

logger = logging.getLogger(__name__)

CHECKIN_OUTCOMES = Counter(
    'checkin_outcomes_total',
    'Check-in attempts by outcome',
    ['outcome'],
)

PRIORITY_ORDER = Case(
    *[When(priority=p, then=Value(rank)) for p, rank in CheckInSession.PRIORITY_RANK.items()],
    default=Value(CheckInSession.PRIORITY_RANK[CheckInSession.PRIORITY_NORMAL]),
    output_field=IntegerField(),
)

AUDIT_OBJECT = 'checkin_session'


@dataclass(frozen=True)
class ServiceAvailability:
    entry: ServiceEntry
    booked: int

    @property
    def remaining(self) -> int:
        return max(0, self.entry.max_capacity - self.booked)

    def as_dict(self) -> dict:
        data = self.entry.as_dict()
        data['remaining'] = self.remaining
        return data


@dataclass(frozen=True)
class CheckInOffer:
    """What a scanned patient may choose from right now."""
    patient: Patient
    window: SlotWindow
    services: tuple = field(default_factory=tuple)

    def as_dict(self) -> dict:
        return {
            'patient': {
                'id': self.patient.id,
                'patientNumber': self.patient.patient_number,
                'name': self.patient.full_name,
            },
            'currentSlot': self.window.as_dict(),
            'availableServices': [s.as_dict() for s in self.services],
        }


@contextmanager
def storage_errors(operation: str):
    try:
        yield
    except (OperationalError, InterfaceError) as exc:
        logger.error("check-in storage unavailable", extra={'operation': operation}, exc_info=exc)
        raise StorageUnavailable() from exc


def _clean(text: Optional[str], limit: int) -> str:
    return bleach.clean((text or '').strip(), strip=True)[:limit]


def create_linked_appointment(*, patient: Patient, number: str, entry: ServiceEntry, window: SlotWindow,
                              now: datetime, reason: str = '', symptoms: Optional[Iterable[str]] = None) -> Appointment:
    return Appointment.objects.create(
        appointment_number=number,
        patient=patient,
        service_type=entry.service_type,
        time_slot=window.slot,
        status=Appointment.STATUS_CHECKED_IN,
        check_in_at=now,
        requires_vital_signs=entry.requires_vital_signs,
        reason=reason or 'Walk-in check-in',
        symptoms=[_clean(s, 100) for s in (symptoms or []) if s],
    )


class CheckInScheduler:

    def __init__(self, catalog: Optional[ServiceCatalog] = None, allocator: Optional[SequentialIdAllocator] = None,
                 sink: Optional[NotificationSink] = None, clock: Optional[Clock] = None,
                 session_ttl_hours: Optional[int] = None):
        self.catalog = catalog or ServiceCatalog()
        self.allocator = allocator or SequentialIdAllocator()
        self.sink = sink or ChannelsNotificationSink()
        self.clock = clock or SystemClock()
        if session_ttl_hours is None:
            session_ttl_hours = getattr(settings, 'CHECKIN_SESSION_TTL_HOURS', 24)
        self.session_ttl = timedelta(hours=session_ttl_hours)

    # --- helpers -----------------------------------------------------------

    def _now(self, now: Optional[datetime]) -> datetime:
        return now or self.clock.now()

    def _reject(self, exc: CheckInError, **context) -> CheckInError:
        CHECKIN_OUTCOMES.labels(outcome=exc.code).inc()
        logger.info("check-in rejected: %s", exc.code, extra=context)
        return exc

    def _claim_for(self, patient: Patient, day, lock: bool = False) -> Optional[CheckInSession]:
        qs = CheckInSession.objects.filter(patient=patient, day_claim=day)
        if lock:
            qs = qs.select_for_update()
        return qs.first()

    def _expire_stale(self, patient: Patient, now: datetime) -> int:
        return (
            CheckInSession.objects
            .filter(patient=patient, status=CheckInSession.STATUS_ACTIVE, expires_at__lt=now)
            .update(status=CheckInSession.STATUS_EXPIRED, day_claim=None, updated_at=now)
        )

    def _booked(self, window: SlotWindow, service_type: str) -> int:
        return CheckInSession.objects.filter(
            day_claim=window.date,
            time_slot=window.slot,
            selected_service=service_type,
        ).count()

    def _open_window(self, patient: Patient, now: datetime) -> SlotWindow:
        if patient is None or not patient.is_active:
            raise self._reject(PatientInactive(), patient=getattr(patient, 'id', None))
        window = resolve_slot(now)
        if window.is_weekend:
            raise self._reject(ClinicClosed(), patient=patient.id, weekday=window.weekday)
        return window

    def _locked(self, session_id: int) -> CheckInSession:
        session = (
            CheckInSession.objects.select_for_update()
            .filter(id=session_id)
            .first()
        )
        if session is None:
            raise SessionNotFound()
        return session

    def _ensure_active(self, session: CheckInSession, now: datetime) -> None:
        if session.status != CheckInSession.STATUS_ACTIVE or session.is_expired(now):
            status = session.effective_status(now)
            logger.info("session not active", extra={'sessionId': session.id, 'status': status})
            raise SessionNotActive(detail={'sessionId': session.id, 'status': status})

    # --- check-in ----------------------------------------------------------

    def scan(self, patient: Patient, now: Optional[datetime] = None) -> CheckInOffer:
        """Preview a check-in: nothing is written."""
        now = self._now(now)
        window = self._open_window(patient, now)
        with storage_errors('scan'):
            existing = self._claim_for(patient, window.date)
            if existing is not None:
                raise self._reject(AlreadyCheckedIn(existing.summary()), patient=patient.id)
            entries = self.catalog.available_services(window.weekday, window.slot)
            if not entries:
                raise self._reject(NoServicesAvailable(), weekday=window.weekday, slot=window.slot)
            services = tuple(
                a for a in (ServiceAvailability(e, self._booked(window, e.service_type)) for e in entries)
                if a.remaining > 0
            )
        if not services:
            raise self._reject(
                NoServicesAvailable('All services for this time slot are fully booked'),
                weekday=window.weekday, slot=window.slot,
            )
        return CheckInOffer(patient=patient, window=window, services=services)

    def select_service(self, patient: Patient, service_type: str, now: Optional[datetime] = None) -> ServiceAvailability:
        now = self._now(now)
        window = self._open_window(patient, now)
        with storage_errors('select_service'):
            entry = self.catalog.get_entry(window.weekday, window.slot, service_type)
            if entry is None:
                raise self._reject(ServiceNoLongerAvailable(), service=service_type, slot=window.slot)
            availability = ServiceAvailability(entry, self._booked(window, service_type))
        if availability.remaining <= 0:
            raise self._reject(
                ServiceNoLongerAvailable('Selected service is fully booked'),
                service=service_type, slot=window.slot,
            )
        return availability

    def begin_check_in(self, patient: Patient, service_type: str, now: Optional[datetime] = None, *,
                       created_by: Optional[User] = None, priority: str = CheckInSession.PRIORITY_NORMAL,
                       reason: str = '', symptoms: Optional[Iterable[str]] = None,
                       notes: str = '') -> CheckInSession:
        """Create today's session and its linked appointment for ``patient``."""
        now = self._now(now)
        window = self._open_window(patient, now)
        if priority not in CheckInSession.PRIORITY_RANK:
            raise ValueError(f'invalid priority: {priority}')
        with storage_errors('begin_check_in'), transaction.atomic():
            self._expire_stale(patient, now)
            existing = self._claim_for(patient, window.date)
            if existing is not None:
                raise self._reject(AlreadyCheckedIn(existing.summary()), patient=patient.id)

            entries = self.catalog.available_services(window.weekday, window.slot)
            if not entries:
                raise self._reject(NoServicesAvailable(), weekday=window.weekday, slot=window.slot)
            entry = next((e for e in entries if e.service_type == service_type), None)
            if entry is None:
                raise self._reject(ServiceNoLongerAvailable(), service=service_type, slot=window.slot)

            # serialises check-ins competing for the same service slot
            offering = (
                ServiceOffering.objects.select_for_update()
                .filter(
                    schedule__weekday=window.weekday,
                    schedule__time_slot=window.slot,
                    schedule__is_active=True,
                    service_type=service_type,
                )
                .first()
            )
            if offering is None:
                raise self._reject(ServiceNoLongerAvailable(), service=service_type, slot=window.slot)
            if self._booked(window, service_type) >= offering.max_capacity:
                raise self._reject(
                    ServiceNoLongerAvailable('Selected service is fully booked'),
                    service=service_type, slot=window.slot,
                )

            number = self.allocator.next(PREFIX_APPOINTMENT, window.date)
            try:
                with transaction.atomic():
                    appointment = create_linked_appointment(
                        patient=patient, number=number, entry=entry, window=window,
                        now=now, reason=reason, symptoms=symptoms,
                    )
                    session = CheckInSession.objects.create(
                        patient=patient,
                        check_in_date=window.date,
                        day_claim=window.date,
                        status=CheckInSession.STATUS_ACTIVE,
                        selected_service=entry.service_type,
                        time_slot=window.slot,
                        vital_signs_required=entry.requires_vital_signs,
                        appointment=appointment,
                        priority=priority,
                        notes=_clean(notes, 500),
                        created_by=created_by,
                        expires_at=now + self.session_ttl,
                        created_at=now,
                    )
            except IntegrityError as exc:
                winner = self._claim_for(patient, window.date, lock=True)
                if winner is None:
                    raise
                raise self._reject(AlreadyCheckedIn(winner.summary()), patient=patient.id) from exc

            log_action(
                user=created_by, action='checkin.create', object_type=AUDIT_OBJECT, object_id=session.id,
                detail={'service': entry.service_type, 'slot': window.slot, 'appointment': number},
            )
        CHECKIN_OUTCOMES.labels(outcome='checked_in').inc()
        logger.info(
            "patient checked in",
            extra={'sessionId': session.id, 'patient': patient.id, 'service': entry.service_type, 'slot': window.slot},
        )
        return session

    # --- session transitions ----------------------------------------------

    def record_vitals(self, session_id: int, recorded_by: Optional[User] = None,
                      now: Optional[datetime] = None) -> CheckInSession:
        now = self._now(now)
        with storage_errors('record_vitals'), transaction.atomic():
            session = self._locked(session_id)
            self._ensure_active(session, now)
            if session.vital_signs_completed:
                return session
            session.vital_signs_completed = True
            session.vital_signs_completed_at = now
            session.vital_signs_recorded_by = recorded_by
            session.save(update_fields=[
                'vital_signs_completed', 'vital_signs_completed_at', 'vital_signs_recorded_by', 'updated_at',
            ])
            log_action(user=recorded_by, action='checkin.vitals', object_type=AUDIT_OBJECT, object_id=session.id)
        logger.info("vital signs recorded", extra={'sessionId': session.id})
        return session

    def notify_doctor(self, session_id: int, notified_by: Optional[User] = None,
                      now: Optional[datetime] = None) -> CheckInSession:
        now = self._now(now)
        with storage_errors('notify_doctor'), transaction.atomic():
            session = self._locked(session_id)
            self._ensure_active(session, now)
            if not session.vitals_gate_open:
                logger.info("doctor notification held for vitals", extra={'sessionId': session.id})
                raise VitalsPending(detail={'sessionId': session.id})
            session.doctor_notified = True
            session.doctor_notified_at = now
            session.doctor_notified_by = notified_by
            session.save(update_fields=['doctor_notified', 'doctor_notified_at', 'doctor_notified_by', 'updated_at'])
            log_action(user=notified_by, action='checkin.notify_doctor', object_type=AUDIT_OBJECT, object_id=session.id)
            self.sink.emit_doctor_notified(session)
        logger.info("doctor notified", extra={'sessionId': session.id})
        return session

    def complete_session(self, session_id: int, now: Optional[datetime] = None,
                         completed_by: Optional[User] = None) -> CheckInSession:
        now = self._now(now)
        with storage_errors('complete_session'), transaction.atomic():
            session = self._locked(session_id)
            self._ensure_active(session, now)
            session.status = CheckInSession.STATUS_COMPLETED
            session.completed_at = now
            session.save(update_fields=['status', 'completed_at', 'updated_at'])
            Appointment.objects.filter(id=session.appointment_id).update(status=Appointment.STATUS_COMPLETED)
            log_action(user=completed_by, action='checkin.complete', object_type=AUDIT_OBJECT, object_id=session.id)
        logger.info("session completed", extra={'sessionId': session.id})
        return session

    def cancel_session(self, session_id: int, cancelled_by: Optional[User] = None, reason: str = '',
                       now: Optional[datetime] = None) -> CheckInSession:
        now = self._now(now)
        with storage_errors('cancel_session'), transaction.atomic():
            session = self._locked(session_id)
            self._ensure_active(session, now)
            session.status = CheckInSession.STATUS_CANCELLED
            session.day_claim = None
            session.cancelled_at = now
            session.cancelled_by = cancelled_by
            session.cancellation_reason = _clean(reason, 200)
            session.save(update_fields=[
                'status', 'day_claim', 'cancelled_at', 'cancelled_by', 'cancellation_reason', 'updated_at',
            ])
            Appointment.objects.filter(id=session.appointment_id).update(status=Appointment.STATUS_CANCELLED)
            log_action(
                user=cancelled_by, action='checkin.cancel', object_type=AUDIT_OBJECT, object_id=session.id,
                detail={'reason': session.cancellation_reason},
            )
        logger.info("session cancelled", extra={'sessionId': session.id})
        return session

    def set_priority(self, session_id: int, priority: str, now: Optional[datetime] = None,
                     changed_by: Optional[User] = None) -> CheckInSession:
        if priority not in CheckInSession.PRIORITY_RANK:
            raise ValueError(f'invalid priority: {priority}')
        now = self._now(now)
        with storage_errors('set_priority'), transaction.atomic():
            session = self._locked(session_id)
            self._ensure_active(session, now)
            previous = session.priority
            session.priority = priority
            session.save(update_fields=['priority', 'updated_at'])
            log_action(
                user=changed_by, action='checkin.priority', object_type=AUDIT_OBJECT, object_id=session.id,
                detail={'from': previous, 'to': priority},
            )
        return session

    # --- queries -----------------------------------------------------------

    def get_session(self, session_id: int) -> CheckInSession:
        with storage_errors('get_session'):
            session = (
                CheckInSession.objects.select_related('patient', 'appointment')
                .filter(id=session_id)
                .first()
            )
        if session is None:
            raise SessionNotFound()
        return session

    def _live_today(self, now: datetime):
        window = resolve_slot(now)
        return (
            CheckInSession.objects.select_related('patient', 'appointment')
            .filter(check_in_date=window.date, status=CheckInSession.STATUS_ACTIVE, expires_at__gte=now)
        )

    def ready_queue(self, now: Optional[datetime] = None) -> list[CheckInSession]:
        """Sessions clinical staff may take next: priority first, then arrival."""
        now = self._now(now)
        with storage_errors('ready_queue'):
            qs = (
                self._live_today(now)
                .exclude(vital_signs_required=True, vital_signs_completed=False)
                .annotate(priority_rank=PRIORITY_ORDER)
                .order_by('-priority_rank', 'created_at', 'id')
            )
            return list(qs)

    def pending_vitals_queue(self, now: Optional[datetime] = None) -> list[CheckInSession]:
        now = self._now(now)
        with storage_errors('pending_vitals_queue'):
            qs = (
                self._live_today(now)
                .filter(vital_signs_required=True, vital_signs_completed=False)
                .order_by('created_at', 'id')
            )
            return list(qs)

    def todays_sessions(self, now: Optional[datetime] = None) -> list[CheckInSession]:
        now = self._now(now)
        window = resolve_slot(now)
        with storage_errors('todays_sessions'):
            qs = (
                CheckInSession.objects.select_related('patient', 'appointment')
                .filter(check_in_date=window.date)
                .order_by('-created_at', '-id')
            )
            return list(qs)

    def daily_summary(self, now: Optional[datetime] = None) -> dict:
        now = self._now(now)
        sessions = self.todays_sessions(now)
        counts = {
            'total': len(sessions),
            'active': 0,
            'completed': 0,
            'cancelled': 0,
            'expired': 0,
            'vitalSignsPending': 0,
            'readyForDoctor': 0,
        }
        for s in sessions:
            status = s.effective_status(now)
            counts[status] += 1
            if status == CheckInSession.STATUS_ACTIVE:
                if s.vitals_gate_open:
                    counts['readyForDoctor'] += 1
                else:
                    counts['vitalSignsPending'] += 1
        return counts

    # --- expiry ------------------------------------------------------------

    def reap_expired(self, now: Optional[datetime] = None) -> int:
        """Mark every active session past its expiry as expired."""
        now = self._now(now)
        with storage_errors('reap_expired'):
            reaped = (
                CheckInSession.objects
                .filter(status=CheckInSession.STATUS_ACTIVE, expires_at__lt=now)
                .update(status=CheckInSession.STATUS_EXPIRED, day_claim=None, updated_at=now)
            )
        if reaped:
            logger.info("expired check-in sessions reaped", extra={'count': reaped})
        return reaped


def get_scheduler() -> CheckInScheduler:
    return CheckInScheduler()
