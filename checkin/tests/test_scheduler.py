from datetime import timedelta

import pytest
from django.db import OperationalError

from checkin.exceptions import (
    AllocationUnavailable,
    AlreadyCheckedIn,
    ClinicClosed,
    NoServicesAvailable,
    PatientInactive,
    ServiceNoLongerAvailable,
    SessionNotActive,
    SessionNotFound,
    StorageUnavailable,
    VitalsPending,
)
from checkin.models import Appointment, AuditEvent, CheckInSession
from checkin.services.catalog import ServiceCatalog
from checkin.services.scheduler import CheckInScheduler
from checkin.services.sequence import SequentialIdAllocator

from .factories import MONDAY_9AM, SATURDAY_10AM, at, make_patient, make_schedule

pytestmark = pytest.mark.django_db

NOW = at(*MONDAY_9AM)


# --- scenarios ----------------------------------------------------------------

def test_first_check_in_of_the_day(scheduler, monday_morning, patient, nurse):
    session = scheduler.begin_check_in(patient, 'consultation', NOW, created_by=nurse, symptoms=['cough'])
    assert session.status == CheckInSession.STATUS_ACTIVE
    assert session.time_slot == 'morning'
    assert session.selected_service == 'consultation'
    assert session.check_in_date.isoformat() == '2025-03-03'
    assert session.vital_signs_required is True
    assert session.expires_at == NOW + timedelta(hours=24)
    assert session.created_at == NOW
    appt = session.appointment
    assert appt.appointment_number == 'APT-20250303-00001'
    assert appt.status == Appointment.STATUS_CHECKED_IN
    assert appt.symptoms == ['cough']
    assert AuditEvent.objects.filter(action='checkin.create', object_id=session.id, user=nurse).exists()


def test_second_check_in_same_day_is_rejected(scheduler, monday_morning, patient):
    first = scheduler.begin_check_in(patient, 'consultation', NOW)
    with pytest.raises(AlreadyCheckedIn) as exc:
        scheduler.begin_check_in(patient, 'dental-consultation', NOW + timedelta(minutes=5))
    assert exc.value.existing['sessionId'] == first.id
    assert exc.value.existing['selectedService'] == 'consultation'
    assert exc.value.existing['status'] == 'active'
    assert CheckInSession.objects.filter(patient=patient).count() == 1
    assert Appointment.objects.filter(patient=patient).count() == 1


def test_completed_session_still_blocks_the_day(scheduler, monday_morning, patient):
    first = scheduler.begin_check_in(patient, 'dental-consultation', NOW)
    scheduler.complete_session(first.id, NOW + timedelta(minutes=30))
    with pytest.raises(AlreadyCheckedIn):
        scheduler.begin_check_in(patient, 'consultation', NOW + timedelta(hours=1))


def test_saturday_is_closed(scheduler, monday_morning, patient):
    make_schedule('fri', 'morning')
    with pytest.raises(ClinicClosed):
        scheduler.begin_check_in(patient, 'consultation', at(*SATURDAY_10AM))
    with pytest.raises(ClinicClosed):
        scheduler.scan(patient, at(2025, 3, 8, 15, 0))
    assert not CheckInSession.objects.exists()


def test_vitals_gate(scheduler, monday_morning, patient, nurse, sink):
    session = scheduler.begin_check_in(patient, 'consultation', NOW)
    with pytest.raises(VitalsPending):
        scheduler.notify_doctor(session.id, nurse, NOW + timedelta(minutes=1))
    session.refresh_from_db()
    assert session.doctor_notified is False
    assert sink.events == []
    assert scheduler.ready_queue(NOW + timedelta(minutes=1)) == []
    assert [s.id for s in scheduler.pending_vitals_queue(NOW + timedelta(minutes=1))] == [session.id]

    scheduler.record_vitals(session.id, nurse, NOW + timedelta(minutes=5))
    notified = scheduler.notify_doctor(session.id, nurse, NOW + timedelta(minutes=6))
    assert notified.doctor_notified is True
    assert notified.doctor_notified_at == NOW + timedelta(minutes=6)
    assert [s.id for s in scheduler.ready_queue(NOW + timedelta(minutes=7))] == [session.id]
    assert scheduler.pending_vitals_queue(NOW + timedelta(minutes=7)) == []
    assert sink.events[0]['type'] == 'doctor.notified'
    assert sink.events[0]['sessionId'] == session.id


def test_expired_session_leaves_queues(monday_morning, patient, sink):
    scheduler = CheckInScheduler(catalog=ServiceCatalog(ttl=0), sink=sink, session_ttl_hours=1)
    session = scheduler.begin_check_in(patient, 'dental-consultation', NOW)
    later = NOW + timedelta(hours=1, minutes=30)
    assert scheduler.ready_queue(NOW + timedelta(minutes=10))
    assert scheduler.ready_queue(later) == []
    assert scheduler.pending_vitals_queue(later) == []
    stored = scheduler.get_session(session.id)
    assert stored.status == CheckInSession.STATUS_ACTIVE
    assert stored.effective_status(later) == CheckInSession.STATUS_EXPIRED
    assert scheduler.daily_summary(later)['expired'] == 1
    with pytest.raises(SessionNotActive):
        scheduler.complete_session(session.id, later)


def test_expiry_instant_reads_the_same_everywhere(monday_morning, patient, sink):
    scheduler = CheckInScheduler(catalog=ServiceCatalog(ttl=0), sink=sink, session_ttl_hours=1)
    session = scheduler.begin_check_in(patient, 'dental-consultation', NOW)
    boundary = session.expires_at
    assert scheduler.get_session(session.id).effective_status(boundary) == CheckInSession.STATUS_ACTIVE
    assert [s.id for s in scheduler.ready_queue(boundary)] == [session.id]
    summary = scheduler.daily_summary(boundary)
    assert (summary['active'], summary['readyForDoctor'], summary['expired']) == (1, 1, 0)
    assert scheduler.reap_expired(boundary) == 0

    past = boundary + timedelta(microseconds=1)
    assert scheduler.get_session(session.id).effective_status(past) == CheckInSession.STATUS_EXPIRED
    assert scheduler.ready_queue(past) == []
    assert scheduler.daily_summary(past)['expired'] == 1
    assert scheduler.reap_expired(past) == 1


# --- uniqueness -------------------------------------------------------------

def test_constraint_race_reports_already_checked_in(scheduler, monday_morning, patient, monkeypatch):
    winner = scheduler.begin_check_in(patient, 'consultation', NOW)
    original = CheckInScheduler._claim_for

    def racing(self, patient, day, lock=False):
        # the losing terminal's pre-check ran before the winner committed
        if not lock:
            return None
        return original(self, patient, day, lock=lock)

    monkeypatch.setattr(CheckInScheduler, '_claim_for', racing)
    with pytest.raises(AlreadyCheckedIn) as exc:
        scheduler.begin_check_in(patient, 'dental-consultation', NOW + timedelta(seconds=1))
    assert exc.value.existing['sessionId'] == winner.id
    assert CheckInSession.objects.filter(patient=patient).count() == 1
    assert Appointment.objects.count() == 1


def test_cancelled_session_releases_the_day(scheduler, monday_morning, patient, nurse):
    first = scheduler.begin_check_in(patient, 'consultation', NOW)
    cancelled = scheduler.cancel_session(first.id, nurse, '<b>wrong</b> service', NOW + timedelta(minutes=2))
    assert cancelled.status == CheckInSession.STATUS_CANCELLED
    assert cancelled.cancellation_reason == 'wrong service'
    assert cancelled.day_claim is None
    assert Appointment.objects.get(id=first.appointment_id).status == Appointment.STATUS_CANCELLED
    second = scheduler.begin_check_in(patient, 'dental-consultation', NOW + timedelta(minutes=3))
    assert second.id != first.id
    assert second.appointment.appointment_number == 'APT-20250303-00002'


def test_stale_session_expired_lazily_on_next_check_in(monday_morning, patient, sink):
    scheduler = CheckInScheduler(catalog=ServiceCatalog(ttl=0), sink=sink, session_ttl_hours=1)
    first = scheduler.begin_check_in(patient, 'consultation', NOW)
    second = scheduler.begin_check_in(patient, 'consultation', NOW + timedelta(hours=2))
    first.refresh_from_db()
    assert first.status == CheckInSession.STATUS_EXPIRED
    assert first.day_claim is None
    assert second.status == CheckInSession.STATUS_ACTIVE


def test_other_patients_are_independent(scheduler, monday_morning, patient):
    other = make_patient('P-0002', first_name='Jose')
    a = scheduler.begin_check_in(patient, 'consultation', NOW)
    b = scheduler.begin_check_in(other, 'consultation', NOW)
    assert a.appointment.appointment_number != b.appointment.appointment_number


# --- catalog re-validation ----------------------------------------------------

def test_no_services_configured(scheduler, patient):
    with pytest.raises(NoServicesAvailable):
        scheduler.scan(patient, NOW)
    with pytest.raises(NoServicesAvailable):
        scheduler.begin_check_in(patient, 'consultation', NOW)


def test_service_not_in_current_slot(scheduler, monday_morning, patient):
    make_schedule('mon', 'afternoon', [('dental-procedure', False, 10)])
    with pytest.raises(ServiceNoLongerAvailable):
        scheduler.select_service(patient, 'vaccination-bcg', NOW)
    # selected in the morning, confirmed after the slot changed
    choice = scheduler.select_service(patient, 'consultation', at(2025, 3, 3, 12, 58))
    assert choice.entry.service_type == 'consultation'
    with pytest.raises(ServiceNoLongerAvailable):
        scheduler.begin_check_in(patient, 'consultation', at(2025, 3, 3, 13, 1))


def test_capacity_exhaustion(scheduler, patient):
    make_schedule('mon', 'morning', [('consultation', True, 2), ('dental-consultation', False, 15)])
    for n in range(2):
        scheduler.begin_check_in(make_patient(f'P-10{n}'), 'consultation', NOW)
    offer = scheduler.scan(patient, NOW)
    assert [s.entry.service_type for s in offer.services] == ['dental-consultation']
    with pytest.raises(ServiceNoLongerAvailable):
        scheduler.select_service(patient, 'consultation', NOW)
    with pytest.raises(ServiceNoLongerAvailable):
        scheduler.begin_check_in(patient, 'consultation', NOW)


def test_scan_is_read_only(scheduler, monday_morning, patient):
    offer = scheduler.scan(patient, NOW)
    assert offer.window.slot == 'morning'
    assert [s.remaining for s in offer.services] == [30, 15]
    assert offer.as_dict()['patient']['patientNumber'] == patient.patient_number
    assert not CheckInSession.objects.exists()


def test_inactive_patient(scheduler, monday_morning):
    p = make_patient('P-0009', is_active=False)
    with pytest.raises(PatientInactive):
        scheduler.scan(p, NOW)
    with pytest.raises(PatientInactive):
        scheduler.begin_check_in(p, 'consultation', NOW)


# --- transitions --------------------------------------------------------------

def test_record_vitals_is_idempotent(scheduler, monday_morning, patient, nurse):
    session = scheduler.begin_check_in(patient, 'consultation', NOW)
    scheduler.record_vitals(session.id, nurse, NOW + timedelta(minutes=5))
    again = scheduler.record_vitals(session.id, None, NOW + timedelta(minutes=9))
    assert again.vital_signs_completed_at == NOW + timedelta(minutes=5)
    assert again.vital_signs_recorded_by_id == nurse.id


def test_terminal_states_are_final(scheduler, monday_morning, patient, nurse):
    session = scheduler.begin_check_in(patient, 'dental-consultation', NOW)
    scheduler.complete_session(session.id, NOW + timedelta(minutes=20))
    for call in (
        lambda: scheduler.record_vitals(session.id, nurse, NOW + timedelta(minutes=21)),
        lambda: scheduler.notify_doctor(session.id, nurse, NOW + timedelta(minutes=21)),
        lambda: scheduler.complete_session(session.id, NOW + timedelta(minutes=21)),
        lambda: scheduler.cancel_session(session.id, nurse, 'late', NOW + timedelta(minutes=21)),
        lambda: scheduler.set_priority(session.id, 'urgent', NOW + timedelta(minutes=21)),
    ):
        with pytest.raises(SessionNotActive):
            call()
    session.refresh_from_db()
    assert session.status == CheckInSession.STATUS_COMPLETED
    assert session.priority == CheckInSession.PRIORITY_NORMAL
    assert Appointment.objects.get(id=session.appointment_id).status == Appointment.STATUS_COMPLETED


def test_unknown_session(scheduler):
    with pytest.raises(SessionNotFound):
        scheduler.get_session(999)
    with pytest.raises(SessionNotFound):
        scheduler.record_vitals(999, None, NOW)


def test_ready_queue_priority_then_arrival(scheduler, monday_morning):
    p1, p2, p3 = (make_patient(f'P-20{n}') for n in range(3))
    s1 = scheduler.begin_check_in(p1, 'dental-consultation', NOW)
    s2 = scheduler.begin_check_in(p2, 'dental-consultation', NOW + timedelta(minutes=5))
    s3 = scheduler.begin_check_in(p3, 'dental-consultation', NOW + timedelta(minutes=10), priority='urgent')
    later = NOW + timedelta(minutes=15)
    assert [s.id for s in scheduler.ready_queue(later)] == [s3.id, s1.id, s2.id]
    scheduler.set_priority(s2.id, 'high', later)
    assert [s.id for s in scheduler.ready_queue(later)] == [s3.id, s2.id, s1.id]


def test_queues_only_show_today(scheduler, monday_morning, patient):
    make_schedule('tue', 'morning')
    scheduler.begin_check_in(patient, 'dental-consultation', NOW)
    tuesday = at(2025, 3, 4, 9, 0)
    assert scheduler.ready_queue(tuesday) == []
    assert scheduler.todays_sessions(tuesday) == []


def test_daily_summary(scheduler, monday_morning):
    a = scheduler.begin_check_in(make_patient('P-301'), 'consultation', NOW)
    b = scheduler.begin_check_in(make_patient('P-302'), 'dental-consultation', NOW)
    c = scheduler.begin_check_in(make_patient('P-303'), 'dental-consultation', NOW)
    scheduler.complete_session(b.id, NOW + timedelta(minutes=30))
    scheduler.cancel_session(c.id, None, 'left', NOW + timedelta(minutes=31))
    summary = scheduler.daily_summary(NOW + timedelta(hours=1))
    assert summary == {
        'total': 3,
        'active': 1,
        'completed': 1,
        'cancelled': 1,
        'expired': 0,
        'vitalSignsPending': 1,
        'readyForDoctor': 0,
    }
    assert scheduler.todays_sessions(NOW + timedelta(hours=1))[-1].id == a.id


def test_invalid_priority(scheduler, monday_morning, patient):
    with pytest.raises(ValueError):
        scheduler.begin_check_in(patient, 'consultation', NOW, priority='asap')


# --- expiry & infrastructure ------------------------------------------------

def test_reap_expired(monday_morning, sink):
    scheduler = CheckInScheduler(catalog=ServiceCatalog(ttl=0), sink=sink, session_ttl_hours=2)
    stale = scheduler.begin_check_in(make_patient('P-401'), 'consultation', NOW)
    fresh = scheduler.begin_check_in(make_patient('P-402'), 'consultation', NOW + timedelta(hours=2))
    assert scheduler.reap_expired(NOW + timedelta(hours=3)) == 1
    stale.refresh_from_db()
    fresh.refresh_from_db()
    assert stale.status == CheckInSession.STATUS_EXPIRED
    assert stale.day_claim is None
    assert fresh.status == CheckInSession.STATUS_ACTIVE
    assert scheduler.reap_expired(NOW + timedelta(hours=3)) == 0


def test_allocation_failure_creates_nothing(monday_morning, patient, sink, monkeypatch):
    def broken(self, prefix, on_date):
        raise AllocationUnavailable()

    monkeypatch.setattr(SequentialIdAllocator, 'next', broken)
    scheduler = CheckInScheduler(catalog=ServiceCatalog(ttl=0), sink=sink)
    with pytest.raises(AllocationUnavailable):
        scheduler.begin_check_in(patient, 'consultation', NOW)
    assert not CheckInSession.objects.exists()
    assert not Appointment.objects.exists()


def test_database_outage_is_storage_unavailable(scheduler, monkeypatch):
    def broken(self, now):
        raise OperationalError('server has gone away')

    monkeypatch.setattr(CheckInScheduler, '_live_today', broken)
    with pytest.raises(StorageUnavailable):
        scheduler.ready_queue(NOW)
