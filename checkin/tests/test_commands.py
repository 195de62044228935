from io import StringIO

import pytest
from django.core.management import CommandError, call_command
from rest_framework.authtoken.models import Token

from checkin.models import CheckInSession, ServiceOffering, ServiceSchedule, User
from checkin.services.catalog import ServiceCatalog
from checkin.services.scheduler import CheckInScheduler

from .factories import MONDAY_9AM, at, make_patient

pytestmark = pytest.mark.django_db


def test_seed_service_schedule_is_idempotent():
    call_command('seed_service_schedule', stdout=StringIO())
    first = ServiceOffering.objects.count()
    out = StringIO()
    call_command('seed_service_schedule', stdout=out)
    assert ServiceOffering.objects.count() == first
    assert '(0 new offerings)' in out.getvalue()
    assert ServiceSchedule.objects.count() == 10
    assert not ServiceSchedule.objects.filter(weekday__in=['sat', 'sun']).exists()
    mon = ServiceCatalog(ttl=0).available_services('mon', 'morning')
    assert mon[0].service_type == 'consultation'
    assert mon[0].max_capacity == 30


def test_seed_replace_drops_unknown_offerings():
    call_command('seed_service_schedule', stdout=StringIO())
    schedule = ServiceSchedule.objects.get(weekday='fri', time_slot='morning')
    ServiceOffering.objects.create(schedule=schedule, service_type='dental-procedure', position=9)
    call_command('seed_service_schedule', '--replace', stdout=StringIO())
    assert not schedule.offerings.filter(service_type='dental-procedure').exists()


def test_reap_checkins(monday_morning, sink):
    scheduler = CheckInScheduler(catalog=ServiceCatalog(ttl=0), sink=sink, session_ttl_hours=1)
    session = scheduler.begin_check_in(make_patient(), 'consultation', at(*MONDAY_9AM))
    out = StringIO()
    call_command('reap_checkins', '--at', '2025-03-03T11:00:00', stdout=out)
    assert 'Expired 1 check-in sessions' in out.getvalue()
    session.refresh_from_db()
    assert session.status == CheckInSession.STATUS_EXPIRED


def test_reap_checkins_rejects_bad_timestamp():
    with pytest.raises(CommandError):
        call_command('reap_checkins', '--at', 'yesterday', stdout=StringIO())


def test_ensure_test_users():
    call_command('ensure_test_users', stdout=StringIO())
    call_command('ensure_test_users', stdout=StringIO())
    roles = dict(User.objects.values_list('username', 'role'))
    assert roles == {'frontdesk1': 'staff', 'doctor1': 'doctor', 'admin1': 'admin'}
    assert Token.objects.count() == 3
    assert User.objects.get(username='doctor1').check_password('123456')
