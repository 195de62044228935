import pytest
from django.core.cache import cache

from checkin.models import User
from checkin.services.catalog import ServiceCatalog
from checkin.services.clock import FixedClock
from checkin.services.notifications import RecordingNotificationSink
from checkin.services.scheduler import CheckInScheduler

from .factories import MONDAY_9AM, at, make_patient, make_schedule


@pytest.fixture(autouse=True)
def _clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def monday_morning(db):
    return make_schedule('mon', 'morning')


@pytest.fixture
def patient(db):
    return make_patient()


@pytest.fixture
def nurse(db):
    return User.objects.create_user(username='nurse1', password='P@ssw0rd1', role='staff')


@pytest.fixture
def sink():
    return RecordingNotificationSink()


@pytest.fixture
def scheduler(sink):
    return CheckInScheduler(catalog=ServiceCatalog(ttl=0), sink=sink, clock=FixedClock(at(*MONDAY_9AM)))
