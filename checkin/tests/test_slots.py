from datetime import datetime, timezone as dt_timezone

from django.test import override_settings

from checkin.services.clock import FixedClock
from checkin.services.slots import resolve_slot

from .factories import at


def test_morning_before_one_pm():
    w = resolve_slot(at(2025, 3, 3, 12, 59))
    assert (w.weekday, w.slot, w.date.isoformat()) == ('mon', 'morning', '2025-03-03')
    assert w.display_time == '8:00 AM - 12:00 PM'


def test_afternoon_from_one_pm():
    w = resolve_slot(at(2025, 3, 3, 13, 0))
    assert w.slot == 'afternoon'
    assert w.display_time == '1:00 PM - 5:00 PM'


def test_same_instant_same_window():
    now = at(2025, 3, 5, 12, 59, 59)
    assert resolve_slot(now) == resolve_slot(now)


def test_weekend_flag():
    assert resolve_slot(at(2025, 3, 8, 10, 0)).is_weekend
    assert resolve_slot(at(2025, 3, 9, 15, 0)).is_weekend
    assert not resolve_slot(at(2025, 3, 7, 15, 0)).is_weekend


def test_utc_instant_uses_clinic_local_time():
    # Asia/Manila is UTC+8
    w = resolve_slot(datetime(2025, 3, 3, 4, 30, tzinfo=dt_timezone.utc))
    assert (w.weekday, w.slot) == ('mon', 'morning')
    w = resolve_slot(datetime(2025, 3, 3, 5, 0, tzinfo=dt_timezone.utc))
    assert w.slot == 'afternoon'
    # late Sunday UTC is already Monday in the clinic
    w = resolve_slot(datetime(2025, 3, 2, 23, 0, tzinfo=dt_timezone.utc))
    assert (w.weekday, w.date.isoformat()) == ('mon', '2025-03-03')


@override_settings(CHECKIN_AFTERNOON_START_HOUR=12)
def test_boundary_is_configurable():
    assert resolve_slot(at(2025, 3, 3, 12, 30)).slot == 'afternoon'


def test_fixed_clock_advances():
    clock = FixedClock(datetime(2025, 3, 3, 12, 50))
    assert resolve_slot(clock.now()).slot == 'morning'
    clock.advance(minutes=10)
    assert resolve_slot(clock.now()).slot == 'afternoon'
