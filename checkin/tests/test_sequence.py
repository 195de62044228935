from datetime import date

import pytest
from django.db import OperationalError, transaction

from checkin.exceptions import AllocationUnavailable
from checkin.models import Appointment, SequenceCounter
from checkin.services import sequence
from checkin.services.sequence import SequentialIdAllocator, format_id

from .factories import at, make_patient

pytestmark = pytest.mark.django_db

DAY = date(2025, 3, 3)


def test_format():
    assert format_id('APT', DAY, 7) == 'APT-20250303-00007'


def test_ids_are_distinct_and_increasing():
    alloc = SequentialIdAllocator()
    ids = [alloc.next('APT', DAY) for _ in range(25)]
    assert len(set(ids)) == 25
    suffixes = [int(i.rsplit('-', 1)[1]) for i in ids]
    assert suffixes == sorted(suffixes)
    assert ids[0] == 'APT-20250303-00001'
    assert alloc.peek('APT', DAY) == 25


def test_scopes_are_independent():
    alloc = SequentialIdAllocator()
    assert alloc.next('APT', DAY) == 'APT-20250303-00001'
    assert alloc.next('MR', DAY) == 'MR-20250303-00001'
    assert alloc.next('APT', date(2025, 3, 4)) == 'APT-20250304-00001'
    assert alloc.next('APT', DAY) == 'APT-20250303-00002'


def test_rolled_back_number_leaves_gap_not_duplicate():
    alloc = SequentialIdAllocator()
    first = alloc.next('RX', DAY)
    with pytest.raises(RuntimeError):
        with transaction.atomic():
            alloc.next('RX', DAY)
            raise RuntimeError('downstream write failed')
    third = alloc.next('RX', DAY)
    assert first == 'RX-20250303-00001'
    assert int(third.rsplit('-', 1)[1]) > 1


def test_seeds_from_existing_identifiers():
    patient = make_patient()
    Appointment.objects.create(
        appointment_number='APT-20250303-00041', patient=patient, service_type='consultation',
        time_slot='morning', check_in_at=at(2025, 3, 3, 9, 0),
    )
    alloc = SequentialIdAllocator()
    assert alloc.peek('APT', DAY) == 41
    assert alloc.next('APT', DAY) == 'APT-20250303-00042'
    assert SequenceCounter.objects.get(prefix='APT', scope_date=DAY).value == 42


def test_unknown_prefix_starts_at_one():
    assert SequentialIdAllocator().next('LAB', DAY) == 'LAB-20250303-00001'


def test_invalid_prefix_rejected():
    with pytest.raises(ValueError):
        SequentialIdAllocator().next('apt-1', DAY)


def test_database_failure_is_allocation_unavailable(monkeypatch):
    alloc = SequentialIdAllocator()
    alloc.next('APT', DAY)

    def broken(*args, **kwargs):
        raise OperationalError('disk I/O error')

    monkeypatch.setattr(SequentialIdAllocator, '_seed', broken)
    with pytest.raises(AllocationUnavailable):
        alloc.next('APT', date(2025, 3, 4))
    # nothing half-written for the failed scope, earlier scope untouched
    assert not SequenceCounter.objects.filter(scope_date=date(2025, 3, 4)).exists()
    assert alloc.peek('APT', DAY) == 1


def test_seed_compares_suffixes_numerically():
    patient = make_patient()
    for number in ('APT-20250303-99999', 'APT-20250303-100000'):
        Appointment.objects.create(
            appointment_number=number, patient=patient, service_type='consultation',
            time_slot='morning', check_in_at=at(2025, 3, 3, 9, 0),
        )
    assert SequentialIdAllocator().next('APT', DAY) == 'APT-20250303-100001'


def test_seed_only_runs_for_a_new_scope(monkeypatch):
    alloc = SequentialIdAllocator()
    alloc.next('APT', DAY)
    calls = []
    monkeypatch.setattr(SequentialIdAllocator, '_seed', lambda self, *a: calls.append(a) or 0)
    assert alloc.next('APT', DAY) == 'APT-20250303-00002'
    assert calls == []


@pytest.mark.django_db(transaction=True)
def test_lock_contention_is_retried(monkeypatch):
    monkeypatch.setattr(sequence.time, 'sleep', lambda s: None)
    real = SequentialIdAllocator._advance
    failures = [OperationalError('database is locked')]

    def busy_once(self, prefix, on_date):
        if failures:
            raise failures.pop()
        return real(self, prefix, on_date)

    monkeypatch.setattr(SequentialIdAllocator, '_advance', busy_once)
    assert SequentialIdAllocator().next('APT', DAY) == 'APT-20250303-00001'


def test_lock_contention_inside_callers_transaction_is_final(monkeypatch):
    monkeypatch.setattr(sequence.time, 'sleep', lambda s: None)
    calls = []

    def busy(self, prefix, on_date):
        calls.append(prefix)
        raise OperationalError('database is locked')

    monkeypatch.setattr(SequentialIdAllocator, '_advance', busy)
    with pytest.raises(AllocationUnavailable):
        with transaction.atomic():
            SequentialIdAllocator().next('APT', DAY)
    assert calls == ['APT']
