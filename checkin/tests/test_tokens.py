import time

import pytest
from django.core import signing

from checkin.exceptions import InvalidCheckInToken, PatientNotFound
from checkin.services.tokens import (
    TOKEN_SALT,
    issue_checkin_token,
    patient_for_token,
    verify_checkin_token,
)

from .factories import at, make_patient

pytestmark = pytest.mark.django_db


def test_issued_token_resolves_patient(patient):
    raw = issue_checkin_token(patient, now=at(2025, 3, 3, 8, 0))
    token = verify_checkin_token(raw)
    assert token.patient_number == patient.patient_number
    assert token.issued_at == at(2025, 3, 3, 8, 0)
    assert patient_for_token(token) == patient


def test_tampered_token_rejected(patient):
    raw = issue_checkin_token(patient)
    with pytest.raises(InvalidCheckInToken):
        verify_checkin_token(raw[:-2] + ('AA' if not raw.endswith('AA') else 'BB'))


@pytest.mark.parametrize('raw', ['', None, 'not-a-token'])
def test_garbage_rejected(raw):
    with pytest.raises(InvalidCheckInToken):
        verify_checkin_token(raw)


def test_expired_token(patient, monkeypatch):
    real = time.time
    monkeypatch.setattr(time, 'time', lambda: real() - 25 * 3600)
    raw = issue_checkin_token(patient)
    monkeypatch.setattr(time, 'time', real)
    with pytest.raises(InvalidCheckInToken) as exc:
        verify_checkin_token(raw)
    assert exc.value.message == 'QR code has expired'


def test_wrong_token_type(patient):
    raw = signing.dumps({'type': 'staff_badge', 'patientNumber': patient.patient_number}, salt=TOKEN_SALT)
    with pytest.raises(InvalidCheckInToken):
        verify_checkin_token(raw)


def test_signed_for_another_purpose(patient):
    raw = signing.dumps({'type': 'patient_checkin', 'patientNumber': patient.patient_number}, salt='other')
    with pytest.raises(InvalidCheckInToken):
        verify_checkin_token(raw)


def test_unknown_patient():
    ghost = make_patient('P-9999')
    raw = issue_checkin_token(ghost)
    ghost.delete()
    with pytest.raises(PatientNotFound):
        patient_for_token(verify_checkin_token(raw))
