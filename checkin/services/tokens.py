"""
Signed QR check-in tokens.

The QR code a patient presents carries a ``django.core.signing`` payload
``{"type": "patient_checkin", "patientNumber": ...}`` with an issue
timestamp.  Rendering the QR image is left to the client.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from django.conf import settings
from django.core import signing
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from ..exceptions import InvalidCheckInToken, PatientNotFound
from ..models import Patient

logger = logging.getLogger(__name__)

TOKEN_TYPE = 'patient_checkin'
TOKEN_SALT = 'checkin.qr'


@dataclass(frozen=True)
class CheckInToken:
    patient_number: str
    issued_at: Optional[datetime]


def _max_age() -> timedelta:
    return timedelta(hours=getattr(settings, 'CHECKIN_TOKEN_MAX_AGE_HOURS', 24))


def issue_checkin_token(patient: Patient, now: Optional[datetime] = None) -> str:
    now = now or timezone.now()
    payload = {
        'type': TOKEN_TYPE,
        'patientNumber': patient.patient_number,
        'issuedAt': now.isoformat(),
    }
    return signing.dumps(payload, salt=TOKEN_SALT, compress=True)


def verify_checkin_token(raw: str) -> CheckInToken:
    if not raw or not isinstance(raw, str):
        raise InvalidCheckInToken('QR code data is required')
    try:
        payload = signing.loads(raw.strip(), salt=TOKEN_SALT, max_age=_max_age())
    except signing.SignatureExpired:
        logger.info("expired check-in token presented")
        raise InvalidCheckInToken('QR code has expired')
    except signing.BadSignature:
        logger.info("malformed check-in token presented")
        raise InvalidCheckInToken()
    if not isinstance(payload, dict) or payload.get('type') != TOKEN_TYPE:
        raise InvalidCheckInToken('QR code is not a patient check-in code')
    number = str(payload.get('patientNumber') or '').strip()
    if not number:
        raise InvalidCheckInToken('QR code does not identify a patient')
    issued = parse_datetime(payload.get('issuedAt') or '')
    return CheckInToken(patient_number=number, issued_at=issued)


def patient_for_token(token: CheckInToken) -> Patient:
    patient = Patient.objects.filter(patient_number=token.patient_number).first()
    if patient is None:
        raise PatientNotFound()
    return patient
