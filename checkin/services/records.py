"""
Medical records and prescriptions numbered by the sequential allocator.
"""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Iterable, Optional

import bleach
from django.db import transaction
from django.utils import timezone

from ..models import Appointment, MedicalRecord, Patient, Prescription, User
from .audit import log_action
from .sequence import PREFIX_MEDICAL_RECORD, PREFIX_PRESCRIPTION, SequentialIdAllocator

logger = logging.getLogger(__name__)


def _today() -> date:
    return timezone.localdate()


@transaction.atomic
def create_medical_record(*, patient: Patient, record_type: str, summary: str = '',
                          appointment: Optional[Appointment] = None, record_date: Optional[date] = None,
                          created_by: Optional[User] = None,
                          allocator: Optional[SequentialIdAllocator] = None) -> MedicalRecord:
    if appointment is not None and appointment.patient_id != patient.id:
        raise ValueError('appointment belongs to another patient')
    record_date = record_date or _today()
    allocator = allocator or SequentialIdAllocator()
    record = MedicalRecord.objects.create(
        record_number=allocator.next(PREFIX_MEDICAL_RECORD, record_date),
        patient=patient,
        appointment=appointment,
        record_type=record_type,
        record_date=record_date,
        summary=bleach.clean((summary or '').strip(), strip=True),
        created_by=created_by,
    )
    log_action(user=created_by, action='record.create', object_type='medical_record', object_id=record.id,
               detail={'number': record.record_number})
    logger.info("medical record created", extra={'record': record.record_number})
    return record


def _clean_medications(items: Iterable[Any]) -> list[dict]:
    meds = []
    for item in items or []:
        if isinstance(item, str):
            item = {'name': item}
        if not isinstance(item, dict) or not str(item.get('name') or '').strip():
            raise ValueError('each medication needs a name')
        meds.append({
            k: bleach.clean(v, strip=True) if isinstance(v, str) else v
            for k, v in item.items() if v not in (None, '')
        })
    return meds


@transaction.atomic
def issue_prescription(*, patient: Patient, medications: Iterable[Any], notes: str = '',
                       appointment: Optional[Appointment] = None, medical_record: Optional[MedicalRecord] = None,
                       date_issued: Optional[date] = None, created_by: Optional[User] = None,
                       allocator: Optional[SequentialIdAllocator] = None) -> Prescription:
    meds = _clean_medications(medications)
    if not meds:
        raise ValueError('at least one medication is required')
    if medical_record is not None and medical_record.patient_id != patient.id:
        raise ValueError('medical record belongs to another patient')
    date_issued = date_issued or _today()
    allocator = allocator or SequentialIdAllocator()
    rx = Prescription.objects.create(
        prescription_number=allocator.next(PREFIX_PRESCRIPTION, date_issued),
        patient=patient,
        appointment=appointment,
        medical_record=medical_record,
        date_issued=date_issued,
        medications=meds,
        notes=bleach.clean((notes or '').strip(), strip=True),
        created_by=created_by,
    )
    log_action(user=created_by, action='prescription.issue', object_type='prescription', object_id=rx.id,
               detail={'number': rx.prescription_number, 'items': len(meds)})
    logger.info("prescription issued", extra={'prescription': rx.prescription_number})
    return rx
