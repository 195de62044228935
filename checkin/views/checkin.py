"""
Walk-in check-in endpoints.

The front desk scans the patient's QR code, picks one of the services
offered in the current slot and confirms; nurses record vital signs and
hand the patient off to the doctor queue.  All decisions live in
:mod:`checkin.services.scheduler`; these views only validate input and
shape responses.  Rejections surface as :class:`~checkin.exceptions.CheckInError`
and are rendered by the project's exception handler.
"""
from __future__ import annotations

from django.utils import timezone
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.throttling import UserRateThrottle

from ..exceptions import PatientNotFound
from ..models import Patient
from ..permissions import IsClinicalStaff, IsDoctorRole
from ..serializers.checkin import (
    CancelSessionSerializer,
    ConfirmCheckInSerializer,
    PrioritySerializer,
    QrScanSerializer,
    SelectServiceSerializer,
    SlotParamSerializer,
    queue_entry,
    session_payload,
)
from ..services.audit import session_trail
from ..services.scheduler import get_scheduler
from ..services.slots import SLOT_DISPLAY, resolve_slot
from ..services.tokens import patient_for_token, verify_checkin_token


class QrScanRateThrottle(UserRateThrottle):
    scope = 'qr_scan'


def _patient(patient_id: int) -> Patient:
    patient = Patient.objects.filter(id=patient_id).first()
    if patient is None:
        raise PatientNotFound()
    return patient


@api_view(['GET'])
@permission_classes([AllowAny])
def checkin_health(request):
    return Response({'ok': True, 'message': 'Check-in routes are working', 'timestamp': timezone.now().isoformat()})


@api_view(['GET'])
@permission_classes([AllowAny])
def available_services(request, time_slot: str):
    """Services offered today in ``time_slot``; an empty list when closed."""
    s = SlotParamSerializer(data={'timeSlot': time_slot})
    s.is_valid(raise_exception=True)
    scheduler = get_scheduler()
    window = resolve_slot(scheduler.clock.now())
    body = {'ok': True, 'dayOfWeek': window.weekday, 'timeSlot': time_slot, 'schedule': SLOT_DISPLAY}
    if window.is_weekend:
        return Response({**body, 'message': 'No services available on weekends', 'services': []})
    entries = scheduler.catalog.available_services(window.weekday, time_slot)
    if not entries:
        return Response({**body, 'message': 'No services available for this time slot', 'services': []})
    return Response({**body, 'message': 'Available services retrieved successfully',
                     'services': [e.as_dict() for e in entries]})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
@throttle_classes([QrScanRateThrottle])
def qr_scan(request):
    """Resolve a QR code (or a typed patient number) to a check-in offer."""
    s = QrScanSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    raw = (s.validated_data.get('qrCodeData') or '').strip()
    if raw:
        patient = patient_for_token(verify_checkin_token(raw))
    else:
        patient = Patient.objects.filter(patient_number=s.validated_data['patientNumber'].strip()).first()
        if patient is None:
            raise PatientNotFound()
    offer = get_scheduler().scan(patient)
    return Response({'ok': True, 'message': 'QR code scanned successfully', **offer.as_dict()})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
def select_service(request):
    s = SelectServiceSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    patient = _patient(s.validated_data['patientId'])
    choice = get_scheduler().select_service(patient, s.validated_data['serviceType'])
    return Response({
        'ok': True,
        'message': 'Service selected successfully',
        'selectedService': choice.as_dict(),
        'requiresVitalSigns': choice.entry.requires_vital_signs,
        'nextStep': 'confirm_checkin',
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
def confirm_check_in(request):
    s = ConfirmCheckInSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    data = s.validated_data
    patient = _patient(data['patientId'])
    scheduler = get_scheduler()
    now = scheduler.clock.now()
    session = scheduler.begin_check_in(
        patient, data['serviceType'], now,
        created_by=request.user,
        priority=data['priority'],
        reason=data['reason'],
        symptoms=data['symptoms'],
        notes=data['notes'],
    )
    steps = ['Record vital signs', 'Notify doctor'] if session.vital_signs_required else ['Notify doctor']
    return Response(
        {
            'ok': True,
            'message': 'Check-in completed successfully',
            'session': session_payload(session, now),
            'nextSteps': steps,
        },
        status=status.HTTP_201_CREATED,
    )


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
def session_status(request, session_id: int):
    scheduler = get_scheduler()
    session = scheduler.get_session(session_id)
    data = session_payload(session, scheduler.clock.now())
    if request.query_params.get('history') in ('1', 'true'):
        data['history'] = session_trail(session.id)
    return Response({'ok': True, 'session': data})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
def todays_check_ins(request):
    scheduler = get_scheduler()
    now = scheduler.clock.now()
    sessions = scheduler.todays_sessions(now)
    return Response({
        'ok': True,
        'date': resolve_slot(now).date.isoformat(),
        'summary': scheduler.daily_summary(now),
        'checkIns': [session_payload(x, now) for x in sessions],
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
def record_vitals(request, session_id: int):
    scheduler = get_scheduler()
    now = scheduler.clock.now()
    session = scheduler.record_vitals(session_id, request.user, now)
    return Response({'ok': True, 'session': session_payload(session, now)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
def notify_doctor(request, session_id: int):
    scheduler = get_scheduler()
    now = scheduler.clock.now()
    session = scheduler.notify_doctor(session_id, request.user, now)
    return Response({'ok': True, 'session': session_payload(session, now)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def complete_session(request, session_id: int):
    scheduler = get_scheduler()
    now = scheduler.clock.now()
    session = scheduler.complete_session(session_id, now, completed_by=request.user)
    return Response({'ok': True, 'session': session_payload(session, now)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
def cancel_session(request, session_id: int):
    s = CancelSessionSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    scheduler = get_scheduler()
    now = scheduler.clock.now()
    session = scheduler.cancel_session(session_id, request.user, s.validated_data['reason'], now)
    return Response({'ok': True, 'session': session_payload(session, now)})


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
def set_priority(request, session_id: int):
    s = PrioritySerializer(data=request.data)
    s.is_valid(raise_exception=True)
    scheduler = get_scheduler()
    now = scheduler.clock.now()
    session = scheduler.set_priority(session_id, s.validated_data['priority'], now, changed_by=request.user)
    return Response({'ok': True, 'session': session_payload(session, now)})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
def ready_queue(request):
    scheduler = get_scheduler()
    now = scheduler.clock.now()
    items = scheduler.ready_queue(now)
    return Response({'ok': True, 'total': len(items), 'data': [queue_entry(x, now) for x in items]})


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsClinicalStaff])
def pending_vitals_queue(request):
    scheduler = get_scheduler()
    now = scheduler.clock.now()
    items = scheduler.pending_vitals_queue(now)
    return Response({'ok': True, 'total': len(items), 'data': [queue_entry(x, now) for x in items]})
