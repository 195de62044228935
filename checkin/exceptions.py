"""
Check-in error taxonomy and the unified API exception handler.

Services raise the :class:`CheckInError` subclasses below; they are the
expected business outcomes of the check-in flow (a patient scanning twice,
a service filling up) plus the two infrastructure failures.  The DRF
exception handler turns them into the project's ``{'ok': False, 'error':
{...}}`` envelope so views never translate them by hand.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class CheckInError(Exception):
    """Base class for every rejected check-in operation."""
    code = 'checkin_error'
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'Check-in operation rejected'
    infrastructure = False

    def __init__(self, message: Optional[str] = None, *, detail: Optional[dict[str, Any]] = None):
        self.message = message or self.default_message
        self.detail = detail or {}
        super().__init__(self.message)

    def as_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {'code': self.code, 'message': self.message}
        if self.detail:
            body['detail'] = self.detail
        return body


class ClinicClosed(CheckInError):
    code = 'clinic_closed'
    status_code = status.HTTP_409_CONFLICT
    default_message = 'No services available on weekends'


class NoServicesAvailable(CheckInError):
    code = 'no_services_available'
    status_code = status.HTTP_409_CONFLICT
    default_message = 'No services available for this time slot'


class AlreadyCheckedIn(CheckInError):
    """Carries the summary of the session that already exists today."""
    code = 'already_checked_in'
    status_code = status.HTTP_409_CONFLICT
    default_message = 'Patient has already checked in today'

    def __init__(self, existing: dict[str, Any], message: Optional[str] = None):
        self.existing = existing
        super().__init__(message, detail={'existingSession': existing})


class ServiceNoLongerAvailable(CheckInError):
    code = 'service_no_longer_available'
    status_code = status.HTTP_409_CONFLICT
    default_message = 'Selected service is no longer available'


class SessionNotActive(CheckInError):
    code = 'session_not_active'
    status_code = status.HTTP_409_CONFLICT
    default_message = 'Check-in session is no longer active'


class VitalsPending(CheckInError):
    code = 'vitals_pending'
    status_code = status.HTTP_409_CONFLICT
    default_message = 'Vital signs must be recorded before notifying the doctor'


class SessionNotFound(CheckInError):
    code = 'session_not_found'
    status_code = status.HTTP_404_NOT_FOUND
    default_message = 'Check-in session not found'


class PatientNotFound(CheckInError):
    code = 'patient_not_found'
    status_code = status.HTTP_404_NOT_FOUND
    default_message = 'Patient not found'


class LinkedRecordNotFound(CheckInError):
    code = 'linked_record_not_found'
    status_code = status.HTTP_404_NOT_FOUND
    default_message = 'Linked appointment or medical record not found'


class RecordRejected(CheckInError):
    code = 'record_rejected'
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'Record could not be created'


class PatientInactive(CheckInError):
    code = 'patient_inactive'
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'Patient account is inactive'


class InvalidCheckInToken(CheckInError):
    code = 'invalid_checkin_token'
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'QR code is invalid or expired'


class AllocationUnavailable(CheckInError):
    code = 'allocation_unavailable'
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = 'Identifier allocation is temporarily unavailable'
    infrastructure = True


class StorageUnavailable(CheckInError):
    code = 'storage_unavailable'
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = 'Check-in storage is temporarily unavailable'
    infrastructure = True


def api_exception_handler(exc, context):
    # already logged where raised
    if isinstance(exc, CheckInError):
        return Response({'ok': False, 'error': exc.as_dict()}, status=exc.status_code)
    resp = drf_exception_handler(exc, context)
    if resp is None:
        logger.exception("Unhandled API error", exc_info=exc)
        return Response({'ok': False, 'error': {'code': 'server_error', 'message': str(exc)}}, status=500)
    # normalize response
    detail = None
    if isinstance(resp.data, dict):
        detail = resp.data.get('detail') or resp.data
    else:
        detail = str(resp.data)
    return Response({'ok': False, 'error': {'code': 'api_error', 'message': detail}}, status=resp.status_code)
