"""
Doctor hand-off notifications.

The scheduler only talks to a :class:`NotificationSink`.  The Channels
implementation defers the group send until the surrounding transaction
commits, so listeners never hear about a hand-off that was rolled back.
"""
from __future__ import annotations

import logging
from typing import Protocol

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.conf import settings
from django.db import transaction

from ..models import CheckInSession

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    def emit_doctor_notified(self, session: CheckInSession) -> None:
        ...


def doctor_notified_event(session: CheckInSession) -> dict:
    patient = session.patient
    return {
        'type': 'doctor.notified',
        'sessionId': session.id,
        'patientId': patient.id,
        'patientNumber': patient.patient_number,
        'patientName': patient.full_name,
        'selectedService': session.selected_service,
        'timeSlot': session.time_slot,
        'priority': session.priority,
        'appointmentNumber': session.appointment.appointment_number,
        'notifiedAt': session.doctor_notified_at.isoformat() if session.doctor_notified_at else None,
    }


class ChannelsNotificationSink:
    """Publish hand-offs to the doctor queue channel group."""

    def __init__(self, group: str | None = None):
        self.group = group or getattr(settings, 'CHECKIN_NOTIFY_GROUP', 'doctor-queue')

    def _send(self, event: dict) -> None:
        channel_layer = get_channel_layer()
        if channel_layer is None:
            return
        try:
            async_to_sync(channel_layer.group_send)(self.group, event)
        except Exception:
            # hand-off is committed; queue/ready still lists it
            logger.exception("doctor notification push failed", extra={'sessionId': event.get('sessionId')})

    def emit_doctor_notified(self, session: CheckInSession) -> None:
        event = doctor_notified_event(session)
        transaction.on_commit(lambda: self._send(event))


class RecordingNotificationSink:
    """Keeps emitted events in memory."""

    def __init__(self):
        self.events: list[dict] = []

    def emit_doctor_notified(self, session: CheckInSession) -> None:
        self.events.append(doctor_notified_event(session))
