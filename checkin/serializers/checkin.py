from datetime import datetime

from rest_framework import serializers

from checkin.models import SERVICE_TYPE_CHOICES, TIME_SLOT_CHOICES, CheckInSession

PRIORITY_CHOICES = [p for p, _ in CheckInSession.PRIORITY_CHOICES]


class QrScanSerializer(serializers.Serializer):
    qrCodeData = serializers.CharField(max_length=2048, required=False, allow_blank=True)
    patientNumber = serializers.CharField(max_length=32, required=False, allow_blank=True)

    def validate(self, attrs):
        if not (attrs.get('qrCodeData') or '').strip() and not (attrs.get('patientNumber') or '').strip():
            raise serializers.ValidationError('QR code data is required')
        return attrs


class SelectServiceSerializer(serializers.Serializer):
    patientId = serializers.IntegerField(min_value=1)
    serviceType = serializers.ChoiceField(choices=[c for c, _ in SERVICE_TYPE_CHOICES])


class ConfirmCheckInSerializer(SelectServiceSerializer):
    priority = serializers.ChoiceField(choices=PRIORITY_CHOICES, required=False, default=CheckInSession.PRIORITY_NORMAL)
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')
    symptoms = serializers.ListField(
        child=serializers.CharField(max_length=100), required=False, default=list, max_length=20,
    )
    notes = serializers.CharField(max_length=500, required=False, allow_blank=True, default='')


class CancelSessionSerializer(serializers.Serializer):
    reason = serializers.CharField(max_length=200, required=False, allow_blank=True, default='')


class PrioritySerializer(serializers.Serializer):
    priority = serializers.ChoiceField(choices=PRIORITY_CHOICES)


class SlotParamSerializer(serializers.Serializer):
    timeSlot = serializers.ChoiceField(choices=[c for c, _ in TIME_SLOT_CHOICES])


def _ts(value):
    return value.isoformat() if value else None


def session_payload(session: CheckInSession, now: datetime) -> dict:
    patient = session.patient
    appointment = session.appointment
    return {
        'id': session.id,
        'patientId': patient.id,
        'patientNumber': patient.patient_number,
        'patientName': patient.full_name,
        'selectedService': session.selected_service,
        'timeSlot': session.time_slot,
        'status': session.effective_status(now),
        'priority': session.priority,
        'vitalSignsRequired': session.vital_signs_required,
        'vitalSignsCompleted': session.vital_signs_completed,
        'vitalSignsCompletedAt': _ts(session.vital_signs_completed_at),
        'doctorNotified': session.doctor_notified,
        'doctorNotifiedAt': _ts(session.doctor_notified_at),
        'checkInDate': session.check_in_date.isoformat(),
        'checkInTime': _ts(session.created_at),
        'expiresAt': _ts(session.expires_at),
        'completedAt': _ts(session.completed_at),
        'cancelledAt': _ts(session.cancelled_at),
        'cancellationReason': session.cancellation_reason,
        'notes': session.notes,
        'sessionMinutes': session.session_minutes(now),
        'appointment': {
            'id': appointment.id,
            'appointmentNumber': appointment.appointment_number,
            'serviceType': appointment.service_type,
            'status': appointment.status,
        },
    }


def queue_entry(session: CheckInSession, now: datetime) -> dict:
    patient = session.patient
    return {
        'sessionId': session.id,
        'patientId': patient.id,
        'patientNumber': patient.patient_number,
        'patientName': patient.full_name,
        'selectedService': session.selected_service,
        'priority': session.priority,
        'vitalSignsCompleted': session.vital_signs_completed,
        'doctorNotified': session.doctor_notified,
        'appointmentNumber': session.appointment.appointment_number,
        'checkInTime': _ts(session.created_at),
        'waitingMinutes': session.waiting_minutes(now),
    }
