from rest_framework import serializers

from checkin.models import MedicalRecord, Prescription


class MedicalRecordCreateSerializer(serializers.Serializer):
    patientId = serializers.IntegerField(min_value=1)
    appointmentId = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    recordType = serializers.ChoiceField(choices=[c for c, _ in MedicalRecord.RECORD_TYPE_CHOICES])
    recordDate = serializers.DateField(required=False)
    summary = serializers.CharField(max_length=5000, required=False, allow_blank=True, default='')


class MedicationSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=120)
    dosage = serializers.CharField(max_length=60, required=False, allow_blank=True)
    frequency = serializers.CharField(max_length=60, required=False, allow_blank=True)
    duration = serializers.CharField(max_length=60, required=False, allow_blank=True)
    quantity = serializers.IntegerField(min_value=1, required=False)
    instructions = serializers.CharField(max_length=300, required=False, allow_blank=True)


class PrescriptionCreateSerializer(serializers.Serializer):
    patientId = serializers.IntegerField(min_value=1)
    appointmentId = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    medicalRecordId = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    dateIssued = serializers.DateField(required=False)
    medications = MedicationSerializer(many=True, allow_empty=False)
    notes = serializers.CharField(max_length=2000, required=False, allow_blank=True, default='')


def medical_record_payload(record: MedicalRecord) -> dict:
    return {
        'id': record.id,
        'recordNumber': record.record_number,
        'patientId': record.patient_id,
        'appointmentId': record.appointment_id,
        'recordType': record.record_type,
        'recordDate': record.record_date.isoformat(),
        'summary': record.summary,
    }


def prescription_payload(rx: Prescription) -> dict:
    return {
        'id': rx.id,
        'prescriptionNumber': rx.prescription_number,
        'patientId': rx.patient_id,
        'appointmentId': rx.appointment_id,
        'medicalRecordId': rx.medical_record_id,
        'dateIssued': rx.date_issued.isoformat(),
        'medications': rx.medications,
        'status': rx.status,
    }
