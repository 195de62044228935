from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from ..exceptions import LinkedRecordNotFound, PatientNotFound, RecordRejected
from ..models import Appointment, MedicalRecord, Patient
from ..permissions import IsDoctorRole
from ..serializers.records import (
    MedicalRecordCreateSerializer,
    PrescriptionCreateSerializer,
    medical_record_payload,
    prescription_payload,
)
from ..services.records import create_medical_record, issue_prescription


def _patient(patient_id: int) -> Patient:
    patient = Patient.objects.filter(id=patient_id).first()
    if patient is None:
        raise PatientNotFound()
    return patient


def _related(model, pk, patient):
    """The patient's own ``model`` row ``pk``, or None when no id was sent."""
    if not pk:
        return None
    obj = model.objects.filter(id=pk, patient=patient).first()
    if obj is None:
        raise LinkedRecordNotFound(detail={'type': model._meta.model_name, 'id': pk})
    return obj


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def medical_record_create(request):
    s = MedicalRecordCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    data = s.validated_data
    patient = _patient(data['patientId'])
    appointment = _related(Appointment, data.get('appointmentId'), patient)
    try:
        record = create_medical_record(
            patient=patient,
            record_type=data['recordType'],
            summary=data['summary'],
            appointment=appointment,
            record_date=data.get('recordDate'),
            created_by=request.user,
        )
    except ValueError as e:
        raise RecordRejected(str(e)) from e
    return Response({'ok': True, 'data': medical_record_payload(record)}, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsDoctorRole])
def prescription_create(request):
    s = PrescriptionCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    data = s.validated_data
    patient = _patient(data['patientId'])
    appointment = _related(Appointment, data.get('appointmentId'), patient)
    record = _related(MedicalRecord, data.get('medicalRecordId'), patient)
    try:
        rx = issue_prescription(
            patient=patient,
            medications=[dict(m) for m in data['medications']],
            notes=data['notes'],
            appointment=appointment,
            medical_record=record,
            date_issued=data.get('dateIssued'),
            created_by=request.user,
        )
    except ValueError as e:
        raise RecordRejected(str(e)) from e
    return Response({'ok': True, 'data': prescription_payload(rx)}, status=status.HTTP_201_CREATED)
