"""
Database models for the clinic check-in backend.

These models capture walk-in check-in: the weekly service schedule that
decides what is offered in each Morning/Afternoon slot, the daily
check-in session and its linked same-day appointment, the counters used
to number appointments, medical records and prescriptions, and the audit
trail.  Patients are referenced opaquely; their wider record keeping
lives elsewhere in the platform.
"""
from __future__ import annotations

from datetime import datetime

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils import timezone


WEEKDAY_CHOICES = [
    ('mon', 'Monday'),
    ('tue', 'Tuesday'),
    ('wed', 'Wednesday'),
    ('thu', 'Thursday'),
    ('fri', 'Friday'),
]

SLOT_MORNING = 'morning'
SLOT_AFTERNOON = 'afternoon'
TIME_SLOT_CHOICES = [
    (SLOT_MORNING, 'Morning'),
    (SLOT_AFTERNOON, 'Afternoon'),
]

SERVICE_TYPE_CHOICES = [
    ('consultation', 'Consultation'),
    ('dental-consultation', 'Dental consultation'),
    ('dental-procedure', 'Dental procedure'),
    ('dental-fluoride', 'Dental fluoride'),
    ('follow-up', 'Follow-up'),
    ('out-patient', 'Out-patient'),
    ('parental-consultation', 'Parental consultation'),
    ('vaccination-bcg', 'BCG vaccination'),
    ('vaccination-hepatitis-b', 'Hepatitis B vaccination'),
    ('vaccination-polio', 'Polio vaccination'),
    ('vaccination-dtap', 'DTaP vaccination'),
    ('vaccination-mmr', 'MMR vaccination'),
    ('vaccination-varicella', 'Varicella vaccination'),
    ('vaccination-pneumococcal', 'Pneumococcal vaccination'),
    ('vaccination-hepatitis-a', 'Hepatitis A vaccination'),
    ('vaccination-influenza', 'Influenza vaccination'),
    ('vaccination-rabies', 'Rabies vaccination'),
]


class User(AbstractUser):
    """Staff account with a clinic role.

    ``staff`` covers front desk and nursing (scanning QR codes, recording
    vital signs), ``doctor`` consumes the ready queue and ``admin`` edits
    the service schedule.
    """
    ROLE_CHOICES = [
        ('patient', 'Patient'),
        ('staff', 'Front desk / nursing'),
        ('doctor', 'Doctor'),
        ('admin', 'Administrator'),
    ]
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default='staff')

    def __str__(self) -> str:
        return f"{self.username} ({self.role})"


class Patient(models.Model):
    """The patient reference a check-in session is attached to."""
    patient_number = models.CharField(max_length=32, unique=True)
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    date_of_birth = models.DateField(null=True, blank=True)
    contact_number = models.CharField(max_length=20, blank=True)
    email = models.EmailField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __str__(self) -> str:
        return f"{self.full_name} ({self.patient_number})"


class ServiceSchedule(models.Model):
    """Services offered on one weekday slot.

    Weekends have no rows: the clinic is closed.  Staff may edit the
    schedule during the day; cached lookups are invalidated on save.
    """
    weekday = models.CharField(max_length=3, choices=WEEKDAY_CHOICES)
    time_slot = models.CharField(max_length=10, choices=TIME_SLOT_CHOICES)
    is_active = models.BooleanField(default=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = [('weekday', 'time_slot')]

    def __str__(self) -> str:
        return f"{self.weekday} {self.time_slot}"


class ServiceOffering(models.Model):
    schedule = models.ForeignKey(ServiceSchedule, on_delete=models.CASCADE, related_name='offerings')
    service_type = models.CharField(max_length=40, choices=SERVICE_TYPE_CHOICES)
    requires_vital_signs = models.BooleanField(default=True)
    max_capacity = models.PositiveIntegerField(default=20)
    estimated_duration_minutes = models.PositiveIntegerField(default=30)
    description = models.CharField(max_length=255, blank=True)
    position = models.PositiveIntegerField(default=0)

    class Meta:
        unique_together = [('schedule', 'service_type')]
        ordering = ['position', 'id']

    def __str__(self) -> str:
        return f"{self.service_type} @ {self.schedule}"


class Appointment(models.Model):
    """Same-day appointment created together with a check-in session."""
    STATUS_CHECKED_IN = 'checked_in'
    STATUS_COMPLETED = 'completed'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = (
        (STATUS_CHECKED_IN, 'Checked in'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_CANCELLED, 'Cancelled'),
    )

    appointment_number = models.CharField(max_length=32, unique=True)
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='appointments')
    service_type = models.CharField(max_length=40, choices=SERVICE_TYPE_CHOICES)
    time_slot = models.CharField(max_length=10, choices=TIME_SLOT_CHOICES)
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=STATUS_CHECKED_IN)
    check_in_at = models.DateTimeField()
    requires_vital_signs = models.BooleanField(default=True)
    reason = models.TextField(blank=True)
    symptoms = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.appointment_number


class CheckInSession(models.Model):
    """A patient's single authoritative visit for one calendar day.

    ``day_claim`` mirrors ``check_in_date`` while the session is active or
    completed and is cleared when it is cancelled or expired.  The unique
    constraint on ``(patient, day_claim)`` is what stops two terminals
    from checking the same patient in twice; NULLs never collide, so
    cancelled and expired sessions do not block a new check-in.
    """
    STATUS_ACTIVE = 'active'
    STATUS_COMPLETED = 'completed'
    STATUS_EXPIRED = 'expired'
    STATUS_CANCELLED = 'cancelled'
    STATUS_CHOICES = (
        (STATUS_ACTIVE, 'Active'),
        (STATUS_COMPLETED, 'Completed'),
        (STATUS_EXPIRED, 'Expired'),
        (STATUS_CANCELLED, 'Cancelled'),
    )
    CLAIMING_STATUSES = (STATUS_ACTIVE, STATUS_COMPLETED)

    PRIORITY_LOW = 'low'
    PRIORITY_NORMAL = 'normal'
    PRIORITY_HIGH = 'high'
    PRIORITY_URGENT = 'urgent'
    PRIORITY_CHOICES = (
        (PRIORITY_LOW, 'Low'),
        (PRIORITY_NORMAL, 'Normal'),
        (PRIORITY_HIGH, 'High'),
        (PRIORITY_URGENT, 'Urgent'),
    )
    PRIORITY_RANK = {PRIORITY_LOW: 0, PRIORITY_NORMAL: 1, PRIORITY_HIGH: 2, PRIORITY_URGENT: 3}

    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='checkin_sessions')
    check_in_date = models.DateField(db_index=True)
    day_claim = models.DateField(null=True, blank=True, editable=False)
    status = models.CharField(max_length=12, choices=STATUS_CHOICES, default=STATUS_ACTIVE, db_index=True)
    selected_service = models.CharField(max_length=40, choices=SERVICE_TYPE_CHOICES)
    time_slot = models.CharField(max_length=10, choices=TIME_SLOT_CHOICES)

    vital_signs_required = models.BooleanField(default=True)
    vital_signs_completed = models.BooleanField(default=False)
    vital_signs_completed_at = models.DateTimeField(null=True, blank=True)
    vital_signs_recorded_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )

    doctor_notified = models.BooleanField(default=False)
    doctor_notified_at = models.DateTimeField(null=True, blank=True)
    doctor_notified_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )

    appointment = models.OneToOneField(Appointment, on_delete=models.PROTECT, related_name='checkin_session')
    priority = models.CharField(max_length=8, choices=PRIORITY_CHOICES, default=PRIORITY_NORMAL, db_index=True)
    notes = models.CharField(max_length=500, blank=True)
    created_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='checkins_created'
    )
    expires_at = models.DateTimeField(db_index=True)

    completed_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    cancelled_by = models.ForeignKey(
        User, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )
    cancellation_reason = models.CharField(max_length=200, blank=True)

    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['patient', 'day_claim'], name='uniq_checkin_patient_day_claim'),
        ]
        indexes = [
            models.Index(fields=['check_in_date', 'status'], name='checkin_che_check_i_5c1a2e_idx'),
            models.Index(fields=['vital_signs_required', 'vital_signs_completed'], name='checkin_che_vital_s_8d0f4b_idx'),
        ]

    def __str__(self) -> str:
        return f"checkin {self.id} p={self.patient_id} {self.check_in_date} ({self.status})"

    # --- derived state, evaluated against the caller's clock -------------

    def is_expired(self, now: datetime) -> bool:
        return self.status == self.STATUS_ACTIVE and now > self.expires_at

    def effective_status(self, now: datetime) -> str:
        """Status as every query should report it at ``now``."""
        if self.is_expired(now):
            return self.STATUS_EXPIRED
        return self.status

    @property
    def vitals_gate_open(self) -> bool:
        return not self.vital_signs_required or self.vital_signs_completed

    def waiting_minutes(self, now: datetime) -> int:
        since = self.doctor_notified_at or self.created_at
        return max(0, int((now - since).total_seconds() // 60))

    def session_minutes(self, now: datetime) -> int:
        end = self.completed_at or now
        return max(0, int((end - self.created_at).total_seconds() // 60))

    def summary(self) -> dict:
        return {
            'sessionId': self.id,
            'checkInTime': self.created_at.isoformat(),
            'selectedService': self.selected_service,
            'status': self.status,
        }


class SequenceCounter(models.Model):
    """Last suffix issued for a ``<PREFIX>-<YYYYMMDD>`` scope."""
    prefix = models.CharField(max_length=8)
    scope_date = models.DateField()
    value = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = [('prefix', 'scope_date')]

    def __str__(self) -> str:
        return f"{self.prefix}-{self.scope_date:%Y%m%d} @ {self.value}"


class MedicalRecord(models.Model):
    RECORD_TYPE_CHOICES = [
        ('treatment', 'Treatment'),
        ('dental', 'Dental'),
        ('immunization', 'Immunization'),
        ('laboratory', 'Laboratory'),
        ('imaging', 'Imaging'),
    ]
    record_number = models.CharField(max_length=32, unique=True)
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='medical_records')
    appointment = models.ForeignKey(
        Appointment, null=True, blank=True, on_delete=models.SET_NULL, related_name='medical_records'
    )
    record_type = models.CharField(max_length=20, choices=RECORD_TYPE_CHOICES)
    record_date = models.DateField()
    summary = models.TextField(blank=True)
    created_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='+')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.record_number


class Prescription(models.Model):
    STATUS_CHOICES = [
        ('active', 'Active'),
        ('completed', 'Completed'),
        ('cancelled', 'Cancelled'),
        ('expired', 'Expired'),
    ]
    prescription_number = models.CharField(max_length=32, unique=True)
    patient = models.ForeignKey(Patient, on_delete=models.CASCADE, related_name='prescriptions')
    appointment = models.ForeignKey(
        Appointment, null=True, blank=True, on_delete=models.SET_NULL, related_name='prescriptions'
    )
    medical_record = models.ForeignKey(
        MedicalRecord, null=True, blank=True, on_delete=models.SET_NULL, related_name='prescriptions'
    )
    date_issued = models.DateField()
    medications = models.JSONField(default=list, blank=True)
    notes = models.TextField(blank=True)
    status = models.CharField(max_length=12, choices=STATUS_CHOICES, default='active')
    created_by = models.ForeignKey(User, null=True, blank=True, on_delete=models.SET_NULL, related_name='+')
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return self.prescription_number


class AuditEvent(models.Model):
    user = models.ForeignKey(User, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=64)
    object_type = models.CharField(max_length=64, blank=True, null=True)
    object_id = models.IntegerField(blank=True, null=True)
    detail = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        indexes = [
            models.Index(fields=['action', 'created_at'], name='checkin_aud_action_3f9e21_idx'),
            models.Index(fields=['object_type', 'object_id', 'created_at'], name='checkin_aud_object__a74c0d_idx'),
        ]
