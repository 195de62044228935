"""
Django admin registrations for the check-in models.

Administrators maintain the weekly service schedule here; sessions,
appointments and counters are exposed read-mostly for inspection.
"""

from django.contrib import admin

from .models import (
    Appointment,
    AuditEvent,
    CheckInSession,
    MedicalRecord,
    Patient,
    Prescription,
    SequenceCounter,
    ServiceOffering,
    ServiceSchedule,
    User,
)


@admin.register(User)
class UserAdmin(admin.ModelAdmin):
    list_display = ('username', 'role', 'is_staff', 'is_superuser')
    list_filter = ('role',)
    search_fields = ('username', 'first_name', 'last_name')


@admin.register(Patient)
class PatientAdmin(admin.ModelAdmin):
    list_display = ('patient_number', 'first_name', 'last_name', 'contact_number', 'is_active')
    list_filter = ('is_active',)
    search_fields = ('patient_number', 'first_name', 'last_name', 'contact_number')


class ServiceOfferingInline(admin.TabularInline):
    model = ServiceOffering
    extra = 0


@admin.register(ServiceSchedule)
class ServiceScheduleAdmin(admin.ModelAdmin):
    list_display = ('weekday', 'time_slot', 'is_active', 'updated_at')
    list_filter = ('weekday', 'time_slot', 'is_active')
    inlines = [ServiceOfferingInline]


@admin.register(CheckInSession)
class CheckInSessionAdmin(admin.ModelAdmin):
    list_display = ('id', 'patient', 'check_in_date', 'time_slot', 'selected_service', 'status', 'priority',
                    'vital_signs_completed', 'doctor_notified')
    list_filter = ('status', 'time_slot', 'priority', 'check_in_date')
    search_fields = ('id', 'patient__patient_number', 'patient__last_name')
    readonly_fields = ('day_claim', 'created_at', 'updated_at')


@admin.register(Appointment)
class AppointmentAdmin(admin.ModelAdmin):
    list_display = ('appointment_number', 'patient', 'service_type', 'time_slot', 'status', 'check_in_at')
    list_filter = ('status', 'time_slot')
    search_fields = ('appointment_number', 'patient__patient_number')


@admin.register(SequenceCounter)
class SequenceCounterAdmin(admin.ModelAdmin):
    list_display = ('prefix', 'scope_date', 'value', 'updated_at')
    list_filter = ('prefix',)


@admin.register(MedicalRecord)
class MedicalRecordAdmin(admin.ModelAdmin):
    list_display = ('record_number', 'patient', 'record_type', 'record_date')
    search_fields = ('record_number', 'patient__patient_number')


@admin.register(Prescription)
class PrescriptionAdmin(admin.ModelAdmin):
    list_display = ('prescription_number', 'patient', 'date_issued', 'status')
    list_filter = ('status',)
    search_fields = ('prescription_number', 'patient__patient_number')


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ('action', 'object_type', 'object_id', 'user', 'created_at')
    list_filter = ('action', 'object_type')
