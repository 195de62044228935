"""
URL mappings for the clinic check-in API.

Trailing slashes are deliberately omitted (``APPEND_SLASH = False``).
"""
from django.urls import path, include

from .views import checkin
from .views import health
from .views import records
from .auth_views import login_view, logout_view

urlpatterns = [
    path('', include('django_prometheus.urls')),
    path('healthz', health.healthz),
    # Authentication
    path('api/auth/login', login_view, name='login_view'),
    path('api/auth/logout', logout_view, name='logout_view'),
    # Check-in
    path('api/checkin/health', checkin.checkin_health),
    path('api/checkin/available-services/<str:time_slot>', checkin.available_services),
    path('api/checkin/qr-scan', checkin.qr_scan),
    path('api/checkin/select-service', checkin.select_service),
    path('api/checkin/confirm', checkin.confirm_check_in),
    path('api/checkin/status/<int:session_id>', checkin.session_status),
    path('api/checkin/today', checkin.todays_check_ins),
    path('api/checkin/<int:session_id>/vitals', checkin.record_vitals),
    path('api/checkin/<int:session_id>/notify-doctor', checkin.notify_doctor),
    path('api/checkin/<int:session_id>/complete', checkin.complete_session),
    path('api/checkin/<int:session_id>/cancel', checkin.cancel_session),
    path('api/checkin/<int:session_id>/priority', checkin.set_priority),
    # Doctor queue
    path('api/checkin/queue/ready', checkin.ready_queue),
    path('api/checkin/queue/pending-vitals', checkin.pending_vitals_queue),
    # Records numbered by the sequence allocator
    path('api/records/medical', records.medical_record_create),
    path('api/records/prescriptions', records.prescription_create),
]
