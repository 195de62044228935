"""Walk-in check-in application for the clinic backend.

This package contains the check-in models, the scheduling services,
serializers, views and route registrations behind ``/api/checkin``.
"""
