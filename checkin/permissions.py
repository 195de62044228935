"""
Custom permission classes for role based access control.
"""
from rest_framework.permissions import BasePermission

CLINICAL_ROLES = {"staff", "doctor", "admin"}


class IsClinicalStaff(BasePermission):
    """Front desk, nurses, doctors and administrators."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, "user", None)
        return bool(user and user.is_authenticated and getattr(user, "role", None) in CLINICAL_ROLES)


class IsDoctorRole(BasePermission):
    """Doctors and administrators."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        user = getattr(request, "user", None)
        return bool(user and user.is_authenticated and getattr(user, "role", None) in {"doctor", "admin"})

