"""
Role based permission classes for the queue API.
"""
from rest_framework.permissions import BasePermission

from queueing.models import User

STAFF_ROLES = {User.ROLE_ADMIN, User.ROLE_NURSE}
BILLING_ROLES = {User.ROLE_BILLING, User.ROLE_ADMIN}


def _role(request):
    user = getattr(request, "user", None)
    if not (user and user.is_authenticated):
        return None
    return getattr(user, "role", None)


class IsDoctorRole(BasePermission):
    """Allow access only to users with the doctor role."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) == User.ROLE_DOCTOR


class IsPatientRole(BasePermission):
    """Allow access only to users with the patient role."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) == User.ROLE_PATIENT


class IsAdminRole(BasePermission):
    """Front desk staff: administrators and nurses."""
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) in STAFF_ROLES


class IsBillingRole(BasePermission):
    def has_permission(self, request, view) -> bool:  # type: ignore[override]
        return _role(request) in BILLING_ROLES
