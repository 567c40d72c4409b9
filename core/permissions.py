"""
Per-role capability checks for the rota marketplace.

Capabilities are boolean flags on UserRole (can_edit_rota, can_work_shifts,
can_edit_staff). A user holds a capability for a role when they have a
UserRole row for it with the flag set. Superusers hold every capability.

Usage:
    if not has_permission(user, "can_edit_rota", role):
        raise Forbidden(...)

    class ApprovalsView(RotaEditorRequiredMixin, View):
        ...
"""

import logging

from django.contrib.auth.mixins import LoginRequiredMixin
from django.core.exceptions import PermissionDenied
from django.http import HttpRequest, JsonResponse

logger = logging.getLogger(__name__)

CAPABILITIES = ("can_edit_rota", "can_work_shifts", "can_edit_staff")


def has_permission(user, permission: str, role=None) -> bool:
    """
    Return True if the user holds a capability.

    Args:
        user: The acting user (may be anonymous).
        permission: One of CAPABILITIES.
        role: A Role instance or primary key. None means "in any role".

    Returns:
        True for superusers, or if a matching UserRole row exists.

    Raises:
        ValueError: If the permission name is unknown.
    """
    if permission not in CAPABILITIES:
        raise ValueError(f"Unknown capability: {permission!r}")
    if not user.is_authenticated or not user.is_active:
        return False
    if user.is_superuser:
        return True

    from apps.accounts.models import UserRole

    lookup = {"user": user, permission: True}
    if role is not None:
        lookup["role_id"] = getattr(role, "pk", role)
    return UserRole.objects.filter(**lookup).exists()


def roles_with_permission(user, permission: str):
    """
    Return the queryset of roles in which the user holds a capability.

    Superusers get every role.
    """
    from apps.accounts.models import Role

    if permission not in CAPABILITIES:
        raise ValueError(f"Unknown capability: {permission!r}")
    if user.is_superuser:
        return Role.objects.all()
    return Role.objects.filter(**{"user_roles__user": user, f"user_roles__{permission}": True})


class ApiLoginRequiredMixin(LoginRequiredMixin):
    """LoginRequiredMixin that answers JSON 401 instead of redirecting."""

    def handle_no_permission(self):
        if self.request.user.is_authenticated:
            raise PermissionDenied("You don't have permission to access this resource.")
        return JsonResponse(
            {"error": "Authentication required.", "code": "unauthenticated"},
            status=401,
        )


class CapabilityRequiredMixin(ApiLoginRequiredMixin):
    """
    Restrict a view to users holding `required_permission` in some role.

    When the request carries a role_id query parameter, the capability must be
    held for that role specifically.
    """

    required_permission: str = ""

    def dispatch(self, request: HttpRequest, *args, **kwargs):
        if not request.user.is_authenticated:
            return self.handle_no_permission()

        role_id = request.GET.get("role_id") or None
        if role_id is not None and not role_id.isdigit():
            return JsonResponse({"error": "role_id must be an integer.", "code": "invalid_state"}, status=400)
        if not has_permission(request.user, self.required_permission, role_id):
            logger.warning(
                "User %d attempted to access %s without %s (role=%s).",
                request.user.pk,
                request.path,
                self.required_permission,
                role_id,
            )
            return JsonResponse(
                {"error": "You don't have permission to access this resource.", "code": "forbidden"},
                status=403,
            )
        return super().dispatch(request, *args, **kwargs)


class RotaEditorRequiredMixin(CapabilityRequiredMixin):
    """Restrict access to users who can edit the rota (approvers)."""

    required_permission = "can_edit_rota"
