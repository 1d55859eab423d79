from django.http import HttpRequest
from ninja_extra import ControllerBase
from ninja_extra.permissions import BasePermission

from accounts.context import Capability, resolve_capabilities


class CapabilityPermission(BasePermission):
    """Grants access when the authenticated user holds a capability.

    Services check capabilities again on the explicit context; this only rejects early.
    """

    def __init__(self, capability: Capability) -> None:
        """Store the capability."""
        self.capability = capability

    def has_permission(self, request: HttpRequest, controller: ControllerBase) -> bool:
        """Admins implicitly hold every capability."""
        user = request.user
        if not user or not user.is_authenticated:
            return False
        capabilities = resolve_capabilities(user)  # type: ignore[arg-type]
        return self.capability in capabilities or Capability.ADMIN in capabilities
