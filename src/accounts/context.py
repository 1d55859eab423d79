"""Explicit authorization context passed into every ticketing operation.

Controllers resolve the context once per request from the authenticated user; services never
look at the request or at ambient permission state themselves.
"""

import typing as t
from dataclasses import dataclass, field
from enum import StrEnum

from django.conf import settings
from django.core.cache import cache

from accounts.models import BallUser


class Capability(StrEnum):
    BUY_TICKETS = "buy_tickets"
    VIEW_ORDERS = "view_orders"
    MANAGE_ORDERS = "manage_orders"
    CREATE_EVENTS = "create_events"
    ADMIN = "admin"


# Model permissions (app label "events") that grant a capability.
PERMISSION_CAPABILITIES: dict[str, Capability] = {
    "events.view_orders": Capability.VIEW_ORDERS,
    "events.manage_orders": Capability.MANAGE_ORDERS,
    "events.create_events": Capability.CREATE_EVENTS,
}


def _unlock_cache_key(user_id: t.Any) -> str:
    return f"event-access:{user_id}"


@dataclass(frozen=True)
class AuthContext:
    user: BallUser
    capabilities: frozenset[Capability] = field(default_factory=frozenset)
    unlocked_event_ids: frozenset[str] = field(default_factory=frozenset)

    @property
    def identity(self) -> str:
        """Operator identity recorded on audit and redemption fields."""
        return self.user.email or self.user.username

    def has(self, capability: Capability) -> bool:
        """Admins implicitly hold every capability."""
        return capability in self.capabilities or Capability.ADMIN in self.capabilities

    def can_manage_events(self) -> bool:
        """Creators and admins may see private events."""
        return self.has(Capability.CREATE_EVENTS)

    def has_unlocked(self, event_id: t.Any) -> bool:
        """Whether the caller passed the password check for the event."""
        return str(event_id) in self.unlocked_event_ids


def resolve_capabilities(user: BallUser) -> frozenset[Capability]:
    """Resolve the capability set of a user from Django's permission system."""
    if not user.is_authenticated or not user.is_active:
        return frozenset()
    if user.is_superuser:
        return frozenset(Capability)
    capabilities = {Capability.BUY_TICKETS}
    if user.is_staff:
        capabilities.add(Capability.VIEW_ORDERS)
    for perm in user.get_all_permissions():
        if perm in PERMISSION_CAPABILITIES:
            capabilities.add(PERMISSION_CAPABILITIES[perm])
    if Capability.MANAGE_ORDERS in capabilities:
        capabilities.add(Capability.VIEW_ORDERS)
    return frozenset(capabilities)


def get_unlocked_event_ids(user: BallUser) -> frozenset[str]:
    """Return the ids of password protected events the user unlocked recently."""
    return frozenset(cache.get(_unlock_cache_key(user.pk), set()))


def record_event_unlock(user: BallUser, event_id: t.Any) -> None:
    """Remember a successful password verification for the configured TTL."""
    unlocked = set(cache.get(_unlock_cache_key(user.pk), set()))
    unlocked.add(str(event_id))
    cache.set(_unlock_cache_key(user.pk), unlocked, timeout=settings.EVENT_ACCESS_TTL_SECONDS)


def build_auth_context(user: BallUser) -> AuthContext:
    """Build the authorization context for a user."""
    return AuthContext(
        user=user,
        capabilities=resolve_capabilities(user),
        unlocked_event_ids=get_unlocked_event_ids(user),
    )
