"""Event lookup and visibility checks."""

import secrets
import typing as t

import structlog
from django.utils.translation import gettext_lazy as _

from accounts.context import AuthContext, Capability, record_event_unlock
from events.exceptions import AccessDeniedError, BusinessRuleError, NotFoundError
from events.models import Event

logger = structlog.get_logger(__name__)


def get_active_event(event_id: t.Any, *, for_update: bool = False) -> Event:
    """Fetch an event that was not soft-deleted.

    Raises:
        NotFoundError: if the event does not exist or is inactive.
    """
    qs = Event.objects.active()
    if for_update:
        qs = qs.select_for_update()
    try:
        return qs.get(pk=event_id)
    except Event.DoesNotExist:
        raise NotFoundError(str(_("Event not found or inactive."))) from None


def assert_event_access(event: Event, context: AuthContext) -> None:
    """Raise unless the caller may see and buy for the event."""
    if context.can_manage_events():
        return
    if event.visibility == Event.Visibility.PRIVATE:
        raise AccessDeniedError()
    if event.visibility == Event.Visibility.PASSWORD_PROTECTED and not context.has_unlocked(event.pk):
        raise BusinessRuleError(str(_("Event password required.")))


def list_events(context: AuthContext) -> list[Event]:
    return list(Event.objects.visible_to(context).prefetch_related("tiers"))


def get_event(context: AuthContext, event_id: t.Any) -> Event:
    event = get_active_event(event_id)
    if event.visibility == Event.Visibility.PRIVATE and not context.can_manage_events():
        raise AccessDeniedError()
    return event


def verify_event_password(context: AuthContext, event_id: t.Any, password: str) -> None:
    """Unlock a password protected event for the caller.

    Unknown events, unprotected events and wrong passwords all fail the same way.
    """
    event = Event.objects.active().filter(pk=event_id, visibility=Event.Visibility.PASSWORD_PROTECTED).first()
    if event is None or not secrets.compare_digest(event.password.encode(), password.encode()):
        logger.info("event_password_rejected", event_id=str(event_id), user_id=str(context.user.pk))
        raise BusinessRuleError(str(_("Invalid password.")))
    record_event_unlock(context.user, event.pk)
    logger.info("event_unlocked", event_id=str(event.pk), user_id=str(context.user.pk))


def require_capability(context: AuthContext, capability: Capability) -> None:
    """Raise a generic denial unless the caller holds the capability."""
    if not context.has(capability):
        raise AccessDeniedError()
