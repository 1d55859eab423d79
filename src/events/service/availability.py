"""Read-only capacity, limit and price resolution for an event."""

from dataclasses import dataclass
from decimal import Decimal

from django.conf import settings

from accounts.models import BallUser
from events.models import DEFAULT_TIER_NAME, Event, TicketOrder, TicketTier, UserEventOverride


@dataclass(frozen=True)
class Availability:
    event_sold: int
    tier_sold: int | None
    user_current: int
    user_limit: int
    ticket_price: Decimal
    tier_name: str
    max_tickets_event: int

    @property
    def blocked(self) -> bool:
        """A limit of exactly zero excludes the user from buying."""
        return self.user_limit == 0

    @property
    def available_event(self) -> int:
        return max(self.max_tickets_event - self.event_sold, 0)

    @property
    def available_user(self) -> int:
        return max(self.user_limit - self.user_current, 0)

    @property
    def max_order(self) -> int:
        return max(min(self.available_event, self.available_user), 0)


def event_sold(event: Event) -> int:
    """Tickets held by paid and pending orders of the event."""
    return TicketOrder.objects.reserving().for_event(event.pk).ticket_total()


def tier_sold(tier: TicketTier) -> int:
    """Tickets held by paid and pending orders bound to the tier."""
    return TicketOrder.objects.reserving().filter(tier=tier).ticket_total()


def user_current(event: Event, user: BallUser) -> int:
    """Tickets the user already holds or reserved for the event."""
    return TicketOrder.objects.reserving().for_event(event.pk).filter(user=user).ticket_total()


def get_override(event: Event, user: BallUser) -> UserEventOverride | None:
    return UserEventOverride.objects.filter(event=event, user=user).first()


def effective_limit(event: Event, override: UserEventOverride | None) -> int:
    """Override limit, then the event's limit, then the global default."""
    if override is not None and override.ticket_limit is not None:
        return override.ticket_limit
    if event.max_tickets_per_user is not None:
        return event.max_tickets_per_user
    return int(settings.TICKETS_PER_USER)


def effective_price(event: Event, override: UserEventOverride | None, tier: TicketTier | None = None) -> Decimal:
    """An explicitly chosen tier wins; otherwise the override price, then the event price."""
    if tier is not None:
        return tier.price
    if override is not None and override.ticket_price is not None:
        return override.ticket_price
    return event.ticket_price


def compute_availability(event: Event, user: BallUser, tier: TicketTier | None = None) -> Availability:
    """Snapshot of what the user may still buy.

    Callers that act on the result must hold a lock on the event row.
    """
    override = get_override(event, user)
    return Availability(
        event_sold=event_sold(event),
        tier_sold=tier_sold(tier) if tier is not None else None,
        user_current=user_current(event, user),
        user_limit=effective_limit(event, override),
        ticket_price=effective_price(event, override, tier),
        tier_name=tier.name if tier is not None else DEFAULT_TIER_NAME,
        max_tickets_event=event.max_tickets,
    )
