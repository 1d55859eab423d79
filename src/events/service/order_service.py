"""Order lifecycle: creation, payment status changes, admin edits and statistics."""

import typing as t
from datetime import date
from decimal import Decimal

import structlog
from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.core.validators import validate_email
from django.db import transaction
from django.db.models import Count, Q, Sum
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from accounts.context import AuthContext, Capability
from accounts.models import BallUser
from events import schema
from events.exceptions import AccessDeniedError, BusinessRuleError, NotFoundError, SoldOutError, TicketValidationError
from events.models import Event, Participant, PaymentRequest, TicketOrder, TicketTier, UserEventOverride
from events.service import notification_service
from events.service.availability import compute_availability, effective_limit, effective_price, get_override
from events.service.birthdate import parse_birthdate, validate_birthdate
from events.service.event_access import assert_event_access, get_active_event, require_capability

logger = structlog.get_logger(__name__)

SALE_WINDOW_FORMAT = "%d.%m.%Y %H:%M"
PAYMENT_ERROR_REASON = "Payment reference not found"
FALLBACK_REFERENCE_HANDLE = "ORDER"


def normalize_reference(reference: str) -> str:
    """References are matched trimmed and case-insensitively."""
    return reference.strip().upper()


def next_payment_reference(user: BallUser, event: Event) -> str:
    """Build ``HANDLE###`` from the user's handle and their ordinal order count for the event.

    The counter is bumped past references that are already taken.
    """
    handle = user.reference_handle() or FALLBACK_REFERENCE_HANDLE
    count = TicketOrder.objects.filter(user=user, event=event).count() + 1
    reference = f"{handle}{count:03d}".upper()
    while TicketOrder.objects.filter(payment_reference=reference).exists():
        count += 1
        reference = f"{handle}{count:03d}".upper()
    return reference


def _check_sale_window(event: Event) -> None:
    now = timezone.now()
    if event.ticket_sale_start_datetime and now < event.ticket_sale_start_datetime:
        start = timezone.localtime(event.ticket_sale_start_datetime).strftime(SALE_WINDOW_FORMAT)
        raise BusinessRuleError(str(_("Ticket sale has not started yet. Sale starts at {start}.")).format(start=start))
    if event.ticket_sale_end_datetime and now > event.ticket_sale_end_datetime:
        end = timezone.localtime(event.ticket_sale_end_datetime).strftime(SALE_WINDOW_FORMAT)
        raise BusinessRuleError(str(_("Ticket sale has already ended. Sale ended at {end}.")).format(end=end))


def _resolve_tier(event: Event, tier_id: t.Any | None) -> TicketTier | None:
    if tier_id is None:
        return None
    tier = TicketTier.objects.select_for_update().filter(event=event, pk=tier_id).first()
    if tier is None:
        raise NotFoundError(str(_("Selected ticket category not found.")))
    return tier


def _validate_participants(
    participants: list[schema.ParticipantIn], ticket_count: int, reference: date
) -> list[tuple[schema.ParticipantIn, date]]:
    """Check every participant and return them paired with their parsed birthdate."""
    if not participants:
        raise TicketValidationError(str(_("Participant data is required.")))
    if len(participants) != ticket_count:
        raise TicketValidationError(str(_("The number of participants does not match the ticket count.")))
    validated = []
    for index, participant in enumerate(participants, start=1):
        if not participant.name:
            raise TicketValidationError(str(_("Name for participant {index} is required.")).format(index=index))
        if not participant.birthdate:
            raise TicketValidationError(str(_("Birthdate for participant {index} is required.")).format(index=index))
        try:
            birthdate = validate_birthdate(participant.birthdate, reference)
        except TicketValidationError as e:
            raise TicketValidationError(
                str(_("Invalid birthdate for participant {index}: {error}")).format(index=index, error=e.message)
            ) from e
        if participant.email:
            try:
                validate_email(participant.email)
            except DjangoValidationError:
                raise TicketValidationError(
                    str(_("Invalid email address for participant {index}.")).format(index=index)
                ) from None
        validated.append((participant, birthdate))
    return validated


def create_order(context: AuthContext, payload: schema.CreateOrderSchema) -> schema.OrderCreated:
    """Reserve tickets for the caller.

    The order and its participants are committed first; the confirmation email is sent afterwards
    and its failure is reported, never rolled back.
    """
    require_capability(context, Capability.BUY_TICKETS)
    order = _persist_order(context, payload)
    notification_sent = notification_service.notify_order_received(order)
    return schema.OrderCreated(
        order_id=order.pk,
        payment_reference=order.payment_reference,
        total_price=order.total_price,
        ticket_count=order.ticket_count,
        notification_sent=notification_sent,
    )


@transaction.atomic
def _persist_order(context: AuthContext, payload: schema.CreateOrderSchema) -> TicketOrder:
    # the event row lock serialises capacity checks per event
    event = get_active_event(payload.event_id, for_update=True)
    if not event.ticket_generation_enabled:
        raise BusinessRuleError(str(_("Ticket sales are currently disabled for this event.")))
    _check_sale_window(event)
    assert_event_access(event, context)
    user = context.user
    if not user.email_verified:
        raise BusinessRuleError(str(_("You need to verify your email address before buying tickets.")))

    count = payload.ticket_count
    tier = _resolve_tier(event, payload.chosen_tier_id)
    availability = compute_availability(event, user, tier)
    if availability.event_sold + count > event.max_tickets:
        raise SoldOutError(str(_("Not enough tickets available for this event.")))
    if tier is not None and tier.max_tickets is not None and (availability.tier_sold or 0) + count > tier.max_tickets:
        raise SoldOutError(str(_("Not enough tickets available in category '{name}'.")).format(name=tier.name))
    if availability.blocked:
        raise BusinessRuleError(str(_("You are temporarily excluded from buying tickets for this event.")))
    if availability.user_current + count > availability.user_limit:
        raise BusinessRuleError(
            str(_("Ticket limit exceeded. You can order at most {limit} tickets for this event.")).format(
                limit=availability.user_limit
            )
        )
    participants = _validate_participants(payload.participants, count, event.reference_date)

    price = availability.ticket_price
    order = TicketOrder.objects.create(
        user=user,
        event=event,
        tier=tier,
        tier_name=availability.tier_name,
        ticket_count=count,
        individual_ticket_price=price,
        total_price=(price * count).quantize(Decimal("0.01")),
        payment_reference=next_payment_reference(user, event),
        status=TicketOrder.Status.PENDING,
    )
    Participant.objects.bulk_create(
        [
            Participant(
                order=order,
                ticket_number=number,
                name=participant.name,
                phone=participant.phone,
                email=participant.email,
                birthdate=birthdate,
            )
            for number, (participant, birthdate) in enumerate(participants, start=1)
        ]
    )
    logger.info(
        "order_created",
        order_id=str(order.pk),
        event_id=str(event.pk),
        user_id=str(user.pk),
        ticket_count=count,
        payment_reference=order.payment_reference,
    )
    return order


def ticket_limits(context: AuthContext, event_id: t.Any) -> schema.TicketLimits:
    """Report what the caller may still order for the event."""
    event = get_active_event(event_id)
    assert_event_access(event, context)
    availability = compute_availability(event, context.user)
    if availability.blocked:
        raise BusinessRuleError(str(_("You are temporarily excluded from buying tickets for this event.")))
    return schema.TicketLimits(
        user_limit=availability.user_limit,
        ticket_price=availability.ticket_price,
        current_tickets=availability.user_current,
        available_user=availability.available_user,
        available_event=availability.available_event,
        max_tickets_event=availability.max_tickets_event,
        event_sold=availability.event_sold,
        max_order=availability.max_order,
    )


def list_my_orders(context: AuthContext, event_id: t.Any | None = None) -> list[TicketOrder]:
    return list(TicketOrder.objects.full().filter(user=context.user).for_event(event_id))


def get_order(context: AuthContext, order_id: t.Any) -> TicketOrder:
    """Owners see their own orders; order viewers see any.

    Callers without view rights get the same denial whether or not the order exists.
    """
    order = TicketOrder.objects.full().filter(pk=order_id).first()
    if context.has(Capability.VIEW_ORDERS):
        if order is None:
            raise NotFoundError(str(_("Order not found.")))
        return order
    if order is None or order.user_id != context.user.pk:
        raise AccessDeniedError()
    return order


def list_orders(
    context: AuthContext, event_id: t.Any | None = None, status: str | None = None
) -> list[TicketOrder]:
    require_capability(context, Capability.VIEW_ORDERS)
    qs = TicketOrder.objects.full().for_event(event_id)
    if status:
        qs = qs.filter(status=status)
    return list(qs.order_by("-created_at"))


def orders_by_payment_status(
    context: AuthContext, event_id: t.Any | None = None, payment_status: str | None = None
) -> list[schema.OrderPaymentOverview]:
    """Payment board: ``no_request``, ``sent`` or ``paid``; anything else lists every order."""
    require_capability(context, Capability.VIEW_ORDERS)
    qs = TicketOrder.objects.full().for_event(event_id).exclude(status=TicketOrder.Status.ERROR)
    match payment_status:
        case "no_request":
            qs = qs.without_payment_request()
        case "sent":
            qs = qs.filter(payment_requests__status=PaymentRequest.Status.SENT).distinct()
        case "paid":
            qs = qs.paid()
    rows = []
    for order in qs.order_by("-created_at"):
        payment_request = order.latest_payment_request()
        rows.append(
            schema.OrderPaymentOverview(
                order_id=order.pk,
                user_name=order.user.get_display_name() if order.user_id else None,
                user_email=order.user.email if order.user_id else None,
                ticket_count=order.ticket_count,
                total_price=order.total_price,
                payment_reference=order.payment_reference,
                order_status=order.status,
                created_at=order.created_at,
                payment_request_id=payment_request.pk if payment_request else None,
                payment_request_status=payment_request.status if payment_request else None,
                payment_request_sent_at=payment_request.sent_at if payment_request else None,
                bank_account_name=payment_request.account_name if payment_request else None,
            )
        )
    return rows


def lock_order(order_id: t.Any) -> TicketOrder:
    """Fetch an order for update.

    Raises:
        NotFoundError: if there is no such order.
    """
    try:
        return TicketOrder.objects.select_for_update().get(pk=order_id)
    except TicketOrder.DoesNotExist:
        raise NotFoundError(str(_("Order not found."))) from None


def _apply_paid(order: TicketOrder) -> None:
    if order.status == TicketOrder.Status.ERROR:
        raise BusinessRuleError(str(_("Payment error records cannot be marked as paid.")))
    now = timezone.now()
    order.status = TicketOrder.Status.PAID
    order.paid_at = order.paid_at or now
    order.save(update_fields=["status", "paid_at", "updated_at"])
    payment_request = order.payment_requests.order_by("-created_at").first()
    if payment_request is not None and payment_request.status != PaymentRequest.Status.PAID:
        payment_request.status = PaymentRequest.Status.PAID
        payment_request.paid_at = now
        payment_request.save(update_fields=["status", "paid_at", "updated_at"])


@transaction.atomic
def mark_order_paid(context: AuthContext, order_id: t.Any) -> TicketOrder:
    require_capability(context, Capability.MANAGE_ORDERS)
    order = lock_order(order_id)
    _apply_paid(order)
    logger.info("order_marked_paid", order_id=str(order.pk), operator=context.identity)
    return order


@transaction.atomic
def mark_order_unpaid(context: AuthContext, order_id: t.Any) -> TicketOrder:
    """Manual correction back to pending; a paid payment request is reopened."""
    require_capability(context, Capability.MANAGE_ORDERS)
    order = lock_order(order_id)
    if order.status == TicketOrder.Status.ERROR:
        raise BusinessRuleError(str(_("Payment error records cannot be changed.")))
    order.status = TicketOrder.Status.PENDING
    order.paid_at = None
    order.save(update_fields=["status", "paid_at", "updated_at"])
    payment_request = order.payment_requests.order_by("-created_at").first()
    if payment_request is not None and payment_request.status == PaymentRequest.Status.PAID:
        payment_request.status = PaymentRequest.Status.SENT
        payment_request.paid_at = None
        payment_request.save(update_fields=["status", "paid_at", "updated_at"])
    logger.info("order_marked_unpaid", order_id=str(order.pk), operator=context.identity)
    return order


def _find_by_reference(reference: str, *, for_update: bool = False) -> TicketOrder:
    qs = TicketOrder.objects.exclude(status=TicketOrder.Status.ERROR)
    if for_update:
        qs = qs.select_for_update()
    order = qs.filter(payment_reference=reference).order_by("created_at").first()
    if order is None:
        raise NotFoundError(
            str(_("No order with payment reference '{reference}' found.")).format(reference=reference)
        )
    return order


@transaction.atomic
def quick_mark_paid(context: AuthContext, payment_reference: str) -> TicketOrder:
    """Mark the order matching an incoming transfer's reference as paid."""
    require_capability(context, Capability.MANAGE_ORDERS)
    reference = normalize_reference(payment_reference)
    order = _find_by_reference(reference, for_update=True)
    _apply_paid(order)
    logger.info("order_marked_paid", order_id=str(order.pk), operator=context.identity, payment_reference=reference)
    return order


def record_payment_error(context: AuthContext, payment_reference: str) -> TicketOrder:
    """Keep an incoming payment whose reference matches no order, for reconciliation."""
    require_capability(context, Capability.MANAGE_ORDERS)
    reference = normalize_reference(payment_reference)
    record = TicketOrder.objects.create(
        user=None,
        event=None,
        tier_name="",
        ticket_count=0,
        individual_ticket_price=Decimal("0"),
        total_price=Decimal("0"),
        payment_reference=reference,
        status=TicketOrder.Status.ERROR,
        error_reason=PAYMENT_ERROR_REASON,
    )
    logger.info("payment_error_recorded", record_id=str(record.pk), payment_reference=reference)
    return record


def search_payment_reference(context: AuthContext, payment_reference: str) -> TicketOrder:
    require_capability(context, Capability.MANAGE_ORDERS)
    order = _find_by_reference(normalize_reference(payment_reference))
    return TicketOrder.objects.full().get(pk=order.pk)


def _update_owner(order: TicketOrder, payload: schema.OrderUpdateSchema) -> None:
    if order.user is None:
        return
    changes = {
        "name": payload.user_name,
        "email": payload.user_email,
        "address": payload.user_address,
        "phone": payload.user_phone,
    }
    changes = {field: value for field, value in changes.items() if value is not None}
    if not changes:
        return
    owner = BallUser.objects.select_for_update().get(pk=order.user_id)
    for field, value in changes.items():
        setattr(owner, field, value)
    owner.save(update_fields=list(changes))


def _replace_participants(order: TicketOrder, participants: list[schema.ParticipantIn]) -> None:
    """Delete and recreate; entries without a name are skipped."""
    order.participants.all().delete()
    Participant.objects.bulk_create(
        [
            Participant(
                order=order,
                ticket_number=number,
                name=participant.name,
                phone=participant.phone,
                email=participant.email,
                birthdate=parse_birthdate(participant.birthdate) if participant.birthdate else None,
            )
            for number, participant in enumerate(participants, start=1)
            if participant.name
        ]
    )


@transaction.atomic
def update_order(context: AuthContext, order_id: t.Any, payload: schema.OrderUpdateSchema) -> TicketOrder:
    """Replace the admin-editable fields of an order.

    A non-empty participant list replaces every participant; contact edits go to the owning user.
    """
    require_capability(context, Capability.MANAGE_ORDERS)
    order = lock_order(order_id)
    order.ticket_count = payload.ticket_count
    order.total_price = payload.total_price
    order.payment_reference = normalize_reference(payload.payment_reference)
    order.status = payload.status
    if order.status == TicketOrder.Status.PAID:
        order.paid_at = order.paid_at or timezone.now()
    else:
        order.paid_at = None
    order.save()
    _update_owner(order, payload)
    if payload.participants:
        _replace_participants(order, payload.participants)
    logger.info("order_updated", order_id=str(order.pk), operator=context.identity, status=order.status)
    return TicketOrder.objects.full().get(pk=order.pk)


@transaction.atomic
def delete_order(context: AuthContext, order_id: t.Any) -> None:
    """Remove an order together with its participants and payment requests."""
    require_capability(context, Capability.MANAGE_ORDERS)
    order = lock_order(order_id)
    reference = order.payment_reference
    order.delete()
    logger.info("order_deleted", order_id=str(order_id), payment_reference=reference, operator=context.identity)


def order_statistics(context: AuthContext, event_id: t.Any | None = None) -> schema.OrderStatistics:
    """Sales figures for one event, or for all events against the global capacity."""
    require_capability(context, Capability.VIEW_ORDERS)
    if event_id is not None:
        try:
            max_tickets = Event.objects.get(pk=event_id).max_tickets
        except Event.DoesNotExist:
            raise NotFoundError(str(_("Event not found or inactive."))) from None
    else:
        max_tickets = int(settings.MAX_TICKETS_GLOBAL)
    orders = TicketOrder.objects.for_event(event_id)
    paid = TicketOrder.Status.PAID
    pending = TicketOrder.Status.PENDING
    totals = orders.aggregate(
        tickets_paid=Sum("ticket_count", filter=Q(status=paid)),
        tickets_reserved=Sum("ticket_count", filter=Q(status=pending)),
        paid_orders=Count("id", filter=Q(status=paid)),
        pending_orders=Count("id", filter=Q(status=pending)),
        revenue_total=Sum("total_price", filter=Q(status=paid)),
    )
    tickets_paid = int(totals["tickets_paid"] or 0)
    tickets_reserved = int(totals["tickets_reserved"] or 0)
    total_participants = (
        Participant.objects.filter(order__in=orders.reserving()).exclude(name="").count()
    )
    return schema.OrderStatistics(
        total_tickets_sold=tickets_paid + tickets_reserved,
        tickets_paid=tickets_paid,
        tickets_reserved=tickets_reserved,
        tickets_available=max_tickets - tickets_paid - tickets_reserved,
        paid_orders=totals["paid_orders"],
        pending_orders=totals["pending_orders"],
        revenue_total=Decimal(totals["revenue_total"] or 0).quantize(Decimal("0.01")),
        total_participants=total_participants,
    )


def set_user_override(
    context: AuthContext, event_id: t.Any, payload: schema.UserOverrideSchema
) -> UserEventOverride | None:
    """Set a user's custom price and limit for an event. Clearing both removes the override."""
    require_capability(context, Capability.CREATE_EVENTS)
    event = get_active_event(event_id)
    user = BallUser.objects.filter(pk=payload.user_id).first()
    if user is None:
        raise NotFoundError(str(_("User not found.")))
    if payload.ticket_price is None and payload.ticket_limit is None:
        remove_user_override(context, event.pk, user.pk)
        return None
    override, _created = UserEventOverride.objects.update_or_create(
        user=user,
        event=event,
        defaults={"ticket_price": payload.ticket_price, "ticket_limit": payload.ticket_limit},
    )
    logger.info(
        "user_override_set",
        event_id=str(event.pk),
        user_id=str(user.pk),
        ticket_price=str(payload.ticket_price),
        ticket_limit=payload.ticket_limit,
    )
    return override


def remove_user_override(context: AuthContext, event_id: t.Any, user_id: t.Any) -> None:
    require_capability(context, Capability.CREATE_EVENTS)
    deleted, _rows = UserEventOverride.objects.filter(event_id=event_id, user_id=user_id).delete()
    if deleted:
        logger.info("user_override_removed", event_id=str(event_id), user_id=str(user_id))


def get_user_event_settings(context: AuthContext, event_id: t.Any, user_id: t.Any) -> schema.UserEventSettings:
    """A user's custom conditions for an event next to the event defaults and what applies in the end."""
    require_capability(context, Capability.VIEW_ORDERS)
    event = get_active_event(event_id)
    user = BallUser.objects.filter(pk=user_id).first()
    if user is None:
        raise NotFoundError(str(_("User not found.")))
    override = get_override(event, user)
    return schema.UserEventSettings(
        user_id=user.pk,
        event_id=event.pk,
        event_name=event.name,
        custom_price=override.ticket_price if override else None,
        custom_limit=override.ticket_limit if override else None,
        default_price=event.ticket_price,
        default_limit=event.max_tickets_per_user,
        effective_price=effective_price(event, override),
        effective_limit=effective_limit(event, override),
    )
