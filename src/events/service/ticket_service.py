"""Ticket issuance, QR payloads, scanning and redemption."""

import hashlib
import secrets
import typing as t

import orjson
import structlog
from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from accounts.context import AuthContext, Capability
from events import schema
from events.exceptions import AccessDeniedError, BusinessRuleError, NotFoundError, TicketingError, TicketValidationError
from events.models import BirthdateAuditLog, Event, Participant, TicketOrder
from events.service import document_service, notification_service
from events.service.birthdate import age_badge, age_status, validate_birthdate
from events.service.event_access import require_capability
from events.service.order_service import lock_order

logger = structlog.get_logger(__name__)

REQUIRED_QR_FIELDS = ("order_id", "ticket_number", "security_id", "verification_hash")


# --- Issuance ---


def check_ticket_generation(context: AuthContext, order_id: t.Any) -> schema.TicketGenerationStatus:
    require_capability(context, Capability.MANAGE_ORDERS)
    order = TicketOrder.objects.filter(pk=order_id).first()
    if order is None:
        raise NotFoundError(str(_("Order not found.")))
    return schema.TicketGenerationStatus(
        can_generate_tickets=order.can_generate_tickets,
        order_status=order.status,
        tickets_generated=order.tickets_generated,
    )


def _release_tickets(order: TicketOrder, operator: str) -> None:
    if order.status != TicketOrder.Status.PAID:
        raise BusinessRuleError(str(_("Tickets can only be generated for paid orders.")))
    if order.tickets_generated:
        raise BusinessRuleError(str(_("Tickets have already been generated for this order.")))
    order.tickets_generated = True
    order.tickets_generated_at = timezone.now()
    order.tickets_generated_by = operator
    order.save(update_fields=["tickets_generated", "tickets_generated_at", "tickets_generated_by", "updated_at"])
    logger.info("tickets_generated", order_id=str(order.pk), operator=operator)


def generate_tickets(context: AuthContext, order_id: t.Any) -> TicketOrder:
    """Release the tickets of a paid order. A second call is rejected."""
    require_capability(context, Capability.MANAGE_ORDERS)
    with transaction.atomic():
        order = lock_order(order_id)
        _release_tickets(order, context.identity)
    notification_service.notify_tickets_released(order)
    return order


def bulk_generate_tickets(context: AuthContext, event_id: t.Any) -> schema.BulkTicketGenerationResult:
    """Release tickets of every paid order of the event that has none yet."""
    require_capability(context, Capability.MANAGE_ORDERS)
    if not Event.objects.filter(pk=event_id).exists():
        raise NotFoundError(str(_("Event not found or inactive.")))
    order_ids = list(
        TicketOrder.objects.paid()
        .filter(event_id=event_id, tickets_generated=False)
        .order_by("created_at")
        .values_list("pk", flat=True)
    )
    generated_count = 0
    errors: list[schema.OrderFailure] = []
    for order_id in order_ids:
        try:
            with transaction.atomic():
                order = lock_order(order_id)
                _release_tickets(order, context.identity)
        except TicketingError as e:
            errors.append(schema.OrderFailure(order_id=order_id, error=e.message))
            continue
        generated_count += 1
        notification_service.notify_tickets_released(order)
    logger.info("bulk_tickets_generated", event_id=str(event_id), generated_count=generated_count, errors=len(errors))
    return schema.BulkTicketGenerationResult(generated_count=generated_count, errors=errors)


# --- QR payload ---


def compute_verification_hash(order_id: t.Any, ticket_number: t.Any, security_id: str) -> str:
    """SHA-256 over ``order_id-ticket_number-security_id``.

    The participant and event names travel in the payload but are not covered by the hash.
    """
    return hashlib.sha256(f"{order_id}-{ticket_number}-{security_id}".encode()).hexdigest()


def new_security_id() -> str:
    """A fresh random id per rendered ticket. It is not stored."""
    return secrets.token_hex(8).upper()


def build_ticket_payload(participant: Participant, event: Event) -> schema.TicketQrPayload:
    security_id = new_security_id()
    return schema.TicketQrPayload(
        order_id=str(participant.order_id),
        ticket_number=participant.ticket_number,
        participant_name=participant.name,
        event_name=event.name,
        security_id=security_id,
        verification_hash=compute_verification_hash(participant.order_id, participant.ticket_number, security_id),
    )


def encode_ticket_payload(payload: schema.TicketQrPayload) -> str:
    return orjson.dumps(payload.model_dump()).decode()


# --- Scanning and redemption ---


def _invalid(error: str, ticket: schema.ScannedTicket | None = None) -> schema.ScanResult:
    return schema.ScanResult(success=False, status="invalid", error=error, ticket=ticket)


def _scanned_ticket(participant: Participant) -> schema.ScannedTicket:
    order = participant.order
    reference = order.event.reference_date if order.event_id else timezone.localdate()
    status = age_status(participant.birthdate, reference)
    return schema.ScannedTicket(
        order_id=order.pk,
        ticket_number=participant.ticket_number,
        name=participant.name,
        phone=participant.phone,
        email=participant.email,
        birthdate=participant.birthdate,
        age_status=status.value if status else None,
        order_status=order.status,
        payment_reference=order.payment_reference,
        user_name=order.user.get_display_name() if order.user_id else None,
        user_email=order.user.email if order.user_id else None,
        redeemed=participant.redeemed,
        redeemed_at=participant.redeemed_at,
        redeemed_by=participant.redeemed_by,
    )


def _find_participant(order_id: t.Any, ticket_number: t.Any) -> Participant | None:
    try:
        return (
            Participant.objects.select_related("order", "order__user", "order__event")
            .filter(order_id=order_id, ticket_number=int(ticket_number))
            .first()
        )
    except (TypeError, ValueError, DjangoValidationError):
        return None


def _redeem(participant: Participant, operator: str) -> bool:
    """Atomically flip a participant to redeemed. Returns False if someone else was faster."""
    now = timezone.now()
    updated = Participant.objects.filter(pk=participant.pk, redeemed=False).update(
        redeemed=True, redeemed_at=now, redeemed_by=operator, updated_at=now
    )
    if updated:
        participant.redeemed = True
        participant.redeemed_at = now
        participant.redeemed_by = operator
        logger.info(
            "ticket_redeemed",
            order_id=str(participant.order_id),
            ticket_number=participant.ticket_number,
            operator=operator,
        )
    return bool(updated)


def scan_ticket(context: AuthContext, qr_data: str, *, auto_redeem: bool = False) -> schema.ScanResult:
    """Verify a scanned QR code and optionally redeem it in the same step."""
    require_capability(context, Capability.MANAGE_ORDERS)
    try:
        data = orjson.loads(qr_data)
    except orjson.JSONDecodeError:
        return _invalid(str(_("QR code contains no valid JSON data.")))
    if not isinstance(data, dict) or any(data.get(field) in (None, "") for field in REQUIRED_QR_FIELDS):
        return _invalid(str(_("QR code is missing required ticket data.")))

    expected = compute_verification_hash(data["order_id"], data["ticket_number"], str(data["security_id"]))
    if not secrets.compare_digest(expected, str(data["verification_hash"])):
        logger.warning("ticket_verification_failed", order_id=str(data["order_id"]))
        return _invalid(str(_("Ticket verification failed.")))

    participant = _find_participant(data["order_id"], data["ticket_number"])
    if participant is None:
        return _invalid(str(_("Ticket not found.")))
    if participant.order.status != TicketOrder.Status.PAID:
        return _invalid(str(_("Ticket has not been paid.")), _scanned_ticket(participant))
    if participant.redeemed:
        return schema.ScanResult(
            success=True,
            status="already_redeemed",
            message=str(_("Ticket has already been redeemed.")),
            ticket=_scanned_ticket(participant),
            redeemed_at=participant.redeemed_at,
            redeemed_by=participant.redeemed_by,
        )
    if auto_redeem:
        if not _redeem(participant, context.identity):
            participant.refresh_from_db()
            return schema.ScanResult(
                success=True,
                status="already_redeemed",
                message=str(_("Ticket has already been redeemed.")),
                ticket=_scanned_ticket(participant),
                redeemed_at=participant.redeemed_at,
                redeemed_by=participant.redeemed_by,
            )
        return schema.ScanResult(
            success=True,
            status="redeemed",
            message=str(_("Ticket redeemed.")),
            ticket=_scanned_ticket(participant),
            redeemed_at=participant.redeemed_at,
            redeemed_by=participant.redeemed_by,
        )
    return schema.ScanResult(
        success=True, status="valid", message=str(_("Ticket is valid.")), ticket=_scanned_ticket(participant)
    )


def redeem_ticket(context: AuthContext, order_id: t.Any, ticket_number: int) -> Participant:
    """Redeem without scanning. Redeeming twice is rejected."""
    require_capability(context, Capability.MANAGE_ORDERS)
    participant = _find_participant(order_id, ticket_number)
    if participant is None:
        raise NotFoundError(str(_("Ticket not found.")))
    if participant.order.status != TicketOrder.Status.PAID:
        raise BusinessRuleError(str(_("Ticket has not been paid.")))
    if participant.redeemed or not _redeem(participant, context.identity):
        raise BusinessRuleError(str(_("Ticket has already been redeemed.")))
    return participant


@transaction.atomic
def undo_last_redemption(context: AuthContext) -> Participant:
    """Revert the caller's most recent redemption, whatever ticket it was."""
    require_capability(context, Capability.MANAGE_ORDERS)
    participant = (
        Participant.objects.select_for_update()
        .filter(redeemed=True, redeemed_by=context.identity)
        .order_by("-redeemed_at")
        .first()
    )
    if participant is None:
        raise NotFoundError(str(_("No redeemed tickets found.")))
    participant.redeemed = False
    participant.redeemed_at = None
    participant.redeemed_by = ""
    participant.save(update_fields=["redeemed", "redeemed_at", "redeemed_by", "updated_at"])
    logger.info(
        "ticket_redemption_undone",
        order_id=str(participant.order_id),
        ticket_number=participant.ticket_number,
        operator=context.identity,
    )
    return participant


@transaction.atomic
def correct_birthdate(
    context: AuthContext, payload: schema.BirthdateCorrectionSchema
) -> schema.BirthdateCorrectionResult:
    """Change a participant's birthdate and append the audit record in one transaction."""
    require_capability(context, Capability.MANAGE_ORDERS)
    reason = payload.reason.strip()
    if not reason:
        raise TicketValidationError(str(_("A reason is required.")))
    order = TicketOrder.objects.select_related("event").filter(pk=payload.order_id).first()
    if order is None or order.event is None:
        raise NotFoundError(str(_("Event not found or inactive.")))
    reference = order.event.reference_date
    try:
        new_birthdate = validate_birthdate(payload.new_birthdate, reference)
    except TicketValidationError as e:
        raise TicketValidationError(str(_("Invalid birthdate: {error}")).format(error=e.message)) from e
    participant = (
        Participant.objects.select_for_update().filter(order=order, ticket_number=payload.ticket_number).first()
    )
    if participant is None:
        raise NotFoundError(str(_("Ticket not found.")))
    old_birthdate = participant.birthdate
    participant.birthdate = new_birthdate
    participant.save(update_fields=["birthdate", "updated_at"])
    audit = BirthdateAuditLog.objects.create(
        order_id=order.pk,
        ticket_number=participant.ticket_number,
        participant_name=participant.name,
        old_value=old_birthdate,
        new_value=new_birthdate,
        reason=reason,
        operator=context.identity,
    )
    logger.info(
        "birthdate_corrected",
        order_id=str(order.pk),
        ticket_number=participant.ticket_number,
        audit_id=str(audit.pk),
        operator=context.identity,
    )
    status = age_status(new_birthdate, reference)
    return schema.BirthdateCorrectionResult(
        message=str(_("Birthdate corrected.")),
        audit_id=audit.pk,
        old_birthdate=old_birthdate,
        new_birthdate=new_birthdate,
        age_status=t.cast(schema.AgeStatusValue, str(status)),
    )


# --- Documents ---


def _order_for_download(context: AuthContext, order_id: t.Any, staff_capability: Capability) -> TicketOrder:
    """The order if the caller may download its documents.

    Staff always may. Owners only while user downloads are switched on.
    """
    order = TicketOrder.objects.select_related("user", "event").filter(pk=order_id).first()
    is_staff = context.has(staff_capability)
    if order is None or order.event is None:
        if is_staff:
            raise NotFoundError(str(_("Order not found.")))
        raise AccessDeniedError()
    if not is_staff and order.user_id != context.user.pk:
        raise AccessDeniedError()
    if not is_staff and not settings.ALLOW_USER_TICKET_DOWNLOAD:
        raise BusinessRuleError(str(_("Ticket download is currently not available.")))
    return order


def render_ticket_pdf(context: AuthContext, order_id: t.Any, ticket_number: int) -> tuple[str, bytes]:
    """Render one participant's ticket.

    Returns:
        The download filename and the PDF bytes.
    """
    order = _order_for_download(context, order_id, Capability.MANAGE_ORDERS)
    participant = order.participants.filter(ticket_number=ticket_number).first()
    if participant is None or order.event is None:
        raise NotFoundError(str(_("Ticket not found.")))
    if order.status != TicketOrder.Status.PAID:
        raise BusinessRuleError(str(_("Tickets are only available for paid orders.")))
    if not order.tickets_generated:
        raise BusinessRuleError(str(_("Tickets have not been released yet.")))

    event = order.event
    payload = build_ticket_payload(participant, event)
    pdf = document_service.render_ticket_pdf(
        {
            "event": event,
            "order": order,
            "participant": participant,
            "payment_reference": order.payment_reference,
            "age_badge": age_badge(participant.birthdate, event.reference_date),
            "security_id": payload.security_id,
            "qr_payload": encode_ticket_payload(payload),
        }
    )
    logger.info("ticket_pdf_rendered", order_id=str(order.pk), ticket_number=ticket_number)
    return f"Ticket_{order.payment_reference}_{ticket_number}.pdf", pdf


def render_order_confirmation(context: AuthContext, order_id: t.Any) -> tuple[str, bytes]:
    """Render the confirmation of an order, with bank details while it is unpaid.

    Unlike tickets it needs no payment or release.

    Returns:
        The download filename and the PDF bytes.
    """
    order = _order_for_download(context, order_id, Capability.VIEW_ORDERS)
    is_paid = order.status == TicketOrder.Status.PAID
    pdf = document_service.render_order_confirmation_pdf(
        {
            "event": order.event,
            "order": order,
            "customer": order.user,
            "participants": [participant for participant in order.participants.all() if participant.name],
            "is_paid": is_paid,
            "payment_request": None if is_paid else order.latest_payment_request(),
        }
    )
    logger.info("order_confirmation_rendered", order_id=str(order.pk))
    return f"Order_confirmation_{order.payment_reference}.pdf", pdf


def export_guest_list(context: AuthContext, event_id: t.Any) -> tuple[str, str]:
    """CSV of every participant with a paid ticket, sorted by name."""
    require_capability(context, Capability.VIEW_ORDERS)
    event = Event.objects.filter(pk=event_id).first()
    if event is None:
        raise NotFoundError(str(_("Event not found or inactive.")))
    participants = (
        Participant.objects.admitted(event.pk).select_related("order").order_by("name", "ticket_number")
    )
    rows = (
        {
            "name": participant.name,
            "ticket_number": participant.ticket_number,
            "birthdate": participant.birthdate.isoformat() if participant.birthdate else "",
            "email": participant.email,
            "phone": participant.phone,
            "payment_reference": participant.order.payment_reference,
            "redeemed": "yes" if participant.redeemed else "no",
        }
        for participant in participants
    )
    filename = f"guest_list_{event.name}.csv".replace(" ", "_")
    return filename, document_service.build_guest_list_csv(rows)
