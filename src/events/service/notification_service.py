"""Best-effort email notifications for the order lifecycle.

Notifications are sent after the state change has been committed. A failure never rolls
anything back: it is logged and kept in the email log with ``status=failed``.
"""

import typing as t

import structlog
from django.conf import settings
from django.template.loader import render_to_string
from django.utils.translation import gettext_lazy as _

from common.tasks import record_failed_email, send_email
from events.models import PaymentRequest, TicketOrder
from events.service.document_service import qr_data_uri
from events.service.payment_allocation import build_epc_payload

logger = structlog.get_logger(__name__)


def _dispatch(*, to: str, subject: str, template: str, context: dict[str, t.Any], **log_kw: t.Any) -> bool:
    """Render and enqueue one email. Returns False if anything went wrong."""
    body = ""
    try:
        body = render_to_string(f"events/email/{template}.txt", context)
        html_body = render_to_string(f"events/email/{template}.html", context)
        send_email.delay(to=to, subject=subject, body=body, html_body=html_body)
    except Exception as e:
        logger.warning("notification_failed", template=template, exc_info=True, **log_kw)
        record_failed_email(to=to, subject=subject, body=body, error=repr(e))
        return False
    logger.info("notification_sent", template=template, **log_kw)
    return True


def _base_context(order: TicketOrder) -> dict[str, t.Any]:
    return {
        "order": order,
        "event": order.event,
        "user": order.user,
        "participants": list(order.participants.all()),
        "site_name": settings.SITE_NAME,
        "frontend_url": settings.FRONTEND_BASE_URL,
    }


def notify_order_received(order: TicketOrder) -> bool:
    """Confirm the reservation. Payment details follow with the payment request."""
    subject = str(_("Your order {reference} for {event}")).format(
        reference=order.payment_reference, event=order.event.name
    )
    return _dispatch(
        to=order.user.email,
        subject=subject,
        template="order_received",
        context=_base_context(order),
        order_id=str(order.pk),
    )


def notify_payment_request(payment_request: PaymentRequest) -> bool:
    """Send bank details, amount, reference and an EPC QR code."""
    order = payment_request.order
    subject = str(_("Payment details for order {reference}")).format(reference=order.payment_reference)
    context = _base_context(order)
    try:
        epc_payload = build_epc_payload(
            account_name=payment_request.account_name,
            iban=payment_request.iban,
            bic=payment_request.bic,
            amount=order.total_price,
            reference=order.payment_reference,
        )
        context["qr_code"] = qr_data_uri(epc_payload)
    except Exception:
        logger.warning("payment_qr_failed", order_id=str(order.pk), exc_info=True)
        context["qr_code"] = None
    context["payment_request"] = payment_request
    return _dispatch(
        to=order.user.email,
        subject=subject,
        template="payment_request",
        context=context,
        order_id=str(order.pk),
        payment_request_id=str(payment_request.pk),
    )


def notify_tickets_released(order: TicketOrder) -> bool:
    subject = str(_("Your tickets for {event} are ready")).format(event=order.event.name)
    return _dispatch(
        to=order.user.email,
        subject=subject,
        template="tickets_released",
        context=_base_context(order),
        order_id=str(order.pk),
    )
