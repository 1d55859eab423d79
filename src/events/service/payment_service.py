"""Bank accounts, payment requests and payment QR codes."""

import random
import typing as t
from decimal import Decimal

import structlog
from django.db import transaction
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from accounts.context import AuthContext, Capability
from events import schema
from events.exceptions import (
    AccessDeniedError,
    BusinessRuleError,
    ConfigurationIntegrityError,
    DocumentRenderingError,
    NotFoundError,
    TicketingError,
)
from events.models import BankAccount, PaymentRequest, TicketOrder
from events.service import notification_service
from events.service.document_service import qr_data_uri
from events.service.event_access import get_active_event, get_event, require_capability
from events.service.order_service import get_order, lock_order
from events.service.payment_allocation import build_epc_payload, percentages_sum_to_total, select_bank_account

logger = structlog.get_logger(__name__)


@transaction.atomic
def configure_bank_accounts(
    context: AuthContext, event_id: t.Any, payload: schema.ConfigureBankAccountsSchema
) -> list[BankAccount]:
    """Replace the event's bank accounts as a whole.

    Raises:
        ConfigurationIntegrityError: if the percentages do not sum to 100 (within 0.01). Nothing is persisted.
    """
    require_capability(context, Capability.CREATE_EVENTS)
    event = get_active_event(event_id, for_update=True)
    percentages = [account.percentage for account in payload.accounts]
    total = sum(percentages, Decimal("0"))
    if not percentages_sum_to_total(percentages):
        raise ConfigurationIntegrityError(
            str(_("The percentages must add up to 100% (currently {total}%).")).format(total=total)
        )
    event.bank_accounts.all().delete()
    accounts = []
    for account in payload.accounts:
        bank_account = BankAccount(event=event, **account.model_dump())
        bank_account.save()
        accounts.append(bank_account)
    logger.info("bank_accounts_configured", event_id=str(event.pk), accounts=len(accounts), operator=context.identity)
    return accounts


def list_bank_accounts(context: AuthContext, event_id: t.Any) -> list[BankAccount]:
    """Accounts of an event, highest percentage first."""
    require_capability(context, Capability.VIEW_ORDERS)
    event = get_active_event(event_id)
    return list(event.bank_accounts.order_by("-percentage", "account_name"))


def list_escrow_agreements(context: AuthContext, event_id: t.Any) -> list[BankAccount]:
    """Accounts of an active event that come with an escrow agreement, by name.

    Buyers see these before ordering, so only the account holder and the document are exposed.
    """
    require_capability(context, Capability.BUY_TICKETS)
    event = get_event(context, event_id)
    return list(event.bank_accounts.exclude(escrow_document_url="").order_by("account_name"))


def _create_payment_request(order: TicketOrder, bank_account: BankAccount, operator: str) -> PaymentRequest:
    now = timezone.now()
    payment_request = PaymentRequest(
        order=order,
        bank_account=bank_account,
        account_name=bank_account.account_name,
        bank_name=bank_account.bank_name,
        iban=bank_account.iban,
        bic=bank_account.bic,
        status=PaymentRequest.Status.SENT,
        sent_at=now,
        created_by=operator,
    )
    payment_request.save()
    logger.info(
        "payment_request_sent",
        order_id=str(order.pk),
        payment_request_id=str(payment_request.pk),
        bank_account_id=str(bank_account.pk),
        operator=operator,
    )
    return payment_request


@transaction.atomic
def _request_payment(order_id: t.Any, bank_account_id: t.Any, operator: str) -> PaymentRequest:
    order = lock_order(order_id)
    if order.status == TicketOrder.Status.PAID:
        raise BusinessRuleError(str(_("Order has already been paid.")))
    if order.status != TicketOrder.Status.PENDING:
        raise BusinessRuleError(str(_("Only pending orders can receive a payment request.")))
    bank_account = BankAccount.objects.filter(pk=bank_account_id, event_id=order.event_id).first()
    if bank_account is None:
        raise NotFoundError(str(_("Bank account not found.")))
    return _create_payment_request(order, bank_account, operator)


def send_payment_request(context: AuthContext, order_id: t.Any, bank_account_id: t.Any) -> schema.PaymentRequestSent:
    """Ask for payment of one order to an explicitly chosen account."""
    require_capability(context, Capability.MANAGE_ORDERS)
    payment_request = _request_payment(order_id, bank_account_id, context.identity)
    notification_sent = notification_service.notify_payment_request(payment_request)
    return schema.PaymentRequestSent(
        payment_request_id=payment_request.pk,
        bank_account_id=payment_request.bank_account_id,
        notification_sent=notification_sent,
    )


def send_bulk_payment_requests(
    context: AuthContext,
    event_id: t.Any,
    order_ids: list[t.Any] | None = None,
    *,
    rng: random.Random | None = None,
) -> schema.BulkPaymentRequestsResult:
    """Send payment requests for every pending order of the event that has none yet.

    Each order gets an account drawn by percentage. A failing order is reported and skipped.
    """
    require_capability(context, Capability.MANAGE_ORDERS)
    event = get_active_event(event_id)
    accounts = list(event.bank_accounts.all())
    if not accounts:
        raise BusinessRuleError(str(_("No bank accounts configured for this event.")))
    orders = TicketOrder.objects.filter(event=event, status=TicketOrder.Status.PENDING).without_payment_request()
    if order_ids:
        orders = orders.filter(pk__in=order_ids)

    sent_count = 0
    errors: list[schema.OrderFailure] = []
    for order_id in list(orders.order_by("created_at").values_list("pk", flat=True)):
        try:
            with transaction.atomic():
                order = lock_order(order_id)
                if order.status != TicketOrder.Status.PENDING or order.payment_requests.exists():
                    continue
                payment_request = _create_payment_request(order, select_bank_account(accounts, rng), context.identity)
        except TicketingError as e:
            errors.append(schema.OrderFailure(order_id=order_id, error=e.message))
            continue
        except Exception as e:
            logger.exception("payment_request_failed", order_id=str(order_id))
            errors.append(schema.OrderFailure(order_id=order_id, error=str(e)))
            continue
        sent_count += 1
        if not notification_service.notify_payment_request(payment_request):
            errors.append(
                schema.OrderFailure(
                    order_id=order_id, error=str(_("Payment request created but the email could not be sent."))
                )
            )
    logger.info("bulk_payment_requests_finished", event_id=str(event.pk), sent_count=sent_count, errors=len(errors))
    return schema.BulkPaymentRequestsResult(sent_count=sent_count, errors=errors)


@transaction.atomic
def mark_payment_request_paid(context: AuthContext, payment_request_id: t.Any) -> PaymentRequest:
    """Flip a payment request and its order to paid."""
    require_capability(context, Capability.MANAGE_ORDERS)
    payment_request = PaymentRequest.objects.select_for_update().filter(pk=payment_request_id).first()
    if payment_request is None:
        raise NotFoundError(str(_("Payment request not found.")))
    order = lock_order(payment_request.order_id)
    now = timezone.now()
    payment_request.status = PaymentRequest.Status.PAID
    payment_request.paid_at = now
    payment_request.save(update_fields=["status", "paid_at", "updated_at"])
    order.status = TicketOrder.Status.PAID
    order.paid_at = order.paid_at or now
    order.save(update_fields=["status", "paid_at", "updated_at"])
    logger.info("order_marked_paid", order_id=str(order.pk), payment_request_id=str(payment_request.pk))
    return payment_request


def get_payment_requests(context: AuthContext, order_id: t.Any) -> list[PaymentRequest]:
    """Payment requests of an order, newest first."""
    order = get_order(context, order_id)
    return list(order.payment_requests.order_by("-created_at"))


def payment_qr_code(context: AuthContext, order_id: t.Any) -> schema.PaymentQrCode:
    """EPC QR code and bank details of the order's current payment request."""
    order = get_order(context, order_id)
    if order.user_id != context.user.pk and not context.has(Capability.MANAGE_ORDERS):
        raise AccessDeniedError()
    payment_request = order.latest_payment_request()
    if payment_request is None or not payment_request.iban:
        raise BusinessRuleError(str(_("No bank details are available for this order yet.")))
    epc_payload = build_epc_payload(
        account_name=payment_request.account_name,
        iban=payment_request.iban,
        bic=payment_request.bic,
        amount=order.total_price,
        reference=order.payment_reference,
    )
    try:
        qr_code = qr_data_uri(epc_payload)
    except DocumentRenderingError:
        logger.exception("payment_qr_failed", order_id=str(order.pk))
        raise
    return schema.PaymentQrCode(
        qr_code=qr_code,
        epc_payload=epc_payload,
        account_name=payment_request.account_name,
        bank_name=payment_request.bank_name,
        iban=payment_request.iban,
        bic=payment_request.bic,
        amount=order.total_price,
        payment_reference=order.payment_reference,
    )
