from uuid import UUID

from django.http import HttpResponse
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from ninja_extra import api_controller, route

from accounts.context import Capability
from common.authentication import I18nJWTAuth
from common.controllers import UserAwareController
from common.schema import ResponseMessage
from common.throttling import UserDefaultThrottle, WriteThrottle
from events import schema
from events.service import order_service, payment_service, ticket_service

from .permissions import CapabilityPermission


@api_controller(
    "/order-admin",
    auth=I18nJWTAuth(),
    permissions=[CapabilityPermission(Capability.VIEW_ORDERS)],
    tags=["Order Admin"],
    throttle=WriteThrottle(),
)
class OrderAdminController(UserAwareController):
    """Order, payment and ticket release management."""

    # ---- Overview ----

    @route.get("/orders", url_name="list_orders", response=schema.OrderListResponse, throttle=UserDefaultThrottle())
    def list_orders(self, event_id: UUID | None = None, status: schema.OrderStatus | None = None) -> dict[str, object]:
        """List orders, newest first, optionally filtered by event and status."""
        return {"orders": order_service.list_orders(self.auth_context(), event_id, status)}

    @route.get(
        "/payment-status",
        url_name="orders_by_payment_status",
        response=schema.OrderPaymentOverviewResponse,
        throttle=UserDefaultThrottle(),
    )
    def orders_by_payment_status(
        self, event_id: UUID | None = None, payment_status: schema.PaymentStatusFilter | None = None
    ) -> dict[str, object]:
        """Orders grouped by payment progress: no request yet, request sent, or paid."""
        return {"orders": order_service.orders_by_payment_status(self.auth_context(), event_id, payment_status)}

    @route.get(
        "/statistics",
        url_name="order_statistics",
        response=schema.OrderStatisticsResponse,
        throttle=UserDefaultThrottle(),
    )
    def statistics(self, event_id: UUID | None = None) -> dict[str, object]:
        """Sales figures for one event, or for all events when no event is given."""
        return {
            "statistics": order_service.order_statistics(self.auth_context(), event_id),
            "generated_at": timezone.now(),
        }

    @route.get(
        "/events/{event_id}/guest-list.csv",
        url_name="export_guest_list",
        throttle=UserDefaultThrottle(),
    )
    def export_guest_list(self, event_id: UUID):
        """Everyone holding a paid ticket, sorted by name."""
        filename, content = ticket_service.export_guest_list(self.auth_context(), event_id)
        response = HttpResponse(content, content_type="text/csv; charset=utf-8")
        response["Content-Disposition"] = f'attachment; filename="{filename}"'
        return response

    # ---- Payment references ----

    @route.post(
        "/search-reference",
        url_name="search_payment_reference",
        response=schema.OrderResponse,
        permissions=[CapabilityPermission(Capability.MANAGE_ORDERS)],
    )
    def search_payment_reference(self, payload: schema.PaymentReferenceSchema) -> dict[str, object]:
        """Find the order for a bank transfer's reference. Case and surrounding blanks are ignored."""
        return {"order": order_service.search_payment_reference(self.auth_context(), payload.payment_reference)}

    @route.post(
        "/quick-mark-paid",
        url_name="quick_mark_paid",
        response=schema.OrderResponse,
        permissions=[CapabilityPermission(Capability.MANAGE_ORDERS)],
    )
    def quick_mark_paid(self, payload: schema.PaymentReferenceSchema) -> dict[str, object]:
        """Mark the order matching a payment reference as paid."""
        order = order_service.quick_mark_paid(self.auth_context(), payload.payment_reference)
        return {"order": order_service.get_order(self.auth_context(), order.pk)}

    @route.post(
        "/payment-errors",
        url_name="mark_payment_error",
        response=schema.OrderResponse,
        permissions=[CapabilityPermission(Capability.MANAGE_ORDERS)],
    )
    def mark_payment_error(self, payload: schema.PaymentReferenceSchema) -> dict[str, object]:
        """Record an incoming payment whose reference matches no order."""
        record = order_service.record_payment_error(self.auth_context(), payload.payment_reference)
        return {"order": order_service.get_order(self.auth_context(), record.pk)}

    # ---- Single order ----

    @route.post(
        "/orders/{order_id}/mark-paid",
        url_name="mark_order_paid",
        response=schema.OrderResponse,
        permissions=[CapabilityPermission(Capability.MANAGE_ORDERS)],
    )
    def mark_paid(self, order_id: UUID) -> dict[str, object]:
        """Mark an order as paid. The current payment request is marked paid as well."""
        order_service.mark_order_paid(self.auth_context(), order_id)
        return {"order": order_service.get_order(self.auth_context(), order_id)}

    @route.post(
        "/orders/{order_id}/mark-unpaid",
        url_name="mark_order_unpaid",
        response=schema.OrderResponse,
        permissions=[CapabilityPermission(Capability.MANAGE_ORDERS)],
    )
    def mark_unpaid(self, order_id: UUID) -> dict[str, object]:
        """Reset an order to pending."""
        order_service.mark_order_unpaid(self.auth_context(), order_id)
        return {"order": order_service.get_order(self.auth_context(), order_id)}

    @route.put(
        "/orders/{order_id}",
        url_name="update_order",
        response=schema.OrderResponse,
        permissions=[CapabilityPermission(Capability.MANAGE_ORDERS)],
    )
    def update_order(self, order_id: UUID, payload: schema.OrderUpdateSchema) -> dict[str, object]:
        """Replace the editable fields of an order.

        A non-empty participant list replaces all participants. Contact fields update the ordering user.
        """
        return {"order": order_service.update_order(self.auth_context(), order_id, payload)}

    @route.delete(
        "/orders/{order_id}",
        url_name="delete_order",
        response=ResponseMessage,
        permissions=[CapabilityPermission(Capability.MANAGE_ORDERS)],
    )
    def delete_order(self, order_id: UUID) -> ResponseMessage:
        """Delete an order with its participants."""
        order_service.delete_order(self.auth_context(), order_id)
        return ResponseMessage(message=str(_("Order deleted.")))

    # ---- Payment requests ----

    @route.post(
        "/orders/{order_id}/payment-request",
        url_name="send_payment_request",
        response=schema.PaymentRequestSent,
        permissions=[CapabilityPermission(Capability.MANAGE_ORDERS)],
    )
    def send_payment_request(self, order_id: UUID, payload: schema.PaymentRequestIn) -> schema.PaymentRequestSent:
        """Email the bank details of the chosen account to the buyer."""
        return payment_service.send_payment_request(self.auth_context(), order_id, payload.bank_account_id)

    @route.post(
        "/events/{event_id}/payment-requests",
        url_name="send_bulk_payment_requests",
        response=schema.BulkPaymentRequestsResult,
        permissions=[CapabilityPermission(Capability.MANAGE_ORDERS)],
    )
    def send_bulk_payment_requests(
        self, event_id: UUID, payload: schema.BulkPaymentRequestsIn
    ) -> schema.BulkPaymentRequestsResult:
        """Send payment requests to every pending order of the event that has none yet.

        Accounts are assigned at random, weighted by their configured percentage.
        """
        return payment_service.send_bulk_payment_requests(self.auth_context(), event_id, payload.order_ids)

    @route.post(
        "/payment-requests/{payment_request_id}/mark-paid",
        url_name="mark_payment_request_paid",
        response=ResponseMessage,
        permissions=[CapabilityPermission(Capability.MANAGE_ORDERS)],
    )
    def mark_payment_request_paid(self, payment_request_id: UUID) -> ResponseMessage:
        """Mark a payment request and its order as paid."""
        payment_service.mark_payment_request_paid(self.auth_context(), payment_request_id)
        return ResponseMessage(message=str(_("Payment request marked as paid.")))

    # ---- Ticket release ----

    @route.get(
        "/orders/{order_id}/ticket-generation",
        url_name="check_ticket_generation",
        response=schema.TicketGenerationStatus,
        permissions=[CapabilityPermission(Capability.MANAGE_ORDERS)],
        throttle=UserDefaultThrottle(),
    )
    def check_ticket_generation(self, order_id: UUID) -> schema.TicketGenerationStatus:
        """Whether the tickets of an order can be released."""
        return ticket_service.check_ticket_generation(self.auth_context(), order_id)

    @route.post(
        "/orders/{order_id}/generate-tickets",
        url_name="generate_tickets",
        response=schema.OrderResponse,
        permissions=[CapabilityPermission(Capability.MANAGE_ORDERS)],
    )
    def generate_tickets(self, order_id: UUID) -> dict[str, object]:
        """Release the tickets of a paid order. Only possible once."""
        ticket_service.generate_tickets(self.auth_context(), order_id)
        return {"order": order_service.get_order(self.auth_context(), order_id)}

    @route.post(
        "/events/{event_id}/generate-tickets",
        url_name="bulk_generate_tickets",
        response=schema.BulkTicketGenerationResult,
        permissions=[CapabilityPermission(Capability.MANAGE_ORDERS)],
    )
    def bulk_generate_tickets(self, event_id: UUID) -> schema.BulkTicketGenerationResult:
        """Release tickets for every paid order of the event that has none yet."""
        return ticket_service.bulk_generate_tickets(self.auth_context(), event_id)
