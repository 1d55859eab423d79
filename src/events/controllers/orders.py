from uuid import UUID

from django.http import HttpResponse
from ninja_extra import api_controller, route

from common.authentication import I18nJWTAuth
from common.controllers import UserAwareController
from common.throttling import UserDefaultThrottle, WriteThrottle
from events import schema
from events.service import order_service, payment_service, ticket_service


@api_controller("/orders", auth=I18nJWTAuth(), tags=["Orders"], throttle=UserDefaultThrottle())
class OrderController(UserAwareController):
    @route.post("/", url_name="create_order", response=schema.OrderCreated, throttle=WriteThrottle())
    def create_order(self, payload: schema.CreateOrderSchema) -> schema.OrderCreated:
        """Reserve tickets for an event.

        The order starts as pending and holds capacity until it is paid or cancelled.
        Bank details are sent separately with the payment request.
        """
        return order_service.create_order(self.auth_context(), payload)

    @route.get("/mine", url_name="my_orders", response=schema.OrderListResponse)
    def my_orders(self, event_id: UUID | None = None) -> dict[str, object]:
        """List the caller's orders with participants and current bank details."""
        return {"orders": order_service.list_my_orders(self.auth_context(), event_id)}

    @route.get("/{order_id}", url_name="get_order", response=schema.OrderResponse)
    def get_order(self, order_id: UUID) -> dict[str, object]:
        """Get one order. Owners see their own orders, order viewers any."""
        return {"order": order_service.get_order(self.auth_context(), order_id)}

    @route.get(
        "/{order_id}/payment-requests",
        url_name="order_payment_requests",
        response=schema.PaymentRequestListResponse,
    )
    def payment_requests(self, order_id: UUID) -> dict[str, object]:
        """Payment requests of an order, newest first."""
        return {"payment_requests": payment_service.get_payment_requests(self.auth_context(), order_id)}

    @route.get("/{order_id}/payment-qr", url_name="payment_qr_code", response=schema.PaymentQrCode)
    def payment_qr_code(self, order_id: UUID) -> schema.PaymentQrCode:
        """EPC QR code for banking apps, with the bank details of the current payment request."""
        return payment_service.payment_qr_code(self.auth_context(), order_id)

    @route.get("/{order_id}/tickets/{ticket_number}/pdf", url_name="download_ticket")
    def download_ticket(self, order_id: UUID, ticket_number: int):
        """Download one participant's ticket as PDF.

        Available once the order is paid and its tickets were released.
        """
        filename, pdf = ticket_service.render_ticket_pdf(self.auth_context(), order_id, ticket_number)
        response = HttpResponse(pdf, content_type="application/pdf")
        response["Content-Disposition"] = f'attachment; filename="{filename}"'
        return response

    @route.get("/{order_id}/confirmation-pdf", url_name="download_order_confirmation")
    def download_order_confirmation(self, order_id: UUID):
        """Download the order confirmation as PDF, with bank details while the order is unpaid."""
        filename, pdf = ticket_service.render_order_confirmation(self.auth_context(), order_id)
        response = HttpResponse(pdf, content_type="application/pdf")
        response["Content-Disposition"] = f'attachment; filename="{filename}"'
        return response
