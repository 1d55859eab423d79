import typing as t
from decimal import Decimal
from unittest.mock import patch

import orjson
import pytest
from django.core import mail
from django.test.client import Client
from django.urls import reverse

from conftest import OrderFactory
from events.models import BankAccount, Event, PaymentRequest, TicketOrder

pytestmark = pytest.mark.django_db


def send_json(client: Client, method: str, url: str, payload: dict[str, t.Any]) -> t.Any:
    return getattr(client, method)(url, data=orjson.dumps(payload), content_type="application/json")


class TestOverview:
    def test_list_orders_filtered_by_status(
        self, viewer_client: Client, event: Event, make_order: OrderFactory
    ) -> None:
        make_order()
        paid = make_order(status=TicketOrder.Status.PAID)

        response = viewer_client.get(reverse("api:list_orders"), {"event_id": str(event.pk), "status": "paid"})

        assert response.status_code == 200
        assert [order["id"] for order in response.json()["orders"]] == [str(paid.pk)]

    def test_buyers_cannot_list_orders(self, user_client: Client) -> None:
        response = user_client.get(reverse("api:list_orders"))

        assert response.status_code == 403
        assert response.json() == {"success": False, "error": "Access denied."}

    def test_payment_status_board(self, viewer_client: Client, make_order: OrderFactory) -> None:
        order = make_order()
        PaymentRequest.objects.create(order=order, account_name="Max Mustermann", iban="DE89370400440532013000")

        response = viewer_client.get(reverse("api:orders_by_payment_status"), {"payment_status": "sent"})

        assert response.status_code == 200
        (row,) = response.json()["orders"]
        assert row["order_id"] == str(order.pk)
        assert row["payment_request_status"] == "sent"
        assert row["bank_account_name"] == "Max Mustermann"

    def test_statistics(self, viewer_client: Client, event: Event, paid_order: TicketOrder) -> None:
        response = viewer_client.get(reverse("api:order_statistics"), {"event_id": str(event.pk)})

        assert response.status_code == 200
        statistics = response.json()["statistics"]
        assert statistics["tickets_paid"] == 2
        assert statistics["tickets_available"] == 8
        assert Decimal(statistics["revenue_total"]) == Decimal("130.00")
        assert "generated_at" in response.json()

    def test_guest_list_csv(self, viewer_client: Client, event: Event, paid_order: TicketOrder) -> None:
        response = viewer_client.get(reverse("api:export_guest_list", kwargs={"event_id": event.pk}))

        assert response.status_code == 200
        assert response["Content-Type"] == "text/csv; charset=utf-8"
        assert response["Content-Disposition"] == 'attachment; filename="guest_list_Abiball_2026.csv"'
        assert len(response.content.decode().splitlines()) == 3


class TestPaymentReferences:
    def test_quick_mark_paid(self, manager_client: Client, make_order: OrderFactory) -> None:
        order = make_order()
        url = reverse("api:quick_mark_paid")

        response = send_json(manager_client, "post", url, {"payment_reference": " muster001 "})

        assert response.status_code == 200
        assert response.json()["order"]["status"] == "paid"
        order.refresh_from_db()
        assert order.paid_at is not None

    def test_viewers_cannot_mark_paid(self, viewer_client: Client, make_order: OrderFactory) -> None:
        make_order()

        response = send_json(viewer_client, "post", reverse("api:quick_mark_paid"), {"payment_reference": "MUSTER001"})

        assert response.status_code == 403
        assert TicketOrder.objects.get().status == TicketOrder.Status.PENDING

    def test_search_unknown_reference(self, manager_client: Client) -> None:
        url = reverse("api:search_payment_reference")

        response = send_json(manager_client, "post", url, {"payment_reference": "NOPE001"})

        assert response.status_code == 404
        assert response.json()["success"] is False

    def test_payment_error_record(self, manager_client: Client) -> None:
        response = send_json(manager_client, "post", reverse("api:mark_payment_error"), {"payment_reference": "XY99"})

        assert response.status_code == 200
        order = response.json()["order"]
        assert order["status"] == "error"
        assert order["event_id"] is None
        assert order["user_email"] is None


class TestSingleOrder:
    def test_mark_paid_and_unpaid(self, manager_client: Client, make_order: OrderFactory) -> None:
        order = make_order()

        paid = manager_client.post(reverse("api:mark_order_paid", kwargs={"order_id": order.pk}))
        unpaid = manager_client.post(reverse("api:mark_order_unpaid", kwargs={"order_id": order.pk}))

        assert paid.json()["order"]["status"] == "paid"
        assert unpaid.json()["order"]["status"] == "pending"
        assert unpaid.json()["order"]["paid_at"] is None

    def test_update_order(self, manager_client: Client, make_order: OrderFactory) -> None:
        order = make_order(ticket_count=2)
        payload = {
            "ticket_count": 1,
            "total_price": "50.00",
            "payment_reference": "MUSTER001",
            "status": "pending",
            "participants": [{"name": "Anna Schmidt", "birthdate": "2004-05-01"}],
        }

        response = send_json(manager_client, "put", reverse("api:update_order", kwargs={"order_id": order.pk}), payload)

        assert response.status_code == 200, response.content
        data = response.json()["order"]
        assert data["ticket_count"] == 1
        assert Decimal(data["total_price"]) == Decimal("50.00")
        assert [p["name"] for p in data["participants"]] == ["Anna Schmidt"]

    def test_update_with_invalid_status(self, manager_client: Client, make_order: OrderFactory) -> None:
        order = make_order()
        payload = {"ticket_count": 1, "total_price": "65.00", "payment_reference": "MUSTER001", "status": "refunded"}

        response = send_json(manager_client, "put", reverse("api:update_order", kwargs={"order_id": order.pk}), payload)

        assert response.status_code == 400

    def test_delete_order(self, manager_client: Client, make_order: OrderFactory) -> None:
        order = make_order()

        response = manager_client.delete(reverse("api:delete_order", kwargs={"order_id": order.pk}))

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Order deleted."}
        assert not TicketOrder.objects.exists()


class TestPaymentRequests:
    def test_send_payment_request(
        self, manager_client: Client, make_order: OrderFactory, bank_accounts: list[BankAccount]
    ) -> None:
        order = make_order()
        url = reverse("api:send_payment_request", kwargs={"order_id": order.pk})

        response = send_json(manager_client, "post", url, {"bank_account_id": str(bank_accounts[1].pk)})

        assert response.status_code == 200
        data = response.json()
        assert data["bank_account_id"] == str(bank_accounts[1].pk)
        assert data["notification_sent"] is True
        assert len(mail.outbox) == 1

    def test_bulk_payment_requests(
        self, manager_client: Client, event: Event, make_order: OrderFactory, bank_accounts: list[BankAccount]
    ) -> None:
        make_order(), make_order()
        url = reverse("api:send_bulk_payment_requests", kwargs={"event_id": event.pk})

        response = send_json(manager_client, "post", url, {})

        assert response.status_code == 200
        assert response.json() == {"success": True, "sent_count": 2, "errors": []}
        assert set(PaymentRequest.objects.values_list("bank_account__event", flat=True)) == {event.pk}

    def test_mark_payment_request_paid(self, manager_client: Client, make_order: OrderFactory) -> None:
        order = make_order()
        payment_request = PaymentRequest.objects.create(
            order=order, account_name="Max Mustermann", iban="DE89370400440532013000"
        )
        url = reverse("api:mark_payment_request_paid", kwargs={"payment_request_id": payment_request.pk})

        response = manager_client.post(url)

        assert response.status_code == 200
        assert response.json()["message"] == "Payment request marked as paid."
        order.refresh_from_db()
        assert order.status == TicketOrder.Status.PAID


class TestTicketRelease:
    def test_generate_tickets(self, manager_client: Client, make_order: OrderFactory) -> None:
        order = make_order(status=TicketOrder.Status.PAID)

        check = manager_client.get(reverse("api:check_ticket_generation", kwargs={"order_id": order.pk}))
        generated = manager_client.post(reverse("api:generate_tickets", kwargs={"order_id": order.pk}))
        again = manager_client.post(reverse("api:generate_tickets", kwargs={"order_id": order.pk}))

        assert check.json()["can_generate_tickets"] is True
        assert generated.status_code == 200
        assert generated.json()["order"]["tickets_generated"] is True
        assert again.status_code == 400
        assert again.json()["error"] == "Tickets have already been generated for this order."

    def test_bulk_generate_tickets(self, manager_client: Client, event: Event, make_order: OrderFactory) -> None:
        make_order(status=TicketOrder.Status.PAID)

        with patch("events.service.notification_service.send_email.delay", side_effect=ConnectionError):
            response = manager_client.post(reverse("api:bulk_generate_tickets", kwargs={"event_id": event.pk}))

        assert response.status_code == 200
        assert response.json()["generated_count"] == 1
