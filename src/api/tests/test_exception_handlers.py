"""Every failure leaves the API as ``{"success": false, "error": ...}``."""

from unittest.mock import patch

import pytest
from django.core.exceptions import ValidationError
from django.test.client import Client
from django.urls import reverse

from conftest import OrderFactory
from events.models import TicketOrder

pytestmark = pytest.mark.django_db


def test_unexpected_errors_hide_details(user_client: Client, make_order: OrderFactory) -> None:
    order = make_order()

    with patch("events.service.order_service.get_order", side_effect=RuntimeError("db password is hunter2")):
        response = user_client.get(reverse("api:get_order", kwargs={"order_id": order.pk}))

    assert response.status_code == 500
    assert response.json()["success"] is False
    assert response.json()["error"] == "Internal server error."
    assert "hunter2" not in response.content.decode()


def test_model_validation_errors_are_bad_requests(manager_client: Client, make_order: OrderFactory) -> None:
    order = make_order()
    error = ValidationError({"payment_reference": ["Order with this Payment reference already exists."]})

    with patch("events.service.order_service.mark_order_paid", side_effect=error):
        response = manager_client.post(reverse("api:mark_order_paid", kwargs={"order_id": order.pk}))

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["errors"] == {"payment_reference": ["Order with this Payment reference already exists."]}
    assert TicketOrder.objects.get().status == TicketOrder.Status.PENDING


def test_access_denied_hides_the_reason(user_client: Client) -> None:
    response = user_client.get(reverse("api:order_statistics"))

    assert response.status_code == 403
    assert response.json() == {"success": False, "error": "Access denied."}
