"""Tests for ticket release, QR verification, redemption and ticket documents."""

import typing as t
import uuid
from datetime import date
from unittest.mock import patch

import orjson
import pytest
from django.core import mail

from accounts.context import AuthContext, build_auth_context
from conftest import ADULT_BIRTHDATE, BallUserFactory, OrderFactory, grant
from events import schema
from events.exceptions import AccessDeniedError, BusinessRuleError, NotFoundError, TicketValidationError
from events.models import BirthdateAuditLog, Event, Participant, TicketOrder
from events.service import ticket_service

pytestmark = pytest.mark.django_db


def qr_for(participant: Participant) -> str:
    payload = ticket_service.build_ticket_payload(participant, participant.order.event)
    return ticket_service.encode_ticket_payload(payload)


@pytest.fixture
def ticket(paid_order: TicketOrder) -> Participant:
    return paid_order.participants.get(ticket_number=1)


class TestTicketGeneration:
    def test_generates_once_and_notifies(self, manager_context: AuthContext, make_order: OrderFactory) -> None:
        order = make_order(status=TicketOrder.Status.PAID)
        assert ticket_service.check_ticket_generation(manager_context, order.pk).can_generate_tickets is True

        ticket_service.generate_tickets(manager_context, order.pk)

        order.refresh_from_db()
        assert order.tickets_generated is True
        assert order.tickets_generated_by == manager_context.identity
        assert len(mail.outbox) == 1
        status = ticket_service.check_ticket_generation(manager_context, order.pk)
        assert status.can_generate_tickets is False
        with pytest.raises(BusinessRuleError, match="already been generated"):
            ticket_service.generate_tickets(manager_context, order.pk)

    def test_pending_orders_get_no_tickets(self, manager_context: AuthContext, make_order: OrderFactory) -> None:
        order = make_order()

        with pytest.raises(BusinessRuleError, match="only be generated for paid orders"):
            ticket_service.generate_tickets(manager_context, order.pk)

    def test_bulk_generation_skips_released_and_unpaid_orders(
        self, event: Event, manager_context: AuthContext, make_order: OrderFactory, paid_order: TicketOrder
    ) -> None:
        first = make_order(status=TicketOrder.Status.PAID)
        second = make_order(status=TicketOrder.Status.PAID)
        pending = make_order()

        result = ticket_service.bulk_generate_tickets(manager_context, event.pk)

        assert result.generated_count == 2
        assert result.errors == []
        assert set(TicketOrder.objects.filter(tickets_generated=True).values_list("pk", flat=True)) == {
            first.pk,
            second.pk,
            paid_order.pk,
        }
        pending.refresh_from_db()
        assert pending.tickets_generated is False

    def test_requires_manage_orders(self, viewer_context: AuthContext, paid_order: TicketOrder) -> None:
        with pytest.raises(AccessDeniedError):
            ticket_service.check_ticket_generation(viewer_context, paid_order.pk)


class TestVerificationHash:
    def test_hash_covers_order_ticket_and_security_id(self) -> None:
        order_id = uuid.UUID("2f1b6c4e-7d0a-4c33-9a51-0b8e1f6d2a10")

        first = ticket_service.compute_verification_hash(order_id, 1, "A1B2C3D4E5F60718")

        assert len(first) == 64
        assert first == ticket_service.compute_verification_hash(str(order_id), "1", "A1B2C3D4E5F60718")
        assert first != ticket_service.compute_verification_hash(order_id, 2, "A1B2C3D4E5F60718")

    def test_every_payload_gets_a_fresh_security_id(self, ticket: Participant) -> None:
        first = ticket_service.build_ticket_payload(ticket, ticket.order.event)
        second = ticket_service.build_ticket_payload(ticket, ticket.order.event)

        assert first.security_id != second.security_id
        assert first.participant_name == "Guest 1 of muster"
        assert first.event_name == "Abiball 2026"


class TestScanTicket:
    def test_valid_ticket(self, manager_context: AuthContext, ticket: Participant) -> None:
        result = ticket_service.scan_ticket(manager_context, qr_for(ticket))

        assert result.success is True
        assert result.status == "valid"
        assert result.ticket is not None
        assert result.ticket.name == "Guest 1 of muster"
        assert result.ticket.age_status == "adult"
        ticket.refresh_from_db()
        assert ticket.redeemed is False

    @pytest.mark.parametrize(
        "qr_data,error",
        [
            ("not json", "no valid JSON"),
            ('{"order_id": "abc", "ticket_number": 1}', "missing required ticket data"),
            ("[1, 2, 3]", "missing required ticket data"),
        ],
    )
    def test_malformed_qr_codes(self, manager_context: AuthContext, qr_data: str, error: str) -> None:
        result = ticket_service.scan_ticket(manager_context, qr_data)

        assert result.success is False
        assert result.status == "invalid"
        assert result.error is not None
        assert error in result.error

    def test_forged_hash_is_rejected(self, manager_context: AuthContext, ticket: Participant) -> None:
        data = orjson.loads(qr_for(ticket))
        data["ticket_number"] = 2

        result = ticket_service.scan_ticket(manager_context, orjson.dumps(data).decode())

        assert result.status == "invalid"
        assert result.error == "Ticket verification failed."

    def test_participant_name_is_not_covered_by_the_hash(
        self, manager_context: AuthContext, ticket: Participant
    ) -> None:
        data = orjson.loads(qr_for(ticket))
        data["participant_name"] = "Someone Else"

        result = ticket_service.scan_ticket(manager_context, orjson.dumps(data).decode())

        assert result.status == "valid"
        assert result.ticket is not None
        assert result.ticket.name == "Guest 1 of muster"

    def test_unknown_ticket(self, manager_context: AuthContext) -> None:
        order_id = str(uuid.uuid4())
        payload = {
            "order_id": order_id,
            "ticket_number": 1,
            "participant_name": "Nobody",
            "event_name": "Abiball 2026",
            "security_id": "0011223344556677",
            "verification_hash": ticket_service.compute_verification_hash(order_id, 1, "0011223344556677"),
        }

        result = ticket_service.scan_ticket(manager_context, orjson.dumps(payload).decode())

        assert result.status == "invalid"
        assert result.error == "Ticket not found."

    def test_unpaid_ticket(self, manager_context: AuthContext, make_order: OrderFactory) -> None:
        participant = make_order().participants.get()

        result = ticket_service.scan_ticket(manager_context, qr_for(participant))

        assert result.status == "invalid"
        assert result.error == "Ticket has not been paid."
        assert result.ticket is not None

    def test_auto_redeem_then_rescan(self, manager_context: AuthContext, ticket: Participant) -> None:
        qr_data = qr_for(ticket)

        redeemed = ticket_service.scan_ticket(manager_context, qr_data, auto_redeem=True)
        again = ticket_service.scan_ticket(manager_context, qr_data, auto_redeem=True)

        assert redeemed.status == "redeemed"
        assert redeemed.redeemed_by == manager_context.identity
        assert again.success is True
        assert again.status == "already_redeemed"
        assert again.redeemed_at == redeemed.redeemed_at
        ticket.refresh_from_db()
        assert ticket.redeemed is True
        assert ticket.redeemed_at == redeemed.redeemed_at

    def test_scanning_requires_manage_orders(self, viewer_context: AuthContext, ticket: Participant) -> None:
        with pytest.raises(AccessDeniedError):
            ticket_service.scan_ticket(viewer_context, qr_for(ticket))


class TestRedemption:
    def test_redeem_twice_is_rejected(self, manager_context: AuthContext, ticket: Participant) -> None:
        participant = ticket_service.redeem_ticket(manager_context, ticket.order_id, 1)

        assert participant.redeemed is True
        with pytest.raises(BusinessRuleError, match="already been redeemed"):
            ticket_service.redeem_ticket(manager_context, ticket.order_id, 1)

    def test_redeem_unknown_ticket(self, manager_context: AuthContext, paid_order: TicketOrder) -> None:
        with pytest.raises(NotFoundError):
            ticket_service.redeem_ticket(manager_context, paid_order.pk, 5)

    def test_undo_restores_a_valid_ticket(self, manager_context: AuthContext, paid_order: TicketOrder) -> None:
        ticket_service.redeem_ticket(manager_context, paid_order.pk, 1)
        ticket_service.redeem_ticket(manager_context, paid_order.pk, 2)

        undone = ticket_service.undo_last_redemption(manager_context)

        assert undone.ticket_number == 2
        second = paid_order.participants.get(ticket_number=2)
        assert second.redeemed is False
        assert second.redeemed_at is None
        assert ticket_service.scan_ticket(manager_context, qr_for(second)).status == "valid"
        assert ticket_service.redeem_ticket(manager_context, paid_order.pk, 2).redeemed is True

    def test_undo_only_touches_own_redemptions(
        self, manager_context: AuthContext, ball_user_factory: BallUserFactory, paid_order: TicketOrder
    ) -> None:
        colleague = build_auth_context(grant(ball_user_factory(username="door2"), "manage_orders"))
        ticket_service.redeem_ticket(colleague, paid_order.pk, 1)

        with pytest.raises(NotFoundError, match="No redeemed tickets found."):
            ticket_service.undo_last_redemption(manager_context)

        assert paid_order.participants.get(ticket_number=1).redeemed is True


class TestBirthdateCorrection:
    def test_correction_writes_one_audit_record(self, manager_context: AuthContext, ticket: Participant) -> None:
        payload = schema.BirthdateCorrectionSchema(
            order_id=ticket.order_id, ticket_number=1, new_birthdate="15.03.2001", reason="ID checked at the door"
        )

        result = ticket_service.correct_birthdate(manager_context, payload)

        ticket.refresh_from_db()
        assert ticket.birthdate == date(2001, 3, 15)
        assert result.old_birthdate == ADULT_BIRTHDATE
        assert result.age_status == "adult"
        audit = BirthdateAuditLog.objects.get()
        assert audit.pk == result.audit_id
        assert audit.order_id == ticket.order_id
        assert audit.old_value == ADULT_BIRTHDATE
        assert audit.new_value == date(2001, 3, 15)
        assert audit.operator == manager_context.identity

    def test_reason_is_required(self, manager_context: AuthContext, ticket: Participant) -> None:
        payload = schema.BirthdateCorrectionSchema(
            order_id=ticket.order_id, ticket_number=1, new_birthdate="2001-03-15", reason="   "
        )

        with pytest.raises(TicketValidationError, match="A reason is required."):
            ticket_service.correct_birthdate(manager_context, payload)

        assert not BirthdateAuditLog.objects.exists()

    def test_invalid_dates_change_nothing(self, manager_context: AuthContext, ticket: Participant) -> None:
        payload = schema.BirthdateCorrectionSchema(
            order_id=ticket.order_id, ticket_number=1, new_birthdate="31.02.2001", reason="typo"
        )

        with pytest.raises(TicketValidationError, match="Invalid birthdate"):
            ticket_service.correct_birthdate(manager_context, payload)

        ticket.refresh_from_db()
        assert ticket.birthdate == ADULT_BIRTHDATE
        assert not BirthdateAuditLog.objects.exists()


class TestTicketPdf:
    def test_manager_downloads_any_ticket(self, manager_context: AuthContext, paid_order: TicketOrder) -> None:
        with patch("events.service.document_service.html_to_pdf", return_value=b"%PDF-1.7") as html_to_pdf:
            filename, pdf = ticket_service.render_ticket_pdf(manager_context, paid_order.pk, 2)

        assert filename == "Ticket_MUSTER001_2.pdf"
        assert pdf == b"%PDF-1.7"
        html = html_to_pdf.call_args.args[0]
        assert "Guest 2 of muster" in html
        assert "MUSTER001" in html

    def test_owner_download_is_switched_off_by_default(
        self, user_context: AuthContext, paid_order: TicketOrder
    ) -> None:
        with pytest.raises(BusinessRuleError, match="currently not available"):
            ticket_service.render_ticket_pdf(user_context, paid_order.pk, 1)

    def test_owner_download_when_enabled(
        self, settings: t.Any, user_context: AuthContext, paid_order: TicketOrder
    ) -> None:
        settings.ALLOW_USER_TICKET_DOWNLOAD = True

        with patch("events.service.document_service.html_to_pdf", return_value=b"%PDF-1.7"):
            filename, _pdf = ticket_service.render_ticket_pdf(user_context, paid_order.pk, 1)

        assert filename == "Ticket_MUSTER001_1.pdf"

    def test_other_users_are_denied(self, settings: t.Any, other_context: AuthContext, paid_order: TicketOrder) -> None:
        settings.ALLOW_USER_TICKET_DOWNLOAD = True

        with pytest.raises(AccessDeniedError):
            ticket_service.render_ticket_pdf(other_context, paid_order.pk, 1)

    def test_unreleased_tickets(self, manager_context: AuthContext, make_order: OrderFactory) -> None:
        order = make_order(status=TicketOrder.Status.PAID)

        with pytest.raises(BusinessRuleError, match="not been released"):
            ticket_service.render_ticket_pdf(manager_context, order.pk, 1)


def test_guest_list_contains_paid_participants_only(
    event: Event, viewer_context: AuthContext, paid_order: TicketOrder, make_order: OrderFactory
) -> None:
    make_order()

    filename, content = ticket_service.export_guest_list(viewer_context, event.pk)

    lines = content.splitlines()
    assert filename == "guest_list_Abiball_2026.csv"
    assert lines[0] == "name,ticket_number,birthdate,email,phone,payment_reference,redeemed"
    assert lines[1:] == [
        "Guest 1 of muster,1,2000-01-15,guest1@user.test,,MUSTER001,no",
        "Guest 2 of muster,2,2000-01-15,guest2@user.test,,MUSTER001,no",
    ]
