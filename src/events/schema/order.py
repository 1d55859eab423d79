"""Order, participant and payment request schemas."""

import typing as t
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from ninja import Schema
from pydantic import EmailStr, Field, field_validator

from common.schema import ResponseOk, StrippedString

OrderStatus = t.Literal["pending", "paid", "cancelled", "cancelled_by_user", "error"]
PaymentStatusFilter = t.Literal["no_request", "sent", "paid"]


class ParticipantIn(Schema):
    name: StrippedString = ""
    birthdate: StrippedString = ""
    phone: StrippedString = ""
    email: StrippedString = ""


class CreateOrderSchema(Schema):
    event_id: UUID
    tier_id: UUID | t.Literal["default"] | None = None
    ticket_count: int = Field(..., ge=1, le=100)
    participants: list[ParticipantIn] = []

    @field_validator("tier_id", mode="before")
    @classmethod
    def _empty_tier_is_default(cls, value: t.Any) -> t.Any:
        return "default" if value in ("", None) else value

    @property
    def chosen_tier_id(self) -> UUID | None:
        """The concrete tier, or None for the implicit default tier."""
        return self.tier_id if isinstance(self.tier_id, UUID) else None


class OrderCreated(ResponseOk):
    order_id: UUID
    payment_reference: str
    total_price: Decimal
    ticket_count: int
    payment_request_sent: bool = False
    notification_sent: bool = True


class ParticipantSchema(Schema):
    ticket_number: int
    name: str
    phone: str
    email: str
    birthdate: str | None = None
    redeemed: bool
    redeemed_at: datetime | None = None
    redeemed_by: str = ""

    @staticmethod
    def resolve_birthdate(obj: t.Any) -> str | None:
        return obj.birthdate.isoformat() if obj.birthdate else None


class PaymentRequestSchema(Schema):
    id: UUID
    status: str
    created_at: datetime
    sent_at: datetime | None = None
    paid_at: datetime | None = None
    created_by: str
    bank_account_id: UUID | None = None
    bank_account_name: str
    bank_name: str
    iban: str
    bic: str

    @staticmethod
    def resolve_bank_account_name(obj: t.Any) -> str:
        return str(obj.account_name)


class OrderSchema(Schema):
    id: UUID
    event_id: UUID | None = None
    event_name: str | None = None
    tier_id: UUID | None = None
    tier_name: str
    user_name: str | None = None
    user_email: str | None = None
    ticket_count: int
    individual_ticket_price: Decimal
    total_price: Decimal
    payment_reference: str
    status: OrderStatus
    status_label: str
    created_at: datetime
    paid_at: datetime | None = None
    tickets_generated: bool
    tickets_generated_at: datetime | None = None
    error_reason: str = ""
    participants: list[ParticipantSchema] = []
    payment_request: PaymentRequestSchema | None = None

    @staticmethod
    def resolve_event_name(obj: t.Any) -> str | None:
        return obj.event.name if obj.event_id else None

    @staticmethod
    def resolve_user_name(obj: t.Any) -> str | None:
        return obj.user.get_display_name() if obj.user_id else None

    @staticmethod
    def resolve_user_email(obj: t.Any) -> str | None:
        return obj.user.email if obj.user_id else None

    @staticmethod
    def resolve_participants(obj: t.Any) -> list[t.Any]:
        return list(obj.participants.all())

    @staticmethod
    def resolve_payment_request(obj: t.Any) -> t.Any:
        return obj.latest_payment_request()


class OrderResponse(ResponseOk):
    order: OrderSchema


class OrderListResponse(ResponseOk):
    orders: list[OrderSchema]


class OrderPaymentOverview(Schema):
    """One row of the payment status board."""

    order_id: UUID
    user_name: str | None = None
    user_email: str | None = None
    ticket_count: int
    total_price: Decimal
    payment_reference: str
    order_status: OrderStatus
    created_at: datetime
    payment_request_id: UUID | None = None
    payment_request_status: str | None = None
    payment_request_sent_at: datetime | None = None
    bank_account_name: str | None = None


class OrderPaymentOverviewResponse(ResponseOk):
    orders: list[OrderPaymentOverview]


class OrderUpdateSchema(Schema):
    """Full replacement of the admin-editable order fields."""

    ticket_count: int = Field(..., ge=0)
    total_price: Decimal = Field(..., ge=0)
    payment_reference: StrippedString = Field(..., min_length=1, max_length=64)
    status: OrderStatus
    participants: list[ParticipantIn] = []
    user_name: StrippedString | None = None
    user_email: EmailStr | None = None
    user_address: StrippedString | None = None
    user_phone: StrippedString | None = None


class PaymentReferenceSchema(Schema):
    payment_reference: StrippedString = Field(..., min_length=1, max_length=64)


class PaymentRequestIn(Schema):
    bank_account_id: UUID


class PaymentRequestSent(ResponseOk):
    payment_request_id: UUID
    bank_account_id: UUID
    notification_sent: bool = True


class BulkPaymentRequestsIn(Schema):
    order_ids: list[UUID] | None = None


class OrderFailure(Schema):
    order_id: UUID
    error: str


class BulkPaymentRequestsResult(ResponseOk):
    sent_count: int
    errors: list[OrderFailure] = []


class PaymentRequestListResponse(ResponseOk):
    payment_requests: list[PaymentRequestSchema]


class PaymentQrCode(ResponseOk):
    qr_code: str
    epc_payload: str
    account_name: str
    bank_name: str
    iban: str
    bic: str
    amount: Decimal
    payment_reference: str


class TicketGenerationStatus(ResponseOk):
    can_generate_tickets: bool
    order_status: OrderStatus
    tickets_generated: bool


class BulkTicketGenerationResult(ResponseOk):
    generated_count: int
    errors: list[OrderFailure] = []
