"""Event, tier, bank account and availability schemas."""

import typing as t
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from ninja import ModelSchema, Schema
from pydantic import Field

from common.schema import ResponseOk, StrippedString
from events.models import BankAccount, Event, TicketTier


class TicketTierSchema(ModelSchema):
    id: UUID

    class Meta:
        model = TicketTier
        fields = ["id", "name", "price", "max_tickets"]


class EventSchema(ModelSchema):
    id: UUID
    tiers: list[TicketTierSchema] = []

    @staticmethod
    def resolve_tiers(obj: Event) -> list[TicketTier]:
        return list(obj.tiers.all())

    class Meta:
        model = Event
        fields = [
            "id",
            "name",
            "year",
            "location",
            "description",
            "visibility",
            "max_tickets",
            "ticket_price",
            "ticket_sale_start_datetime",
            "ticket_sale_end_datetime",
            "max_tickets_per_user",
            "ticket_generation_enabled",
            "start_datetime",
        ]


class EventListResponse(ResponseOk):
    events: list[EventSchema]


class EventDetailResponse(ResponseOk):
    event: EventSchema


class EventPasswordSchema(Schema):
    password: str = Field(..., min_length=1, max_length=128)


class TicketLimits(ResponseOk):
    """What the caller may still buy for an event."""

    user_limit: int
    ticket_price: Decimal
    current_tickets: int
    available_user: int
    available_event: int
    max_tickets_event: int
    event_sold: int
    max_order: int


class BankAccountIn(Schema):
    account_name: StrippedString = Field(..., min_length=1, max_length=70)
    bank_name: StrippedString = ""
    iban: StrippedString = Field(..., min_length=15, max_length=42)
    bic: StrippedString = Field("", max_length=11)
    percentage: Decimal = Field(..., ge=0, le=100, decimal_places=2)
    escrow_document_url: str = ""


class ConfigureBankAccountsSchema(Schema):
    accounts: list[BankAccountIn] = Field(..., min_length=1)


class BankAccountSchema(ModelSchema):
    id: UUID

    class Meta:
        model = BankAccount
        fields = ["id", "account_name", "bank_name", "iban", "bic", "percentage", "escrow_document_url"]


class BankAccountListResponse(ResponseOk):
    bank_accounts: list[BankAccountSchema]


class EscrowAgreementSchema(ModelSchema):
    """Who holds the money and the signed agreement for it. No bank details."""

    id: UUID

    class Meta:
        model = BankAccount
        fields = ["id", "account_name", "escrow_document_url"]


class EscrowAgreementListResponse(ResponseOk):
    escrow_agreements: list[EscrowAgreementSchema]


class UserOverrideSchema(Schema):
    user_id: UUID
    ticket_price: Decimal | None = Field(None, ge=0)
    ticket_limit: int | None = Field(None, ge=0)


class UserOverrideResponse(ResponseOk):
    user_id: UUID
    event_id: UUID
    ticket_price: Decimal | None = None
    ticket_limit: int | None = None
    removed: bool = False


class UserEventSettings(Schema):
    user_id: UUID
    event_id: UUID
    event_name: str
    custom_price: Decimal | None = None
    custom_limit: int | None = None
    default_price: Decimal
    default_limit: int | None = None
    effective_price: Decimal
    effective_limit: int


class UserEventSettingsResponse(ResponseOk):
    settings: UserEventSettings


class OrderStatistics(Schema):
    total_tickets_sold: int
    tickets_paid: int
    tickets_reserved: int
    tickets_available: int
    paid_orders: int
    pending_orders: int
    revenue_total: Decimal
    total_participants: int


class OrderStatisticsResponse(ResponseOk):
    statistics: OrderStatistics
    generated_at: datetime



