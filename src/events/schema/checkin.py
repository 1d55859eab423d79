"""Check-in, redemption and live dashboard schemas."""

import typing as t
from datetime import date, datetime
from uuid import UUID

from ninja import Schema
from pydantic import Field

from common.schema import ResponseOk, StrippedString

ScanStatus = t.Literal["invalid", "valid", "redeemed", "already_redeemed"]
AgeStatusValue = t.Literal["adult", "minor_16", "minor"]


class TicketQrPayload(Schema):
    """The JSON blob printed as QR code on every ticket."""

    order_id: str
    ticket_number: int
    participant_name: str
    event_name: str
    security_id: str
    verification_hash: str


class ScanSchema(Schema):
    qr_data: str = Field(..., max_length=2048)
    auto_redeem: bool = False


class ScannedTicket(Schema):
    order_id: UUID
    ticket_number: int
    name: str
    phone: str
    email: str
    birthdate: date | None = None
    age_status: AgeStatusValue | None = None
    order_status: str
    payment_reference: str
    user_name: str | None = None
    user_email: str | None = None
    redeemed: bool
    redeemed_at: datetime | None = None
    redeemed_by: str = ""


class ScanResult(Schema):
    """Outcome of a scan.

    ``already_redeemed`` is a successful, informative outcome; ``invalid`` is not.
    """

    success: bool
    status: ScanStatus
    message: str | None = None
    error: str | None = None
    ticket: ScannedTicket | None = None
    redeemed_at: datetime | None = None
    redeemed_by: str | None = None


class RedeemSchema(Schema):
    order_id: UUID
    ticket_number: int = Field(..., ge=1)


class RedeemResult(ResponseOk):
    message: str
    order_id: UUID
    ticket_number: int
    redeemed_at: datetime


class UndoneTicket(Schema):
    order_id: UUID
    ticket_number: int
    name: str


class UndoResult(ResponseOk):
    message: str
    ticket: UndoneTicket


class BirthdateCorrectionSchema(Schema):
    order_id: UUID
    ticket_number: int = Field(..., ge=1)
    new_birthdate: StrippedString
    reason: str = Field("", max_length=1000)


class BirthdateCorrectionResult(ResponseOk):
    message: str
    audit_id: UUID
    old_birthdate: date | None = None
    new_birthdate: date
    age_status: AgeStatusValue


class ArrivalBucket(Schema):
    hour: str
    count: int


class LiveStats(Schema):
    total_tickets: int
    checked_in: int
    not_checked_in: int
    scans_last_minute: int
    arrival_distribution: list[ArrivalBucket]
    last_updated: datetime


class LiveStatsResponse(ResponseOk):
    stats: LiveStats


class PresentAttendee(Schema):
    name: str
    ticket_number: int
    checked_in_at: datetime | None
    reference: str


class MissingAttendee(Schema):
    name: str
    ticket_number: int
    reference: str


class LiveListResponse(ResponseOk):
    present: list[PresentAttendee]
    missing: list[MissingAttendee]
    last_updated: datetime
