"""Events schema package.

All schemas are re-exported here so callers can use ``from events import schema``.
"""

from .checkin import (
    AgeStatusValue,
    ArrivalBucket,
    BirthdateCorrectionResult,
    BirthdateCorrectionSchema,
    LiveListResponse,
    LiveStats,
    LiveStatsResponse,
    MissingAttendee,
    PresentAttendee,
    RedeemResult,
    RedeemSchema,
    ScannedTicket,
    ScanResult,
    ScanSchema,
    ScanStatus,
    TicketQrPayload,
    UndoneTicket,
    UndoResult,
)
from .event import (
    BankAccountIn,
    BankAccountListResponse,
    BankAccountSchema,
    ConfigureBankAccountsSchema,
    EscrowAgreementListResponse,
    EscrowAgreementSchema,
    EventDetailResponse,
    EventListResponse,
    EventPasswordSchema,
    EventSchema,
    OrderStatistics,
    OrderStatisticsResponse,
    TicketLimits,
    TicketTierSchema,
    UserEventSettings,
    UserEventSettingsResponse,
    UserOverrideResponse,
    UserOverrideSchema,
)
from .order import (
    BulkPaymentRequestsIn,
    BulkPaymentRequestsResult,
    BulkTicketGenerationResult,
    CreateOrderSchema,
    OrderCreated,
    OrderFailure,
    OrderListResponse,
    OrderPaymentOverview,
    OrderPaymentOverviewResponse,
    OrderResponse,
    OrderSchema,
    OrderStatus,
    OrderUpdateSchema,
    ParticipantIn,
    ParticipantSchema,
    PaymentQrCode,
    PaymentReferenceSchema,
    PaymentRequestIn,
    PaymentRequestListResponse,
    PaymentRequestSchema,
    PaymentRequestSent,
    PaymentStatusFilter,
    TicketGenerationStatus,
)

__all__ = [
    "AgeStatusValue",
    "ArrivalBucket",
    "BankAccountIn",
    "BankAccountListResponse",
    "BankAccountSchema",
    "BirthdateCorrectionResult",
    "BirthdateCorrectionSchema",
    "BulkPaymentRequestsIn",
    "BulkPaymentRequestsResult",
    "BulkTicketGenerationResult",
    "ConfigureBankAccountsSchema",
    "CreateOrderSchema",
    "EscrowAgreementListResponse",
    "EscrowAgreementSchema",
    "EventDetailResponse",
    "EventListResponse",
    "EventPasswordSchema",
    "EventSchema",
    "LiveListResponse",
    "LiveStats",
    "LiveStatsResponse",
    "MissingAttendee",
    "OrderCreated",
    "OrderFailure",
    "OrderListResponse",
    "OrderPaymentOverview",
    "OrderPaymentOverviewResponse",
    "OrderResponse",
    "OrderSchema",
    "OrderStatistics",
    "OrderStatisticsResponse",
    "OrderStatus",
    "OrderUpdateSchema",
    "ParticipantIn",
    "ParticipantSchema",
    "PaymentQrCode",
    "PaymentReferenceSchema",
    "PaymentRequestIn",
    "PaymentRequestListResponse",
    "PaymentRequestSchema",
    "PaymentRequestSent",
    "PaymentStatusFilter",
    "PresentAttendee",
    "RedeemResult",
    "RedeemSchema",
    "ScanResult",
    "ScanSchema",
    "ScanStatus",
    "ScannedTicket",
    "TicketGenerationStatus",
    "TicketLimits",
    "TicketQrPayload",
    "TicketTierSchema",
    "UndoResult",
    "UndoneTicket",
    "UserEventSettings",
    "UserEventSettingsResponse",
    "UserOverrideResponse",
    "UserOverrideSchema",
]
