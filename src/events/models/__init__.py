from .audit import BirthdateAuditLog, ImmutableRecordError
from .event import DEFAULT_TIER_NAME, BankAccount, Event, TicketTier, UserEventOverride
from .order import Participant, PaymentRequest, TicketOrder

__all__ = [
    "DEFAULT_TIER_NAME",
    "BankAccount",
    "BirthdateAuditLog",
    "Event",
    "ImmutableRecordError",
    "Participant",
    "PaymentRequest",
    "TicketOrder",
    "TicketTier",
    "UserEventOverride",
]
