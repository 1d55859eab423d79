import typing as t

from django.conf import settings
from django.db import models
from django.db.models import Q, Sum
from django.utils.translation import gettext_lazy as _

from common.models import TimeStampedModel

from .event import BankAccount, Event, TicketTier


class TicketOrderQuerySet(models.QuerySet["TicketOrder"]):
    def reserving(self) -> t.Self:
        """Orders that hold capacity: paid ones and those still waiting for payment."""
        return self.filter(status__in=TicketOrder.RESERVING_STATUSES)

    def paid(self) -> t.Self:
        """Paid orders."""
        return self.filter(status=TicketOrder.Status.PAID)

    def for_event(self, event_id: t.Any | None) -> t.Self:
        """Scope to one event; no event means every event."""
        if event_id is None:
            return self
        return self.filter(event_id=event_id)

    def ticket_total(self) -> int:
        """Sum of ticket_count over the queryset."""
        return int(self.aggregate(total=Sum("ticket_count"))["total"] or 0)

    def without_payment_request(self) -> t.Self:
        """Orders that never had a payment request."""
        return self.filter(payment_requests__isnull=True)

    def full(self) -> t.Self:
        """Select everything needed to serialize an order."""
        return self.select_related("user", "event", "tier").prefetch_related("participants", "payment_requests")


class TicketOrder(TimeStampedModel):
    class Status(models.TextChoices):
        PENDING = "pending", _("Pending")
        PAID = "paid", _("Paid")
        CANCELLED = "cancelled", _("Cancelled")
        CANCELLED_BY_USER = "cancelled_by_user", _("Cancelled by customer")
        ERROR = "error", _("Payment error")

    RESERVING_STATUSES = (Status.PAID, Status.PENDING)

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.CASCADE, related_name="ticket_orders"
    )
    event = models.ForeignKey(Event, null=True, blank=True, on_delete=models.PROTECT, related_name="orders")
    tier = models.ForeignKey(TicketTier, null=True, blank=True, on_delete=models.PROTECT, related_name="orders")
    tier_name = models.CharField(max_length=255, blank=True)
    ticket_count = models.PositiveIntegerField(default=0)
    individual_ticket_price = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    total_price = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    payment_reference = models.CharField(max_length=64, db_index=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING, db_index=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    tickets_generated = models.BooleanField(default=False)
    tickets_generated_at = models.DateTimeField(null=True, blank=True)
    tickets_generated_by = models.CharField(max_length=255, blank=True)
    error_reason = models.CharField(max_length=255, blank=True)

    objects = TicketOrderQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        permissions = [
            ("view_orders", "Can view all ticket orders"),
            ("manage_orders", "Can manage ticket orders, payments and check-in"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(status="error") | (Q(user__isnull=False) & Q(event__isnull=False)),
                name="order_has_user_and_event_unless_error",
            ),
            models.CheckConstraint(
                condition=Q(status="paid") | Q(paid_at__isnull=True),
                name="paid_at_only_when_paid",
            ),
            models.UniqueConstraint(
                fields=["payment_reference"],
                condition=~Q(status="error"),
                name="unique_payment_reference_unless_error",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.payment_reference} ({self.status})"

    @property
    def status_label(self) -> str:
        """Human readable status."""
        return str(self.get_status_display())

    @property
    def can_generate_tickets(self) -> bool:
        """Tickets are released once, after payment."""
        return self.status == self.Status.PAID and not self.tickets_generated

    def latest_payment_request(self) -> "PaymentRequest | None":
        """The most recent payment request is the authoritative one."""
        requests = sorted(self.payment_requests.all(), key=lambda pr: pr.created_at, reverse=True)
        return requests[0] if requests else None


class ParticipantQuerySet(models.QuerySet["Participant"]):
    def admitted(self, event_id: t.Any | None = None) -> t.Self:
        """Participants holding a paid ticket, optionally scoped to one event."""
        qs = self.filter(order__status=TicketOrder.Status.PAID)
        if event_id is not None:
            qs = qs.filter(order__event_id=event_id)
        return qs


class Participant(TimeStampedModel):
    order = models.ForeignKey(TicketOrder, on_delete=models.CASCADE, related_name="participants")
    ticket_number = models.PositiveIntegerField()
    name = models.CharField(max_length=255)
    phone = models.CharField(max_length=32, blank=True)
    email = models.EmailField(blank=True)
    birthdate = models.DateField(null=True, blank=True)
    redeemed = models.BooleanField(default=False, db_index=True)
    redeemed_at = models.DateTimeField(null=True, blank=True, db_index=True)
    redeemed_by = models.CharField(max_length=255, blank=True, db_index=True)

    objects = ParticipantQuerySet.as_manager()

    class Meta:
        ordering = ["order", "ticket_number"]
        constraints = [
            models.UniqueConstraint(fields=["order", "ticket_number"], name="unique_ticket_number_per_order"),
        ]

    def __str__(self) -> str:
        return f"{self.name} (#{self.ticket_number})"


class PaymentRequest(TimeStampedModel):
    class Status(models.TextChoices):
        SENT = "sent", _("Sent")
        PAID = "paid", _("Paid")

    order = models.ForeignKey(TicketOrder, on_delete=models.CASCADE, related_name="payment_requests")
    bank_account = models.ForeignKey(
        BankAccount, null=True, blank=True, on_delete=models.SET_NULL, related_name="payment_requests"
    )
    # bank details at sending time, accounts may be reconfigured later
    account_name = models.CharField(max_length=70)
    bank_name = models.CharField(max_length=255, blank=True)
    iban = models.CharField(max_length=42)
    bic = models.CharField(max_length=11, blank=True)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.SENT, db_index=True)
    sent_at = models.DateTimeField(null=True, blank=True)
    paid_at = models.DateTimeField(null=True, blank=True)
    created_by = models.CharField(max_length=255, blank=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.order.payment_reference} -> {self.account_name}"
