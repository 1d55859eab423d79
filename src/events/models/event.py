import typing as t
from datetime import date
from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from common.models import TimeStampedModel

if t.TYPE_CHECKING:
    from accounts.context import AuthContext

DEFAULT_TIER_NAME = "Standard"


class EventQuerySet(models.QuerySet["Event"]):
    def active(self) -> t.Self:
        """Events that were not soft-deleted."""
        return self.filter(active=True)

    def visible_to(self, context: "AuthContext") -> t.Self:
        """Active events the caller may see in listings.

        Password protected events are listed so the caller can unlock them.
        """
        qs = self.active()
        if context.can_manage_events():
            return qs
        return qs.exclude(visibility=Event.Visibility.PRIVATE)


class Event(TimeStampedModel):
    class Visibility(models.TextChoices):
        PUBLIC = "public", _("Public")
        PRIVATE = "private", _("Private")
        PASSWORD_PROTECTED = "password_protected", _("Password protected")

    name = models.CharField(max_length=255, db_index=True)
    year = models.PositiveIntegerField(null=True, blank=True)
    location = models.CharField(max_length=255, blank=True)
    description = models.TextField(blank=True)
    visibility = models.CharField(max_length=20, choices=Visibility.choices, default=Visibility.PUBLIC, db_index=True)
    password = models.CharField(max_length=128, blank=True, help_text="Required when password protected")
    max_tickets = models.PositiveIntegerField(default=0)
    ticket_price = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    ticket_sale_start_datetime = models.DateTimeField(null=True, blank=True)
    ticket_sale_end_datetime = models.DateTimeField(null=True, blank=True)
    max_tickets_per_user = models.PositiveIntegerField(null=True, blank=True)
    ticket_generation_enabled = models.BooleanField(default=True)
    start_datetime = models.DateTimeField(null=True, blank=True)
    active = models.BooleanField(default=True, db_index=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name="created_events"
    )

    objects = EventQuerySet.as_manager()

    class Meta:
        ordering = ["-start_datetime", "name"]
        permissions = [
            ("create_events", "Can create and manage events"),
        ]

    def __str__(self) -> str:
        return self.name

    def clean(self) -> None:
        """A password protected event needs a password and a sane sale window."""
        if self.visibility == self.Visibility.PASSWORD_PROTECTED and not self.password:
            raise ValidationError({"password": [_("Password protected events need a password.")]})
        if (
            self.ticket_sale_start_datetime
            and self.ticket_sale_end_datetime
            and self.ticket_sale_start_datetime > self.ticket_sale_end_datetime
        ):
            raise ValidationError({"ticket_sale_end_datetime": [_("Ticket sale cannot end before it starts.")]})

    @property
    def reference_date(self) -> date:
        """Date ages are computed against: the event start, or today when the start is unknown."""
        if self.start_datetime:
            return timezone.localdate(self.start_datetime)
        return timezone.localdate()

    def soft_delete(self) -> None:
        """Events are never removed, only deactivated."""
        self.active = False
        self.save(update_fields=["active", "updated_at"])


class TicketTier(TimeStampedModel):
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="tiers")
    name = models.CharField(max_length=255)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    max_tickets = models.PositiveIntegerField(null=True, blank=True, help_text="Leave empty for no tier cap")

    class Meta:
        ordering = ["price", "name"]
        constraints = [
            models.UniqueConstraint(fields=["event", "name"], name="unique_tier_name_per_event"),
        ]

    def __str__(self) -> str:
        return f"{self.event.name} - {self.name}"


class BankAccount(TimeStampedModel):
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="bank_accounts")
    account_name = models.CharField(max_length=70)
    bank_name = models.CharField(max_length=255, blank=True)
    iban = models.CharField(max_length=42)
    bic = models.CharField(max_length=11, blank=True)
    percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0")), MaxValueValidator(Decimal("100"))],
    )
    escrow_document_url = models.URLField(blank=True)

    class Meta:
        ordering = ["-percentage", "account_name"]

    def __str__(self) -> str:
        return f"{self.account_name} ({self.percentage}%)"


class UserEventOverride(TimeStampedModel):
    """Per-user price and limit exceptions for a single event."""

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="event_overrides")
    event = models.ForeignKey(Event, on_delete=models.CASCADE, related_name="user_overrides")
    ticket_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    ticket_limit = models.PositiveIntegerField(
        null=True, blank=True, help_text="0 blocks the user from buying tickets for this event"
    )

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["user", "event"], name="unique_override_per_user_event"),
        ]

    def __str__(self) -> str:
        return f"{self.user} @ {self.event}"
