import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Event",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                ("name", models.CharField(db_index=True, max_length=255)),
                ("year", models.PositiveIntegerField(blank=True, null=True)),
                ("location", models.CharField(blank=True, max_length=255)),
                ("description", models.TextField(blank=True)),
                (
                    "visibility",
                    models.CharField(
                        choices=[
                            ("public", "Public"),
                            ("private", "Private"),
                            ("password_protected", "Password protected"),
                        ],
                        db_index=True,
                        default="public",
                        max_length=20,
                    ),
                ),
                (
                    "password",
                    models.CharField(blank=True, help_text="Required when password protected", max_length=128),
                ),
                ("max_tickets", models.PositiveIntegerField(default=0)),
                ("ticket_price", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=10)),
                ("ticket_sale_start_datetime", models.DateTimeField(blank=True, null=True)),
                ("ticket_sale_end_datetime", models.DateTimeField(blank=True, null=True)),
                ("max_tickets_per_user", models.PositiveIntegerField(blank=True, null=True)),
                ("ticket_generation_enabled", models.BooleanField(default=True)),
                ("start_datetime", models.DateTimeField(blank=True, null=True)),
                ("active", models.BooleanField(db_index=True, default=True)),
                (
                    "created_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="created_events",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-start_datetime", "name"],
                "permissions": [("create_events", "Can create and manage events")],
            },
        ),
        migrations.CreateModel(
            name="TicketTier",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                ("name", models.CharField(max_length=255)),
                ("price", models.DecimalField(decimal_places=2, max_digits=10)),
                (
                    "max_tickets",
                    models.PositiveIntegerField(blank=True, help_text="Leave empty for no tier cap", null=True),
                ),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="tiers", to="events.event"
                    ),
                ),
            ],
            options={
                "ordering": ["price", "name"],
                "constraints": [
                    models.UniqueConstraint(fields=("event", "name"), name="unique_tier_name_per_event"),
                ],
            },
        ),
        migrations.CreateModel(
            name="BankAccount",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                ("account_name", models.CharField(max_length=70)),
                ("bank_name", models.CharField(blank=True, max_length=255)),
                ("iban", models.CharField(max_length=42)),
                ("bic", models.CharField(blank=True, max_length=11)),
                (
                    "percentage",
                    models.DecimalField(
                        decimal_places=2,
                        max_digits=5,
                        validators=[
                            django.core.validators.MinValueValidator(Decimal("0")),
                            django.core.validators.MaxValueValidator(Decimal("100")),
                        ],
                    ),
                ),
                ("escrow_document_url", models.URLField(blank=True)),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="bank_accounts", to="events.event"
                    ),
                ),
            ],
            options={
                "ordering": ["-percentage", "account_name"],
            },
        ),
        migrations.CreateModel(
            name="UserEventOverride",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                ("ticket_price", models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                (
                    "ticket_limit",
                    models.PositiveIntegerField(
                        blank=True, help_text="0 blocks the user from buying tickets for this event", null=True
                    ),
                ),
                (
                    "event",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE, related_name="user_overrides", to="events.event"
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="event_overrides",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(fields=("user", "event"), name="unique_override_per_user_event"),
                ],
            },
        ),
        migrations.CreateModel(
            name="TicketOrder",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                ("tier_name", models.CharField(blank=True, max_length=255)),
                ("ticket_count", models.PositiveIntegerField(default=0)),
                ("individual_ticket_price", models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ("total_price", models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ("payment_reference", models.CharField(db_index=True, max_length=64)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("pending", "Pending"),
                            ("paid", "Paid"),
                            ("cancelled", "Cancelled"),
                            ("cancelled_by_user", "Cancelled by customer"),
                            ("error", "Payment error"),
                        ],
                        db_index=True,
                        default="pending",
                        max_length=20,
                    ),
                ),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("tickets_generated", models.BooleanField(default=False)),
                ("tickets_generated_at", models.DateTimeField(blank=True, null=True)),
                ("tickets_generated_by", models.CharField(blank=True, max_length=255)),
                ("error_reason", models.CharField(blank=True, max_length=255)),
                (
                    "event",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders",
                        to="events.event",
                    ),
                ),
                (
                    "tier",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders",
                        to="events.tickettier",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="ticket_orders",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "permissions": [
                    ("view_orders", "Can view all ticket orders"),
                    ("manage_orders", "Can manage ticket orders, payments and check-in"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("status", "error"))
                        | models.Q(("user__isnull", False), ("event__isnull", False)),
                        name="order_has_user_and_event_unless_error",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("status", "paid")) | models.Q(("paid_at__isnull", True)),
                        name="paid_at_only_when_paid",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Participant",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                ("ticket_number", models.PositiveIntegerField()),
                ("name", models.CharField(max_length=255)),
                ("phone", models.CharField(blank=True, max_length=32)),
                ("email", models.EmailField(blank=True, max_length=254)),
                ("birthdate", models.DateField(blank=True, null=True)),
                ("redeemed", models.BooleanField(db_index=True, default=False)),
                ("redeemed_at", models.DateTimeField(blank=True, db_index=True, null=True)),
                ("redeemed_by", models.CharField(blank=True, db_index=True, max_length=255)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="participants",
                        to="events.ticketorder",
                    ),
                ),
            ],
            options={
                "ordering": ["order", "ticket_number"],
                "constraints": [
                    models.UniqueConstraint(fields=("order", "ticket_number"), name="unique_ticket_number_per_order"),
                ],
            },
        ),
        migrations.CreateModel(
            name="PaymentRequest",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                ("account_name", models.CharField(max_length=70)),
                ("bank_name", models.CharField(blank=True, max_length=255)),
                ("iban", models.CharField(max_length=42)),
                ("bic", models.CharField(blank=True, max_length=11)),
                (
                    "status",
                    models.CharField(
                        choices=[("sent", "Sent"), ("paid", "Paid")], db_index=True, default="sent", max_length=10
                    ),
                ),
                ("sent_at", models.DateTimeField(blank=True, null=True)),
                ("paid_at", models.DateTimeField(blank=True, null=True)),
                ("created_by", models.CharField(blank=True, max_length=255)),
                (
                    "bank_account",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="payment_requests",
                        to="events.bankaccount",
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="payment_requests",
                        to="events.ticketorder",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
        migrations.CreateModel(
            name="BirthdateAuditLog",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("created_at", models.DateTimeField(auto_now_add=True, db_index=True)),
                ("updated_at", models.DateTimeField(auto_now=True, db_index=True)),
                ("order_id", models.UUIDField(db_index=True)),
                ("ticket_number", models.PositiveIntegerField()),
                ("participant_name", models.CharField(max_length=255)),
                ("old_value", models.DateField(blank=True, null=True)),
                ("new_value", models.DateField()),
                ("reason", models.TextField()),
                ("operator", models.CharField(max_length=255)),
                ("timestamp", models.DateTimeField(auto_now_add=True, db_index=True)),
            ],
            options={
                "ordering": ["-timestamp"],
            },
        ),
    ]
