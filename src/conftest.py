"""Shared fixtures: users with capabilities, an event with tiers and bank accounts, orders and API clients."""

import secrets
import string
import typing as t
from datetime import date, datetime, time, timedelta
from decimal import Decimal

import faker
import pytest
from django.contrib.auth.models import Permission
from django.core.cache import cache
from django.test.client import Client
from django.utils import timezone
from ninja_jwt.tokens import RefreshToken

from accounts.context import AuthContext, build_auth_context
from accounts.models import BallUser
from ballsale.celery import app as celery_app
from events.models import BankAccount, Event, Participant, TicketOrder, TicketTier
from events.service.order_service import next_payment_reference

ADULT_BIRTHDATE = date(2000, 1, 15)


@pytest.fixture(autouse=True)
def enable_celery_eager_mode(settings: t.Any) -> None:
    """Run Celery tasks synchronously so their side effects can be asserted."""
    settings.CELERY_TASK_ALWAYS_EAGER = True
    settings.CELERY_TASK_EAGER_PROPAGATES = True
    celery_app.conf.task_always_eager = True
    celery_app.conf.task_eager_propagates = True


@pytest.fixture(autouse=True)
def clear_cache() -> None:
    """Throttle counters and event unlocks live in the cache."""
    cache.clear()


class BallUserFactory:
    """Factory for creating BallUser instances for testing."""

    fake = faker.Faker()

    def create_user(self, **kwargs: t.Any) -> BallUser:
        username = kwargs.pop("username", "".join(secrets.choice(string.ascii_lowercase) for _ in range(8)))
        email = kwargs.pop("email", f"{username}@user.test")
        password = kwargs.pop("password", "password")
        first_name = kwargs.pop("first_name", self.fake.first_name())
        last_name = kwargs.pop("last_name", self.fake.last_name())
        email_verified = kwargs.pop("email_verified", True)
        return BallUser.objects.create_user(
            username=username,
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            email_verified=email_verified,
            **kwargs,
        )

    def __call__(self, **kwargs: t.Any) -> BallUser:
        return self.create_user(**kwargs)


def grant(user: BallUser, *codenames: str) -> BallUser:
    """Give a user event permissions and return a fresh instance without cached permissions."""
    user.user_permissions.add(*Permission.objects.filter(content_type__app_label="events", codename__in=codenames))
    return BallUser.objects.get(pk=user.pk)


def bearer_client(user: BallUser) -> Client:
    refresh = RefreshToken.for_user(user)
    return Client(HTTP_AUTHORIZATION=f"Bearer {str(refresh.access_token)}")  # type: ignore[attr-defined]


# --- Users ---


@pytest.fixture
def ball_user_factory() -> BallUserFactory:
    return BallUserFactory()


@pytest.fixture
def user(ball_user_factory: BallUserFactory) -> BallUser:
    """A verified buyer."""
    return ball_user_factory(username="muster", first_name="Max", last_name="Mustermann")


@pytest.fixture
def other_user(ball_user_factory: BallUserFactory) -> BallUser:
    return ball_user_factory(username="erika")


@pytest.fixture
def viewer(ball_user_factory: BallUserFactory) -> BallUser:
    """Can see orders and statistics."""
    return grant(ball_user_factory(username="viewer"), "view_orders")


@pytest.fixture
def manager(ball_user_factory: BallUserFactory) -> BallUser:
    """Handles payments and the door."""
    return grant(ball_user_factory(username="manager"), "manage_orders")


@pytest.fixture
def organizer(ball_user_factory: BallUserFactory) -> BallUser:
    """Configures events, bank accounts and overrides."""
    return grant(ball_user_factory(username="organizer"), "create_events", "view_orders")


@pytest.fixture
def superuser(ball_user_factory: BallUserFactory) -> BallUser:
    """A superuser."""
    return ball_user_factory(username="admin", is_superuser=True, is_staff=True)


# --- Authorization contexts ---


@pytest.fixture
def user_context(user: BallUser) -> AuthContext:
    return build_auth_context(user)


@pytest.fixture
def other_context(other_user: BallUser) -> AuthContext:
    return build_auth_context(other_user)


@pytest.fixture
def viewer_context(viewer: BallUser) -> AuthContext:
    return build_auth_context(viewer)


@pytest.fixture
def manager_context(manager: BallUser) -> AuthContext:
    return build_auth_context(manager)


@pytest.fixture
def organizer_context(organizer: BallUser) -> AuthContext:
    return build_auth_context(organizer)


# --- API clients ---


@pytest.fixture
def user_client(user: BallUser) -> Client:
    return bearer_client(user)


@pytest.fixture
def other_client(other_user: BallUser) -> Client:
    return bearer_client(other_user)


@pytest.fixture
def viewer_client(viewer: BallUser) -> Client:
    return bearer_client(viewer)


@pytest.fixture
def manager_client(manager: BallUser) -> Client:
    return bearer_client(manager)


@pytest.fixture
def organizer_client(organizer: BallUser) -> Client:
    return bearer_client(organizer)


# --- Events ---


@pytest.fixture
def next_month() -> datetime:
    """Ball night, four weeks from now at 19:00."""
    day = (timezone.now() + timedelta(days=28)).date()
    return timezone.make_aware(datetime.combine(day, time(hour=19)), timezone.get_current_timezone())


@pytest.fixture
def event(next_month: datetime) -> Event:
    """A public event with 10 tickets at 65 EUR and the sale currently open."""
    return Event.objects.create(
        name="Abiball 2026",
        year=2026,
        location="Stadthalle",
        max_tickets=10,
        ticket_price=Decimal("65.00"),
        ticket_sale_start_datetime=timezone.now() - timedelta(days=7),
        ticket_sale_end_datetime=next_month - timedelta(days=1),
        start_datetime=next_month,
    )


@pytest.fixture
def tier(event: Event) -> TicketTier:
    return TicketTier.objects.create(event=event, name="Early Bird", price=Decimal("55.00"), max_tickets=3)


@pytest.fixture
def bank_accounts(event: Event) -> list[BankAccount]:
    """A 70/30 split between two accounts."""
    return [
        BankAccount.objects.create(
            event=event,
            account_name="Max Mustermann",
            bank_name="Commerzbank",
            iban="DE89 3704 0044 0532 0130 00",
            bic="COBADEFFXXX",
            percentage=Decimal("70.00"),
        ),
        BankAccount.objects.create(
            event=event,
            account_name="Abiturjahrgang 2026",
            bank_name="Sparkasse",
            iban="DE02120300000000202051",
            bic="BYLADEM1001",
            percentage=Decimal("30.00"),
        ),
    ]


class OrderFactory:
    """Create orders directly in the database, bypassing the ordering rules."""

    def __init__(self, event: Event, user: BallUser) -> None:
        self.event = event
        self.user = user

    def __call__(
        self,
        *,
        ticket_count: int = 1,
        status: str = TicketOrder.Status.PENDING,
        user: BallUser | None = None,
        event: Event | None = None,
        tickets_generated: bool = False,
        birthdate: date | None = ADULT_BIRTHDATE,
    ) -> TicketOrder:
        user = user or self.user
        event = event or self.event
        paid = status == TicketOrder.Status.PAID
        order = TicketOrder.objects.create(
            user=user,
            event=event,
            tier_name="Standard",
            ticket_count=ticket_count,
            individual_ticket_price=event.ticket_price,
            total_price=event.ticket_price * ticket_count,
            payment_reference=next_payment_reference(user, event),
            status=status,
            paid_at=timezone.now() if paid else None,
            tickets_generated=tickets_generated,
        )
        Participant.objects.bulk_create(
            [
                Participant(
                    order=order,
                    ticket_number=number,
                    name=f"Guest {number} of {user.username}",
                    email=f"guest{number}@user.test",
                    birthdate=birthdate,
                )
                for number in range(1, ticket_count + 1)
            ]
        )
        return order


@pytest.fixture
def make_order(event: Event, user: BallUser) -> OrderFactory:
    return OrderFactory(event, user)


@pytest.fixture
def paid_order(make_order: OrderFactory) -> TicketOrder:
    """Two paid tickets with tickets released."""
    return make_order(ticket_count=2, status=TicketOrder.Status.PAID, tickets_generated=True)
