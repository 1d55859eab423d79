from datetime import datetime, timedelta
from datetime import timezone as dt_timezone

import pytest
from django.utils import timezone
from freezegun import freeze_time

from accounts.context import AuthContext
from conftest import OrderFactory
from events.exceptions import AccessDeniedError
from events.models import Event, Participant, TicketOrder
from events.service import live_service

pytestmark = pytest.mark.django_db

NOW = datetime(2026, 6, 27, 21, 30, tzinfo=dt_timezone.utc)


def check_in(participant: Participant, at: datetime) -> None:
    Participant.objects.filter(pk=participant.pk).update(redeemed=True, redeemed_at=at, redeemed_by="door@test")


def hour_label(moment: datetime) -> str:
    return timezone.localtime(moment).strftime("%Y-%m-%d %H:00")


@pytest.fixture
def door(make_order: OrderFactory) -> list[Participant]:
    """Five paid tickets over two orders plus one unpaid order."""
    first = make_order(ticket_count=2, status=TicketOrder.Status.PAID)
    second = make_order(ticket_count=3, status=TicketOrder.Status.PAID)
    make_order(ticket_count=1)
    return [*first.participants.all(), *second.participants.all()]


class TestLiveStats:
    def test_counters_and_arrivals(self, event: Event, manager_context: AuthContext, door: list[Participant]) -> None:
        check_in(door[0], NOW - timedelta(seconds=30))
        check_in(door[1], NOW - timedelta(minutes=5))
        check_in(door[2], NOW - timedelta(hours=2))
        check_in(door[3], NOW - timedelta(hours=13))

        with freeze_time(NOW):
            stats = live_service.live_stats(manager_context, event.pk)

        assert stats.total_tickets == 5
        assert stats.checked_in == 4
        assert stats.not_checked_in == 1
        assert stats.scans_last_minute == 1
        assert [(bucket.hour, bucket.count) for bucket in stats.arrival_distribution] == [
            (hour_label(NOW - timedelta(hours=2)), 1),
            (hour_label(NOW), 2),
        ]
        assert stats.last_updated == NOW

    def test_scoped_to_the_event(
        self, event: Event, manager_context: AuthContext, door: list[Participant], make_order: OrderFactory
    ) -> None:
        winterball = Event.objects.create(name="Winterball", max_tickets=20)
        make_order(event=winterball, ticket_count=4, status=TicketOrder.Status.PAID)

        assert live_service.live_stats(manager_context, event.pk).total_tickets == 5
        assert live_service.live_stats(manager_context).total_tickets == 9

    def test_requires_manage_orders(self, viewer_context: AuthContext) -> None:
        with pytest.raises(AccessDeniedError):
            live_service.live_stats(viewer_context)


def test_live_list_splits_present_and_missing(
    event: Event, manager_context: AuthContext, door: list[Participant]
) -> None:
    check_in(door[0], NOW - timedelta(minutes=10))
    check_in(door[3], NOW - timedelta(minutes=1))

    result = live_service.live_list(manager_context, event.pk)

    assert [(a.name, a.ticket_number) for a in result.present] == [
        (door[3].name, door[3].ticket_number),
        (door[0].name, door[0].ticket_number),
    ]
    assert result.present[0].checked_in_at == NOW - timedelta(minutes=1)
    assert [(a.name, a.ticket_number) for a in result.missing] == [
        ("Guest 1 of muster", 1),
        ("Guest 2 of muster", 2),
        ("Guest 3 of muster", 3),
    ]
