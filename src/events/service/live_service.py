"""Read-only projections for the live check-in dashboard."""

import typing as t
from datetime import timedelta

from django.db.models import Count, Q
from django.db.models.functions import TruncHour
from django.utils import timezone

from accounts.context import AuthContext, Capability
from events import schema
from events.models import Participant
from events.service.event_access import require_capability

ARRIVAL_WINDOW = timedelta(hours=12)
RECENT_SCAN_WINDOW = timedelta(minutes=1)
HOUR_FORMAT = "%Y-%m-%d %H:00"


def live_stats(context: AuthContext, event_id: t.Any | None = None) -> schema.LiveStats:
    """Attendance counters over paid tickets, optionally for one event."""
    require_capability(context, Capability.MANAGE_ORDERS)
    now = timezone.now()
    admitted = Participant.objects.admitted(event_id)
    counts = admitted.aggregate(
        total=Count("id"),
        checked_in=Count("id", filter=Q(redeemed=True)),
        last_minute=Count("id", filter=Q(redeemed=True, redeemed_at__gt=now - RECENT_SCAN_WINDOW)),
    )
    buckets = (
        admitted.filter(redeemed=True, redeemed_at__gt=now - ARRIVAL_WINDOW)
        .annotate(hour=TruncHour("redeemed_at"))
        .values("hour")
        .annotate(count=Count("id"))
        .order_by("hour")
    )
    return schema.LiveStats(
        total_tickets=counts["total"],
        checked_in=counts["checked_in"],
        not_checked_in=counts["total"] - counts["checked_in"],
        scans_last_minute=counts["last_minute"],
        arrival_distribution=[
            schema.ArrivalBucket(hour=timezone.localtime(row["hour"]).strftime(HOUR_FORMAT), count=row["count"])
            for row in buckets
        ],
        last_updated=now,
    )


def live_list(context: AuthContext, event_id: t.Any | None = None) -> schema.LiveListResponse:
    """Who is in (latest arrivals first) and who is still missing (by name)."""
    require_capability(context, Capability.MANAGE_ORDERS)
    admitted = Participant.objects.admitted(event_id).select_related("order")
    present = [
        schema.PresentAttendee(
            name=participant.name,
            ticket_number=participant.ticket_number,
            checked_in_at=participant.redeemed_at,
            reference=participant.order.payment_reference,
        )
        for participant in admitted.filter(redeemed=True).order_by("-redeemed_at")
    ]
    missing = [
        schema.MissingAttendee(
            name=participant.name,
            ticket_number=participant.ticket_number,
            reference=participant.order.payment_reference,
        )
        for participant in admitted.filter(redeemed=False).order_by("name", "ticket_number")
    ]
    return schema.LiveListResponse(present=present, missing=missing, last_updated=timezone.now())
