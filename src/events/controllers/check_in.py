from uuid import UUID

from django.utils.translation import gettext_lazy as _
from ninja_extra import api_controller, route

from accounts.context import Capability
from common.authentication import I18nJWTAuth
from common.controllers import UserAwareController
from common.throttling import ScannerThrottle
from events import schema
from events.service import live_service, ticket_service

from .permissions import CapabilityPermission


@api_controller(
    "/check-in",
    auth=I18nJWTAuth(),
    permissions=[CapabilityPermission(Capability.MANAGE_ORDERS)],
    tags=["Check-in"],
    throttle=ScannerThrottle(),
)
class CheckInController(UserAwareController):
    """Door staff endpoints: scanning, redemption and the live dashboard."""

    @route.post("/scan", url_name="scan_ticket", response=schema.ScanResult)
    def scan(self, payload: schema.ScanSchema) -> schema.ScanResult:
        """Verify the content of a ticket QR code.

        Invalid tickets are reported in the body with success false, so scanners only
        need to look at one shape. With auto_redeem a valid ticket is redeemed right away.
        """
        return ticket_service.scan_ticket(self.auth_context(), payload.qr_data, auto_redeem=payload.auto_redeem)

    @route.post("/redeem", url_name="redeem_ticket", response=schema.RedeemResult)
    def redeem(self, payload: schema.RedeemSchema) -> schema.RedeemResult:
        """Let a ticket holder in."""
        participant = ticket_service.redeem_ticket(self.auth_context(), payload.order_id, payload.ticket_number)
        return schema.RedeemResult(
            message=str(_("Ticket redeemed.")),
            order_id=participant.order_id,
            ticket_number=participant.ticket_number,
            redeemed_at=participant.redeemed_at,
        )

    @route.post("/undo", url_name="undo_last_redemption", response=schema.UndoResult)
    def undo(self) -> schema.UndoResult:
        """Take back the caller's most recent redemption."""
        participant = ticket_service.undo_last_redemption(self.auth_context())
        return schema.UndoResult(
            message=str(_("Redemption undone.")),
            ticket=schema.UndoneTicket(
                order_id=participant.order_id,
                ticket_number=participant.ticket_number,
                name=participant.name,
            ),
        )

    @route.post("/correct-birthdate", url_name="correct_birthdate", response=schema.BirthdateCorrectionResult)
    def correct_birthdate(self, payload: schema.BirthdateCorrectionSchema) -> schema.BirthdateCorrectionResult:
        """Fix a wrong birthdate at the door. Every correction is kept in the audit log."""
        return ticket_service.correct_birthdate(self.auth_context(), payload)

    @route.get("/live-stats", url_name="live_stats", response=schema.LiveStatsResponse)
    def live_stats(self, event_id: UUID | None = None) -> dict[str, object]:
        """Counters and hourly arrivals of the last twelve hours."""
        return {"stats": live_service.live_stats(self.auth_context(), event_id)}

    @route.get("/live-list", url_name="live_list", response=schema.LiveListResponse)
    def live_list(self, event_id: UUID | None = None) -> schema.LiveListResponse:
        """Who has arrived and who is still missing."""
        return live_service.live_list(self.auth_context(), event_id)
