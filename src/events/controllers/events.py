from uuid import UUID

from django.utils.translation import gettext_lazy as _
from ninja_extra import api_controller, route

from common.authentication import I18nJWTAuth
from common.controllers import UserAwareController
from common.schema import ResponseMessage
from common.throttling import PasswordAttemptThrottle
from events import schema
from events.service import event_access, order_service, payment_service


@api_controller("/events", auth=I18nJWTAuth(), tags=["Events"])
class EventController(UserAwareController):
    @route.get("/", url_name="list_events", response=schema.EventListResponse)
    def list_events(self) -> dict[str, object]:
        """List active events visible to the caller.

        Private events are only listed for event creators and admins.
        """
        return {"events": event_access.list_events(self.auth_context())}

    @route.get("/{event_id}", url_name="get_event", response=schema.EventDetailResponse)
    def get_event(self, event_id: UUID) -> dict[str, object]:
        """Get the details of an event, including its ticket tiers."""
        return {"event": event_access.get_event(self.auth_context(), event_id)}

    @route.post(
        "/{event_id}/verify-password",
        url_name="verify_event_password",
        response=ResponseMessage,
        throttle=PasswordAttemptThrottle(),
    )
    def verify_password(self, event_id: UUID, payload: schema.EventPasswordSchema) -> ResponseMessage:
        """Unlock a password protected event for ticket purchases."""
        event_access.verify_event_password(self.auth_context(), event_id, payload.password)
        return ResponseMessage(message=str(_("Event unlocked.")))

    @route.get("/{event_id}/ticket-limits", url_name="ticket_limits", response=schema.TicketLimits)
    def ticket_limits(self, event_id: UUID) -> schema.TicketLimits:
        """How many tickets the caller may still order, and at which price."""
        return order_service.ticket_limits(self.auth_context(), event_id)

    @route.get(
        "/{event_id}/escrow-agreements",
        url_name="escrow_agreements",
        response=schema.EscrowAgreementListResponse,
    )
    def escrow_agreements(self, event_id: UUID) -> dict[str, object]:
        """Escrow agreements for the accounts that will receive the payments."""
        return {"escrow_agreements": payment_service.list_escrow_agreements(self.auth_context(), event_id)}
