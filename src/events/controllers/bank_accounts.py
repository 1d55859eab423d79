from uuid import UUID

from ninja_extra import api_controller, route

from accounts.context import Capability
from common.authentication import I18nJWTAuth
from common.controllers import UserAwareController
from common.throttling import WriteThrottle
from events import schema
from events.service import order_service, payment_service

from .permissions import CapabilityPermission


@api_controller(
    "/event-admin/{event_id}",
    auth=I18nJWTAuth(),
    permissions=[CapabilityPermission(Capability.CREATE_EVENTS)],
    tags=["Event Admin"],
    throttle=WriteThrottle(),
)
class EventAdminController(UserAwareController):
    """Payment setup and per-user conditions of an event."""

    @route.get(
        "/bank-accounts",
        url_name="list_bank_accounts",
        response=schema.BankAccountListResponse,
        permissions=[CapabilityPermission(Capability.VIEW_ORDERS)],
    )
    def list_bank_accounts(self, event_id: UUID) -> dict[str, object]:
        """Bank accounts of the event, highest share first."""
        return {"bank_accounts": payment_service.list_bank_accounts(self.auth_context(), event_id)}

    @route.put("/bank-accounts", url_name="configure_bank_accounts", response=schema.BankAccountListResponse)
    def configure_bank_accounts(self, event_id: UUID, payload: schema.ConfigureBankAccountsSchema) -> dict[str, object]:
        """Replace all bank accounts of the event.

        The percentages decide how payment requests are spread over the accounts and must add up to 100.
        """
        return {"bank_accounts": payment_service.configure_bank_accounts(self.auth_context(), event_id, payload)}

    @route.put("/user-overrides", url_name="set_user_override", response=schema.UserOverrideResponse)
    def set_user_override(self, event_id: UUID, payload: schema.UserOverrideSchema) -> schema.UserOverrideResponse:
        """Give a user a custom ticket price or limit for this event.

        Leaving both values empty removes the override.
        """
        override = order_service.set_user_override(self.auth_context(), event_id, payload)
        if override is None:
            return schema.UserOverrideResponse(user_id=payload.user_id, event_id=event_id, removed=True)
        return schema.UserOverrideResponse(
            user_id=payload.user_id,
            event_id=event_id,
            ticket_price=override.ticket_price,
            ticket_limit=override.ticket_limit,
        )

    @route.get(
        "/user-overrides/{user_id}",
        url_name="get_user_event_settings",
        response=schema.UserEventSettingsResponse,
        permissions=[CapabilityPermission(Capability.VIEW_ORDERS)],
    )
    def get_user_event_settings(self, event_id: UUID, user_id: UUID) -> dict[str, object]:
        """A user's custom price and limit next to the event defaults."""
        return {"settings": order_service.get_user_event_settings(self.auth_context(), event_id, user_id)}

    @route.delete("/user-overrides/{user_id}", url_name="remove_user_override", response=schema.UserOverrideResponse)
    def remove_user_override(self, event_id: UUID, user_id: UUID) -> schema.UserOverrideResponse:
        """Remove a user's custom conditions. The event defaults apply again."""
        order_service.remove_user_override(self.auth_context(), event_id, user_id)
        return schema.UserOverrideResponse(user_id=user_id, event_id=event_id, removed=True)
