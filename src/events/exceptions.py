"""Exceptions raised by the ticketing services.

Each error carries a human readable message. The API layer maps the classes to
HTTP status codes and the ``{"success": false, "error": ...}`` envelope.
"""

from django.utils.translation import gettext_lazy as _


class TicketingError(Exception):
    """Base class for expected, user-facing failures."""

    status_code = 400
    default_message = _("The request could not be processed.")

    def __init__(self, message: str | None = None) -> None:
        """Store the user-facing message."""
        self.message = str(message if message is not None else self.default_message)
        super().__init__(self.message)


class TicketValidationError(TicketingError):
    """Malformed input: missing fields, unparsable dates, wrong shapes."""


class BusinessRuleError(TicketingError):
    """A rule of the sales process rejects the request."""


class SoldOutError(BusinessRuleError):
    """Not enough capacity left on the event or the chosen tier."""

    status_code = 409


class NotFoundError(TicketingError):
    """The referenced event, order, ticket or bank account does not exist."""

    status_code = 404
    default_message = _("Not found.")


class AccessDeniedError(TicketingError):
    """Generic denial. Never reveals whether the target exists."""

    status_code = 403
    default_message = _("Access denied.")


class ConfigurationIntegrityError(TicketingError):
    """A configuration would violate an invariant and was not persisted."""


class NotificationError(Exception):
    """A notification could not be built or handed over for delivery."""


class DocumentRenderingError(Exception):
    """A PDF, QR code or CSV could not be rendered."""
