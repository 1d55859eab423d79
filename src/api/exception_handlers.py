"""Exception handlers for the API.

Every failure is rendered as ``{"success": false, "error": "..."}``.
"""

import typing as t

import structlog
from django.conf import settings
from django.core.exceptions import ValidationError
from django.http import Http404, HttpRequest
from django.utils.translation import gettext_lazy as _
from ninja.errors import AuthenticationError, HttpError
from ninja.errors import ValidationError as NinjaValidationError
from ninja.responses import Response
from ninja_extra.exceptions import APIException

from events.exceptions import DocumentRenderingError, TicketingError

logger = structlog.get_logger(__name__)


def error_response(status: int, error: str, **extra: t.Any) -> Response:
    return Response(status=status, data={"success": False, "error": error, **extra})


def handle_general_exception(request: HttpRequest, exc: Exception | t.Type[Exception]) -> Response:
    """Handle an unexpected exception.

    Args:
        request: The incoming HTTP request.
        exc: The exception.

    Returns:
        A generic 500 response; details only go to the log.
    """
    logger.exception("INTERNAL_SERVER_ERROR", path=request.path, method=request.method)
    data: dict[str, t.Any] = {}
    if settings.DEBUG:  # pragma: no cover
        data["detail"] = repr(exc)
    return error_response(500, str(_("Internal server error.")), **data)


def handle_ticketing_error(request: HttpRequest, exc: TicketingError | t.Type[TicketingError]) -> Response:
    """Expected failures carry their own status code and message."""
    message = exc.message  # type: ignore[union-attr]
    logger.info("request_rejected", path=request.path, error_type=type(exc).__name__, error=message)
    return error_response(exc.status_code, message)


def handle_document_rendering_error(
    request: HttpRequest, exc: DocumentRenderingError | t.Type[DocumentRenderingError]
) -> Response:
    """A QR code or PDF could not be produced."""
    logger.error("DOCUMENT_RENDERING_ERROR", path=request.path, exc_info=True)
    return error_response(500, str(_("The document could not be generated.")))


def handle_django_validation_error(request: HttpRequest, exc: ValidationError | t.Type[ValidationError]) -> Response:
    """Handle a model validation error.

    Args:
        request: The incoming HTTP request.
        exc: The exception.
    """
    logger.warning("VALIDATION_ERROR", path=request.path, messages=exc.messages)
    errors = exc.message_dict if hasattr(exc, "error_dict") else {"__all__": exc.messages}
    return error_response(400, "; ".join(exc.messages), errors=errors)


def handle_request_validation_error(
    request: HttpRequest, exc: NinjaValidationError | t.Type[NinjaValidationError]
) -> Response:
    """Schema validation failed before the handler ran."""
    errors = {".".join(str(loc) for loc in error.get("loc", ())): error.get("msg", "") for error in exc.errors}
    return error_response(400, str(_("Invalid request data.")), errors=errors)


def handle_http_error(request: HttpRequest, exc: HttpError | t.Type[HttpError]) -> Response:
    return error_response(exc.status_code, str(exc))


def handle_not_found(request: HttpRequest, exc: Http404 | t.Type[Http404]) -> Response:
    return error_response(404, str(_("Not found.")))


def handle_authentication_error(
    request: HttpRequest, exc: AuthenticationError | t.Type[AuthenticationError]
) -> Response:
    return error_response(401, str(_("Authentication required.")))


def handle_api_exception(request: HttpRequest, exc: APIException | t.Type[APIException]) -> Response:
    """Permission denials and throttling from ninja-extra."""
    if exc.status_code == 403:
        return error_response(403, str(_("Access denied.")))
    return error_response(exc.status_code, str(exc.detail))
