from django.conf import settings
from django.core.exceptions import ValidationError
from django.http import Http404, HttpRequest
from ninja.errors import AuthenticationError, HttpError
from ninja.errors import ValidationError as NinjaValidationError
from ninja_extra import NinjaExtraAPI
from ninja_extra.exceptions import APIException

from accounts.controllers.auth import AuthController
from common.schema import ResponseOk, VersionResponse
from common.throttling import AnonDefaultThrottle, UserDefaultThrottle
from events.controllers.bank_accounts import EventAdminController
from events.controllers.check_in import CheckInController
from events.controllers.events import EventController
from events.controllers.order_admin import OrderAdminController
from events.controllers.orders import OrderController
from events.exceptions import DocumentRenderingError, TicketingError

from .exception_handlers import (
    handle_api_exception,
    handle_authentication_error,
    handle_django_validation_error,
    handle_document_rendering_error,
    handle_general_exception,
    handle_http_error,
    handle_not_found,
    handle_request_validation_error,
    handle_ticketing_error,
)

api = NinjaExtraAPI(
    title="Ballsale Backend API",
    docs_url="/docs",
    version=settings.VERSION,
    description=f"Ballsale API {settings.VERSION}",
    app_name=f"ballsale-api-{settings.VERSION}",
    urls_namespace="api",
    servers=[
        {"url": settings.SERVICE_URL, "description": settings.SERVICE_DESCRIPTION},
    ],
    throttle=[AnonDefaultThrottle(), UserDefaultThrottle()],
)


@api.get("/version", tags=["Version"], response={200: VersionResponse})
def version(request: HttpRequest) -> tuple[int, VersionResponse]:
    """Get the API version.

    Args:
        request: The incoming HTTP request.

    Returns:
        The response status code and message.
    """
    return 200, VersionResponse(version=settings.VERSION)


@api.get("/healthcheck", tags=["Healthcheck"], response={200: ResponseOk})
def healthcheck(request: HttpRequest) -> tuple[int, ResponseOk]:
    """Check the health of the API."""
    return 200, ResponseOk()


api.register_controllers(
    AuthController,
    EventController,
    OrderController,
    OrderAdminController,
    EventAdminController,
    CheckInController,
)

EXCEPTION_HANDLERS = {
    Exception: handle_general_exception,
    ValidationError: handle_django_validation_error,
    NinjaValidationError: handle_request_validation_error,
    HttpError: handle_http_error,
    Http404: handle_not_found,
    AuthenticationError: handle_authentication_error,
    APIException: handle_api_exception,
    TicketingError: handle_ticketing_error,
    DocumentRenderingError: handle_document_rendering_error,
}

for exc, handler in EXCEPTION_HANDLERS.items():
    api.add_exception_handler(exc, handler)
