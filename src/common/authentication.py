import typing as t

import structlog
from django.http import HttpRequest
from django.utils import translation
from ninja_jwt.authentication import JWTAuth


class I18nJWTAuth(JWTAuth):
    """JWT authentication that activates the user's preferred language.

    Error messages and emails produced while handling the request use the language
    stored on the user. The user id is bound to the structlog context.
    """

    def authenticate(self, request: HttpRequest, token: str) -> t.Any:
        """Authenticate the request and activate the user's language.

        Raises:
            AuthenticationFailed: If authentication fails
            InvalidToken: If the token is invalid
        """
        user = super().authenticate(request, token)
        if user:
            structlog.contextvars.bind_contextvars(user_id=str(user.pk))
            if language := getattr(user, "language", None):
                translation.activate(language)
                request.LANGUAGE_CODE = language
        return user
