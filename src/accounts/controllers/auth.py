"""Token endpoints. Registration and account management happen outside this API."""

import typing as t

import structlog
from ninja_extra import api_controller, route
from ninja_jwt.controller import TokenObtainPairController
from ninja_jwt.schema import TokenObtainPairInputSchema, TokenObtainPairOutputSchema

from common.throttling import AuthThrottle

from ..models import BallUser

logger = structlog.get_logger(__name__)


@api_controller("/auth", tags=["Auth"], throttle=AuthThrottle())
class AuthController(TokenObtainPairController):
    @route.post("/token/pair", response=TokenObtainPairOutputSchema, url_name="token_obtain_pair")
    def obtain_token(self, user_token: TokenObtainPairInputSchema) -> TokenObtainPairOutputSchema:
        """Authenticate with username and password to obtain JWT access/refresh tokens.

        Use the access token as `Authorization: Bearer <token>` and refresh it via POST /auth/refresh.
        """
        user = t.cast(BallUser, user_token._user)
        logger.info("token_issued", user_id=str(user.pk))
        return t.cast(TokenObtainPairOutputSchema, user_token.to_response_schema())  # type: ignore[no-untyped-call]
