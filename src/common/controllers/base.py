import typing as t

from django.contrib.auth.models import AnonymousUser
from ninja_extra import ControllerBase

from accounts.context import AuthContext, build_auth_context
from accounts.models import BallUser


class UserAwareController(ControllerBase):
    def maybe_user(self) -> BallUser | AnonymousUser:
        """Get the user for this request."""
        return t.cast(BallUser | AnonymousUser, self.context.request.user)  # type: ignore[union-attr]

    def user(self) -> BallUser:
        """Get the user for this request."""
        return t.cast(BallUser, self.context.request.user)  # type: ignore[union-attr]

    def auth_context(self) -> AuthContext:
        """Resolve identity and capabilities once for the current request."""
        return build_auth_context(self.user())
