import re
import typing as t
import uuid

from django.conf import settings
from django.contrib.auth.models import AbstractUser, UserManager
from django.db import models


class BallUserQueryset(models.QuerySet["BallUser"]):
    """Queryset for BallUser."""


class BallUserManager(UserManager["BallUser"]):
    def get_queryset(self) -> BallUserQueryset:
        """Get queryset for BallUser."""
        return BallUserQueryset(self.model)


class BallUser(AbstractUser):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(db_index=True, max_length=255, blank=True, help_text="Full name as printed on orders")
    phone = models.CharField(max_length=32, blank=True, help_text="Phone number")
    address = models.TextField(blank=True, help_text="Postal address")
    email_verified = models.BooleanField(default=False)
    language = models.CharField(
        max_length=7,
        choices=settings.LANGUAGES,
        default=settings.LANGUAGE_CODE,
        help_text="Language for emails and API messages",
    )

    objects = BallUserManager()  # type: ignore[misc]

    class Meta:
        ordering = ["username"]

    def save(self, *args: t.Any, **kwargs: t.Any) -> None:
        """Normalize the phone number before saving."""
        if self.phone:
            self.phone = re.sub(r"[^\d+]", "", self.phone)
        super().save(*args, **kwargs)

    @property
    def display_name(self) -> str:
        """Display name."""
        return self.get_display_name()

    def get_display_name(self) -> str:
        """Returns the user's name, or their full name as a fallback."""
        return self.name or self.get_full_name() or re.sub(r"(\W|_)+", " ", self.username.split("@")[0]).title()

    def reference_handle(self) -> str:
        """The handle used to build bank transfer references for this user."""
        handle = self.username or self.email.split("@")[0]
        return re.sub(r"[^A-Za-z0-9]", "", handle.split("@")[0])
