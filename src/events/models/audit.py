import typing as t

from django.db import models

from common.models import TimeStampedModel


class ImmutableRecordError(Exception):
    """Raised when trying to change or remove an audit record."""


class BirthdateAuditLog(TimeStampedModel):
    """Append-only trail of birthdate corrections.

    The order is referenced by id only so the trail survives order deletion.
    """

    order_id = models.UUIDField(db_index=True)
    ticket_number = models.PositiveIntegerField()
    participant_name = models.CharField(max_length=255)
    old_value = models.DateField(null=True, blank=True)
    new_value = models.DateField()
    reason = models.TextField()
    operator = models.CharField(max_length=255)
    timestamp = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["-timestamp"]

    def save(self, *args: t.Any, **kwargs: t.Any) -> None:
        """Only inserts are allowed."""
        if not self._state.adding:
            raise ImmutableRecordError("Birthdate audit records cannot be changed.")
        super().save(*args, **kwargs)

    def delete(self, *args: t.Any, **kwargs: t.Any) -> tuple[int, dict[str, int]]:
        """Audit records are never deleted."""
        raise ImmutableRecordError("Birthdate audit records cannot be deleted.")

    def __str__(self) -> str:
        return f"{self.participant_name}: {self.old_value} -> {self.new_value}"
