"""Birthdate parsing and age rules shared by ordering, scanning and corrections."""

from datetime import date, datetime
from enum import StrEnum

from django.utils.translation import gettext_lazy as _

from events.exceptions import TicketValidationError

MAX_AGE = 120
ADULT_AGE = 18
MINOR_16_AGE = 16

BIRTHDATE_FORMATS = ("%Y-%m-%d", "%d.%m.%Y")


class AgeStatus(StrEnum):
    ADULT = "adult"
    MINOR_16 = "minor_16"
    MINOR = "minor"


AGE_BADGES: dict[AgeStatus, str] = {
    AgeStatus.ADULT: "18+",
    AgeStatus.MINOR_16: "16+",
    AgeStatus.MINOR: "U16",
}


def parse_birthdate(value: str | date | None) -> date:
    """Parse an ISO (``YYYY-MM-DD``) or German (``DD.MM.YYYY``) date.

    Raises:
        TicketValidationError: if the value is empty or matches no known format.
    """
    if isinstance(value, date):
        return value
    raw = (value or "").strip()
    if not raw:
        raise TicketValidationError(str(_("Birthdate is required.")))
    for fmt in BIRTHDATE_FORMATS:
        try:
            return datetime.strptime(raw, fmt).date()
        except ValueError:
            continue
    raise TicketValidationError(str(_("Invalid birthdate format: {value}")).format(value=raw))


def calculate_age(birthdate: date, reference: date) -> int:
    """Full years between birthdate and reference."""
    had_birthday = (reference.month, reference.day) >= (birthdate.month, birthdate.day)
    return reference.year - birthdate.year - (0 if had_birthday else 1)


def validate_birthdate(value: str | date | None, reference: date) -> date:
    """Parse a birthdate and check it yields a plausible age at the reference date."""
    birthdate = parse_birthdate(value)
    age = calculate_age(birthdate, reference)
    if age < 0:
        raise TicketValidationError(str(_("Birthdate cannot be after the event date.")))
    if age > MAX_AGE:
        raise TicketValidationError(str(_("Birthdate is not plausible.")))
    return birthdate


def age_status(birthdate: date | None, reference: date) -> AgeStatus | None:
    """Classify an attendee for the door staff; unknown birthdates yield None."""
    if birthdate is None:
        return None
    age = calculate_age(birthdate, reference)
    if age >= ADULT_AGE:
        return AgeStatus.ADULT
    if age >= MINOR_16_AGE:
        return AgeStatus.MINOR_16
    return AgeStatus.MINOR


def age_badge(birthdate: date | None, reference: date) -> str:
    status = age_status(birthdate, reference)
    return AGE_BADGES[status] if status else ""
