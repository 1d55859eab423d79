from datetime import date

import pytest

from events.exceptions import TicketValidationError
from events.service.birthdate import (
    AgeStatus,
    age_badge,
    age_status,
    calculate_age,
    parse_birthdate,
    validate_birthdate,
)

BALL_NIGHT = date(2026, 6, 27)


@pytest.mark.parametrize(
    "value,expected",
    [
        ("2008-06-27", date(2008, 6, 27)),
        ("27.06.2008", date(2008, 6, 27)),
        ("  2008-06-27 ", date(2008, 6, 27)),
        (date(2008, 6, 27), date(2008, 6, 27)),
    ],
)
def test_parse_birthdate_accepts_iso_and_german_dates(value: str | date, expected: date) -> None:
    assert parse_birthdate(value) == expected


@pytest.mark.parametrize("value", ["", "   ", None])
def test_parse_birthdate_requires_a_value(value: str | None) -> None:
    with pytest.raises(TicketValidationError, match="Birthdate is required."):
        parse_birthdate(value)


def test_parse_birthdate_rejects_unknown_formats() -> None:
    with pytest.raises(TicketValidationError, match="Invalid birthdate format: 06/27/2008"):
        parse_birthdate("06/27/2008")


def test_calculate_age_counts_full_years() -> None:
    assert calculate_age(date(2008, 6, 27), BALL_NIGHT) == 18
    assert calculate_age(date(2008, 6, 28), BALL_NIGHT) == 17


def test_validate_birthdate_rejects_dates_after_the_event() -> None:
    with pytest.raises(TicketValidationError, match="cannot be after the event date"):
        validate_birthdate("2026-06-28", BALL_NIGHT)


def test_validate_birthdate_rejects_implausible_ages() -> None:
    with pytest.raises(TicketValidationError, match="not plausible"):
        validate_birthdate("1900-01-01", BALL_NIGHT)


def test_validate_birthdate_accepts_a_birthday_on_the_event_date() -> None:
    assert validate_birthdate("27.06.2026", BALL_NIGHT) == BALL_NIGHT


@pytest.mark.parametrize(
    "birthdate,status,badge",
    [
        (date(2008, 6, 27), AgeStatus.ADULT, "18+"),
        (date(2008, 6, 28), AgeStatus.MINOR_16, "16+"),
        (date(2010, 6, 27), AgeStatus.MINOR_16, "16+"),
        (date(2010, 6, 28), AgeStatus.MINOR, "U16"),
    ],
)
def test_age_status_relative_to_event_date(birthdate: date, status: AgeStatus, badge: str) -> None:
    assert age_status(birthdate, BALL_NIGHT) == status
    assert age_badge(birthdate, BALL_NIGHT) == badge


def test_unknown_birthdate_has_no_status() -> None:
    assert age_status(None, BALL_NIGHT) is None
    assert age_badge(None, BALL_NIGHT) == ""
