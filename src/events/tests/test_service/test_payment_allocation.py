import random
from dataclasses import dataclass
from decimal import Decimal

import pytest

from events.service.payment_allocation import build_epc_payload, percentages_sum_to_total, select_bank_account


@dataclass(frozen=True)
class Account:
    name: str
    percentage: Decimal


class TestSelectBankAccount:
    def test_weighted_draws_follow_the_percentages(self) -> None:
        accounts = [Account("B", Decimal("30")), Account("A", Decimal("70"))]
        rng = random.Random(20260627)
        draws = 100_000

        picks = [select_bank_account(accounts, rng).name for _ in range(draws)]

        share_a = picks.count("A") / draws
        assert share_a == pytest.approx(0.70, abs=0.01)
        assert picks.count("B") / draws == pytest.approx(0.30, abs=0.01)

    def test_single_account_is_always_selected(self) -> None:
        only = Account("A", Decimal("100"))
        rng = random.Random(1)

        assert all(select_bank_account([only], rng) is only for _ in range(1_000))

    def test_rounding_drift_falls_back_to_the_largest_account(self) -> None:
        """Percentages that add up to slightly less than 100 leave a gap at the top of the draw range."""
        accounts = [Account("small", Decimal("33.33")), Account("large", Decimal("66.66"))]

        class TopOfRange(random.Random):
            def random(self) -> float:
                return 0.99995

        assert select_bank_account(accounts, TopOfRange()).name == "large"

    def test_zero_percentage_accounts_are_never_drawn(self) -> None:
        accounts = [Account("A", Decimal("100")), Account("never", Decimal("0"))]
        rng = random.Random(7)

        assert {select_bank_account(accounts, rng).name for _ in range(1_000)} == {"A"}

    def test_empty_list_is_rejected(self) -> None:
        with pytest.raises(ValueError):
            select_bank_account([])


@pytest.mark.parametrize(
    "percentages,expected",
    [
        ([Decimal("70"), Decimal("30")], True),
        ([Decimal("33.33"), Decimal("33.33"), Decimal("33.34")], True),
        ([Decimal("99.99")], True),
        ([Decimal("60"), Decimal("37")], False),
        ([Decimal("100"), Decimal("0.02")], False),
    ],
)
def test_percentages_sum_to_total(percentages: list[Decimal], expected: bool) -> None:
    assert percentages_sum_to_total(percentages) is expected


class TestBuildEpcPayload:
    def test_reference_payload_is_bit_exact(self) -> None:
        payload = build_epc_payload(
            account_name="Max Mustermann",
            iban="DE89 3704 0044 0532 0130 00",
            bic="COBADEFFXXX",
            amount=65.0,
            reference="MUSTER001",
        )

        assert payload == (
            "BCD\n002\n1\nSCT\nCOBADEFFXXX\nMax Mustermann\nDE89370400440532013000\nEUR65.00\n\nMUSTER001\n"
        )

    def test_decimal_amounts_are_rendered_with_two_places(self) -> None:
        payload = build_epc_payload(
            account_name="Abiturjahrgang",
            iban="DE02120300000000202051",
            bic="",
            amount=Decimal("130.5"),
            reference="ERIKA002",
            recipient_info="Abiball",
        )

        lines = payload.split("\n")
        assert len(lines) == 11
        assert lines[4] == ""
        assert lines[7] == "EUR130.50"
        assert lines[10] == "Abiball"
