"""Weighted bank account selection and the EPC QR (SEPA credit transfer) payload."""

import random
import re
import typing as t
from decimal import Decimal

import structlog

logger = structlog.get_logger(__name__)

PERCENTAGE_TOTAL = Decimal("100")
PERCENTAGE_TOLERANCE = Decimal("0.01")

# EPC069-12 header: service tag, version, UTF-8 charset, SEPA credit transfer
EPC_SERVICE_TAG = "BCD"
EPC_VERSION = "002"
EPC_CHARSET = "1"
EPC_IDENTIFICATION = "SCT"
EPC_CURRENCY = "EUR"


class WeightedAccount(t.Protocol):
    percentage: Decimal


A = t.TypeVar("A", bound=WeightedAccount)


def percentages_sum_to_total(percentages: t.Iterable[Decimal]) -> bool:
    """Whether the percentages add up to 100 within the tolerance."""
    return abs(sum(percentages, Decimal("0")) - PERCENTAGE_TOTAL) <= PERCENTAGE_TOLERANCE


def select_bank_account(accounts: t.Sequence[A], rng: random.Random | None = None) -> A:
    """Pick an account with probability proportional to its percentage.

    Accounts are walked in descending percentage order. A draw in ``[0, 100)`` selects the first
    account whose running total exceeds it. If rounding leaves the total short of the draw, the
    first account is returned.

    Raises:
        ValueError: if no accounts are given.
    """
    if not accounts:
        raise ValueError("At least one bank account is required.")
    ordered = sorted(accounts, key=lambda account: account.percentage, reverse=True)
    if len(ordered) == 1:
        return ordered[0]
    draw = (rng or random).random() * 100.0
    cumulative = 0.0
    for account in ordered:
        cumulative += float(account.percentage)
        if draw < cumulative:
            return account
    logger.info("bank_account_selection_fallback", draw=draw, cumulative=cumulative)
    return ordered[0]


def build_epc_payload(
    *,
    account_name: str,
    iban: str,
    bic: str | None,
    amount: Decimal | float,
    reference: str | None,
    recipient_info: str | None = None,
) -> str:
    """Build the newline separated EPC QR payload banking apps use to prefill a transfer.

    Field order is fixed: service tag, version, charset, identification, BIC, name, IBAN,
    amount, purpose, remittance reference, beneficiary information.
    """
    return "\n".join(
        [
            EPC_SERVICE_TAG,
            EPC_VERSION,
            EPC_CHARSET,
            EPC_IDENTIFICATION,
            bic or "",
            account_name,
            re.sub(r"\s+", "", iban),
            f"{EPC_CURRENCY}{Decimal(str(amount)):.2f}",
            "",
            reference or "",
            recipient_info or "",
        ]
    )
