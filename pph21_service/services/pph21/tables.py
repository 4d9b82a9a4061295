"""Statutory PPh21 constants: PTKP thresholds, Pasal 17 brackets, deduction caps.

Pure lookups with no database access.
"""
from __future__ import annotations

from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal

from pph21_service.services.pph21.types import ZERO

# Yearly tax-free thresholds (PTKP) per marital / dependent status
PTKP_YEARLY: dict[str, Decimal] = {
    "TK0": Decimal("54000000"),
    "TK1": Decimal("58500000"),
    "TK2": Decimal("63000000"),
    "TK3": Decimal("67500000"),
    "K0": Decimal("58500000"),
    "K1": Decimal("63000000"),
    "K2": Decimal("67500000"),
    "K3": Decimal("72000000"),
}
PTKP_CODES = tuple(PTKP_YEARLY)
DEFAULT_PTKP_CODE = "TK0"

# Pasal 17 progressive brackets: (lower inclusive, upper exclusive, rate)
TAX_BRACKETS: tuple[tuple[Decimal, Decimal | None, Decimal], ...] = (
    (Decimal("0"), Decimal("60000000"), Decimal("0.05")),
    (Decimal("60000000"), Decimal("250000000"), Decimal("0.15")),
    (Decimal("250000000"), Decimal("500000000"), Decimal("0.25")),
    (Decimal("500000000"), Decimal("5000000000"), Decimal("0.30")),
    (Decimal("5000000000"), None, Decimal("0.35")),
)

BIAYA_JABATAN_RATE = Decimal("0.05")
BIAYA_JABATAN_MAX_MONTHLY = Decimal("500000")
BIAYA_JABATAN_MAX_YEARLY = Decimal("6000000")

IURAN_PENSIUN_RATE = Decimal("0.05")
IURAN_PENSIUN_MAX_MONTHLY = Decimal("200000")
IURAN_PENSIUN_MAX_YEARLY = Decimal("2400000")

# Withholding is 20% higher for employees without an NPWP
NPWP_PENALTY_MULTIPLIER = Decimal("1.2")

PKP_ROUNDING_UNIT = Decimal("1000")
MONTHS_PER_YEAR = 12
CENT = Decimal("0.01")


def resolve_ptkp_code(code: str | None) -> str:
    """Normalise a PTKP code; unknown codes fall back to TK0."""
    normalized = (code or "").strip().upper()
    return normalized if normalized in PTKP_YEARLY else DEFAULT_PTKP_CODE


def ptkp_yearly(code: str | None) -> Decimal:
    return PTKP_YEARLY[resolve_ptkp_code(code)]


def biaya_jabatan_cap(annual: bool) -> Decimal:
    return BIAYA_JABATAN_MAX_YEARLY if annual else BIAYA_JABATAN_MAX_MONTHLY


def iuran_pensiun_cap(annual: bool) -> Decimal:
    return IURAN_PENSIUN_MAX_YEARLY if annual else IURAN_PENSIUN_MAX_MONTHLY


def progressive_tax(pkp: Decimal) -> Decimal:
    """Tax owed on ``pkp`` under the progressive brackets. Zero for pkp <= 0."""
    remaining = pkp
    tax = ZERO
    for lower, upper, rate in TAX_BRACKETS:
        if remaining <= 0:
            break
        portion = remaining if upper is None else min(remaining, upper - lower)
        tax += portion * rate
        remaining -= portion
    return tax


def floor_to_thousand(amount: Decimal) -> Decimal:
    return (amount / PKP_ROUNDING_UNIT).to_integral_value(rounding=ROUND_FLOOR) * PKP_ROUNDING_UNIT


def round_money(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)
