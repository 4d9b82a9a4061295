"""Value records consumed and produced by the PPh21 calculator."""
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

ZERO = Decimal("0")


class DeductionRole(str, enum.Enum):
    """Tax meaning of a deduction line.

    Assigned once on the deduction component catalog entry; the calculator
    only ever looks at this value, never at component names or codes.
    """
    BIAYA_JABATAN = "biaya_jabatan"
    IURAN_PENSIUN = "iuran_pensiun"
    ZAKAT = "zakat"
    OTHER_TAX_DEDUCTIBLE = "other_tax_deductible"
    NONE = "none"


class CalculationMode(str, enum.Enum):
    """Which calculation path produced a result.

    MONTHLY and DECEMBER take monthly earnings and use monthly deduction
    caps. ANNUAL takes an already-annual gross figure and uses annual caps.
    """
    MONTHLY = "monthly"
    DECEMBER = "december"
    ANNUAL = "annual"

    @property
    def uses_annual_caps(self) -> bool:
        return self is CalculationMode.ANNUAL


@dataclass(frozen=True)
class TaxProfile:
    ptkp_code: str
    has_npwp: bool = True


@dataclass(frozen=True)
class EarningLine:
    amount: Decimal
    taxable: bool = True


@dataclass(frozen=True)
class DeductionLine:
    amount: Decimal
    role: DeductionRole = DeductionRole.NONE


@dataclass(frozen=True)
class YtdAggregate:
    """Prior-period totals of one employment within the current tax year."""
    neto_yearly: Decimal = ZERO
    pph21_ytd: Decimal = ZERO


@dataclass(frozen=True)
class CalculationResult:
    mode: CalculationMode
    month: int | None
    ptkp_code: str
    has_npwp: bool
    bruto: Decimal
    biaya_jabatan: Decimal
    iuran_pensiun: Decimal
    zakat: Decimal
    other_deductions: Decimal
    neto: Decimal
    neto_annualized: Decimal
    ptkp_yearly: Decimal
    pkp: Decimal
    pph21_annual: Decimal
    pph21_period: Decimal
    pph21_ytd: Decimal
    pph21_settlement_december: Decimal
    over_withheld: Decimal
    notes: tuple[str, ...] = field(default_factory=tuple)

    def as_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            "month": self.month,
            "ptkp_code": self.ptkp_code,
            "has_npwp": self.has_npwp,
            "bruto": self.bruto,
            "biaya_jabatan": self.biaya_jabatan,
            "iuran_pensiun": self.iuran_pensiun,
            "zakat": self.zakat,
            "other_deductions": self.other_deductions,
            "neto": self.neto,
            "neto_annualized": self.neto_annualized,
            "ptkp_yearly": self.ptkp_yearly,
            "pkp": self.pkp,
            "pph21_annual": self.pph21_annual,
            "pph21_period": self.pph21_period,
            "pph21_ytd": self.pph21_ytd,
            "pph21_settlement_december": self.pph21_settlement_december,
            "over_withheld": self.over_withheld,
            "notes": list(self.notes),
        }
