"""PPh21 withholding calculator.

Pure computation: no database access and no shared state. Callers resolve
the tax profile, assemble earning and deduction lines and fetch the
year-to-date aggregate before calling in; persisting the result is theirs
too.

Three paths exist and must not be mixed:

- ``calculate_monthly``: January-November. Monthly neto is annualised
  (x12), taxed, and the yearly tax is spread evenly over twelve months.
- ``calculate_december``: December. The true annual neto (prior months
  plus December) is taxed and settled against what was already withheld.
- ``calculate_standalone_annual``: ad-hoc what-if on a gross figure that is
  already annual. Annual deduction caps, no projection, no YTD.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from typing import Any

from pph21_service.core.exceptions import CalculationError, InvalidCalculationInput
from pph21_service.services.pph21.tables import (
    BIAYA_JABATAN_RATE,
    IURAN_PENSIUN_RATE,
    MONTHS_PER_YEAR,
    NPWP_PENALTY_MULTIPLIER,
    biaya_jabatan_cap,
    floor_to_thousand,
    iuran_pensiun_cap,
    progressive_tax,
    ptkp_yearly,
    resolve_ptkp_code,
    round_money,
)
from pph21_service.services.pph21.types import (
    ZERO,
    CalculationMode,
    CalculationResult,
    DeductionLine,
    DeductionRole,
    EarningLine,
    TaxProfile,
    YtdAggregate,
)

logger = logging.getLogger(__name__)

DECEMBER = 12


@dataclass(frozen=True)
class LineTotals:
    """Earning and deduction lines reduced to the amounts the formulas use.

    ``biaya_jabatan`` / ``iuran_pensiun`` are None when the statutory value
    is to be computed. Payroll lines only set them from a positive sum;
    explicit overrides set them to any amount, 0 included.
    """
    bruto: Decimal
    biaya_jabatan: Decimal | None
    iuran_pensiun: Decimal | None
    zakat: Decimal
    other_tax_deductible: Decimal


@dataclass(frozen=True)
class CalculationOutcome:
    """Either a result or the calculation error that prevented it."""
    result: CalculationResult | None = None
    error: CalculationError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def attempt(calculation: Callable[..., CalculationResult], *args: Any, **kwargs: Any) -> CalculationOutcome:
    """Run one calculation and capture a ``CalculationError`` as a value.

    Batch callers use this to keep going past a failing employment.
    """
    try:
        return CalculationOutcome(result=calculation(*args, **kwargs))
    except CalculationError as exc:
        return CalculationOutcome(error=exc)


# ----------------------------------------------------------------------------
# Input validation
# ----------------------------------------------------------------------------

def to_money(value: Any, field: str) -> Decimal:
    """Coerce ``value`` to a finite, non-negative Decimal."""
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise InvalidCalculationInput(f"{field} must be a number", field=field, value=value) from exc
    if not amount.is_finite():
        raise InvalidCalculationInput(f"{field} must be a finite number", field=field, value=value)
    if amount < 0:
        raise InvalidCalculationInput(f"{field} must not be negative", field=field, value=value)
    return amount


def _require_profile(profile: TaxProfile | None) -> TaxProfile:
    if profile is None:
        raise InvalidCalculationInput("Tax profile is required", field="profile")
    return profile


def _validate_month(month: int, low: int, high: int) -> int:
    if not isinstance(month, int) or isinstance(month, bool) or not low <= month <= high:
        raise InvalidCalculationInput(f"month must be between {low} and {high}", field="month", value=month)
    return month


def _validate_ytd(ytd: YtdAggregate | None) -> YtdAggregate:
    if ytd is None:
        return YtdAggregate()
    return YtdAggregate(
        neto_yearly=to_money(ytd.neto_yearly, "ytd.neto_yearly"),
        pph21_ytd=to_money(ytd.pph21_ytd, "ytd.pph21_ytd"),
    )


# ----------------------------------------------------------------------------
# Deductions
# ----------------------------------------------------------------------------

def summarize_lines(earnings: Iterable[EarningLine], deductions: Iterable[DeductionLine]) -> LineTotals:
    bruto = ZERO
    for index, line in enumerate(earnings):
        amount = to_money(line.amount, f"earnings[{index}].amount")
        if line.taxable:
            bruto += amount

    by_role: dict[DeductionRole, Decimal] = {role: ZERO for role in DeductionRole}
    for index, line in enumerate(deductions):
        if line.role is DeductionRole.ZAKAT:
            # negative or malformed zakat counts as zero
            by_role[line.role] += _non_negative(line.amount)
            continue
        by_role[line.role] += to_money(line.amount, f"deductions[{index}].amount")

    return LineTotals(
        bruto=bruto,
        biaya_jabatan=by_role[DeductionRole.BIAYA_JABATAN] or None,
        iuran_pensiun=by_role[DeductionRole.IURAN_PENSIUN] or None,
        zakat=by_role[DeductionRole.ZAKAT],
        other_tax_deductible=by_role[DeductionRole.OTHER_TAX_DEDUCTIBLE],
    )


def _apply_overrides(totals: LineTotals, biaya_jabatan_override: Any, iuran_pensiun_override: Any) -> LineTotals:
    if biaya_jabatan_override is not None:
        totals = replace(totals, biaya_jabatan=to_money(biaya_jabatan_override, "biaya_jabatan"))
    if iuran_pensiun_override is not None:
        totals = replace(totals, iuran_pensiun=to_money(iuran_pensiun_override, "iuran_pensiun"))
    return totals


def _non_negative(value: Any) -> Decimal:
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return ZERO
    if not amount.is_finite() or amount < 0:
        return ZERO
    return amount


def biaya_jabatan(bruto: Decimal, mode: CalculationMode, override: Decimal | None = None) -> Decimal:
    """5% of bruto up to the cap of ``mode``.

    A supplied override, 0 included, is used instead and clamped to the same cap.
    """
    cap = biaya_jabatan_cap(mode.uses_annual_caps)
    if override is not None:
        return min(override, cap)
    return min(bruto * BIAYA_JABATAN_RATE, cap)


def iuran_pensiun(bruto: Decimal, mode: CalculationMode, supplied: Decimal | None = None) -> Decimal:
    cap = iuran_pensiun_cap(mode.uses_annual_caps)
    if supplied is not None:
        return min(supplied, cap)
    return min(bruto * IURAN_PENSIUN_RATE, cap)


def taxable_income(neto_basis: Decimal, ptkp: Decimal) -> Decimal:
    """PKP: neto above PTKP, floored to 1,000 and never above the neto basis."""
    pkp = floor_to_thousand(max(ZERO, neto_basis - ptkp))
    return max(ZERO, min(pkp, neto_basis))


def annual_tax(pkp: Decimal, has_npwp: bool) -> Decimal:
    tax = progressive_tax(pkp)
    if not has_npwp:
        tax *= NPWP_PENALTY_MULTIPLIER
    return tax


# ----------------------------------------------------------------------------
# Calculation paths
# ----------------------------------------------------------------------------

def calculate_monthly(
    profile: TaxProfile,
    earnings: Iterable[EarningLine],
    deductions: Iterable[DeductionLine],
    month: int,
    ytd: YtdAggregate | None = None,
    *,
    biaya_jabatan_override: Any = None,
    iuran_pensiun_override: Any = None,
) -> CalculationResult:
    """Monthly withholding for January-November.

    Explicit overrides replace whatever the deduction lines say for that
    role; 0 means no deduction rather than the computed amount.
    """
    profile = _require_profile(profile)
    _validate_month(month, 1, DECEMBER - 1)
    ytd = _validate_ytd(ytd)
    totals = _apply_overrides(summarize_lines(earnings, deductions), biaya_jabatan_override, iuran_pensiun_override)

    mode = CalculationMode.MONTHLY
    bj, ip, neto = _monthly_neto(totals, mode)
    neto_annualized = neto * MONTHS_PER_YEAR
    ptkp_code = resolve_ptkp_code(profile.ptkp_code)
    ptkp = ptkp_yearly(ptkp_code)
    pkp = taxable_income(neto_annualized, ptkp)
    tax_year = annual_tax(pkp, profile.has_npwp)
    pph21_period = round_money(tax_year / MONTHS_PER_YEAR)

    logger.debug("monthly pph21 month=%s bruto=%s pkp=%s pph21=%s", month, totals.bruto, pkp, pph21_period)
    return _build_result(
        mode=mode,
        month=month,
        ptkp_code=ptkp_code,
        has_npwp=profile.has_npwp,
        totals=totals,
        biaya_jabatan_amount=bj,
        iuran_pensiun_amount=ip,
        neto=neto,
        neto_annualized=neto_annualized,
        ptkp=ptkp,
        pkp=pkp,
        tax_year=tax_year,
        pph21_period=pph21_period,
        pph21_ytd=ytd.pph21_ytd,
        settlement=ZERO,
        over_withheld=ZERO,
    )


def calculate_december(
    profile: TaxProfile,
    earnings: Iterable[EarningLine],
    deductions: Iterable[DeductionLine],
    ytd: YtdAggregate | None = None,
) -> CalculationResult:
    """December reconciliation against January-November withholding.

    The reported withholding is never negative. Over-withholding from earlier
    months is reported separately in ``over_withheld``.
    """
    profile = _require_profile(profile)
    ytd = _validate_ytd(ytd)
    totals = summarize_lines(earnings, deductions)

    mode = CalculationMode.DECEMBER
    bj, ip, neto = _monthly_neto(totals, mode)
    neto_yearly_total = ytd.neto_yearly + neto
    ptkp_code = resolve_ptkp_code(profile.ptkp_code)
    ptkp = ptkp_yearly(ptkp_code)
    pkp = taxable_income(neto_yearly_total, ptkp)
    tax_year = annual_tax(pkp, profile.has_npwp)
    settlement = round_money(tax_year) - round_money(ytd.pph21_ytd)
    pph21_period = max(ZERO, settlement)
    over_withheld = max(ZERO, -settlement)

    logger.debug(
        "december pph21 neto_year=%s pkp=%s tax_year=%s ytd=%s settlement=%s",
        neto_yearly_total, pkp, tax_year, ytd.pph21_ytd, settlement,
    )
    return _build_result(
        mode=mode,
        month=DECEMBER,
        ptkp_code=ptkp_code,
        has_npwp=profile.has_npwp,
        totals=totals,
        biaya_jabatan_amount=bj,
        iuran_pensiun_amount=ip,
        neto=neto,
        neto_annualized=neto_yearly_total,
        ptkp=ptkp,
        pkp=pkp,
        tax_year=tax_year,
        pph21_period=pph21_period,
        pph21_ytd=ytd.pph21_ytd,
        settlement=pph21_period,
        over_withheld=over_withheld,
    )


def calculate_for_month(
    profile: TaxProfile,
    earnings: Iterable[EarningLine],
    deductions: Iterable[DeductionLine],
    month: int,
    ytd: YtdAggregate | None = None,
) -> CalculationResult:
    """Pick the monthly or December path for a payroll period month."""
    _validate_month(month, 1, DECEMBER)
    if month == DECEMBER:
        return calculate_december(profile, earnings, deductions, ytd)
    return calculate_monthly(profile, earnings, deductions, month, ytd)


def calculate_standalone_annual(
    profile: TaxProfile,
    annual_bruto: Any,
    biaya_jabatan_override: Any = None,
    iuran_pensiun_override: Any = None,
    zakat: Any = ZERO,
    other_tax_deductible: Any = ZERO,
) -> CalculationResult:
    """What-if calculation on an already-annual gross income.

    The monthly figure is ``annual tax / 12`` for display only; this path
    never looks at prior periods.
    """
    profile = _require_profile(profile)
    totals = LineTotals(
        bruto=to_money(annual_bruto, "annual_bruto"),
        biaya_jabatan=None if biaya_jabatan_override is None else to_money(biaya_jabatan_override, "biaya_jabatan"),
        iuran_pensiun=None if iuran_pensiun_override is None else to_money(iuran_pensiun_override, "iuran_pensiun"),
        zakat=_non_negative(zakat),
        other_tax_deductible=to_money(other_tax_deductible, "other_tax_deductible"),
    )
    return _calculate_annual_totals(profile, totals)


def calculate_annual_from_lines(
    profile: TaxProfile,
    earnings: Iterable[EarningLine],
    deductions: Iterable[DeductionLine],
) -> CalculationResult:
    """Standalone annual calculation where the lines carry yearly amounts."""
    profile = _require_profile(profile)
    return _calculate_annual_totals(profile, summarize_lines(earnings, deductions))


def _calculate_annual_totals(profile: TaxProfile, totals: LineTotals) -> CalculationResult:
    mode = CalculationMode.ANNUAL
    bj = biaya_jabatan(totals.bruto, mode, totals.biaya_jabatan)
    ip = iuran_pensiun(totals.bruto, mode, totals.iuran_pensiun)
    neto_year = max(ZERO, totals.bruto - bj - ip - totals.zakat - totals.other_tax_deductible)
    ptkp_code = resolve_ptkp_code(profile.ptkp_code)
    ptkp = ptkp_yearly(ptkp_code)
    pkp = taxable_income(neto_year, ptkp)
    tax_year = annual_tax(pkp, profile.has_npwp)

    return _build_result(
        mode=mode,
        month=None,
        ptkp_code=ptkp_code,
        has_npwp=profile.has_npwp,
        totals=totals,
        biaya_jabatan_amount=bj,
        iuran_pensiun_amount=ip,
        neto=neto_year,
        neto_annualized=neto_year,
        ptkp=ptkp,
        pkp=pkp,
        tax_year=tax_year,
        pph21_period=round_money(tax_year / MONTHS_PER_YEAR),
        pph21_ytd=ZERO,
        settlement=ZERO,
        over_withheld=ZERO,
    )


def _monthly_neto(totals: LineTotals, mode: CalculationMode) -> tuple[Decimal, Decimal, Decimal]:
    bj = biaya_jabatan(totals.bruto, mode, totals.biaya_jabatan)
    ip = iuran_pensiun(totals.bruto, mode, totals.iuran_pensiun)
    neto = max(ZERO, totals.bruto - bj - ip - totals.zakat - totals.other_tax_deductible)
    return bj, ip, neto


def _build_result(
    *,
    mode: CalculationMode,
    month: int | None,
    ptkp_code: str,
    has_npwp: bool,
    totals: LineTotals,
    biaya_jabatan_amount: Decimal,
    iuran_pensiun_amount: Decimal,
    neto: Decimal,
    neto_annualized: Decimal,
    ptkp: Decimal,
    pkp: Decimal,
    tax_year: Decimal,
    pph21_period: Decimal,
    pph21_ytd: Decimal,
    settlement: Decimal,
    over_withheld: Decimal,
) -> CalculationResult:
    return CalculationResult(
        mode=mode,
        month=month,
        ptkp_code=ptkp_code,
        has_npwp=has_npwp,
        bruto=round_money(totals.bruto),
        biaya_jabatan=round_money(biaya_jabatan_amount),
        iuran_pensiun=round_money(iuran_pensiun_amount),
        zakat=round_money(totals.zakat),
        other_deductions=round_money(totals.other_tax_deductible),
        neto=round_money(neto),
        neto_annualized=round_money(neto_annualized),
        ptkp_yearly=round_money(ptkp),
        pkp=round_money(pkp),
        pph21_annual=round_money(tax_year),
        pph21_period=round_money(pph21_period),
        pph21_ytd=round_money(pph21_ytd),
        pph21_settlement_december=round_money(settlement),
        over_withheld=round_money(over_withheld),
        notes=tuple(build_notes(mode, ptkp_code, ptkp, has_npwp, over_withheld)),
    )


# ----------------------------------------------------------------------------
# Notes
# ----------------------------------------------------------------------------

def format_rupiah(amount: Decimal) -> str:
    """Indonesian thousands grouping: 54000000 -> '54.000.000'."""
    return f"{int(amount):,}".replace(",", ".")


def build_notes(
    mode: CalculationMode,
    ptkp_code: str,
    ptkp: Decimal,
    has_npwp: bool,
    over_withheld: Decimal = ZERO,
) -> list[str]:
    notes = [f"PTKP: {ptkp_code} ({format_rupiah(ptkp)} per tahun)"]
    if not has_npwp:
        notes.append("Peringatan: Tidak memiliki NPWP, PPh21 dikenakan tarif 20% lebih tinggi")

    if mode is CalculationMode.DECEMBER:
        notes.append("Perhitungan Desember: rekonsiliasi tahunan terhadap PPh21 Januari-November")
        if over_withheld > 0:
            notes.append(f"Kelebihan potong PPh21 tahun berjalan: {format_rupiah(over_withheld)}")
    elif mode is CalculationMode.MONTHLY:
        notes.append("Perhitungan bulanan: penghasilan neto disetahunkan (x12)")
    else:
        notes.append("Perhitungan tahunan: PPh21 per bulan hanya untuk tampilan")

    if mode.uses_annual_caps:
        notes.append("Biaya Jabatan: 5% dari bruto, maksimal 6.000.000/tahun")
        notes.append("Iuran Pensiun: 5% dari bruto, maksimal 2.400.000/tahun")
    else:
        notes.append("Biaya Jabatan: 5% dari bruto, maksimal 500.000/bulan")
        notes.append("Iuran Pensiun: 5% dari bruto, maksimal 200.000/bulan")
    return notes
