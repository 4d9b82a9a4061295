"""Tests for the PPh21 calculation paths."""
from decimal import Decimal

import pytest

from pph21_service.core.exceptions import InvalidCalculationInput
from pph21_service.services.pph21 import (
    CalculationMode,
    DeductionLine,
    DeductionRole,
    EarningLine,
    TaxProfile,
    YtdAggregate,
    attempt,
    calculate_annual_from_lines,
    calculate_december,
    calculate_for_month,
    calculate_monthly,
    calculate_standalone_annual,
)
from pph21_service.services.pph21.calculator import biaya_jabatan, iuran_pensiun

D = Decimal
TK0 = TaxProfile(ptkp_code="TK0", has_npwp=True)


def salary(amount: str, taxable: bool = True) -> list[EarningLine]:
    return [EarningLine(amount=D(amount), taxable=taxable)]


def test_monthly_tk0_ten_million():
    result = calculate_monthly(TK0, salary("10000000"), [], month=6)

    assert result.mode is CalculationMode.MONTHLY
    assert result.month == 6
    assert result.bruto == D("10000000")
    assert result.biaya_jabatan == D("500000")
    assert result.iuran_pensiun == D("200000")
    assert result.zakat == D("0")
    assert result.neto == D("9300000")
    assert result.neto_annualized == D("111600000")
    assert result.ptkp_yearly == D("54000000")
    assert result.pkp == D("57600000")
    assert result.pph21_annual == D("2880000")
    assert result.pph21_period == D("240000")
    assert result.pph21_settlement_december == D("0")
    assert result.over_withheld == D("0")


def test_standalone_annual_without_npwp():
    profile = TaxProfile(ptkp_code="TK0", has_npwp=False)
    result = calculate_standalone_annual(profile, D("120000000"))

    assert result.mode is CalculationMode.ANNUAL
    assert result.month is None
    assert result.biaya_jabatan == D("6000000")
    assert result.iuran_pensiun == D("2400000")
    assert result.neto == D("111600000")
    assert result.pkp == D("57600000")
    assert result.pph21_annual == D("3456000")
    assert result.pph21_period == D("288000")
    assert result.pph21_ytd == D("0")


def test_december_over_withheld_is_clamped_and_reported():
    # 62.7M prior neto + 9.3M December neto = 72M, pkp 18M, tax 900,000
    ytd = YtdAggregate(neto_yearly=D("62700000"), pph21_ytd=D("1000000"))
    result = calculate_december(TK0, salary("10000000"), [], ytd)

    assert result.mode is CalculationMode.DECEMBER
    assert result.month == 12
    assert result.pkp == D("18000000")
    assert result.pph21_annual == D("900000")
    assert result.pph21_period == D("0")
    assert result.pph21_settlement_december == D("0")
    assert result.over_withheld == D("100000")
    assert any("Kelebihan potong" in note for note in result.notes)


def test_december_settles_the_remaining_tax():
    ytd = YtdAggregate(neto_yearly=D("9300000") * 11, pph21_ytd=D("240000") * 11)
    result = calculate_december(TK0, salary("10000000"), [], ytd)

    assert result.neto_annualized == D("111600000")
    assert result.pkp == D("57600000")
    assert result.pph21_annual == D("2880000")
    assert result.pph21_ytd == D("2640000")
    assert result.pph21_period == D("240000")
    assert result.pph21_settlement_december == D("240000")
    assert result.over_withheld == D("0")


@pytest.mark.parametrize("pph21_ytd", ["0", "500000", "900000", "1000000", "5000000"])
def test_december_reconciliation_identity(pph21_ytd):
    ytd = YtdAggregate(neto_yearly=D("62700000"), pph21_ytd=D(pph21_ytd))
    result = calculate_december(TK0, salary("10000000"), [], ytd)

    assert result.pph21_period >= 0
    assert result.over_withheld >= 0
    assert result.pph21_period - result.over_withheld == result.pph21_annual - result.pph21_ytd


def test_december_pkp_is_the_true_annual_figure():
    # a large December bonus is not annualised
    ytd = YtdAggregate(neto_yearly=D("55000000"), pph21_ytd=D("0"))
    result = calculate_december(TK0, salary("2000000"), [], ytd)

    neto_december = D("2000000") - D("100000") - D("100000")
    assert result.neto == neto_december
    assert result.pkp == D("2800000")


def test_calculate_for_month_dispatches_on_month():
    assert calculate_for_month(TK0, salary("10000000"), [], 11).mode is CalculationMode.MONTHLY
    assert calculate_for_month(TK0, salary("10000000"), [], 12).mode is CalculationMode.DECEMBER


@pytest.mark.parametrize("month", [0, 13, -1])
def test_calculate_for_month_rejects_out_of_range_month(month):
    with pytest.raises(InvalidCalculationInput):
        calculate_for_month(TK0, salary("10000000"), [], month)


def test_monthly_path_rejects_december():
    with pytest.raises(InvalidCalculationInput) as exc:
        calculate_monthly(TK0, salary("10000000"), [], month=12)
    assert exc.value.code == "CAL300"


def test_monthly_and_annual_paths_agree_on_equivalent_income():
    monthly = calculate_monthly(TK0, salary("10000000"), [], month=3)
    annual = calculate_standalone_annual(TK0, D("120000000"))

    assert monthly.pph21_annual == annual.pph21_annual
    assert monthly.pph21_period == annual.pph21_period


def test_annual_bruto_in_monthly_path_uses_monthly_caps():
    # feeding a yearly figure to the monthly path annualises it a second time
    wrong = calculate_monthly(TK0, salary("120000000"), [], month=1)
    right = calculate_standalone_annual(TK0, D("120000000"))

    assert wrong.biaya_jabatan == D("500000")
    assert right.biaya_jabatan == D("6000000")
    assert wrong.pph21_annual > right.pph21_annual * 10


def test_annual_from_lines_matches_amount_form():
    lines = calculate_annual_from_lines(
        TK0,
        [EarningLine(amount=D("100000000")), EarningLine(amount=D("20000000"))],
        [DeductionLine(amount=D("1000000"), role=DeductionRole.ZAKAT)],
    )
    amounts = calculate_standalone_annual(TK0, D("120000000"), zakat=D("1000000"))
    assert lines.as_dict() == amounts.as_dict()


def test_npwp_penalty_is_twenty_percent():
    with_npwp = calculate_monthly(TK0, salary("15000000"), [], month=4)
    without = calculate_monthly(TaxProfile("TK0", has_npwp=False), salary("15000000"), [], month=4)

    assert without.pph21_annual == (with_npwp.pph21_annual * D("1.2")).quantize(D("0.01"))
    assert abs(without.pph21_period - with_npwp.pph21_period * D("1.2")) <= D("0.01")
    assert any("NPWP" in note for note in without.notes)


def test_non_taxable_earnings_are_not_bruto():
    result = calculate_monthly(
        TK0,
        [EarningLine(amount=D("8000000")), EarningLine(amount=D("750000"), taxable=False)],
        [],
        month=2,
    )
    assert result.bruto == D("8000000")


def test_deduction_overrides_are_clamped_to_caps():
    result = calculate_monthly(
        TK0,
        salary("20000000"),
        [
            DeductionLine(amount=D("900000"), role=DeductionRole.BIAYA_JABATAN),
            DeductionLine(amount=D("1000000"), role=DeductionRole.IURAN_PENSIUN),
        ],
        month=5,
    )
    assert result.biaya_jabatan == D("500000")
    assert result.iuran_pensiun == D("200000")


def test_standalone_zero_overrides_mean_no_deduction():
    result = calculate_standalone_annual(
        TK0, D("120000000"), biaya_jabatan_override=D("0"), iuran_pensiun_override=D("0")
    )
    assert result.biaya_jabatan == D("0")
    assert result.iuran_pensiun == D("0")
    assert result.neto == D("120000000")

    computed = calculate_standalone_annual(TK0, D("120000000"))
    assert computed.biaya_jabatan == D("6000000")
    assert computed.iuran_pensiun == D("2400000")
    assert result.pph21_annual > computed.pph21_annual


def test_monthly_zero_overrides_replace_computed_amounts():
    result = calculate_monthly(
        TK0, salary("10000000"), [], month=5, biaya_jabatan_override=D("0"), iuran_pensiun_override=D("0")
    )
    assert result.biaya_jabatan == D("0")
    assert result.iuran_pensiun == D("0")
    assert result.neto == D("10000000")


def test_zero_deduction_lines_still_compute_statutory_amounts():
    result = calculate_monthly(
        TK0,
        salary("10000000"),
        [
            DeductionLine(amount=D("0"), role=DeductionRole.BIAYA_JABATAN),
            DeductionLine(amount=D("0"), role=DeductionRole.IURAN_PENSIUN),
        ],
        month=5,
    )
    assert result.biaya_jabatan == D("500000")
    assert result.iuran_pensiun == D("200000")


@pytest.mark.parametrize("mode, cap", [(CalculationMode.MONTHLY, D("500000")), (CalculationMode.ANNUAL, D("6000000"))])
def test_biaya_jabatan_zero_override_is_kept(mode, cap):
    assert biaya_jabatan(D("100000000"), mode, D("0")) == D("0")
    assert biaya_jabatan(D("100000000"), mode, None) == cap


def test_supplied_iuran_pensiun_below_cap_is_used():
    result = calculate_monthly(
        TK0, salary("10000000"), [DeductionLine(amount=D("150000"), role=DeductionRole.IURAN_PENSIUN)], month=5
    )
    assert result.iuran_pensiun == D("150000")
    assert result.neto == D("9350000")


def test_zakat_and_other_deductible_reduce_neto_but_plain_deductions_do_not():
    result = calculate_monthly(
        TK0,
        salary("10000000"),
        [
            DeductionLine(amount=D("250000"), role=DeductionRole.ZAKAT),
            DeductionLine(amount=D("100000"), role=DeductionRole.OTHER_TAX_DEDUCTIBLE),
            DeductionLine(amount=D("400000"), role=DeductionRole.NONE),
        ],
        month=7,
    )
    assert result.zakat == D("250000")
    assert result.other_deductions == D("100000")
    assert result.neto == D("8950000")


@pytest.mark.parametrize("bad_zakat", [D("-500000"), "not-a-number", D("NaN")])
def test_garbage_zakat_counts_as_zero(bad_zakat):
    result = calculate_monthly(
        TK0, salary("10000000"), [DeductionLine(amount=bad_zakat, role=DeductionRole.ZAKAT)], month=7
    )
    assert result.zakat == D("0")
    assert result.neto == D("9300000")


def test_standalone_negative_zakat_counts_as_zero():
    result = calculate_standalone_annual(TK0, D("120000000"), zakat=D("-1"))
    assert result.zakat == D("0")


def test_unknown_ptkp_code_is_treated_as_tk0():
    result = calculate_monthly(TaxProfile("K/9"), salary("10000000"), [], month=1)
    assert result.ptkp_code == "TK0"
    assert result.ptkp_yearly == D("54000000")


def test_income_below_ptkp_has_no_tax():
    result = calculate_monthly(TaxProfile("K3"), salary("5000000"), [], month=1)
    assert result.pkp == D("0")
    assert result.pph21_period == D("0")


def test_neto_never_negative():
    result = calculate_monthly(
        TK0, salary("1000000"), [DeductionLine(amount=D("5000000"), role=DeductionRole.OTHER_TAX_DEDUCTIBLE)], month=1
    )
    assert result.neto == D("0")
    assert result.pkp == D("0")


@pytest.mark.parametrize(
    "earnings,deductions",
    [
        (salary("-1"), []),
        ([EarningLine(amount="abc")], []),
        (salary("10000000"), [DeductionLine(amount=D("-100"), role=DeductionRole.IURAN_PENSIUN)]),
        ([EarningLine(amount=D("Infinity"))], []),
    ],
)
def test_invalid_amounts_are_rejected(earnings, deductions):
    with pytest.raises(InvalidCalculationInput):
        calculate_monthly(TK0, earnings, deductions, month=1)


def test_missing_profile_is_rejected():
    with pytest.raises(InvalidCalculationInput):
        calculate_monthly(None, salary("10000000"), [], month=1)
    with pytest.raises(InvalidCalculationInput):
        calculate_standalone_annual(None, D("120000000"))


def test_negative_ytd_is_rejected():
    with pytest.raises(InvalidCalculationInput):
        calculate_december(TK0, salary("10000000"), [], YtdAggregate(neto_yearly=D("-1")))


def test_attempt_captures_calculation_errors():
    failed = attempt(calculate_monthly, TK0, salary("-1"), [], 1)
    assert not failed.ok
    assert failed.result is None
    assert failed.error.code == "CAL300"

    ok = attempt(calculate_monthly, TK0, salary("10000000"), [], 1)
    assert ok.ok
    assert ok.result.pph21_period == D("240000")


def test_same_inputs_give_identical_results():
    ytd = YtdAggregate(neto_yearly=D("50000000"), pph21_ytd=D("700000"))
    first = calculate_december(TK0, salary("12345678.90"), [], ytd)
    second = calculate_december(TK0, salary("12345678.90"), [], ytd)
    assert first == second


def test_results_are_rounded_to_cents():
    result = calculate_monthly(TK0, salary("12345678.91"), [], month=8)
    for key in ("bruto", "neto", "pkp", "pph21_annual", "pph21_period"):
        assert getattr(result, key).as_tuple().exponent == -2


@pytest.mark.parametrize("bruto", ["0", "1000000", "9999999", "10000000", "10000001", "50000000"])
def test_biaya_jabatan_stays_within_cap(bruto):
    monthly = biaya_jabatan(D(bruto), CalculationMode.MONTHLY)
    annual = biaya_jabatan(D(bruto) * 12, CalculationMode.ANNUAL)
    assert D("0") <= monthly <= D("500000")
    assert D("0") <= annual <= D("6000000")
    assert iuran_pensiun(D(bruto), CalculationMode.MONTHLY) <= D("200000")


def test_biaya_jabatan_is_monotonic_up_to_cap():
    values = [biaya_jabatan(D(b), CalculationMode.MONTHLY) for b in range(0, 20_000_000, 500_000)]
    assert values == sorted(values)
    assert values[-1] == D("500000")
