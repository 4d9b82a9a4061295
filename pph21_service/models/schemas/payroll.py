"""Period, payroll input and payroll result schemas."""
from __future__ import annotations

import datetime as dt
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from pph21_service.models.payroll_models import PeriodStatus
from pph21_service.services.pph21 import CalculationMode


class PeriodCreate(BaseModel):
    year: int = Field(..., ge=2000, le=2100)
    month: int = Field(..., ge=1, le=12)


class PeriodStatusUpdate(BaseModel):
    status: PeriodStatus


class PeriodOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    year: int
    month: int
    status: PeriodStatus
    created_at: dt.datetime | None = None


class EarningIn(BaseModel):
    employment_id: int
    component_id: int
    amount: Decimal = Field(..., ge=0, description="Amount in Rupiah")
    meta: dict[str, Any] | None = None


class EarningsUpsert(BaseModel):
    period_id: int
    earnings: list[EarningIn] = Field(..., min_length=1)


class EarningOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    period_id: int
    employment_id: int
    component_id: int
    amount: Decimal
    meta: dict[str, Any] | None = None


class DeductionIn(BaseModel):
    employment_id: int
    deduction_component_id: int
    amount: Decimal = Field(..., ge=0, description="Amount in Rupiah")


class DeductionsUpsert(BaseModel):
    period_id: int
    deductions: list[DeductionIn] = Field(..., min_length=1)


class DeductionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    period_id: int
    employment_id: int
    deduction_component_id: int
    amount: Decimal


class UpsertResultOut(BaseModel):
    period_id: int
    created: int
    updated: int


class CalculationOut(BaseModel):
    """One PPh21 result, fresh from the calculator or loaded from storage."""
    model_config = ConfigDict(from_attributes=True)

    employment_id: int | None = None
    person_name: str | None = None
    mode: CalculationMode
    month: int | None = None
    ptkp_code: str
    has_npwp: bool
    bruto: Decimal
    biaya_jabatan: Decimal
    iuran_pensiun: Decimal
    zakat: Decimal
    other_deductions: Decimal = Decimal("0")
    neto: Decimal
    neto_annualized: Decimal
    ptkp_yearly: Decimal
    pkp: Decimal
    pph21_annual: Decimal
    pph21_period: Decimal
    pph21_ytd: Decimal
    pph21_settlement_december: Decimal
    over_withheld: Decimal = Decimal("0")
    notes: list[str] = []


class CalculationFailureOut(BaseModel):
    employment_id: int
    error: str
    code: str


class PayrollPreviewOut(BaseModel):
    period: PeriodOut
    results: list[CalculationOut]
    failed: list[CalculationFailureOut]


class PayrollCommitOut(BaseModel):
    period: PeriodOut
    committed: list[CalculationOut]
    failed: list[CalculationFailureOut]


class PayrollSummaryRow(BaseModel):
    employment_id: int
    person_name: str | None = None
    calculation_mode: CalculationMode
    bruto: Decimal
    neto: Decimal
    pph21_period: Decimal


class PayrollSummaryOut(BaseModel):
    period: PeriodOut
    employee_count: int
    total_bruto: Decimal
    total_neto: Decimal
    total_pph21: Decimal
    rows: list[PayrollSummaryRow]


class SlipLineOut(BaseModel):
    code: str
    name: str
    amount: Decimal
    taxable: bool | None = None
    role: str | None = None


class PayslipOut(BaseModel):
    period: PeriodOut
    employment_id: int
    person_id: str
    person_name: str
    nik: str | None = None
    npwp: str | None = None
    org_unit: str | None = None
    earnings: list[SlipLineOut]
    deductions: list[SlipLineOut]
    calculation: CalculationOut | None = None
