"""Standalone calculator, batch and calculation history schemas."""
from __future__ import annotations

import datetime as dt
import enum
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from pph21_service.core.config import settings
from pph21_service.models.schemas.payroll import CalculationOut
from pph21_service.services.pph21 import PTKP_CODES, CalculationMode


class CalculatorMode(str, enum.Enum):
    """How the calculator interprets the gross amounts it receives."""
    ANNUAL = "annual"  # amounts are yearly totals
    MONTHLY = "monthly"  # amounts are one month, projected x12


class LineEarningIn(BaseModel):
    component_id: int
    amount: Decimal = Field(..., ge=0)


class LineDeductionIn(BaseModel):
    deduction_component_id: int
    amount: Decimal = Field(..., ge=0)


def _check_monthly_month(mode: CalculatorMode, month: int | None) -> None:
    # December needs the year-to-date reconciliation only committed payroll has
    if mode is CalculatorMode.MONTHLY and month == 12:
        raise ValueError("monthly mode accepts months 1-11; December is settled by payroll commit")


def _blank_to_none(v: Any) -> Any:
    if isinstance(v, str) and not v.strip():
        return None
    return v


class CalculationInput(BaseModel):
    """Amounts form (bruto + optional overrides) or lines form (component lines).

    Sending ``earnings`` selects the lines form; otherwise ``bruto`` is required.
    """
    bruto: Decimal | None = Field(None, ge=0, description="Gross taxable income")
    biaya_jabatan: Decimal | None = Field(None, ge=0, description="Override, clamped to the statutory cap")
    iuran_pensiun: Decimal | None = Field(None, ge=0, description="Override, clamped to the statutory cap")
    zakat: Decimal | None = Field(None, description="Negative values count as zero")
    earnings: list[LineEarningIn] | None = None
    deductions: list[LineDeductionIn] | None = None

    @field_validator("bruto", "biaya_jabatan", "iuran_pensiun", "zakat", mode="before")
    @classmethod
    def blank_is_absent(cls, v: Any) -> Any:
        return _blank_to_none(v)

    @field_validator("zakat")
    @classmethod
    def clamp_zakat(cls, v: Decimal | None) -> Decimal | None:
        if v is not None and v < 0:
            return Decimal("0")
        return v

    @model_validator(mode="after")
    def _require_amounts_or_lines(self) -> CalculationInput:
        if self.earnings is None and self.bruto is None:
            raise ValueError("Provide either bruto or an earnings list")
        if self.earnings is not None and not self.earnings:
            raise ValueError("earnings must contain at least one line")
        return self

    @property
    def uses_lines(self) -> bool:
        return self.earnings is not None


class CalculatorRequest(CalculationInput):
    ptkp_code: str = Field(..., description="PTKP status code, e.g. TK0 or K1")
    has_npwp: bool = True
    mode: CalculatorMode
    month: int | None = Field(None, ge=1, le=12, description="Month label; monthly mode accepts 1-11")

    @field_validator("ptkp_code")
    @classmethod
    def validate_ptkp(cls, v: str) -> str:
        code = v.strip().upper()
        if code not in PTKP_CODES:
            raise ValueError(f"ptkp_code must be one of {', '.join(PTKP_CODES)}")
        return code

    @model_validator(mode="after")
    def _month_fits_mode(self) -> CalculatorRequest:
        _check_monthly_month(self.mode, self.month)
        return self


class BatchItemIn(CalculationInput):
    employment_id: int


class BatchRequest(BaseModel):
    mode: CalculatorMode
    month: int | None = Field(None, ge=1, le=12)
    calculations: list[BatchItemIn] = Field(..., min_length=1, max_length=settings.CALCULATOR_BATCH_MAX_ITEMS)

    @model_validator(mode="after")
    def _month_fits_mode(self) -> BatchRequest:
        _check_monthly_month(self.mode, self.month)
        return self


class BatchResultOut(BaseModel):
    employment_id: int
    person_name: str | None = None
    result: CalculationOut | None = None
    error: str | None = None
    code: str | None = None


class BatchOut(BaseModel):
    month: int
    mode: CalculatorMode
    total: int
    success: int
    failed: int
    results: list[BatchResultOut]


class EmployeeSearchOut(BaseModel):
    employment_id: int
    person_id: str
    person_name: str
    nik: str | None = None
    org_unit_id: int | None = None
    org_unit_name: str | None = None
    employment_type: str
    ptkp_code: str | None = None
    has_npwp: bool | None = None


class EmployeeSearchPage(BaseModel):
    items: list[EmployeeSearchOut]
    total: int
    page: int
    page_size: int
    total_pages: int


class HistoryEntryIn(BaseModel):
    employment_id: int | None = None
    person_name: str | None = Field(None, max_length=255)
    year: int = Field(..., ge=2000, le=2100)
    month: int = Field(..., ge=1, le=12)
    calculation_mode: CalculationMode = Field(..., description="Mode the result was computed in")
    ptkp_code: str
    has_npwp: bool = True
    bruto: Decimal = Field(..., ge=0)
    biaya_jabatan: Decimal = Field(..., ge=0)
    iuran_pensiun: Decimal = Field(..., ge=0)
    zakat: Decimal = Field(Decimal("0"), ge=0)
    neto: Decimal = Field(..., ge=0)
    ptkp_yearly: Decimal = Field(..., ge=0)
    pkp: Decimal = Field(..., ge=0)
    pph21_period: Decimal = Field(..., ge=0)
    pph21_annual: Decimal = Field(Decimal("0"), ge=0)
    notes: list[str] | None = None
    earnings_breakdown: list[dict[str, Any]] | None = None
    deductions_breakdown: list[dict[str, Any]] | None = None

    @field_validator("calculation_mode")
    @classmethod
    def calculator_modes_only(cls, v: CalculationMode) -> CalculationMode:
        if v is CalculationMode.DECEMBER:
            raise ValueError("December reconciliation results are stored by payroll commit, not history")
        return v


class HistorySaveRequest(BaseModel):
    calculations: list[HistoryEntryIn] = Field(..., min_length=1)


class HistoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    employment_id: int | None = None
    person_name: str | None = None
    year: int
    month: int
    calculation_mode: CalculationMode
    ptkp_code: str
    has_npwp: bool
    bruto: Decimal
    biaya_jabatan: Decimal
    iuran_pensiun: Decimal
    zakat: Decimal
    neto: Decimal
    ptkp_yearly: Decimal
    pkp: Decimal
    pph21_period: Decimal
    pph21_annual: Decimal
    notes: list[str] | None = None
    earnings_breakdown: list[dict[str, Any]] | None = None
    deductions_breakdown: list[dict[str, Any]] | None = None
    created_at: dt.datetime | None = None


class HistoryPage(BaseModel):
    items: list[HistoryOut]
    total: int
    page: int
    page_size: int
    total_pages: int


class HistorySummaryRow(BaseModel):
    year: int
    count: int
    total_bruto: Decimal
    total_pph21: Decimal


class EmployeeHistoryRow(BaseModel):
    employment_id: int
    person_name: str | None = None
    ptkp_code: str
    has_npwp: bool
    year: int
    latest_calculation_date: dt.datetime | None = None
    status_text: str
    calculation_count: int
    total_bruto_ytd: Decimal
    total_neto_ytd: Decimal
    total_pph21_ytd: Decimal
    total_pkp_ytd: Decimal


class HistoryPeriodOut(BaseModel):
    month: int
    year: int
    calculation_mode: CalculationMode
    calculation_date: dt.date | None = None
    bruto: Decimal
    biaya_jabatan: Decimal
    iuran_pensiun: Decimal
    zakat: Decimal
    neto: Decimal
    neto_annualized: Decimal
    ptkp_yearly: Decimal
    pkp: Decimal
    pph21_period: Decimal
    pph21_ytd: Decimal
    notes: list[str] = []


class EmployeeHistorySummary(BaseModel):
    total_pph21_ytd: Decimal
    total_pkp: Decimal
    calculated_months: list[int]


class EmployeeHistoryDetailOut(BaseModel):
    employment_id: int
    person_name: str
    nik: str | None = None
    npwp: str | None = None
    ptkp_code: str | None = None
    has_npwp: bool | None = None
    year: int
    periods: list[HistoryPeriodOut]
    summary: EmployeeHistorySummary
