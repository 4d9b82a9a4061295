"""Payroll periods, component catalogs, inputs and stored PPh21 results."""
from __future__ import annotations

import datetime as dt
import enum
from decimal import Decimal

from sqlalchemy import JSON, DateTime, Enum, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from pph21_service.db.base_class import Base
from pph21_service.models.hr_models import Employment
from pph21_service.models.models import utcnow
from pph21_service.services.pph21.types import CalculationMode, DeductionRole

MONEY = Numeric(15, 2)


def _enum_column(enum_cls: type[enum.Enum]) -> Enum:
    return Enum(enum_cls, values_callable=lambda x: [e.value for e in x], native_enum=False)


class PeriodStatus(str, enum.Enum):
    DRAFT = "draft"
    REVIEWED = "reviewed"
    APPROVED = "approved"
    POSTED = "posted"


# Allowed status changes; POSTED is terminal and only reached through commit.
PERIOD_TRANSITIONS: dict[PeriodStatus, frozenset[PeriodStatus]] = {
    PeriodStatus.DRAFT: frozenset({PeriodStatus.REVIEWED}),
    PeriodStatus.REVIEWED: frozenset({PeriodStatus.DRAFT, PeriodStatus.APPROVED}),
    PeriodStatus.APPROVED: frozenset({PeriodStatus.REVIEWED, PeriodStatus.POSTED}),
    PeriodStatus.POSTED: frozenset(),
}


class DeductionType(str, enum.Enum):
    MANDATORY = "mandatory"
    CUSTOM = "custom"


class DeductionCalculationType(str, enum.Enum):
    AUTO = "auto"
    MANUAL = "manual"
    PERCENTAGE = "percentage"


class Period(Base):
    __table_args__ = (
        UniqueConstraint("tenant_id", "year", "month", name="uq_period_tenant_year_month"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    tenant_id: Mapped[int] = mapped_column(ForeignKey("tenant.id", ondelete="CASCADE"), index=True)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[PeriodStatus] = mapped_column(
        _enum_column(PeriodStatus),
        default=PeriodStatus.DRAFT,
        nullable=False,
    )
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
    )

    @property
    def is_posted(self) -> bool:
        return self.status == PeriodStatus.POSTED

    @property
    def label(self) -> str:
        return f"{self.year}-{self.month:02d}"


class Component(Base):
    """Earning component catalog entry (salary, allowances, bonuses...)."""
    __table_args__ = (
        UniqueConstraint("tenant_id", "code", name="uq_component_tenant_code"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    tenant_id: Mapped[int] = mapped_column(ForeignKey("tenant.id", ondelete="CASCADE"), index=True)
    code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    group: Mapped[str] = mapped_column(String(50), default="earning")
    taxable: Mapped[bool] = mapped_column(default=True)
    is_mandatory: Mapped[bool] = mapped_column(default=False)
    priority: Mapped[int] = mapped_column(Integer, default=0)
    is_active: Mapped[bool] = mapped_column(default=True)


class DeductionComponent(Base):
    """Deduction catalog entry.

    ``role`` fixes how the calculator treats amounts booked against this
    component. It is set when the entry is created or edited, never inferred
    from the name at calculation time.
    """
    __tablename__ = "deduction_component"
    __table_args__ = (
        UniqueConstraint("tenant_id", "code", name="uq_deduction_component_tenant_code"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    tenant_id: Mapped[int] = mapped_column(ForeignKey("tenant.id", ondelete="CASCADE"), index=True)
    code: Mapped[str] = mapped_column(String(50), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[DeductionType] = mapped_column(_enum_column(DeductionType), default=DeductionType.CUSTOM)
    calculation_type: Mapped[DeductionCalculationType] = mapped_column(
        _enum_column(DeductionCalculationType),
        default=DeductionCalculationType.MANUAL,
    )
    is_tax_deductible: Mapped[bool] = mapped_column(default=False)
    role: Mapped[DeductionRole] = mapped_column(_enum_column(DeductionRole), default=DeductionRole.NONE)
    priority: Mapped[int] = mapped_column(Integer, default=0)
    is_active: Mapped[bool] = mapped_column(default=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)


class Earning(Base):
    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "period_id", "employment_id", "component_id",
            name="uq_earning_period_employment_component",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    tenant_id: Mapped[int] = mapped_column(ForeignKey("tenant.id", ondelete="CASCADE"), index=True)
    period_id: Mapped[int] = mapped_column(ForeignKey("period.id", ondelete="CASCADE"), index=True)
    employment_id: Mapped[int] = mapped_column(ForeignKey("employment.id", ondelete="CASCADE"), index=True)
    component_id: Mapped[int] = mapped_column(ForeignKey("component.id"), index=True)
    amount: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    meta: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    component: Mapped[Component] = relationship("Component")


class DeductionManual(Base):
    __tablename__ = "deduction_manual"
    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "period_id", "employment_id", "deduction_component_id",
            name="uq_deduction_period_employment_component",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    tenant_id: Mapped[int] = mapped_column(ForeignKey("tenant.id", ondelete="CASCADE"), index=True)
    period_id: Mapped[int] = mapped_column(ForeignKey("period.id", ondelete="CASCADE"), index=True)
    employment_id: Mapped[int] = mapped_column(ForeignKey("employment.id", ondelete="CASCADE"), index=True)
    deduction_component_id: Mapped[int] = mapped_column(ForeignKey("deduction_component.id"), index=True)
    amount: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))

    deduction_component: Mapped[DeductionComponent] = relationship("DeductionComponent")


class PayrollCalculation(Base):
    """Committed PPh21 result, one per (tenant, employment, period)."""
    __tablename__ = "payroll_calculation"
    __table_args__ = (
        UniqueConstraint("tenant_id", "employment_id", "period_id", name="uq_payroll_calculation_employment_period"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    tenant_id: Mapped[int] = mapped_column(ForeignKey("tenant.id", ondelete="CASCADE"), index=True)
    employment_id: Mapped[int] = mapped_column(ForeignKey("employment.id", ondelete="CASCADE"), index=True)
    period_id: Mapped[int] = mapped_column(ForeignKey("period.id", ondelete="CASCADE"), index=True)
    # denormalised from the period so YTD sums need no join
    year: Mapped[int] = mapped_column(Integer, index=True)
    month: Mapped[int] = mapped_column(Integer)
    calculation_mode: Mapped[CalculationMode] = mapped_column(_enum_column(CalculationMode), nullable=False)
    ptkp_code: Mapped[str] = mapped_column(String(5))
    has_npwp: Mapped[bool] = mapped_column(default=True)
    bruto: Mapped[Decimal] = mapped_column(MONEY)
    biaya_jabatan: Mapped[Decimal] = mapped_column(MONEY)
    iuran_pensiun: Mapped[Decimal] = mapped_column(MONEY)
    zakat: Mapped[Decimal] = mapped_column(MONEY)
    other_deductions: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    neto: Mapped[Decimal] = mapped_column(MONEY)
    neto_annualized: Mapped[Decimal] = mapped_column(MONEY)
    ptkp_yearly: Mapped[Decimal] = mapped_column(MONEY)
    pkp: Mapped[Decimal] = mapped_column(MONEY)
    pph21_annual: Mapped[Decimal] = mapped_column(MONEY)
    pph21_period: Mapped[Decimal] = mapped_column(MONEY)
    pph21_ytd: Mapped[Decimal] = mapped_column(MONEY)
    pph21_settlement_december: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    over_withheld: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    notes: Mapped[list | None] = mapped_column(JSON, nullable=True)
    calculated_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
    )

    employment: Mapped[Employment] = relationship("Employment")
    period: Mapped[Period] = relationship("Period")


class CalculationHistory(Base):
    """Saved calculator runs (what-if results), kept per user."""
    __tablename__ = "calculation_history"

    id: Mapped[int] = mapped_column(primary_key=True)
    tenant_id: Mapped[int] = mapped_column(ForeignKey("tenant.id", ondelete="CASCADE"), index=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("user.id", ondelete="CASCADE"), index=True)
    employment_id: Mapped[int | None] = mapped_column(ForeignKey("employment.id", ondelete="SET NULL"), nullable=True, index=True)
    person_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    year: Mapped[int] = mapped_column(Integer, index=True)
    month: Mapped[int] = mapped_column(Integer)
    calculation_mode: Mapped[CalculationMode] = mapped_column(_enum_column(CalculationMode), nullable=False)
    ptkp_code: Mapped[str] = mapped_column(String(5))
    has_npwp: Mapped[bool] = mapped_column(default=True)
    bruto: Mapped[Decimal] = mapped_column(MONEY)
    biaya_jabatan: Mapped[Decimal] = mapped_column(MONEY)
    iuran_pensiun: Mapped[Decimal] = mapped_column(MONEY)
    zakat: Mapped[Decimal] = mapped_column(MONEY)
    neto: Mapped[Decimal] = mapped_column(MONEY)
    ptkp_yearly: Mapped[Decimal] = mapped_column(MONEY)
    pkp: Mapped[Decimal] = mapped_column(MONEY)
    pph21_period: Mapped[Decimal] = mapped_column(MONEY)
    pph21_annual: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"))
    notes: Mapped[list | None] = mapped_column(JSON, nullable=True)
    earnings_breakdown: Mapped[list | None] = mapped_column(JSON, nullable=True)
    deductions_breakdown: Mapped[list | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
    )
