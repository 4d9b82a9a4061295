"""Standalone PPh21 calculator, batch runs and saved calculation history.

Nothing here touches payroll periods: results are what-if figures. The
caller states explicitly whether the gross amounts are annual or monthly.
"""
from __future__ import annotations

import datetime as dt
import logging
from collections import defaultdict
from decimal import Decimal
from typing import Annotated

from fastapi import Depends
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from pph21_service import metrics
from pph21_service.core.exceptions import InvalidCalculationInput, ResourceNotFoundError
from pph21_service.db.session import get_db
from pph21_service.models import schemas
from pph21_service.models.hr_models import Employment, Person
from pph21_service.models.payroll_models import CalculationHistory, Component, DeductionComponent
from pph21_service.services.payroll_service import calculation_out_from_result
from pph21_service.services.pph21 import (
    CalculationMode,
    CalculationResult,
    DeductionLine,
    DeductionRole,
    EarningLine,
    TaxProfile,
    attempt,
    calculate_annual_from_lines,
    calculate_monthly,
    calculate_standalone_annual,
)
from pph21_service.services.pph21.tables import DEFAULT_PTKP_CODE, MONTHS_PER_YEAR

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
DEFAULT_MONTH = 11

MONTH_NAMES = {
    1: "Januari",
    2: "Februari",
    3: "Maret",
    4: "April",
    5: "Mei",
    6: "Juni",
    7: "Juli",
    8: "Agustus",
    9: "September",
    10: "Oktober",
    11: "November",
    12: "Desember",
}


def history_status_text(months: set[int]) -> str:
    """Indonesian progress label for the months calculated in a year."""
    if not months:
        return "Belum ada perhitungan"
    if min(months) == 1 and max(months) == 12:
        return "Dihitung untuk seluruh tahun"
    return f"Dihitung sampai {MONTH_NAMES[max(months)]}"


def annualized_neto(row: CalculationHistory) -> Decimal:
    # annual-mode rows already hold a yearly neto
    if row.calculation_mode is CalculationMode.ANNUAL:
        return row.neto
    return row.neto * MONTHS_PER_YEAR


class CalculatorService:
    def __init__(self, db: Session):
        self.db = db

    # --------------------------------------------------------------- inputs

    def _resolve_lines(
        self,
        tenant_id: int,
        earnings: list[schemas.LineEarningIn],
        deductions: list[schemas.LineDeductionIn] | None,
    ) -> tuple[list[EarningLine], list[DeductionLine]]:
        """Turn catalog-referencing lines into engine lines using the tenant's catalogs."""
        deductions = deductions or []
        components = {
            c.id: c
            for c in self.db.query(Component).filter(
                Component.tenant_id == tenant_id,
                Component.id.in_({e.component_id for e in earnings}),
            )
        }
        deduction_components = {
            c.id: c
            for c in self.db.query(DeductionComponent).filter(
                DeductionComponent.tenant_id == tenant_id,
                DeductionComponent.id.in_({d.deduction_component_id for d in deductions}),
            )
        }

        earning_lines = []
        for line in earnings:
            component = components.get(line.component_id)
            if component is None:
                raise InvalidCalculationInput(
                    f"Unknown earning component {line.component_id}",
                    field="earnings.component_id",
                    value=line.component_id,
                )
            earning_lines.append(EarningLine(amount=line.amount, taxable=component.taxable))

        deduction_lines = []
        for line in deductions:
            component = deduction_components.get(line.deduction_component_id)
            if component is None:
                raise InvalidCalculationInput(
                    f"Unknown deduction component {line.deduction_component_id}",
                    field="deductions.deduction_component_id",
                    value=line.deduction_component_id,
                )
            deduction_lines.append(DeductionLine(amount=line.amount, role=component.role))
        return earning_lines, deduction_lines

    @staticmethod
    def _amount_lines(item: schemas.CalculationInput) -> tuple[list[EarningLine], list[DeductionLine]]:
        deductions = []
        if item.zakat is not None:
            deductions.append(DeductionLine(amount=item.zakat, role=DeductionRole.ZAKAT))
        return [EarningLine(amount=item.bruto or ZERO)], deductions

    def _compute(
        self,
        tenant_id: int,
        profile: TaxProfile,
        item: schemas.CalculationInput,
        mode: schemas.CalculatorMode,
        month: int,
    ) -> CalculationResult:
        if mode is schemas.CalculatorMode.ANNUAL:
            if item.uses_lines:
                earnings, deductions = self._resolve_lines(tenant_id, item.earnings, item.deductions)
                return calculate_annual_from_lines(profile, earnings, deductions)
            return calculate_standalone_annual(
                profile,
                item.bruto,
                biaya_jabatan_override=item.biaya_jabatan,
                iuran_pensiun_override=item.iuran_pensiun,
                zakat=item.zakat or ZERO,
            )

        # no payroll history here, so every month is projected from itself
        if item.uses_lines:
            earnings, deductions = self._resolve_lines(tenant_id, item.earnings, item.deductions)
            return calculate_monthly(profile, earnings, deductions, month)
        earnings, deductions = self._amount_lines(item)
        return calculate_monthly(
            profile,
            earnings,
            deductions,
            month,
            biaya_jabatan_override=item.biaya_jabatan,
            iuran_pensiun_override=item.iuran_pensiun,
        )

    # ----------------------------------------------------------- calculator

    def calculate(self, tenant_id: int, payload: schemas.CalculatorRequest) -> schemas.CalculationOut:
        profile = TaxProfile(ptkp_code=payload.ptkp_code, has_npwp=payload.has_npwp)
        month = payload.month or DEFAULT_MONTH
        try:
            result = self._compute(tenant_id, profile, payload, payload.mode, month)
        except InvalidCalculationInput as exc:
            metrics.calculation_failed(exc.code)
            raise
        metrics.calculation_served(result.mode.value, "calculator")
        return calculation_out_from_result(result)

    def batch(self, tenant_id: int, payload: schemas.BatchRequest) -> schemas.BatchOut:
        """Calculate each listed employment, reporting failures next to successes."""
        month = payload.month or DEFAULT_MONTH
        employments = {
            e.id: e
            for e in self.db.query(Employment).filter(
                Employment.tenant_id == tenant_id,
                Employment.id.in_({item.employment_id for item in payload.calculations}),
            )
        }

        results: list[schemas.BatchResultOut] = []
        for item in payload.calculations:
            employment = employments.get(item.employment_id)
            if employment is None:
                error = ResourceNotFoundError("Employment", item.employment_id)
                results.append(
                    schemas.BatchResultOut(employment_id=item.employment_id, error=error.message, code=error.code)
                )
                continue

            subject = employment.active_payroll_subject
            profile = TaxProfile(
                ptkp_code=subject.ptkp_code if subject else DEFAULT_PTKP_CODE,
                has_npwp=subject.has_npwp if subject else True,
            )
            person_name = employment.person.full_name
            outcome = attempt(self._compute, tenant_id, profile, item, payload.mode, month)
            if outcome.ok:
                metrics.calculation_served(outcome.result.mode.value, "batch")
                results.append(
                    schemas.BatchResultOut(
                        employment_id=employment.id,
                        person_name=person_name,
                        result=calculation_out_from_result(outcome.result, employment.id, person_name),
                    )
                )
            else:
                metrics.calculation_failed(outcome.error.code)
                results.append(
                    schemas.BatchResultOut(
                        employment_id=employment.id,
                        person_name=person_name,
                        error=outcome.error.message,
                        code=outcome.error.code,
                    )
                )

        success = sum(1 for r in results if r.error is None)
        logger.info("Calculator batch tenant=%s total=%d success=%d", tenant_id, len(results), success)
        return schemas.BatchOut(
            month=month,
            mode=payload.mode,
            total=len(results),
            success=success,
            failed=len(results) - success,
            results=results,
        )

    def search_employees(
        self,
        tenant_id: int,
        search: str | None = None,
        org_unit_id: int | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[schemas.EmployeeSearchOut], int]:
        """Active employments of the tenant with their current tax profile."""
        today = dt.date.today()
        query = (
            self.db.query(Employment)
            .join(Person, Person.id == Employment.person_id)
            .filter(
                Employment.tenant_id == tenant_id,
                or_(Employment.end_date.is_(None), Employment.end_date >= today),
            )
        )
        if search:
            term = f"%{search}%"
            query = query.filter(or_(Person.full_name.ilike(term), Person.nik.ilike(term)))
        if org_unit_id:
            query = query.filter(Employment.org_unit_id == org_unit_id)

        total = query.count()
        offset = (page - 1) * page_size
        employments = (
            query.order_by(Employment.start_date.desc(), Employment.id)
            .offset(offset)
            .limit(page_size)
            .all()
        )
        items = []
        for employment in employments:
            subject = employment.active_payroll_subject
            items.append(
                schemas.EmployeeSearchOut(
                    employment_id=employment.id,
                    person_id=employment.person_id,
                    person_name=employment.person.full_name,
                    nik=employment.person.nik,
                    org_unit_id=employment.org_unit_id,
                    org_unit_name=employment.org_unit.name if employment.org_unit else None,
                    employment_type=employment.employment_type,
                    ptkp_code=subject.ptkp_code if subject else None,
                    has_npwp=subject.has_npwp if subject else None,
                )
            )
        return items, total

    # -------------------------------------------------------------- history

    def save_history(
        self,
        tenant_id: int,
        user_id: int,
        payload: schemas.HistorySaveRequest,
    ) -> list[CalculationHistory]:
        saved = []
        for entry in payload.calculations:
            data = entry.model_dump()
            if entry.employment_id is not None:
                employment = (
                    self.db.query(Employment)
                    .filter(Employment.id == entry.employment_id, Employment.tenant_id == tenant_id)
                    .one_or_none()
                )
                if employment is None:
                    raise ResourceNotFoundError("Employment", entry.employment_id)
                data["person_name"] = entry.person_name or employment.person.full_name
            row = CalculationHistory(tenant_id=tenant_id, user_id=user_id, **data)
            self.db.add(row)
            saved.append(row)
        self.db.commit()
        for row in saved:
            self.db.refresh(row)
        logger.info("Saved %d history entries for user %s in tenant %s", len(saved), user_id, tenant_id)
        return saved

    def _history_query(self, tenant_id: int, user_id: int):
        return self.db.query(CalculationHistory).filter(
            CalculationHistory.tenant_id == tenant_id,
            CalculationHistory.user_id == user_id,
        )

    def list_history(
        self,
        tenant_id: int,
        user_id: int,
        year: int | None = None,
        month: int | None = None,
        employment_id: int | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> tuple[list[CalculationHistory], int]:
        query = self._history_query(tenant_id, user_id)
        if year:
            query = query.filter(CalculationHistory.year == year)
        if month:
            query = query.filter(CalculationHistory.month == month)
        if employment_id:
            query = query.filter(CalculationHistory.employment_id == employment_id)
        total = query.count()
        offset = (page - 1) * page_size
        items = (
            query.order_by(
                CalculationHistory.year.desc(),
                CalculationHistory.month.desc(),
                CalculationHistory.created_at.desc(),
                CalculationHistory.id.desc(),
            )
            .offset(offset)
            .limit(page_size)
            .all()
        )
        return items, total

    def history_summary(self, tenant_id: int, user_id: int) -> list[schemas.HistorySummaryRow]:
        rows = (
            self._history_query(tenant_id, user_id)
            .with_entities(
                CalculationHistory.year,
                func.count(CalculationHistory.id),
                func.coalesce(func.sum(CalculationHistory.bruto), 0),
                func.coalesce(func.sum(CalculationHistory.pph21_period), 0),
            )
            .group_by(CalculationHistory.year)
            .order_by(CalculationHistory.year.desc())
            .all()
        )
        return [
            schemas.HistorySummaryRow(
                year=year,
                count=count,
                total_bruto=Decimal(str(total_bruto)),
                total_pph21=Decimal(str(total_pph21)),
            )
            for year, count, total_bruto, total_pph21 in rows
        ]

    @staticmethod
    def _latest_per_month(rows: list[CalculationHistory]) -> dict[int, CalculationHistory]:
        """Keep the most recent saved entry for each month."""
        latest: dict[int, CalculationHistory] = {}
        for row in rows:
            current = latest.get(row.month)
            if current is None or (row.created_at, row.id) > (current.created_at, current.id):
                latest[row.month] = row
        return latest

    def employee_history_list(
        self,
        tenant_id: int,
        user_id: int,
        year: int | None = None,
    ) -> list[schemas.EmployeeHistoryRow]:
        """One row per employment and year, with year-to-date totals."""
        query = self._history_query(tenant_id, user_id).filter(CalculationHistory.employment_id.isnot(None))
        if year:
            query = query.filter(CalculationHistory.year == year)

        groups: dict[tuple[int, int], list[CalculationHistory]] = defaultdict(list)
        for row in query.all():
            groups[(row.employment_id, row.year)].append(row)

        summaries = []
        for (employment_id, group_year), rows in groups.items():
            by_month = self._latest_per_month(rows)
            newest = max(rows, key=lambda r: (r.created_at, r.id))
            summaries.append(
                schemas.EmployeeHistoryRow(
                    employment_id=employment_id,
                    person_name=newest.person_name,
                    ptkp_code=newest.ptkp_code,
                    has_npwp=newest.has_npwp,
                    year=group_year,
                    latest_calculation_date=newest.created_at,
                    status_text=history_status_text(set(by_month)),
                    calculation_count=len(rows),
                    total_bruto_ytd=sum((r.bruto for r in by_month.values()), ZERO),
                    total_neto_ytd=sum((r.neto for r in by_month.values()), ZERO),
                    total_pph21_ytd=sum((r.pph21_period for r in by_month.values()), ZERO),
                    total_pkp_ytd=sum((r.pkp for r in by_month.values()), ZERO),
                )
            )
        summaries.sort(key=lambda s: (-s.year, s.person_name or ""))
        return summaries

    def employee_history_detail(
        self,
        tenant_id: int,
        user_id: int,
        employment_id: int,
        year: int,
    ) -> schemas.EmployeeHistoryDetailOut:
        employment = (
            self.db.query(Employment)
            .filter(Employment.id == employment_id, Employment.tenant_id == tenant_id)
            .one_or_none()
        )
        if employment is None:
            raise ResourceNotFoundError("Employment", employment_id)

        rows = (
            self._history_query(tenant_id, user_id)
            .filter(CalculationHistory.employment_id == employment_id, CalculationHistory.year == year)
            .all()
        )
        by_month = self._latest_per_month(rows)

        periods = []
        running_pph21 = ZERO
        total_pkp = ZERO
        for month in sorted(by_month):
            row = by_month[month]
            running_pph21 += row.pph21_period
            total_pkp += row.pkp
            periods.append(
                schemas.HistoryPeriodOut(
                    month=month,
                    year=year,
                    calculation_mode=row.calculation_mode,
                    calculation_date=row.created_at.date() if row.created_at else None,
                    bruto=row.bruto,
                    biaya_jabatan=row.biaya_jabatan,
                    iuran_pensiun=row.iuran_pensiun,
                    zakat=row.zakat,
                    neto=row.neto,
                    neto_annualized=annualized_neto(row),
                    ptkp_yearly=row.ptkp_yearly,
                    pkp=row.pkp,
                    pph21_period=row.pph21_period,
                    pph21_ytd=running_pph21,
                    notes=row.notes or [],
                )
            )

        person = employment.person
        subject = employment.active_payroll_subject
        return schemas.EmployeeHistoryDetailOut(
            employment_id=employment.id,
            person_name=person.full_name,
            nik=person.nik,
            npwp=person.npwp,
            ptkp_code=subject.ptkp_code if subject else None,
            has_npwp=subject.has_npwp if subject else None,
            year=year,
            periods=periods,
            summary=schemas.EmployeeHistorySummary(
                total_pph21_ytd=running_pph21,
                total_pkp=total_pkp,
                calculated_months=sorted(by_month),
            ),
        )


def get_calculator_service(db: Annotated[Session, Depends(get_db)]) -> CalculatorService:
    return CalculatorService(db)
