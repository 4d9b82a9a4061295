"""Payroll input, preview and commit.

This service is the caller of the PPh21 engine: it loads the period's lines,
the employment's tax profile and the year-to-date aggregate from storage,
hands plain value records to the engine and persists what comes back.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Annotated

from fastapi import Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from pph21_service import metrics
from pph21_service.core.audit import log_audit_event
from pph21_service.core.exceptions import (
    MissingPayrollProfileError,
    PeriodLockedError,
    PeriodNotApprovedError,
    ResourceNotFoundError,
)
from pph21_service.db.session import get_db
from pph21_service.models import schemas
from pph21_service.models.hr_models import Employment
from pph21_service.models.payroll_models import (
    Component,
    DeductionComponent,
    DeductionManual,
    Earning,
    PayrollCalculation,
    Period,
    PeriodStatus,
)
from pph21_service.services.period_service import PeriodService
from pph21_service.services.pph21 import (
    CalculationOutcome,
    CalculationResult,
    DeductionLine,
    EarningLine,
    TaxProfile,
    YtdAggregate,
    attempt,
    calculate_for_month,
)
from pph21_service.services.pph21.tables import round_money

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def calculation_out_from_result(
    result: CalculationResult,
    employment_id: int | None = None,
    person_name: str | None = None,
) -> schemas.CalculationOut:
    return schemas.CalculationOut(employment_id=employment_id, person_name=person_name, **result.as_dict())


def calculation_out_from_row(row: PayrollCalculation) -> schemas.CalculationOut:
    return schemas.CalculationOut(
        employment_id=row.employment_id,
        person_name=row.employment.person.full_name if row.employment else None,
        mode=row.calculation_mode,
        month=row.month,
        ptkp_code=row.ptkp_code,
        has_npwp=row.has_npwp,
        bruto=row.bruto,
        biaya_jabatan=row.biaya_jabatan,
        iuran_pensiun=row.iuran_pensiun,
        zakat=row.zakat,
        other_deductions=row.other_deductions,
        neto=row.neto,
        neto_annualized=row.neto_annualized,
        ptkp_yearly=row.ptkp_yearly,
        pkp=row.pkp,
        pph21_annual=row.pph21_annual,
        pph21_period=row.pph21_period,
        pph21_ytd=row.pph21_ytd,
        pph21_settlement_december=row.pph21_settlement_december,
        over_withheld=row.over_withheld,
        notes=row.notes or [],
    )


class PayrollService:
    def __init__(self, db: Session):
        self.db = db
        self.periods = PeriodService(db)

    # ------------------------------------------------------------------ lookups

    def _employment(self, tenant_id: int, employment_id: int) -> Employment:
        employment = (
            self.db.query(Employment)
            .filter(Employment.id == employment_id, Employment.tenant_id == tenant_id)
            .one_or_none()
        )
        if not employment:
            raise ResourceNotFoundError("Employment", employment_id)
        return employment

    def _catalog_ids(self, model: type[Component] | type[DeductionComponent], tenant_id: int, ids: set[int]) -> None:
        found = {
            row_id
            for (row_id,) in self.db.query(model.id).filter(model.tenant_id == tenant_id, model.id.in_(ids))
        }
        missing = sorted(ids - found)
        if missing:
            raise ResourceNotFoundError(model.__name__, missing[0])

    def _employment_ids(self, tenant_id: int, ids: set[int]) -> None:
        found = {
            row_id
            for (row_id,) in self.db.query(Employment.id).filter(
                Employment.tenant_id == tenant_id, Employment.id.in_(ids)
            )
        }
        missing = sorted(ids - found)
        if missing:
            raise ResourceNotFoundError("Employment", missing[0])

    # ------------------------------------------------------------------- inputs

    def upsert_earnings(self, tenant_id: int, payload: schemas.EarningsUpsert) -> schemas.UpsertResultOut:
        period = self.periods.ensure_editable(tenant_id, payload.period_id)
        self._employment_ids(tenant_id, {e.employment_id for e in payload.earnings})
        self._catalog_ids(Component, tenant_id, {e.component_id for e in payload.earnings})

        created = updated = 0
        for item in payload.earnings:
            row = (
                self.db.query(Earning)
                .filter(
                    Earning.tenant_id == tenant_id,
                    Earning.period_id == period.id,
                    Earning.employment_id == item.employment_id,
                    Earning.component_id == item.component_id,
                )
                .one_or_none()
            )
            if row:
                row.amount = item.amount
                row.meta = item.meta
                updated += 1
            else:
                self.db.add(Earning(tenant_id=tenant_id, period_id=period.id, **item.model_dump()))
                self.db.flush()
                created += 1
        self.db.commit()
        logger.info("Earnings upsert period=%s created=%d updated=%d", period.label, created, updated)
        return schemas.UpsertResultOut(period_id=period.id, created=created, updated=updated)

    def list_earnings(self, tenant_id: int, period_id: int, employment_id: int | None = None) -> list[Earning]:
        self.periods.get_period(tenant_id, period_id)
        query = self.db.query(Earning).filter(Earning.tenant_id == tenant_id, Earning.period_id == period_id)
        if employment_id:
            query = query.filter(Earning.employment_id == employment_id)
        return query.order_by(Earning.employment_id, Earning.id).all()

    def upsert_deductions(self, tenant_id: int, payload: schemas.DeductionsUpsert) -> schemas.UpsertResultOut:
        period = self.periods.ensure_editable(tenant_id, payload.period_id)
        self._employment_ids(tenant_id, {d.employment_id for d in payload.deductions})
        self._catalog_ids(DeductionComponent, tenant_id, {d.deduction_component_id for d in payload.deductions})

        created = updated = 0
        for item in payload.deductions:
            row = (
                self.db.query(DeductionManual)
                .filter(
                    DeductionManual.tenant_id == tenant_id,
                    DeductionManual.period_id == period.id,
                    DeductionManual.employment_id == item.employment_id,
                    DeductionManual.deduction_component_id == item.deduction_component_id,
                )
                .one_or_none()
            )
            if row:
                row.amount = item.amount
                updated += 1
            else:
                self.db.add(DeductionManual(tenant_id=tenant_id, period_id=period.id, **item.model_dump()))
                self.db.flush()
                created += 1
        self.db.commit()
        logger.info("Deductions upsert period=%s created=%d updated=%d", period.label, created, updated)
        return schemas.UpsertResultOut(period_id=period.id, created=created, updated=updated)

    def list_deductions(self, tenant_id: int, period_id: int, employment_id: int | None = None) -> list[DeductionManual]:
        self.periods.get_period(tenant_id, period_id)
        query = self.db.query(DeductionManual).filter(
            DeductionManual.tenant_id == tenant_id, DeductionManual.period_id == period_id
        )
        if employment_id:
            query = query.filter(DeductionManual.employment_id == employment_id)
        return query.order_by(DeductionManual.employment_id, DeductionManual.id).all()

    # ------------------------------------------------------------ engine inputs

    def ytd_aggregate(self, tenant_id: int, employment_id: int, year: int, month: int) -> YtdAggregate:
        """Committed neto and withholding for the months before ``month`` of ``year``."""
        neto, pph21 = (
            self.db.query(
                func.coalesce(func.sum(PayrollCalculation.neto), 0),
                func.coalesce(func.sum(PayrollCalculation.pph21_period), 0),
            )
            .filter(
                PayrollCalculation.tenant_id == tenant_id,
                PayrollCalculation.employment_id == employment_id,
                PayrollCalculation.year == year,
                PayrollCalculation.month < month,
            )
            .one()
        )
        # SQLite sums NUMERIC as float
        return YtdAggregate(neto_yearly=round_money(Decimal(str(neto))), pph21_ytd=round_money(Decimal(str(pph21))))

    def tax_profile(self, employment: Employment) -> TaxProfile:
        subject = employment.active_payroll_subject
        if subject is None:
            raise MissingPayrollProfileError(employment.id)
        return TaxProfile(ptkp_code=subject.ptkp_code, has_npwp=subject.has_npwp)

    def lines_for(
        self,
        tenant_id: int,
        period_id: int,
        employment_id: int,
    ) -> tuple[list[EarningLine], list[DeductionLine]]:
        earnings = [
            EarningLine(amount=row.amount, taxable=row.component.taxable)
            for row in self.list_earnings(tenant_id, period_id, employment_id)
        ]
        deductions = [
            DeductionLine(amount=row.amount, role=row.deduction_component.role)
            for row in self.list_deductions(tenant_id, period_id, employment_id)
        ]
        return earnings, deductions

    def _period_employment_ids(self, tenant_id: int, period_id: int) -> list[int]:
        earning_ids = self.db.query(Earning.employment_id).filter(
            Earning.tenant_id == tenant_id, Earning.period_id == period_id
        )
        deduction_ids = self.db.query(DeductionManual.employment_id).filter(
            DeductionManual.tenant_id == tenant_id, DeductionManual.period_id == period_id
        )
        return sorted({row_id for (row_id,) in earning_ids} | {row_id for (row_id,) in deduction_ids})

    def _calculate_employment(self, tenant_id: int, period: Period, employment: Employment) -> CalculationResult:
        profile = self.tax_profile(employment)
        earnings, deductions = self.lines_for(tenant_id, period.id, employment.id)
        ytd = self.ytd_aggregate(tenant_id, employment.id, period.year, period.month)
        return calculate_for_month(profile, earnings, deductions, period.month, ytd)

    def _run(
        self,
        tenant_id: int,
        period: Period,
    ) -> tuple[list[tuple[Employment, CalculationResult]], list[schemas.CalculationFailureOut]]:
        results: list[tuple[Employment, CalculationResult]] = []
        failed: list[schemas.CalculationFailureOut] = []
        for employment_id in self._period_employment_ids(tenant_id, period.id):
            employment = self._employment(tenant_id, employment_id)
            outcome: CalculationOutcome = attempt(self._calculate_employment, tenant_id, period, employment)
            if outcome.ok:
                results.append((employment, outcome.result))
                metrics.calculation_served(outcome.result.mode.value, "payroll")
            else:
                failed.append(
                    schemas.CalculationFailureOut(
                        employment_id=employment_id,
                        error=outcome.error.message,
                        code=outcome.error.code,
                    )
                )
                metrics.calculation_failed(outcome.error.code)
                logger.warning(
                    "PPh21 calculation failed period=%s employment=%s: %s",
                    period.label, employment_id, outcome.error.message,
                )
        return results, failed

    # ------------------------------------------------------- preview / commit

    def preview(self, tenant_id: int, period_id: int) -> schemas.PayrollPreviewOut:
        period = self.periods.get_period(tenant_id, period_id)
        results, failed = self._run(tenant_id, period)
        logger.info("Previewed period %s: %d calculated, %d failed", period.label, len(results), len(failed))
        return schemas.PayrollPreviewOut(
            period=schemas.PeriodOut.model_validate(period),
            results=[
                calculation_out_from_result(result, employment.id, employment.person.full_name)
                for employment, result in results
            ],
            failed=failed,
        )

    def commit(self, tenant_id: int, period_id: int, user_id: int | None = None) -> schemas.PayrollCommitOut:
        """Store every employment's result for an approved period and post it.

        Re-running for the same employment overwrites its row. Failures are
        reported and do not stop the others.
        """
        period = self.periods.get_period(tenant_id, period_id)
        if period.is_posted:
            raise PeriodLockedError(period.id)
        if period.status != PeriodStatus.APPROVED:
            raise PeriodNotApprovedError(period.id, period.status.value)

        results, failed = self._run(tenant_id, period)
        rows: list[PayrollCalculation] = []
        for employment, result in results:
            rows.append(self._store(tenant_id, period, employment.id, result))
        period.status = PeriodStatus.POSTED
        self.db.commit()

        metrics.payroll_committed(len(rows))
        log_audit_event(
            "payroll.commit",
            user_id=user_id,
            tenant_id=tenant_id,
            period_id=period.id,
            committed=len(rows),
            failed=len(failed),
        )
        logger.info("Committed period %s: %d stored, %d failed", period.label, len(rows), len(failed))
        self.db.refresh(period)
        return schemas.PayrollCommitOut(
            period=schemas.PeriodOut.model_validate(period),
            committed=[calculation_out_from_row(row) for row in rows],
            failed=failed,
        )

    def _store(self, tenant_id: int, period: Period, employment_id: int, result: CalculationResult) -> PayrollCalculation:
        row = (
            self.db.query(PayrollCalculation)
            .filter(
                PayrollCalculation.tenant_id == tenant_id,
                PayrollCalculation.employment_id == employment_id,
                PayrollCalculation.period_id == period.id,
            )
            .one_or_none()
        )
        if row is None:
            row = PayrollCalculation(tenant_id=tenant_id, employment_id=employment_id, period_id=period.id)
            self.db.add(row)
        values = result.as_dict()
        values.pop("mode")
        values.pop("month")
        row.year = period.year
        row.month = period.month
        row.calculation_mode = result.mode
        for key, value in values.items():
            setattr(row, key, value)
        self.db.flush()
        return row

    # --------------------------------------------------------------- reporting

    def summary(self, tenant_id: int, period_id: int) -> schemas.PayrollSummaryOut:
        period = self.periods.get_period(tenant_id, period_id)
        rows = (
            self.db.query(PayrollCalculation)
            .filter(PayrollCalculation.tenant_id == tenant_id, PayrollCalculation.period_id == period.id)
            .order_by(PayrollCalculation.employment_id)
            .all()
        )
        return schemas.PayrollSummaryOut(
            period=schemas.PeriodOut.model_validate(period),
            employee_count=len(rows),
            total_bruto=sum((row.bruto for row in rows), ZERO),
            total_neto=sum((row.neto for row in rows), ZERO),
            total_pph21=sum((row.pph21_period for row in rows), ZERO),
            rows=[
                schemas.PayrollSummaryRow(
                    employment_id=row.employment_id,
                    person_name=row.employment.person.full_name,
                    calculation_mode=row.calculation_mode,
                    bruto=row.bruto,
                    neto=row.neto,
                    pph21_period=row.pph21_period,
                )
                for row in rows
            ],
        )

    def slip(self, tenant_id: int, period_id: int, employment_id: int) -> schemas.PayslipOut:
        period = self.periods.get_period(tenant_id, period_id)
        employment = self._employment(tenant_id, employment_id)
        stored = (
            self.db.query(PayrollCalculation)
            .filter(
                PayrollCalculation.tenant_id == tenant_id,
                PayrollCalculation.period_id == period.id,
                PayrollCalculation.employment_id == employment.id,
            )
            .one_or_none()
        )
        person = employment.person
        return schemas.PayslipOut(
            period=schemas.PeriodOut.model_validate(period),
            employment_id=employment.id,
            person_id=person.id,
            person_name=person.full_name,
            nik=person.nik,
            npwp=person.npwp,
            org_unit=employment.org_unit.name if employment.org_unit else None,
            earnings=[
                schemas.SlipLineOut(
                    code=row.component.code,
                    name=row.component.name,
                    amount=row.amount,
                    taxable=row.component.taxable,
                )
                for row in self.list_earnings(tenant_id, period.id, employment.id)
            ],
            deductions=[
                schemas.SlipLineOut(
                    code=row.deduction_component.code,
                    name=row.deduction_component.name,
                    amount=row.amount,
                    role=row.deduction_component.role.value,
                )
                for row in self.list_deductions(tenant_id, period.id, employment.id)
            ],
            calculation=calculation_out_from_row(stored) if stored else None,
        )


def get_payroll_service(db: Annotated[Session, Depends(get_db)]) -> PayrollService:
    return PayrollService(db)
