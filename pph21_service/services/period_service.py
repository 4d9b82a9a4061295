"""Payroll period lifecycle: draft -> reviewed -> approved -> posted."""
from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from pph21_service.core.audit import log_audit_event
from pph21_service.core.exceptions import (
    DuplicatePeriodError,
    InvalidPeriodTransitionError,
    PeriodLockedError,
    PeriodNotFoundError,
)
from pph21_service.db.session import get_db
from pph21_service.models import schemas
from pph21_service.models.payroll_models import PERIOD_TRANSITIONS, Period, PeriodStatus

logger = logging.getLogger(__name__)


class PeriodService:
    def __init__(self, db: Session):
        self.db = db

    def list_periods(
        self,
        tenant_id: int,
        year: int | None = None,
        status: PeriodStatus | None = None,
    ) -> list[Period]:
        query = self.db.query(Period).filter(Period.tenant_id == tenant_id)
        if year:
            query = query.filter(Period.year == year)
        if status:
            query = query.filter(Period.status == status)
        return query.order_by(Period.year.desc(), Period.month.desc()).all()

    def create_period(self, tenant_id: int, payload: schemas.PeriodCreate, user_id: int | None = None) -> Period:
        existing = (
            self.db.query(Period)
            .filter(Period.tenant_id == tenant_id, Period.year == payload.year, Period.month == payload.month)
            .one_or_none()
        )
        if existing:
            raise DuplicatePeriodError(payload.year, payload.month)
        period = Period(tenant_id=tenant_id, year=payload.year, month=payload.month, status=PeriodStatus.DRAFT)
        self.db.add(period)
        self.db.commit()
        self.db.refresh(period)
        log_audit_event("period.create", user_id=user_id, tenant_id=tenant_id, period_id=period.id, label=period.label)
        return period

    def get_period(self, tenant_id: int, period_id: int) -> Period:
        period = (
            self.db.query(Period)
            .filter(Period.id == period_id, Period.tenant_id == tenant_id)
            .one_or_none()
        )
        if not period:
            raise PeriodNotFoundError(period_id)
        return period

    def change_status(
        self,
        tenant_id: int,
        period_id: int,
        new_status: PeriodStatus,
        user_id: int | None = None,
    ) -> Period:
        """Move a period along its workflow.

        POSTED is only reached through the payroll commit, which stores the
        results in the same transaction.
        """
        period = self.get_period(tenant_id, period_id)
        if period.is_posted:
            raise PeriodLockedError(period.id)
        if new_status == PeriodStatus.POSTED or new_status not in PERIOD_TRANSITIONS[period.status]:
            raise InvalidPeriodTransitionError(period.status.value, new_status.value)

        previous = period.status
        period.status = new_status
        self.db.commit()
        self.db.refresh(period)
        logger.info("Period %s %s -> %s", period.label, previous.value, new_status.value)
        log_audit_event(
            "period.status",
            user_id=user_id,
            tenant_id=tenant_id,
            period_id=period.id,
            from_status=previous.value,
            to_status=new_status.value,
        )
        return period

    def ensure_editable(self, tenant_id: int, period_id: int) -> Period:
        """Return the period, refusing when its inputs are frozen."""
        period = self.get_period(tenant_id, period_id)
        if period.is_posted:
            raise PeriodLockedError(period.id)
        return period


def get_period_service(db: Annotated[Session, Depends(get_db)]) -> PeriodService:
    return PeriodService(db)
