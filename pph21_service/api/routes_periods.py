"""Payroll period endpoints."""
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from pph21_service.api.dependencies import TenantDep
from pph21_service.core.rbac import PayrollEditorDep, ensure_tenant_roles
from pph21_service.core.tenancy import PAYROLL_APPROVERS, PAYROLL_INPUT_EDITORS
from pph21_service.models import schemas
from pph21_service.models.payroll_models import PeriodStatus
from pph21_service.services.period_service import PeriodService, get_period_service

router = APIRouter()

PeriodServiceDep = Annotated[PeriodService, Depends(get_period_service)]


@router.get("", response_model=list[schemas.PeriodOut])
def list_periods(
    ctx: TenantDep,
    svc: PeriodServiceDep,
    year: int | None = Query(None),
    status: PeriodStatus | None = Query(None),
):
    return svc.list_periods(ctx.tenant_id, year=year, status=status)


@router.post("", response_model=schemas.PeriodOut, status_code=201)
def create_period(data: schemas.PeriodCreate, ctx: PayrollEditorDep, svc: PeriodServiceDep):
    return svc.create_period(ctx.tenant_id, data, user_id=ctx.user_id)


@router.get("/{period_id}", response_model=schemas.PeriodOut)
def get_period(period_id: int, ctx: TenantDep, svc: PeriodServiceDep):
    return svc.get_period(ctx.tenant_id, period_id)


@router.patch("/{period_id}/status", response_model=schemas.PeriodOut)
def change_period_status(
    period_id: int,
    data: schemas.PeriodStatusUpdate,
    ctx: TenantDep,
    svc: PeriodServiceDep,
):
    """Move a period along draft -> reviewed -> approved.

    Approving, or sending an approved period back, needs a payroll approver.
    """
    period = svc.get_period(ctx.tenant_id, period_id)
    if PeriodStatus.APPROVED in (data.status, period.status):
        ensure_tenant_roles(ctx, *PAYROLL_APPROVERS)
    else:
        ensure_tenant_roles(ctx, *PAYROLL_INPUT_EDITORS)
    return svc.change_status(ctx.tenant_id, period_id, data.status, user_id=ctx.user_id)
