"""Payroll input, preview, commit and reporting endpoints."""
from typing import Annotated

from fastapi import APIRouter, Depends, Query

from pph21_service.api.dependencies import TenantDep
from pph21_service.core.rbac import PayrollApproverDep, PayrollEditorDep
from pph21_service.models import schemas
from pph21_service.services.payroll_service import PayrollService, get_payroll_service

router = APIRouter()

PayrollServiceDep = Annotated[PayrollService, Depends(get_payroll_service)]


@router.get("/earnings", response_model=list[schemas.EarningOut])
def list_earnings(
    ctx: TenantDep,
    svc: PayrollServiceDep,
    period_id: int = Query(...),
    employment_id: int | None = Query(None),
):
    return svc.list_earnings(ctx.tenant_id, period_id, employment_id)


@router.post("/earnings", response_model=schemas.UpsertResultOut)
def upsert_earnings(data: schemas.EarningsUpsert, ctx: PayrollEditorDep, svc: PayrollServiceDep):
    """Create or overwrite earning lines of a period that is not posted."""
    return svc.upsert_earnings(ctx.tenant_id, data)


@router.get("/deductions", response_model=list[schemas.DeductionOut])
def list_deductions(
    ctx: TenantDep,
    svc: PayrollServiceDep,
    period_id: int = Query(...),
    employment_id: int | None = Query(None),
):
    return svc.list_deductions(ctx.tenant_id, period_id, employment_id)


@router.post("/deductions", response_model=schemas.UpsertResultOut)
def upsert_deductions(data: schemas.DeductionsUpsert, ctx: PayrollEditorDep, svc: PayrollServiceDep):
    return svc.upsert_deductions(ctx.tenant_id, data)


@router.post("/payroll/{period_id}/preview", response_model=schemas.PayrollPreviewOut)
def preview_payroll(period_id: int, ctx: TenantDep, svc: PayrollServiceDep):
    """Calculate every employment of the period without storing anything."""
    return svc.preview(ctx.tenant_id, period_id)


@router.post("/payroll/{period_id}/commit", response_model=schemas.PayrollCommitOut)
def commit_payroll(period_id: int, ctx: PayrollApproverDep, svc: PayrollServiceDep):
    """Store results for an approved period and mark it posted."""
    return svc.commit(ctx.tenant_id, period_id, user_id=ctx.user_id)


@router.get("/payroll/{period_id}/summary", response_model=schemas.PayrollSummaryOut)
def payroll_summary(period_id: int, ctx: TenantDep, svc: PayrollServiceDep):
    return svc.summary(ctx.tenant_id, period_id)


@router.get("/payroll/{period_id}/slip/{employment_id}", response_model=schemas.PayslipOut)
def payroll_slip(period_id: int, employment_id: int, ctx: TenantDep, svc: PayrollServiceDep):
    return svc.slip(ctx.tenant_id, period_id, employment_id)
