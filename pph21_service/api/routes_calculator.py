"""Standalone PPh21 calculator, batch and calculation history endpoints."""
import datetime as dt
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request

from pph21_service.api.dependencies import TenantDep, page_size_param, total_pages
from pph21_service.api.rate_limit import RATE_LIMITS, limiter
from pph21_service.core.audit import log_audit_event
from pph21_service.core.rbac import CalculatorUserDep
from pph21_service.models import schemas
from pph21_service.services.calculator_service import CalculatorService, get_calculator_service

router = APIRouter()

CalculatorServiceDep = Annotated[CalculatorService, Depends(get_calculator_service)]


@router.post("/pph21", response_model=schemas.CalculationOut)
@limiter.limit(RATE_LIMITS["calculator"])
def calculate_pph21(
    request: Request,
    data: schemas.CalculatorRequest,
    ctx: CalculatorUserDep,
    svc: CalculatorServiceDep,
):
    """What-if PPh21 for one person.

    ``mode`` says whether the gross figures are annual or a single month.
    Send ``earnings``/``deductions`` lines to resolve components against the
    tenant's catalogs, or ``bruto`` with optional overrides.
    """
    return svc.calculate(ctx.tenant_id, data)


@router.post("/batch", response_model=schemas.BatchOut)
@limiter.limit(RATE_LIMITS["calculator"])
def calculate_batch(
    request: Request,
    data: schemas.BatchRequest,
    ctx: CalculatorUserDep,
    svc: CalculatorServiceDep,
):
    """Calculate several employments; failures are reported per employment."""
    return svc.batch(ctx.tenant_id, data)


@router.get("/employees", response_model=schemas.EmployeeSearchPage)
def search_employees(
    ctx: CalculatorUserDep,
    svc: CalculatorServiceDep,
    search: str | None = Query(None, description="Match on name or NIK"),
    org_unit_id: int | None = Query(None),
    page: int = Query(1, ge=1),
    per_page: int | None = Query(None, ge=1),
):
    page_size = page_size_param(per_page)
    items, total = svc.search_employees(
        ctx.tenant_id, search=search, org_unit_id=org_unit_id, page=page, page_size=page_size
    )
    return schemas.EmployeeSearchPage(
        items=items,
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages(total, page_size),
    )


@router.post("/history", response_model=list[schemas.HistoryOut], status_code=201)
def save_history(data: schemas.HistorySaveRequest, ctx: CalculatorUserDep, svc: CalculatorServiceDep):
    saved = svc.save_history(ctx.tenant_id, ctx.user_id, data)
    log_audit_event("calculator.history.save", user_id=ctx.user_id, tenant_id=ctx.tenant_id, saved=len(saved))
    return saved


@router.get("/history", response_model=schemas.HistoryPage)
def list_history(
    ctx: TenantDep,
    svc: CalculatorServiceDep,
    year: int | None = Query(None),
    month: int | None = Query(None, ge=1, le=12),
    employment_id: int | None = Query(None),
    page: int = Query(1, ge=1),
    per_page: int | None = Query(None, ge=1),
):
    """The caller's saved calculations, newest period first."""
    page_size = page_size_param(per_page)
    items, total = svc.list_history(
        ctx.tenant_id,
        ctx.user_id,
        year=year,
        month=month,
        employment_id=employment_id,
        page=page,
        page_size=page_size,
    )
    return schemas.HistoryPage(
        items=[schemas.HistoryOut.model_validate(item) for item in items],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=total_pages(total, page_size),
    )


@router.get("/history/summary", response_model=list[schemas.HistorySummaryRow])
def history_summary(ctx: TenantDep, svc: CalculatorServiceDep):
    return svc.history_summary(ctx.tenant_id, ctx.user_id)


@router.get("/history/employees", response_model=list[schemas.EmployeeHistoryRow])
def employee_history_list(ctx: TenantDep, svc: CalculatorServiceDep, year: int | None = Query(None)):
    return svc.employee_history_list(ctx.tenant_id, ctx.user_id, year=year)


@router.get("/history/{employment_id}", response_model=schemas.EmployeeHistoryDetailOut)
def employee_history_detail(
    employment_id: int,
    ctx: TenantDep,
    svc: CalculatorServiceDep,
    year: int | None = Query(None),
):
    return svc.employee_history_detail(ctx.tenant_id, ctx.user_id, employment_id, year or dt.date.today().year)
