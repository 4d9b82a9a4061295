"""Employment and payroll subject endpoints."""
from fastapi import APIRouter, Query

from pph21_service.api.dependencies import TenantDep
from pph21_service.core.audit import log_audit_event
from pph21_service.core.rbac import MasterDataEditorDep
from pph21_service.models import schemas

from .dependencies import MasterDataServiceDep

router = APIRouter()


@router.get("/employments", response_model=list[schemas.EmploymentOut])
def list_employments(
    ctx: TenantDep,
    service: MasterDataServiceDep,
    person_id: str | None = Query(None),
    org_unit_id: int | None = Query(None),
):
    return service.list_employments(ctx.tenant_id, person_id=person_id, org_unit_id=org_unit_id)


@router.post("/employments", response_model=schemas.EmploymentOut, status_code=201)
def create_employment(data: schemas.EmploymentCreate, ctx: MasterDataEditorDep, service: MasterDataServiceDep):
    employment = service.create_employment(ctx.tenant_id, data)
    log_audit_event(
        "employment.create", user_id=ctx.user_id, tenant_id=ctx.tenant_id, employment_id=employment.id
    )
    return employment


@router.get("/employments/{employment_id}", response_model=schemas.EmploymentOut)
def get_employment(employment_id: int, ctx: TenantDep, service: MasterDataServiceDep):
    return service.get_employment(ctx.tenant_id, employment_id)


@router.patch("/employments/{employment_id}", response_model=schemas.EmploymentOut)
def update_employment(
    employment_id: int,
    data: schemas.EmploymentUpdate,
    ctx: MasterDataEditorDep,
    service: MasterDataServiceDep,
):
    return service.update_employment(ctx.tenant_id, employment_id, data)


@router.get("/payroll-subjects", response_model=list[schemas.PayrollSubjectOut])
def list_payroll_subjects(
    ctx: TenantDep,
    service: MasterDataServiceDep,
    employment_id: int | None = Query(None),
):
    return service.list_payroll_subjects(ctx.tenant_id, employment_id=employment_id)


@router.post("/payroll-subjects", response_model=schemas.PayrollSubjectOut, status_code=201)
def create_payroll_subject(
    data: schemas.PayrollSubjectCreate,
    ctx: MasterDataEditorDep,
    service: MasterDataServiceDep,
):
    """Create a tax profile; an active one replaces the employment's current profile."""
    subject = service.create_payroll_subject(ctx.tenant_id, data)
    log_audit_event(
        "payroll_subject.create",
        user_id=ctx.user_id,
        tenant_id=ctx.tenant_id,
        employment_id=subject.employment_id,
        ptkp_code=subject.ptkp_code,
    )
    return subject


@router.get("/payroll-subjects/{subject_id}", response_model=schemas.PayrollSubjectOut)
def get_payroll_subject(subject_id: int, ctx: TenantDep, service: MasterDataServiceDep):
    return service.get_payroll_subject(ctx.tenant_id, subject_id)


@router.patch("/payroll-subjects/{subject_id}", response_model=schemas.PayrollSubjectOut)
def update_payroll_subject(
    subject_id: int,
    data: schemas.PayrollSubjectUpdate,
    ctx: MasterDataEditorDep,
    service: MasterDataServiceDep,
):
    return service.update_payroll_subject(ctx.tenant_id, subject_id, data)
