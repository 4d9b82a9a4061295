"""Earning and deduction component catalog endpoints."""
from fastapi import APIRouter, Query

from pph21_service.api.dependencies import TenantDep
from pph21_service.core.audit import log_audit_event
from pph21_service.core.rbac import MasterDataEditorDep
from pph21_service.models import schemas

from .dependencies import MasterDataServiceDep

router = APIRouter()


@router.get("/components", response_model=list[schemas.ComponentOut])
def list_components(
    ctx: TenantDep,
    service: MasterDataServiceDep,
    active_only: bool = Query(False, description="Only active components"),
):
    return service.list_components(ctx.tenant_id, active_only=active_only)


@router.post("/components", response_model=schemas.ComponentOut, status_code=201)
def create_component(data: schemas.ComponentCreate, ctx: MasterDataEditorDep, service: MasterDataServiceDep):
    return service.create_component(ctx.tenant_id, data)


@router.get("/components/{component_id}", response_model=schemas.ComponentOut)
def get_component(component_id: int, ctx: TenantDep, service: MasterDataServiceDep):
    return service.get_component(ctx.tenant_id, component_id)


@router.patch("/components/{component_id}", response_model=schemas.ComponentOut)
def update_component(
    component_id: int,
    data: schemas.ComponentUpdate,
    ctx: MasterDataEditorDep,
    service: MasterDataServiceDep,
):
    return service.update_component(ctx.tenant_id, component_id, data)


@router.get("/deduction-components", response_model=list[schemas.DeductionComponentOut])
def list_deduction_components(
    ctx: TenantDep,
    service: MasterDataServiceDep,
    active_only: bool = Query(False, description="Only active components"),
):
    return service.list_deduction_components(ctx.tenant_id, active_only=active_only)


@router.post("/deduction-components", response_model=schemas.DeductionComponentOut, status_code=201)
def create_deduction_component(
    data: schemas.DeductionComponentCreate,
    ctx: MasterDataEditorDep,
    service: MasterDataServiceDep,
):
    """Create a deduction component; its tax role is fixed here."""
    return service.create_deduction_component(ctx.tenant_id, data)


@router.post("/deduction-components/seed-defaults", response_model=list[schemas.DeductionComponentOut])
def seed_default_deduction_components(ctx: MasterDataEditorDep, service: MasterDataServiceDep):
    """Create the statutory deduction components missing from the tenant's catalog."""
    created = service.seed_default_deduction_components(ctx.tenant_id)
    log_audit_event("deduction_component.seed", user_id=ctx.user_id, tenant_id=ctx.tenant_id, created=len(created))
    return created


@router.get("/deduction-components/{component_id}", response_model=schemas.DeductionComponentOut)
def get_deduction_component(component_id: int, ctx: TenantDep, service: MasterDataServiceDep):
    return service.get_deduction_component(ctx.tenant_id, component_id)


@router.patch("/deduction-components/{component_id}", response_model=schemas.DeductionComponentOut)
def update_deduction_component(
    component_id: int,
    data: schemas.DeductionComponentUpdate,
    ctx: MasterDataEditorDep,
    service: MasterDataServiceDep,
):
    return service.update_deduction_component(ctx.tenant_id, component_id, data)
