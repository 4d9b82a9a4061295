"""Org unit endpoints."""
from fastapi import APIRouter

from pph21_service.api.dependencies import TenantDep
from pph21_service.core.rbac import MasterDataEditorDep
from pph21_service.models import schemas

from .dependencies import MasterDataServiceDep

router = APIRouter()


@router.get("/org-units", response_model=list[schemas.OrgUnitOut])
def list_org_units(ctx: TenantDep, service: MasterDataServiceDep):
    return service.list_org_units(ctx.tenant_id)


@router.get("/org-units/tree", response_model=list[schemas.OrgUnitTreeOut])
def org_unit_tree(ctx: TenantDep, service: MasterDataServiceDep):
    """Org units nested under their parents."""
    return service.org_unit_tree(ctx.tenant_id)


@router.post("/org-units", response_model=schemas.OrgUnitOut, status_code=201)
def create_org_unit(data: schemas.OrgUnitCreate, ctx: MasterDataEditorDep, service: MasterDataServiceDep):
    return service.create_org_unit(ctx.tenant_id, data)


@router.get("/org-units/{org_unit_id}", response_model=schemas.OrgUnitOut)
def get_org_unit(org_unit_id: int, ctx: TenantDep, service: MasterDataServiceDep):
    return service.get_org_unit(ctx.tenant_id, org_unit_id)


@router.patch("/org-units/{org_unit_id}", response_model=schemas.OrgUnitOut)
def update_org_unit(
    org_unit_id: int,
    data: schemas.OrgUnitUpdate,
    ctx: MasterDataEditorDep,
    service: MasterDataServiceDep,
):
    return service.update_org_unit(ctx.tenant_id, org_unit_id, data)
