"""Person endpoints."""
from fastapi import APIRouter, Query

from pph21_service.api.dependencies import TenantDep, page_size_param, total_pages
from pph21_service.core.rbac import MasterDataEditorDep
from pph21_service.models import schemas

from .dependencies import MasterDataServiceDep

router = APIRouter()


@router.get("/persons")
def list_persons(
    ctx: TenantDep,
    service: MasterDataServiceDep,
    search: str | None = Query(None, description="Match on name or NIK"),
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, ge=1),
):
    page_size = page_size_param(page_size)
    persons, total = service.list_persons(ctx.tenant_id, search=search, page=page, page_size=page_size)
    return {
        "items": [schemas.PersonOut.model_validate(p) for p in persons],
        "total": total,
        "page": page,
        "page_size": page_size,
        "total_pages": total_pages(total, page_size),
    }


@router.post("/persons", response_model=schemas.PersonOut, status_code=201)
def create_person(data: schemas.PersonCreate, ctx: MasterDataEditorDep, service: MasterDataServiceDep):
    return service.create_person(ctx.tenant_id, data)


@router.get("/persons/{person_id}", response_model=schemas.PersonOut)
def get_person(person_id: str, ctx: TenantDep, service: MasterDataServiceDep):
    return service.get_person(ctx.tenant_id, person_id)


@router.patch("/persons/{person_id}", response_model=schemas.PersonOut)
def update_person(
    person_id: str,
    data: schemas.PersonUpdate,
    ctx: MasterDataEditorDep,
    service: MasterDataServiceDep,
):
    return service.update_person(ctx.tenant_id, person_id, data)
