"""Tenant administration endpoints."""
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from pph21_service.api.dependencies import CurrentUserDep, DbDep
from pph21_service.core.audit import log_audit_event
from pph21_service.core.rbac import SuperadminDep, ensure_tenant_roles
from pph21_service.core.tenancy import TenantContext
from pph21_service.models import models, schemas
from pph21_service.services.tenant_service import TenantService, get_tenant_service

router = APIRouter()

TenantServiceDep = Annotated[TenantService, Depends(get_tenant_service)]


def tenant_admin_for_path(tenant_id: int, user_id: CurrentUserDep, db: DbDep) -> TenantContext:
    """Superadmin, or TENANT_ADMIN of the tenant named in the path."""
    ctx = TenantService(db).resolve_context(user_id, tenant_id)
    return ensure_tenant_roles(ctx, models.TenantRole.TENANT_ADMIN)


TenantAdminDep = Annotated[TenantContext, Depends(tenant_admin_for_path)]


@router.get("", response_model=list[schemas.TenantOut])
def list_tenants(svc: TenantServiceDep, _admin: SuperadminDep):
    return svc.list_tenants()


@router.post("", response_model=schemas.TenantOut, status_code=201)
def create_tenant(payload: schemas.TenantCreate, svc: TenantServiceDep, admin: SuperadminDep):
    tenant = svc.create_tenant(payload)
    log_audit_event("tenant.create", user_id=admin.id, tenant_id=tenant.id, code=tenant.code)
    return tenant


@router.get("/{tenant_id}", response_model=schemas.TenantOut)
def get_tenant(tenant_id: int, svc: TenantServiceDep, _admin: SuperadminDep):
    return svc.get_tenant(tenant_id)


@router.patch("/{tenant_id}", response_model=schemas.TenantOut)
def update_tenant(tenant_id: int, payload: schemas.TenantUpdate, svc: TenantServiceDep, admin: SuperadminDep):
    tenant = svc.update_tenant(tenant_id, payload)
    log_audit_event("tenant.update", user_id=admin.id, tenant_id=tenant.id, status_value=tenant.status)
    return tenant


@router.get("/{tenant_id}/users", response_model=list[schemas.TenantUserOut])
def list_tenant_users(tenant_id: int, svc: TenantServiceDep, _ctx: TenantAdminDep):
    return svc.list_members(tenant_id)


@router.post("/{tenant_id}/users", response_model=schemas.TenantUserOut, status_code=201)
def add_tenant_user(tenant_id: int, payload: schemas.TenantUserCreate, svc: TenantServiceDep, ctx: TenantAdminDep):
    """Attach a user to the tenant, creating the account when the email is new."""
    try:
        membership = svc.add_member(tenant_id, payload)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    log_audit_event(
        "tenant.member",
        user_id=ctx.user_id,
        tenant_id=tenant_id,
        member_id=membership.user_id,
        role=membership.role.value,
    )
    return membership
