"""Tenant administration and per-request tenant context resolution."""
from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from pph21_service.core.exceptions import (
    DuplicateResourceError,
    InactiveAccountError,
    ResourceNotFoundError,
    TenantAccessDeniedError,
    TenantRequiredError,
)
from pph21_service.core.tenancy import TenantContext
from pph21_service.db.session import get_db
from pph21_service.models import models, schemas
from pph21_service.services.auth_service import AuthService
from pph21_service.services.master_data_service import MasterDataService

logger = logging.getLogger(__name__)


class TenantService:
    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------ context

    def resolve_context(self, user_id: int, requested_tenant_id: int | None) -> TenantContext:
        """Work out which tenant a request acts on.

        Uses the requested tenant when given, else the user's first active
        membership. Superadmins may act on any active tenant but must name it.
        """
        user = self.db.get(models.User, user_id)
        if not user:
            raise TenantAccessDeniedError(requested_tenant_id)
        if user.status != "active":
            raise InactiveAccountError()

        if user.is_superadmin:
            if requested_tenant_id is None:
                raise TenantRequiredError()
            tenant = self.db.get(models.Tenant, requested_tenant_id)
            if not tenant or tenant.status != "active":
                raise TenantAccessDeniedError(requested_tenant_id)
            return TenantContext(tenant_id=tenant.id, user_id=user.id, role=None, is_superadmin=True)

        query = (
            self.db.query(models.TenantUser)
            .join(models.Tenant, models.Tenant.id == models.TenantUser.tenant_id)
            .filter(
                models.TenantUser.user_id == user.id,
                models.TenantUser.status == "active",
                models.Tenant.status == "active",
            )
        )
        if requested_tenant_id is not None:
            membership = query.filter(models.TenantUser.tenant_id == requested_tenant_id).one_or_none()
            if not membership:
                raise TenantAccessDeniedError(requested_tenant_id)
        else:
            membership = query.order_by(models.TenantUser.id).first()
            if not membership:
                raise TenantRequiredError()
        return TenantContext(tenant_id=membership.tenant_id, user_id=user.id, role=membership.role)

    # ------------------------------------------------------------ tenants

    def list_tenants(self) -> list[models.Tenant]:
        return self.db.query(models.Tenant).order_by(models.Tenant.name).all()

    def get_tenant(self, tenant_id: int) -> models.Tenant:
        tenant = self.db.get(models.Tenant, tenant_id)
        if not tenant:
            raise ResourceNotFoundError("Tenant", tenant_id)
        return tenant

    def create_tenant(self, payload: schemas.TenantCreate) -> models.Tenant:
        code = payload.code.strip()
        if self.db.query(models.Tenant).filter(models.Tenant.code == code).one_or_none():
            raise DuplicateResourceError("Tenant", "code", code)
        tenant = models.Tenant(code=code, name=payload.name.strip())
        self.db.add(tenant)
        self.db.commit()
        self.db.refresh(tenant)
        logger.info("Created tenant %s (%s)", tenant.id, tenant.code)
        return tenant

    def update_tenant(self, tenant_id: int, payload: schemas.TenantUpdate) -> models.Tenant:
        tenant = self.get_tenant(tenant_id)
        for key, value in payload.model_dump(exclude_unset=True).items():
            setattr(tenant, key, value)
        self.db.commit()
        self.db.refresh(tenant)
        logger.info("Updated tenant %s (%s) status=%s", tenant.id, tenant.code, tenant.status)
        return tenant

    # ------------------------------------------------------------ members

    def list_members(self, tenant_id: int) -> list[models.TenantUser]:
        self.get_tenant(tenant_id)
        return (
            self.db.query(models.TenantUser)
            .filter(models.TenantUser.tenant_id == tenant_id)
            .order_by(models.TenantUser.id)
            .all()
        )

    def add_member(self, tenant_id: int, payload: schemas.TenantUserCreate) -> models.TenantUser:
        self.get_tenant(tenant_id)
        user = AuthService(self.db).get_or_create_user(payload.email, payload.name, payload.password)
        membership = (
            self.db.query(models.TenantUser)
            .filter(models.TenantUser.tenant_id == tenant_id, models.TenantUser.user_id == user.id)
            .one_or_none()
        )
        if membership:
            membership.role = payload.role
            membership.status = "active"
        else:
            membership = models.TenantUser(tenant_id=tenant_id, user_id=user.id, role=payload.role)
            self.db.add(membership)
        self.db.commit()
        self.db.refresh(membership)
        logger.info("User %s is %s in tenant %s", user.id, membership.role.value, tenant_id)
        return membership

    def bootstrap(
        self,
        tenant: schemas.TenantCreate,
        admin: schemas.TenantUserCreate,
        superadmin_email: str | None = None,
        superadmin_password: str | None = None,
    ) -> models.Tenant:
        """Set up a new tenant with its first admin and default deduction catalog.

        Reuses the tenant when its code already exists.
        """
        if superadmin_email:
            AuthService(self.db).get_or_create_user(
                superadmin_email, password=superadmin_password, is_superadmin=True
            )
            self.db.commit()
        existing = self.db.query(models.Tenant).filter(models.Tenant.code == tenant.code.strip()).one_or_none()
        created = existing or self.create_tenant(tenant)
        self.add_member(created.id, admin.model_copy(update={"role": models.TenantRole.TENANT_ADMIN}))
        MasterDataService(self.db).seed_default_deduction_components(created.id)
        return created


def get_tenant_service(db: Annotated[Session, Depends(get_db)]) -> TenantService:
    return TenantService(db)
