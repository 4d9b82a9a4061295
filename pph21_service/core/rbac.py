from typing import Annotated, TypeAlias

from fastapi import Depends

from pph21_service.api.dependencies import CurrentUserDep, DbDep, TenantDep
from pph21_service.core.audit import log_denied
from pph21_service.core.exceptions import InsufficientRoleError, SuperadminRequiredError
from pph21_service.core.tenancy import (
    CALCULATOR_USERS,
    MASTER_DATA_EDITORS,
    PAYROLL_APPROVERS,
    PAYROLL_INPUT_EDITORS,
    TenantContext,
)
from pph21_service.models import models
from pph21_service.models.models import TenantRole


def ensure_tenant_roles(ctx: TenantContext, *allowed: TenantRole) -> TenantContext:
    if not ctx.has_role(*allowed):
        log_denied(
            "tenant.role",
            user_id=ctx.user_id,
            reason="insufficient_role",
            tenant_id=ctx.tenant_id,
            role=ctx.role.value if ctx.role else None,
        )
        raise InsufficientRoleError([r.value for r in allowed], ctx.role.value if ctx.role else None)
    return ctx


def require_tenant_roles(*allowed: TenantRole):
    def _dependency(ctx: TenantDep) -> TenantContext:
        return ensure_tenant_roles(ctx, *allowed)

    return _dependency


def superadmin_required(user_id: CurrentUserDep, db: DbDep) -> models.User:
    user = db.get(models.User, user_id)
    if not user or not user.is_superadmin or user.status != "active":
        log_denied("superadmin", user_id=user_id, reason="not_superadmin")
        raise SuperadminRequiredError()
    return user


MasterDataEditorDep: TypeAlias = Annotated[TenantContext, Depends(require_tenant_roles(*MASTER_DATA_EDITORS))]
PayrollEditorDep: TypeAlias = Annotated[TenantContext, Depends(require_tenant_roles(*PAYROLL_INPUT_EDITORS))]
PayrollApproverDep: TypeAlias = Annotated[TenantContext, Depends(require_tenant_roles(*PAYROLL_APPROVERS))]
CalculatorUserDep: TypeAlias = Annotated[TenantContext, Depends(require_tenant_roles(*CALCULATOR_USERS))]
SuperadminDep: TypeAlias = Annotated[models.User, Depends(superadmin_required)]
