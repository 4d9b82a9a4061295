"""Resolved tenant context passed explicitly to every service call."""
from __future__ import annotations

from dataclasses import dataclass

from pph21_service.models.models import TenantRole


@dataclass(frozen=True)
class TenantContext:
    tenant_id: int
    user_id: int
    role: TenantRole | None
    is_superadmin: bool = False

    def has_role(self, *roles: TenantRole) -> bool:
        return self.is_superadmin or self.role in roles


# Role groups used by write endpoints
MASTER_DATA_EDITORS = (TenantRole.TENANT_ADMIN, TenantRole.HR)
PAYROLL_INPUT_EDITORS = (TenantRole.TENANT_ADMIN, TenantRole.HR)
PAYROLL_APPROVERS = (TenantRole.TENANT_ADMIN, TenantRole.FINANCE)
CALCULATOR_USERS = (TenantRole.TENANT_ADMIN, TenantRole.HR, TenantRole.FINANCE)
