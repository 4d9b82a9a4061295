"""Common dependencies: current user, database session and tenant context."""
from typing import Annotated, TypeAlias

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from pph21_service.api.routes_auth import get_current_user_id
from pph21_service.core.config import settings
from pph21_service.core.tenancy import TenantContext
from pph21_service.db.session import get_db
from pph21_service.services.tenant_service import TenantService

CurrentUserDep: TypeAlias = Annotated[int, Depends(get_current_user_id)]
DbDep: TypeAlias = Annotated[Session, Depends(get_db)]


def get_tenant_context(
    current_user_id: CurrentUserDep,
    db: DbDep,
    x_tenant_id: Annotated[int | None, Header()] = None,
) -> TenantContext:
    """
    Resolve which tenant the request acts on.

    The ``X-Tenant-ID`` header selects the tenant; without it the user's first
    active membership is used. Superadmins must always send the header.
    The resulting context is passed explicitly into every service call.
    """
    return TenantService(db).resolve_context(current_user_id, x_tenant_id)


TenantDep: TypeAlias = Annotated[TenantContext, Depends(get_tenant_context)]


def page_size_param(page_size: int | None) -> int:
    """Clamp a requested page size to the configured maximum."""
    if page_size is None:
        return settings.DEFAULT_PAGE_SIZE
    return max(1, min(page_size, settings.MAX_PAGE_SIZE))


def total_pages(total: int, page_size: int) -> int:
    return (total + page_size - 1) // page_size if total > 0 else 1
