"""Exception hierarchy for the payroll service.

Every error the API surfaces derives from ``Pph21Exception`` so a single
handler can turn it into a JSON body with a stable error code.

Error codes follow pattern: [CATEGORY][NUMBER]
- USR: Authentication / tenancy errors (100-199)
- PER: Payroll period errors (200-299)
- CAL: Tax calculation errors (300-399)
- RES: Resource errors (400-499)
"""

from __future__ import annotations

from typing import Any


class Pph21Exception(Exception):
    """Base exception for all application errors."""

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ):
        """Initialize exception with a readable message and metadata.

        Args:
            message: Human readable error message
            code: Unique error code (e.g., "CAL300")
            status_code: HTTP status code (default: 400 Bad Request)
            details: Optional additional context
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to API response format."""
        return {
            "error": {
                "message": self.message,
                "code": self.code,
                "details": self.details,
            }
        }


# ============================================================================
# AUTH / TENANCY ERRORS (USR100-199)
# ============================================================================

class AccessError(Pph21Exception):
    """Base class for authentication and tenant access errors."""
    pass


class InvalidCredentialsError(AccessError):
    def __init__(self):
        super().__init__(
            message="Invalid email or password",
            code="USR100",
            status_code=401,
        )


class InactiveAccountError(AccessError):
    def __init__(self):
        super().__init__(
            message="Account is not active",
            code="USR101",
            status_code=403,
        )


class TenantRequiredError(AccessError):
    """No tenant could be resolved for the request."""

    def __init__(self):
        super().__init__(
            message="Tenant context required: send the X-Tenant-ID header",
            code="USR102",
            status_code=403,
        )


class TenantAccessDeniedError(AccessError):
    """User has no active membership in the requested tenant."""

    def __init__(self, tenant_id: int | None = None):
        super().__init__(
            message="You do not have access to this tenant",
            code="USR103",
            status_code=403,
            details={"tenant_id": tenant_id} if tenant_id is not None else {},
        )


class InsufficientRoleError(AccessError):
    def __init__(self, required: list[str], current: str | None):
        super().__init__(
            message="Insufficient role for this action",
            code="USR104",
            status_code=403,
            details={"required_roles": required, "current_role": current},
        )


class SuperadminRequiredError(AccessError):
    def __init__(self):
        super().__init__(
            message="Superadmin privileges required",
            code="USR105",
            status_code=403,
        )


# ============================================================================
# PERIOD ERRORS (PER200-299)
# ============================================================================

class PeriodError(Pph21Exception):
    """Base class for payroll period errors."""
    pass


class PeriodNotFoundError(PeriodError):
    def __init__(self, period_id: int | None = None):
        message = "Period not found" if period_id is None else f"Period {period_id} not found"
        super().__init__(
            message=message,
            code="PER200",
            status_code=404,
            details={"period_id": period_id} if period_id is not None else {},
        )


class DuplicatePeriodError(PeriodError):
    def __init__(self, year: int, month: int):
        super().__init__(
            message=f"Period {year}-{month:02d} already exists",
            code="PER201",
            status_code=409,
            details={"year": year, "month": month},
        )


class InvalidPeriodTransitionError(PeriodError):
    """Status change not allowed by the period workflow."""

    def __init__(self, current_status: str, new_status: str):
        super().__init__(
            message=f"Cannot change period status from '{current_status}' to '{new_status}'",
            code="PER202",
            status_code=422,
            details={"current_status": current_status, "new_status": new_status},
        )


class PeriodLockedError(PeriodError):
    """Posted periods are read-only."""

    def __init__(self, period_id: int):
        super().__init__(
            message="Cannot modify a posted period",
            code="PER203",
            status_code=409,
            details={"period_id": period_id},
        )


class PeriodNotApprovedError(PeriodError):
    def __init__(self, period_id: int, status: str):
        super().__init__(
            message="Period must be approved before committing payroll",
            code="PER204",
            status_code=422,
            details={"period_id": period_id, "status": status},
        )


# ============================================================================
# CALCULATION ERRORS (CAL300-399)
# ============================================================================

class CalculationError(Pph21Exception):
    """Base class for PPh21 calculation errors."""
    pass


class InvalidCalculationInput(CalculationError):
    """Calculation inputs violate the calculator contract.

    Raised before any arithmetic happens, so no partial result exists.
    """

    def __init__(self, message: str, field: str | None = None, value: Any = None):
        details: dict[str, Any] = {}
        if field is not None:
            details["field"] = field
            details["value"] = str(value) if value is not None else None
        super().__init__(
            message=message,
            code="CAL300",
            status_code=422,
            details=details,
        )


class MissingPayrollProfileError(CalculationError):
    """Employment has no active payroll subject (PTKP / NPWP profile)."""

    def __init__(self, employment_id: int):
        super().__init__(
            message=f"Employment {employment_id} has no active payroll subject",
            code="CAL301",
            status_code=422,
            details={"employment_id": employment_id},
        )


# ============================================================================
# RESOURCE ERRORS (RES400-499)
# ============================================================================

class ResourceNotFoundError(Pph21Exception):
    def __init__(self, resource: str, identifier: Any = None):
        message = f"{resource} not found" if identifier is None else f"{resource} {identifier} not found"
        super().__init__(
            message=message,
            code="RES400",
            status_code=404,
            details={"resource": resource, "id": str(identifier) if identifier is not None else None},
        )


class DuplicateResourceError(Pph21Exception):
    def __init__(self, resource: str, field: str, value: Any):
        super().__init__(
            message=f"{resource} with {field} '{value}' already exists",
            code="RES401",
            status_code=409,
            details={"resource": resource, "field": field, "value": str(value)},
        )


class InvalidHierarchyError(Pph21Exception):
    """Org unit moved under itself or one of its descendants."""

    def __init__(self, org_unit_id: int, parent_id: int):
        super().__init__(
            message="Org unit cannot be moved under itself or one of its descendants",
            code="RES402",
            status_code=422,
            details={"org_unit_id": org_unit_id, "parent_id": parent_id},
        )
