from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, Request

from pph21_service import metrics
from pph21_service.api.rate_limit import RATE_LIMITS, limiter
from pph21_service.core.audit import log_audit_event, log_failure
from pph21_service.core.exceptions import AccessError
from pph21_service.core.security import TokenExpiredError, TokenValidationError, read_access_token
from pph21_service.models import schemas
from pph21_service.services.auth_service import AuthService, get_auth_service

router = APIRouter()

AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]


def get_current_user_id(authorization: str = Header(None)) -> int:
    if not authorization or not authorization.lower().startswith("bearer "):
        log_failure("auth.token.parse", user_id=None, error="missing_token")
        raise HTTPException(status_code=401, detail="Missing token")
    token = authorization.split(" ", 1)[1]
    try:
        return read_access_token(token)
    except TokenExpiredError as exc:
        log_failure("auth.token.expired", user_id=None, error="expired")
        raise HTTPException(status_code=401, detail="Token expired") from exc
    except TokenValidationError as exc:
        log_failure("auth.token.invalid", user_id=None, error="invalid")
        raise HTTPException(status_code=401, detail="Invalid token") from exc


@router.post("/login", response_model=schemas.TokenOut)
@limiter.limit(RATE_LIMITS["login"])
def login(request: Request, payload: schemas.LoginRequest, svc: AuthServiceDep):
    """Exchange email and password for an access token plus the user's tenants."""
    try:
        bundle = svc.login(payload.email, payload.password)
    except AccessError as exc:
        metrics.login_attempt(success=False)
        log_failure("auth.login", user_id=None, error=exc.code, email=payload.email)
        raise
    metrics.login_attempt(success=True)
    log_audit_event("auth.login", user_id=bundle.user.id)
    return schemas.TokenOut(
        access_token=bundle.access_token,
        access_expires_at=bundle.access_expires_at,
        user=schemas.UserOut.model_validate(bundle.user),
        tenants=bundle.memberships,
    )


@router.get("/me", response_model=schemas.MeOut)
def me(svc: AuthServiceDep, user_id: Annotated[int, Depends(get_current_user_id)]):
    user = svc.get_user(user_id)
    return schemas.MeOut(user=schemas.UserOut.model_validate(user), tenants=svc.memberships(user.id))
