from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from pph21_service.core.exceptions import InactiveAccountError, InvalidCredentialsError, ResourceNotFoundError
from pph21_service.core.security import (
    hash_password,
    issue_access_token,
    validate_password_strength,
    verify_password,
)
from pph21_service.db.session import get_db
from pph21_service.models import models, schemas

logger = logging.getLogger(__name__)


@dataclass
class TokenBundle:
    access_token: str
    access_expires_at: datetime
    user: models.User
    memberships: list[schemas.MembershipOut] = field(default_factory=list)


class AuthService:
    def __init__(self, db: Session):
        self.db = db

    def login(self, email: str, password: str) -> TokenBundle:
        user = (
            self.db.query(models.User)
            .filter(models.User.email == email.strip().lower())
            .one_or_none()
        )
        if not user or not verify_password(password, user.password_hash):
            raise InvalidCredentialsError()
        if user.status != "active":
            raise InactiveAccountError()

        user.last_login_at = datetime.now(timezone.utc)
        self.db.commit()
        issued = issue_access_token(user.id)
        logger.info("User %s logged in", user.id)
        return TokenBundle(
            access_token=issued.token,
            access_expires_at=issued.expires_at,
            user=user,
            memberships=self.memberships(user.id),
        )

    def get_user(self, user_id: int) -> models.User:
        user = self.db.get(models.User, user_id)
        if not user:
            raise ResourceNotFoundError("User", user_id)
        return user

    def memberships(self, user_id: int) -> list[schemas.MembershipOut]:
        rows = (
            self.db.query(models.TenantUser, models.Tenant)
            .join(models.Tenant, models.Tenant.id == models.TenantUser.tenant_id)
            .filter(
                models.TenantUser.user_id == user_id,
                models.TenantUser.status == "active",
                models.Tenant.status == "active",
            )
            .order_by(models.TenantUser.id)
            .all()
        )
        return [
            schemas.MembershipOut(
                tenant_id=tenant.id,
                tenant_code=tenant.code,
                tenant_name=tenant.name,
                role=membership.role,
            )
            for membership, tenant in rows
        ]

    def get_or_create_user(
        self,
        email: str,
        name: str | None = None,
        password: str | None = None,
        is_superadmin: bool = False,
    ) -> models.User:
        """Return the user with ``email``, creating it when missing.

        A password is required only when the user does not exist yet.
        """
        normalized = email.strip().lower()
        user = self.db.query(models.User).filter(models.User.email == normalized).one_or_none()
        if user:
            return user
        if not password:
            raise ValueError("Password is required to create a new user")
        validate_password_strength(password)
        user = models.User(
            email=normalized,
            name=name or normalized.split("@", 1)[0],
            password_hash=hash_password(password),
            is_superadmin=is_superadmin,
        )
        self.db.add(user)
        self.db.flush()
        logger.info("Created user %s (superadmin=%s)", user.id, is_superadmin)
        return user


def get_auth_service(db: Annotated[Session, Depends(get_db)]) -> AuthService:
    return AuthService(db)
