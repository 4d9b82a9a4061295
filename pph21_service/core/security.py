"""Password hashing and the bearer tokens handed out by ``/auth/login``.

Tokens only identify the user. Which tenant a request acts on is chosen per
request with ``X-Tenant-ID`` and checked against the user's memberships.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt
from jwt import ExpiredSignatureError
from jwt import InvalidTokenError as PyJWTInvalidTokenError
from passlib.context import CryptContext

from pph21_service.core.config import settings

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__truncate_error=True,
)

ALGORITHM = "HS256"
TOKEN_USE = "access"


class TokenValidationError(Exception):
    """Raised when a token cannot be validated."""


class TokenExpiredError(TokenValidationError):
    """Raised when a token is expired."""


@dataclass(frozen=True)
class AccessToken:
    token: str
    expires_at: datetime


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    return pwd_context.verify(password, hashed)


def validate_password_strength(password: str) -> None:
    if len(password) < settings.PASSWORD_MIN_LENGTH:
        raise ValueError(f"Password must be at least {settings.PASSWORD_MIN_LENGTH} characters long")
    if not any(ch.isdigit() for ch in password) or not any(ch.isalpha() for ch in password):
        raise ValueError("Password must include both letters and numbers")


def issue_access_token(user_id: int, expires_minutes: int | None = None) -> AccessToken:
    minutes = settings.ACCESS_TOKEN_MINUTES if expires_minutes is None else expires_minutes
    issued_at = datetime.now(timezone.utc)
    expires_at = issued_at + timedelta(minutes=minutes)
    claims = {
        "sub": str(user_id),
        "iat": issued_at,
        "exp": expires_at,
        "use": TOKEN_USE,
    }
    return AccessToken(jwt.encode(claims, settings.JWT_SECRET, algorithm=ALGORITHM), expires_at)


def read_access_token(token: str) -> int:
    """Validate ``token`` and return the user id it was issued for."""
    try:
        claims = jwt.decode(token, settings.JWT_SECRET, algorithms=[ALGORITHM], options={"require": ["sub", "exp"]})
    except ExpiredSignatureError as exc:
        raise TokenExpiredError("Token has expired") from exc
    except PyJWTInvalidTokenError as exc:
        raise TokenValidationError("Token is invalid") from exc
    if claims.get("use") != TOKEN_USE:
        raise TokenValidationError("Not an access token")
    subject = str(claims["sub"])
    if not subject.isdigit():
        raise TokenValidationError("Token subject is not a user id")
    return int(subject)
