"""Authentication and tenant administration schemas."""
from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pph21_service.models.models import TenantRole


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class MembershipOut(BaseModel):
    tenant_id: int
    tenant_code: str
    tenant_name: str
    role: TenantRole


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    name: str
    is_superadmin: bool
    status: str


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    access_expires_at: dt.datetime
    user: UserOut
    tenants: list[MembershipOut] = []


class MeOut(BaseModel):
    user: UserOut
    tenants: list[MembershipOut] = []


class TenantCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=255)


class TenantOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    name: str
    status: str


class TenantUserCreate(BaseModel):
    """Attach a user to a tenant; the user is created when the email is new."""
    email: str = Field(..., min_length=3, max_length=255)
    name: str | None = Field(None, max_length=255)
    password: str | None = Field(None, min_length=8)
    role: TenantRole = TenantRole.VIEWER

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()


class TenantUserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tenant_id: int
    user_id: int
    role: TenantRole
    status: str


class MessageOut(BaseModel):
    detail: str


class TenantUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    status: str | None = Field(None, pattern="^(active|suspended)$")
