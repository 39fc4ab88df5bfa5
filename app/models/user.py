"""User model — belongs to exactly one tenant."""

import uuid
from datetime import datetime
from enum import StrEnum

from pydantic import EmailStr, field_validator
from sqlmodel import Field, SQLModel

from app.models.base import TimestampMixin, new_uuid


class UserRole(StrEnum):
    ADMIN = "admin"
    MEMBER = "member"


class User(TimestampMixin, SQLModel, table=True):
    __tablename__ = "users"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    tenant_id: uuid.UUID = Field(foreign_key="tenants.id", nullable=False, index=True)
    email: str = Field(max_length=320, unique=True, nullable=False, index=True)
    password_hash: str = Field(nullable=False)
    role: UserRole = Field(default=UserRole.MEMBER)

    # Deactivation is a soft delete: the row stays, authentication stops.
    is_active: bool = Field(default=True)


def normalize_email(email: str) -> str:
    return email.strip().lower()


# ── Pydantic schemas ─────────────────────────────────────────

class UserInvite(SQLModel):
    email: EmailStr
    role: UserRole = UserRole.MEMBER

    @field_validator("email")
    @classmethod
    def _lower(cls, v: str) -> str:
        return normalize_email(v)


class RoleUpdate(SQLModel):
    role: UserRole


class PasswordChange(SQLModel):
    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=6, max_length=128)


class UserRead(SQLModel):
    id: uuid.UUID
    tenant_id: uuid.UUID
    email: str
    role: UserRole
    is_active: bool
    created_at: datetime
