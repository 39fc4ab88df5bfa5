"""Tenant model — top-level isolation boundary."""

import uuid
from datetime import datetime
from enum import StrEnum

from sqlmodel import Field, SQLModel

from app.models.base import TimestampMixin, new_uuid

UNLIMITED_NOTES = -1


class TenantPlan(StrEnum):
    FREE = "free"
    PRO = "pro"


class Tenant(TimestampMixin, SQLModel, table=True):
    __tablename__ = "tenants"

    id: uuid.UUID = Field(default_factory=new_uuid, primary_key=True)
    name: str = Field(max_length=255, nullable=False)
    slug: str = Field(max_length=100, unique=True, nullable=False, index=True)

    # Subscription: free → pro only. -1 means unlimited.
    plan: TenantPlan = Field(default=TenantPlan.FREE)
    max_notes: int = Field(default=3)
    upgraded_at: datetime | None = Field(default=None)

    @property
    def is_pro(self) -> bool:
        return self.plan == TenantPlan.PRO


# ── Pydantic schemas ─────────────────────────────────────────

class TenantRead(SQLModel):
    id: uuid.UUID
    name: str
    slug: str
    plan: TenantPlan
    max_notes: int
    upgraded_at: datetime | None
    is_pro: bool
    created_at: datetime


class TenantPublic(SQLModel):
    """What an unauthenticated caller may learn about a tenant."""
    name: str
    slug: str


class TenantStats(SQLModel):
    total_users: int
    total_notes: int
    can_create_notes: bool


class TenantDetail(TenantRead):
    stats: TenantStats
