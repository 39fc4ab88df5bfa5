"""Tenant user administration — admin only, scoped to the path tenant."""

import logging
import uuid
from enum import StrEnum

from fastapi import APIRouter, Query, status
from pydantic import BaseModel
from sqlalchemy import func
from sqlmodel import select

from app.api.deps import RequestContext, TenantAdmin
from app.api.pagination import Pagination, paginate
from app.core.errors import NotFound
from app.models.user import RoleUpdate, User, UserRead, UserRole
from app.services.policies import ensure_not_self_deactivation, ensure_not_self_demotion

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tenants/{slug}/users", tags=["users"])


class UserStatusFilter(StrEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ALL = "all"


class UserPage(BaseModel):
    users: list[UserRead]
    pagination: Pagination


@router.get("", response_model=UserPage)
async def list_users(
    slug: str,
    ctx: TenantAdmin,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    role: UserRole | None = None,
    status_filter: UserStatusFilter = Query(UserStatusFilter.ACTIVE, alias="status"),
) -> UserPage:
    conditions = [User.tenant_id == ctx.tenant.id]
    if role is not None:
        conditions.append(User.role == role)
    if status_filter == UserStatusFilter.ACTIVE:
        conditions.append(User.is_active == True)  # noqa: E712
    elif status_filter == UserStatusFilter.INACTIVE:
        conditions.append(User.is_active == False)  # noqa: E712

    total = (await ctx.session.execute(
        select(func.count()).select_from(User).where(*conditions)
    )).scalar_one()
    stmt = (
        select(User)
        .where(*conditions)
        .order_by(User.created_at.desc())  # type: ignore[union-attr]
        .offset((page - 1) * limit)
        .limit(limit)
    )
    users = (await ctx.session.execute(stmt)).scalars().all()
    return UserPage(
        users=[UserRead.model_validate(u) for u in users],
        pagination=paginate(page, limit, total),
    )


@router.put("/{user_id}/role", response_model=UserRead)
async def update_user_role(
    slug: str,
    user_id: uuid.UUID,
    body: RoleUpdate,
    ctx: TenantAdmin,
) -> UserRead:
    user = await _get_or_404(user_id, ctx)
    ensure_not_self_demotion(ctx.user, user.id, body.role)

    user.role = body.role
    user.touch()
    ctx.session.add(user)
    await ctx.session.commit()
    await ctx.session.refresh(user)
    logger.info("User %s role set to %s by %s", user.id, user.role, ctx.user.id)
    return UserRead.model_validate(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def deactivate_user(slug: str, user_id: uuid.UUID, ctx: TenantAdmin) -> None:
    user = await _get_or_404(user_id, ctx)
    ensure_not_self_deactivation(ctx.user, user.id)

    user.is_active = False
    user.touch()
    ctx.session.add(user)
    await ctx.session.commit()
    logger.info("User %s deactivated by %s", user.id, ctx.user.id)


@router.post("/{user_id}/reactivate", response_model=UserRead)
async def reactivate_user(slug: str, user_id: uuid.UUID, ctx: TenantAdmin) -> UserRead:
    user = await _get_or_404(user_id, ctx)
    user.is_active = True
    user.touch()
    ctx.session.add(user)
    await ctx.session.commit()
    await ctx.session.refresh(user)
    return UserRead.model_validate(user)


# ── Internal helper ───────────────────────────────────────────

async def _get_or_404(user_id: uuid.UUID, ctx: RequestContext) -> User:
    stmt = select(User).where(
        User.id == user_id,
        User.tenant_id == ctx.tenant.id,
    )
    user = (await ctx.session.execute(stmt)).scalar_one_or_none()
    if user is None:
        raise NotFound("User not found in this tenant")
    return user
