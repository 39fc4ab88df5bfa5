"""Tenant endpoints — bootstrap, info and subscription upgrade."""

import logging

from fastapi import APIRouter, status
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from app.api.deps import Codec, PublicTenant, Session, TenantAdmin, TenantMember
from app.core.config import get_settings
from app.core.errors import Conflict
from app.core.security import Claims, hash_password
from app.models.note import Note
from app.models.tenant import Tenant, TenantDetail, TenantPublic, TenantRead, TenantStats
from app.models.user import User, UserRead, UserRole, normalize_email
from app.services.subscription import can_create_note, upgrade_to_pro

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tenants", tags=["tenants"])


# ── Bootstrap request / response schemas ──────────────────────

class TenantBootstrapRequest(BaseModel):
    """Everything needed to create a new tenant + its first admin."""
    tenant_name: str = Field(min_length=1, max_length=255)
    tenant_slug: str = Field(max_length=100, pattern=r"^[a-z0-9\-]+$")
    admin_email: EmailStr
    admin_password: str = Field(min_length=6, max_length=128)


class TenantBootstrapResponse(BaseModel):
    tenant: TenantRead
    user: UserRead
    access_token: str
    token_type: str = "bearer"


# ── Routes ────────────────────────────────────────────────────

@router.post(
    "",
    response_model=TenantBootstrapResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a new tenant (bootstrap)",
)
async def bootstrap_tenant(
    body: TenantBootstrapRequest,
    session: Session,
    codec: Codec,
) -> TenantBootstrapResponse:
    """Create a tenant on the free plan and its first admin user.

    This is the only unauthenticated write endpoint.
    """
    existing = await session.execute(select(Tenant).where(Tenant.slug == body.tenant_slug))
    if existing.scalar_one_or_none():
        raise Conflict(f"Slug '{body.tenant_slug}' is already taken")

    email = normalize_email(body.admin_email)
    existing = await session.execute(select(User).where(User.email == email))
    if existing.scalar_one_or_none():
        raise Conflict("Email already exists")

    tenant = Tenant(
        name=body.tenant_name,
        slug=body.tenant_slug,
        max_notes=get_settings().free_plan_max_notes,
    )
    session.add(tenant)
    await session.flush()  # populate tenant.id

    user = User(
        tenant_id=tenant.id,
        email=email,
        password_hash=hash_password(body.admin_password),
        role=UserRole.ADMIN,
    )
    session.add(user)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise Conflict("Tenant slug or email already exists") from exc
    await session.refresh(tenant)
    await session.refresh(user)

    logger.info("Bootstrapped tenant %s", tenant.slug)
    token = codec.issue(Claims(
        user_id=user.id,
        email=user.email,
        role=user.role,
        tenant_id=tenant.id,
        tenant_slug=tenant.slug,
    ))
    return TenantBootstrapResponse(
        tenant=TenantRead.model_validate(tenant),
        user=UserRead.model_validate(user),
        access_token=token,
    )


@router.get("/{slug}/public", response_model=TenantPublic, summary="Public tenant lookup")
async def get_public_tenant(slug: str, ctx: PublicTenant) -> TenantPublic:
    return TenantPublic.model_validate(ctx.tenant)


@router.get("/{slug}", response_model=TenantDetail, summary="Get tenant information")
async def get_tenant(slug: str, ctx: TenantMember) -> TenantDetail:
    session = ctx.session
    tenant = ctx.tenant

    total_users = (await session.execute(
        select(func.count()).select_from(User).where(
            User.tenant_id == tenant.id,
            User.is_active == True,  # noqa: E712
        )
    )).scalar_one()
    total_notes = (await session.execute(
        select(func.count()).select_from(Note).where(
            Note.tenant_id == tenant.id,
            Note.is_archived == False,  # noqa: E712
        )
    )).scalar_one()

    return TenantDetail(
        **TenantRead.model_validate(tenant).model_dump(),
        stats=TenantStats(
            total_users=total_users,
            total_notes=total_notes,
            can_create_notes=await can_create_note(session, tenant),
        ),
    )


@router.post("/{slug}/upgrade", response_model=TenantRead, summary="Upgrade to the Pro plan")
async def upgrade_tenant(slug: str, ctx: TenantAdmin) -> TenantRead:
    tenant = ctx.tenant
    upgrade_to_pro(tenant)
    ctx.session.add(tenant)
    await ctx.session.commit()
    await ctx.session.refresh(tenant)
    return TenantRead.model_validate(tenant)
