"""Authentication endpoints — login, profile, invitations, password change."""

import logging

from fastapi import APIRouter, status
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlmodel import select

from app.api.deps import Admin, Authenticated, Codec, Session
from app.core.config import get_settings
from app.core.errors import Conflict, InvalidRequest, Unauthenticated
from app.core.security import Claims, hash_password, verify_password
from app.models.tenant import Tenant, TenantRead
from app.models.user import PasswordChange, User, UserInvite, UserRead, normalize_email

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


# ── Schemas ──────────────────────────────────────────────────

class LoginRequest(BaseModel):
    email: str
    password: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserRead
    tenant: TenantRead


class ProfileResponse(BaseModel):
    user: UserRead
    tenant: TenantRead


class InviteResponse(BaseModel):
    user: UserRead
    default_password: str


# ── Routes ───────────────────────────────────────────────────

@router.post("/login", response_model=LoginResponse)
async def login(body: LoginRequest, session: Session, codec: Codec) -> LoginResponse:
    """Authenticate with email + password, receive a JWT."""
    stmt = (
        select(User, Tenant)
        .join(Tenant, Tenant.id == User.tenant_id)
        .where(User.email == normalize_email(body.email))
    )
    row = (await session.execute(stmt)).one_or_none()
    if row is None:
        raise Unauthenticated("Invalid credentials")

    user, tenant = row
    if not user.is_active:
        raise Unauthenticated("Account is deactivated")

    if not verify_password(body.password, user.password_hash):
        logger.warning("Failed login for user %s", user.id)
        raise Unauthenticated("Invalid credentials")

    token = codec.issue(Claims(
        user_id=user.id,
        email=user.email,
        role=user.role,
        tenant_id=tenant.id,
        tenant_slug=tenant.slug,
    ))

    return LoginResponse(
        access_token=token,
        user=UserRead.model_validate(user),
        tenant=TenantRead.model_validate(tenant),
    )


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(ctx: Authenticated) -> ProfileResponse:
    """Return the current authenticated user and their tenant."""
    return ProfileResponse(
        user=UserRead.model_validate(ctx.user),
        tenant=TenantRead.model_validate(ctx.tenant),
    )


@router.post("/invite", response_model=InviteResponse, status_code=status.HTTP_201_CREATED)
async def invite_user(body: UserInvite, ctx: Admin) -> InviteResponse:
    """Create a user in the caller's tenant with the default password."""
    session = ctx.session
    existing = await session.execute(select(User).where(User.email == body.email))
    if existing.scalar_one_or_none():
        raise Conflict("Email already exists")

    default_password = get_settings().default_invite_password
    user = User(
        tenant_id=ctx.tenant.id,
        email=body.email,
        password_hash=hash_password(default_password),
        role=body.role,
    )
    session.add(user)
    try:
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        raise Conflict("Email already exists") from exc
    await session.refresh(user)

    logger.info("User %s invited to tenant %s", user.id, ctx.tenant.slug)
    return InviteResponse(
        user=UserRead.model_validate(user),
        default_password=default_password,
    )


@router.put("/password", status_code=status.HTTP_204_NO_CONTENT)
async def change_password(body: PasswordChange, ctx: Authenticated) -> None:
    user = ctx.user
    if not verify_password(body.current_password, user.password_hash):
        raise InvalidRequest("Current password is incorrect")

    user.password_hash = hash_password(body.new_password)
    user.touch()
    ctx.session.add(user)
    await ctx.session.commit()
