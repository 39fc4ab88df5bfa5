"""FastAPI dependencies: the access control chain and shared shorthands.

Every route declares the ordered list of checks it runs. Each check either
enriches the ``RequestContext`` or raises one of the ``app.core.errors``
classes, which ends the request.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.database import get_session
from app.core.errors import Forbidden, InvalidRequest, NotFound, RateLimited, Unauthenticated
from app.core.rate_limit import RateLimiter
from app.core.security import InvalidToken, TokenCodec
from app.models.tenant import Tenant
from app.models.user import User
from app.services.policies import is_admin, is_member_or_higher

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class RequestContext:
    """Identity and tenant resolved for one request."""

    __slots__ = ("request", "session", "credentials", "user", "tenant")

    def __init__(
        self,
        request: Request,
        session: AsyncSession,
        credentials: HTTPAuthorizationCredentials | None,
    ) -> None:
        self.request = request
        self.session = session
        self.credentials = credentials
        self.user: User | None = None
        self.tenant: Tenant | None = None


Check = Callable[[RequestContext], Awaitable[None]]


def get_token_codec(request: Request) -> TokenCodec:
    return request.app.state.token_codec


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


# ── Checks ────────────────────────────────────────────────────

async def authenticate(ctx: RequestContext) -> None:
    if ctx.credentials is None or not ctx.credentials.credentials:
        raise Unauthenticated("Access denied. No token provided.")

    try:
        claims = get_token_codec(ctx.request).verify(ctx.credentials.credentials)
    except InvalidToken as exc:
        logger.warning("Rejected bearer token: %s", exc)
        raise Unauthenticated("Invalid token.") from exc

    stmt = (
        select(User, Tenant)
        .join(Tenant, Tenant.id == User.tenant_id)
        .where(User.id == claims.user_id)
    )
    row = (await ctx.session.execute(stmt)).one_or_none()
    if row is None:
        raise Unauthenticated("Invalid token. User not found.")

    user, tenant = row
    if not user.is_active:
        logger.warning("Deactivated user %s attempted access", user.id)
        raise Unauthenticated("Account is deactivated.")

    ctx.user = user
    ctx.tenant = tenant


async def require_admin(ctx: RequestContext) -> None:
    if ctx.user is None:
        raise Unauthenticated("Authentication required.")
    if not is_admin(ctx.user):
        raise Forbidden("Access denied. Admin privileges required.")


async def require_member(ctx: RequestContext) -> None:
    if ctx.user is None:
        raise Unauthenticated("Authentication required.")
    if not is_member_or_higher(ctx.user):
        raise Forbidden("Access denied. Member privileges required.")


async def validate_tenant(ctx: RequestContext) -> None:
    """Reconcile the ``{slug}`` path parameter with the caller.

    Authenticated callers are bound to their own tenant whatever the path
    says; only public routes resolve the tenant from the path alone.
    """
    slug = ctx.request.path_params.get("slug")
    if not slug:
        raise InvalidRequest("Tenant slug is required.")

    if ctx.user is not None:
        if ctx.tenant is None or ctx.tenant.slug != slug:
            logger.warning(
                "User %s of tenant %s attempted access to tenant %s",
                ctx.user.id, ctx.user.tenant_id, slug,
            )
            raise Forbidden("Access denied. You do not belong to this tenant.")
        return

    stmt = select(Tenant).where(Tenant.slug == slug)
    tenant = (await ctx.session.execute(stmt)).scalar_one_or_none()
    if tenant is None:
        raise NotFound("Tenant not found.")
    ctx.tenant = tenant


async def rate_limit(ctx: RequestContext) -> None:
    tenant_key = str(ctx.tenant.id) if ctx.tenant is not None else "unknown"
    client_ip = ctx.request.client.host if ctx.request.client else "unknown"
    retry_after = get_rate_limiter(ctx.request).hit(f"{tenant_key}-{client_ip}")
    if retry_after is not None:
        raise RateLimited(retry_after=retry_after)


_USER_CHECKS = frozenset({require_admin, require_member})


class AccessChain:
    """An explicit, ordered sequence of checks used as a route dependency.

    Role checks must come after ``authenticate``; a misordered chain fails
    at construction rather than at request time.
    """

    def __init__(self, *checks: Check) -> None:
        seen_auth = False
        for check in checks:
            if check is authenticate:
                seen_auth = True
            elif check in _USER_CHECKS and not seen_auth:
                raise ValueError(f"{check.__name__} must run after authenticate")
        self.checks = checks

    async def __call__(
        self,
        request: Request,
        session: Annotated[AsyncSession, Depends(get_session)],
        credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
    ) -> RequestContext:
        ctx = RequestContext(request, session, credentials)
        for check in self.checks:
            await check(ctx)
        return ctx

    def __repr__(self) -> str:
        return "AccessChain(" + " -> ".join(c.__name__ for c in self.checks) + ")"


# ── Declared chains ──────────────────────────────────────────

authenticated = AccessChain(authenticate)
member = AccessChain(authenticate, require_member, rate_limit)
admin = AccessChain(authenticate, require_admin, rate_limit)
tenant_member = AccessChain(authenticate, require_member, validate_tenant, rate_limit)
tenant_admin = AccessChain(authenticate, require_admin, validate_tenant, rate_limit)
public_tenant = AccessChain(validate_tenant, rate_limit)


# Typed shorthand for use in route signatures
Session = Annotated[AsyncSession, Depends(get_session)]
Codec = Annotated[TokenCodec, Depends(get_token_codec)]
Authenticated = Annotated[RequestContext, Depends(authenticated)]
Member = Annotated[RequestContext, Depends(member)]
Admin = Annotated[RequestContext, Depends(admin)]
TenantMember = Annotated[RequestContext, Depends(tenant_member)]
TenantAdmin = Annotated[RequestContext, Depends(tenant_admin)]
PublicTenant = Annotated[RequestContext, Depends(public_tenant)]
