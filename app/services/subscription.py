"""Subscription plans and the note quota gate."""

import logging
import uuid

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.errors import InvalidRequest, NotFound, QuotaExceeded
from app.models.base import utcnow
from app.models.note import Note
from app.models.tenant import UNLIMITED_NOTES, Tenant, TenantPlan

logger = logging.getLogger(__name__)


def has_note_capacity(tenant: Tenant, note_count: int) -> bool:
    """Pure quota decision: pro is unbounded, free allows count < max_notes."""
    if tenant.plan == TenantPlan.PRO:
        return True
    return note_count < tenant.max_notes


async def count_notes(session: AsyncSession, tenant_id: uuid.UUID) -> int:
    """All notes owned by the tenant, archived ones included."""
    stmt = select(func.count()).select_from(Note).where(Note.tenant_id == tenant_id)
    return (await session.execute(stmt)).scalar_one()


async def can_create_note(session: AsyncSession, tenant: Tenant) -> bool:
    if tenant.plan == TenantPlan.PRO:
        return True
    return has_note_capacity(tenant, await count_notes(session, tenant.id))


async def reserve_note_slot(session: AsyncSession, tenant_id: uuid.UUID) -> Tenant:
    """Lock the tenant row and check the quota before a note insert.

    The lock is held until the caller commits, so concurrent creations for
    the same tenant are serialized and cannot jointly exceed the limit.
    Raises QuotaExceeded when the tenant is full.
    """
    stmt = (
        select(Tenant)
        .where(Tenant.id == tenant_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    tenant = (await session.execute(stmt)).scalar_one_or_none()
    if tenant is None:
        raise NotFound("Tenant not found")

    if not await can_create_note(session, tenant):
        logger.warning("Note quota reached for tenant %s (max %d)", tenant.slug, tenant.max_notes)
        raise QuotaExceeded(
            upgrade_url=f"/tenants/{tenant.slug}/upgrade",
            hint="Upgrade to Pro plan for unlimited notes",
        )
    return tenant


def upgrade_to_pro(tenant: Tenant) -> None:
    """One-way free → pro transition. Caller commits."""
    if tenant.plan == TenantPlan.PRO:
        raise InvalidRequest("Tenant is already on Pro plan")
    tenant.plan = TenantPlan.PRO
    tenant.max_notes = UNLIMITED_NOTES
    tenant.upgraded_at = utcnow()
    tenant.touch()
    logger.info("Tenant %s upgraded to pro", tenant.slug)
