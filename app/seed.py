"""Demo data: tenants acme and globex, each with an admin and a member.

Run with ``python -m app.seed``.
"""

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.core.config import get_settings
from app.core.security import hash_password
from app.models.tenant import Tenant
from app.models.user import User, UserRole

logger = logging.getLogger(__name__)

DEMO_TENANTS = {
    "acme": "Acme Corporation",
    "globex": "Globex Corporation",
}
DEMO_PASSWORD = "password"


async def seed_demo_data(session: AsyncSession) -> list[Tenant]:
    """Create the demo tenants and users that do not exist yet."""
    max_notes = get_settings().free_plan_max_notes
    password_hash = hash_password(DEMO_PASSWORD)
    tenants = []

    for slug, name in DEMO_TENANTS.items():
        tenant = (await session.execute(
            select(Tenant).where(Tenant.slug == slug)
        )).scalar_one_or_none()
        if tenant is None:
            tenant = Tenant(name=name, slug=slug, max_notes=max_notes)
            session.add(tenant)
            await session.flush()
            logger.info("Created tenant %s", slug)

        for local, role in (("admin", UserRole.ADMIN), ("user", UserRole.MEMBER)):
            email = f"{local}@{slug}.test"
            exists = (await session.execute(
                select(User).where(User.email == email)
            )).scalar_one_or_none()
            if exists is None:
                session.add(User(
                    tenant_id=tenant.id,
                    email=email,
                    password_hash=password_hash,
                    role=role,
                ))
        tenants.append(tenant)

    await session.commit()
    return tenants


async def _main() -> None:
    from app.core.database import async_session_factory, init_db

    await init_db()
    async with async_session_factory() as session:
        await seed_demo_data(session)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(_main())
