"""
First-run data: the default permission grants and an optional bootstrap
superadmin. Both steps are idempotent and safe to run on every start.
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from disease_report.auth.hasher import PasswordHasher, check_password_strength
from disease_report.auth.policy import DEFAULT_GRANTS
from disease_report.auth.roles import Role
from disease_report.config import Settings
from disease_report.models.permission import PermissionGrant
from disease_report.models.user import User, utcnow

logger = logging.getLogger(__name__)


async def seed_default_grants(session: AsyncSession) -> int:
    """Add any missing default grant; existing rows (even allowed=False) are left alone."""
    result = await session.execute(select(PermissionGrant.role_id, PermissionGrant.capability_code))
    existing = {(role_id, code) for role_id, code in result.all()}

    added = 0
    for role, capability in DEFAULT_GRANTS:
        if (int(role), capability.value) in existing:
            continue
        session.add(PermissionGrant(role_id=int(role), capability_code=capability.value, allowed=True))
        added += 1
    await session.flush()
    return added


async def seed_superadmin(session: AsyncSession, settings: Settings) -> bool:
    username = settings.seed_superadmin_username
    password = settings.seed_superadmin_password
    if not username or not password:
        return False

    existing = await session.scalar(
        select(User).where(User.username == username, User.is_active.is_(True))
    )
    if existing:
        return False

    check_password_strength(password)
    hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    now = utcnow()
    session.add(
        User(
            username=username,
            name="Superadmin",
            password_hash=await run_in_threadpool(hasher.hash, password),
            role_id=int(Role.SUPERADMIN),
            hospital_code=None,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
    )
    await session.flush()
    logger.info("Bootstrap superadmin %r created", username)
    return True


async def seed_defaults(session: AsyncSession, settings: Settings) -> None:
    added = await seed_default_grants(session)
    if added:
        logger.info("Seeded %d default permission grants", added)
    await seed_superadmin(session, settings)
    await session.commit()
