"""
Initialize the database: create all tables and seed the default grants
(plus the bootstrap superadmin when SEED_SUPERADMIN_* is set).
Run with: python -m scripts.init_db
"""

import asyncio

from disease_report.config import get_settings
from disease_report.database import Base, async_session, engine
from disease_report.logging_config import configure_logging
from disease_report.models import Hospital, PatientVisit, PermissionGrant, User  # noqa: F401
from disease_report.seed import seed_defaults


async def init():
    settings = get_settings()
    configure_logging(settings.log_level)
    print("Creating database tables...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with async_session() as session:
        await seed_defaults(session, settings)
    print("All tables created and default data seeded.")
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(init())
