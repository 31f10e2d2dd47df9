"""
User directory: the only way the auth core reads or writes user rows.

The session manager and the authentication gate depend on the ``UserDirectory``
protocol; ``SqlUserDirectory`` is the SQLAlchemy implementation bound to the
request's session.
"""

from datetime import datetime
from typing import Optional, Protocol

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from disease_report.models.hospital import Hospital
from disease_report.models.user import User


class UserDirectory(Protocol):
    async def get_active_by_id(self, user_id: str) -> Optional[User]: ...

    async def get_active_by_username(self, username: str) -> Optional[User]: ...

    async def record_login(self, user_id: str, at: datetime) -> None: ...

    async def set_password_hash(self, user_id: str, digest: str, at: datetime) -> None: ...

    async def get_hospital(self, code: str) -> Optional[Hospital]: ...


class SqlUserDirectory:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_active_by_id(self, user_id: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.id == user_id, User.is_active.is_(True))
        )
        return result.scalar_one_or_none()

    async def get_active_by_username(self, username: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.username == username, User.is_active.is_(True))
        )
        return result.scalars().first()

    async def record_login(self, user_id: str, at: datetime) -> None:
        user = await self.db.get(User, user_id)
        user.last_login_at = at
        user.updated_at = at
        await self.db.flush()

    async def set_password_hash(self, user_id: str, digest: str, at: datetime) -> None:
        user = await self.db.get(User, user_id)
        user.password_hash = digest
        user.updated_at = at
        await self.db.flush()

    async def get_hospital(self, code: str) -> Optional[Hospital]:
        result = await self.db.execute(select(Hospital).where(Hospital.code == code))
        return result.scalar_one_or_none()
