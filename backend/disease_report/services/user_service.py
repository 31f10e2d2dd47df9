"""
User management on behalf of an authenticated principal.

Route guards have already checked the caller against the *existing* target
(role hierarchy, same hospital). This service checks what the guards cannot
see: the role and hospital a request is trying to assign.
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from disease_report.auth.hasher import PasswordHasher, check_password_strength
from disease_report.auth.principal import Principal
from disease_report.auth.roles import Role
from disease_report.auth.scope import ensure_can_manage, scope_for
from disease_report.exceptions import AppError, ErrorKind, not_found, permission_denied
from disease_report.models.hospital import Hospital
from disease_report.models.user import User, utcnow
from disease_report.schemas.user import UserCreate, UserUpdate

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100

SORT_COLUMNS = {
    "createdAt": User.created_at,
    "name": User.name,
    "username": User.username,
    "userRoleId": User.role_id,
}


@dataclass
class UserPage:
    users: List[User]
    hospitals: Dict[str, Hospital]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.total else 0


class UserService:
    def __init__(self, db: AsyncSession, hasher: PasswordHasher):
        self.db = db
        self.hasher = hasher

    async def get_active(self, user_id: str) -> User:
        result = await self.db.execute(
            select(User).where(User.id == user_id, User.is_active.is_(True))
        )
        user = result.scalar_one_or_none()
        if not user:
            raise not_found(f"User {user_id} not found")
        return user

    async def list_users(
        self,
        principal: Principal,
        page: int = 1,
        limit: int = 20,
        search: str = "",
        role_id: Optional[int] = None,
        hospital_code: Optional[str] = None,
        is_active: bool = True,
        sort_by: str = "createdAt",
        sort_order: str = "desc",
    ) -> UserPage:
        """One page of users; ``is_active=False`` lists retired accounts instead."""
        limit = min(limit, MAX_PAGE_SIZE)
        if sort_by not in SORT_COLUMNS:
            raise AppError(ErrorKind.VALIDATION_FAILED, f"Cannot sort users by {sort_by}")
        query = select(User).where(User.is_active.is_(is_active))

        # Admins only ever see plain users of their own hospital
        if principal.role == Role.ADMIN:
            query = query.where(User.role_id > int(Role.ADMIN))
        elif principal.role != Role.SUPERADMIN:
            raise permission_denied("Your role does not permit listing users")

        effective_code = scope_for(principal).constrain(hospital_code)
        if effective_code:
            query = query.where(User.hospital_code == effective_code)

        if search:
            query = query.where(
                or_(User.username.ilike(f"%{search}%"), User.name.ilike(f"%{search}%"))
            )
        if role_id:
            query = query.where(User.role_id == role_id)

        count_query = select(func.count()).select_from(query.subquery())
        total = await self.db.scalar(count_query) or 0

        column = SORT_COLUMNS[sort_by]
        order = column.asc() if sort_order == "asc" else column.desc()
        query = query.order_by(order, User.id).offset((page - 1) * limit).limit(limit)
        result = await self.db.execute(query)
        users = list(result.scalars().all())
        return UserPage(
            users=users,
            hospitals=await self.hospitals_for(users),
            page=page,
            limit=limit,
            total=total,
        )

    async def create_user(self, principal: Principal, data: UserCreate) -> User:
        ensure_can_manage(principal, Role(data.role_id))
        hospital_code = await self._assignable_hospital(principal, data.hospital_code)
        await self._ensure_username_available(data.username)
        check_password_strength(data.password)

        now = utcnow()
        user = User(
            username=data.username,
            name=data.name,
            password_hash=await run_in_threadpool(self.hasher.hash, data.password),
            role_id=data.role_id,
            hospital_code=hospital_code,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        self.db.add(user)
        await self._flush_unique()
        logger.info("User %s created user %s (role %d)", principal.user_id, user.id, user.role_id)
        return user

    async def update_user(self, principal: Principal, user: User, data: UserUpdate) -> User:
        changes = data.model_dump(exclude_unset=True)

        if changes.get("role_id") is not None:
            ensure_can_manage(principal, Role(changes["role_id"]))
        if "hospital_code" in changes:
            changes["hospital_code"] = await self._assignable_hospital(principal, changes["hospital_code"])
        if changes.get("username") and changes["username"] != user.username:
            await self._ensure_username_available(changes["username"], exclude_user_id=user.id)

        for key, value in changes.items():
            if value is None and key != "hospital_code":
                continue
            setattr(user, key, value)
        user.updated_at = utcnow()
        await self._flush_unique()
        logger.info("User %s updated user %s", principal.user_id, user.id)
        return user

    async def deactivate_user(self, principal: Principal, user: User) -> None:
        if user.id == principal.user_id:
            raise AppError(ErrorKind.VALIDATION_FAILED, "You cannot delete your own account")
        user.is_active = False
        user.updated_at = utcnow()
        await self.db.flush()
        logger.info("User %s deactivated user %s", principal.user_id, user.id)

    async def reset_password(self, principal: Principal, user: User, new_password: str) -> None:
        check_password_strength(new_password)
        user.password_hash = await run_in_threadpool(self.hasher.hash, new_password)
        user.updated_at = utcnow()
        await self.db.flush()
        logger.info("User %s reset the password of user %s", principal.user_id, user.id)

    async def update_profile(self, principal: Principal, name: str) -> User:
        user = await self.get_active(principal.user_id)
        user.name = name
        user.updated_at = utcnow()
        await self.db.flush()
        return user

    async def hospitals_for(self, users: Iterable[User]) -> Dict[str, Hospital]:
        codes = {u.hospital_code for u in users if u.hospital_code}
        if not codes:
            return {}
        result = await self.db.execute(select(Hospital).where(Hospital.code.in_(codes)))
        return {h.code: h for h in result.scalars().all()}

    async def _assignable_hospital(self, principal: Principal, requested: Optional[str]) -> Optional[str]:
        scope = scope_for(principal)
        if not scope.unrestricted:
            own_code = scope.constrain()
            if requested and requested != own_code:
                raise permission_denied("You can only assign users to your own hospital")
            requested = own_code

        if requested:
            hospital = await self.db.scalar(
                select(Hospital).where(Hospital.code == requested, Hospital.is_active.is_(True))
            )
            if hospital is None:
                raise AppError(ErrorKind.VALIDATION_FAILED, f"Hospital {requested} not found")
        return requested

    async def _ensure_username_available(self, username: str, exclude_user_id: Optional[str] = None) -> None:
        query = select(User.id).where(User.username == username, User.is_active.is_(True))
        if exclude_user_id:
            query = query.where(User.id != exclude_user_id)
        if await self.db.scalar(query) is not None:
            raise AppError(ErrorKind.CONFLICT, "Username already exists")

    async def _flush_unique(self) -> None:
        # The partial unique index catches a concurrent insert that slipped past the check
        try:
            await self.db.flush()
        except IntegrityError as e:
            raise AppError(ErrorKind.CONFLICT, "Username already exists") from e
