from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from disease_report.auth.dependencies import get_password_hasher, get_session_manager
from disease_report.auth.directory import SqlUserDirectory
from disease_report.auth.guards import (
    Authorization,
    RequestShape,
    authorize,
    manages_target,
    require_hospital,
    require_role,
    same_hospital_as_target,
)
from disease_report.auth.hasher import PasswordHasher
from disease_report.auth.roles import Role
from disease_report.auth.sessions import SessionManager
from disease_report.database import get_db
from disease_report.exceptions import not_found
from disease_report.schemas.auth import ChangePasswordRequest, UserInfo
from disease_report.schemas.common import envelope
from disease_report.schemas.user import (
    AdminPasswordReset,
    Pagination,
    ProfileUpdate,
    UserCreate,
    UserListResponse,
    UserUpdate,
)
from disease_report.services.user_service import UserService

router = APIRouter()


def get_user_service(
    db: AsyncSession = Depends(get_db),
    hasher: PasswordHasher = Depends(get_password_hasher),
) -> UserService:
    return UserService(db, hasher)


async def load_target_user(request: Request, db: AsyncSession, shape: RequestShape) -> RequestShape:
    """Put the role and hospital of the ``{user_id}`` path user on the shape."""
    user_id = request.path_params["user_id"]
    user = await SqlUserDirectory(db).get_active_by_id(user_id)
    if user is None:
        raise not_found(f"User {user_id} not found")
    return RequestShape(
        query=shape.query,
        target_role=user.role,
        target_hospital_code=user.hospital_code,
        grants=shape.grants,
    )


manage_user = authorize(
    require_role(Role.ADMIN),
    require_hospital(),
    manages_target(),
    same_hospital_as_target(),
    target_loader=load_target_user,
)


async def _user_info(service: UserService, user) -> UserInfo:
    hospitals = await service.hospitals_for([user])
    return UserInfo.build(user, hospitals.get(user.hospital_code))


@router.get("")
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: str = Query(""),
    role_id: Optional[int] = Query(None, alias="roleId", ge=1, le=3),
    hospital_code: Optional[str] = Query(None, alias="hospitalCode"),
    is_active: bool = Query(True, alias="isActive"),
    sort_by: Literal["createdAt", "name", "username", "userRoleId"] = Query("createdAt", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),
    auth: Authorization = Depends(authorize(require_role(Role.ADMIN))),
    service: UserService = Depends(get_user_service),
):
    result = await service.list_users(
        auth.principal,
        page=page,
        limit=limit,
        search=search,
        role_id=role_id,
        hospital_code=hospital_code,
        is_active=is_active,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return envelope(
        "Users loaded",
        UserListResponse(
            users=[UserInfo.build(u, result.hospitals.get(u.hospital_code)) for u in result.users],
            pagination=Pagination(
                page=result.page,
                limit=result.limit,
                total=result.total,
                total_pages=result.total_pages,
                has_next=result.page < result.total_pages,
                has_previous=result.page > 1,
            ),
        ),
    )


@router.post("", status_code=201)
async def create_user(
    data: UserCreate,
    auth: Authorization = Depends(authorize(require_role(Role.ADMIN))),
    service: UserService = Depends(get_user_service),
):
    user = await service.create_user(auth.principal, data)
    return envelope("User created", await _user_info(service, user))


# The /profile routes are declared before /{user_id} so "profile" is never taken for an id
@router.get("/profile")
async def get_profile(
    auth: Authorization = Depends(authorize(require_role(Role.USER))),
    service: UserService = Depends(get_user_service),
):
    user = await service.get_active(auth.principal.user_id)
    return envelope("Profile loaded", await _user_info(service, user))


@router.put("/profile/password")
async def change_own_password(
    body: ChangePasswordRequest,
    auth: Authorization = Depends(authorize(require_role(Role.USER))),
    manager: SessionManager = Depends(get_session_manager),
):
    changed_at = await manager.change_password(
        auth.principal.user_id, body.current_password, body.new_password
    )
    return envelope("Password changed", {"passwordChangedAt": changed_at.isoformat()})


@router.put("/profile")
async def update_profile(
    data: ProfileUpdate,
    auth: Authorization = Depends(authorize(require_role(Role.USER))),
    service: UserService = Depends(get_user_service),
):
    user = await service.update_profile(auth.principal, data.name)
    return envelope("Profile updated", await _user_info(service, user))


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    auth: Authorization = Depends(manage_user),
    service: UserService = Depends(get_user_service),
):
    user = await service.get_active(user_id)
    return envelope("User loaded", await _user_info(service, user))


@router.put("/{user_id}")
async def update_user(
    user_id: str,
    data: UserUpdate,
    auth: Authorization = Depends(manage_user),
    service: UserService = Depends(get_user_service),
):
    user = await service.get_active(user_id)
    user = await service.update_user(auth.principal, user, data)
    return envelope("User updated", await _user_info(service, user))


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    auth: Authorization = Depends(manage_user),
    service: UserService = Depends(get_user_service),
):
    user = await service.get_active(user_id)
    await service.deactivate_user(auth.principal, user)
    return envelope("User deleted", {"id": user_id})


@router.put("/{user_id}/password")
async def reset_password(
    user_id: str,
    data: AdminPasswordReset,
    auth: Authorization = Depends(manage_user),
    service: UserService = Depends(get_user_service),
):
    user = await service.get_active(user_id)
    await service.reset_password(auth.principal, user, data.new_password)
    return envelope("Password reset", {"id": user_id})
