from datetime import datetime
from typing import Optional

from pydantic import Field, model_validator

from disease_report.schemas.common import CamelModel

USERNAME_PATTERN = r"^[a-zA-Z0-9_.-]+$"


class LoginRequest(CamelModel):
    username: str = Field(..., min_length=1, max_length=50, pattern=USERNAME_PATTERN)
    password: str = Field(..., min_length=1, max_length=100)


class RefreshRequest(CamelModel):
    refresh_token: Optional[str] = None


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1)
    # Strength is checked after the same-password check, not here
    new_password: str = Field(..., min_length=1, max_length=100)
    confirm_password: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def _passwords_match(self) -> "ChangePasswordRequest":
        if self.new_password != self.confirm_password:
            raise ValueError("New password and confirmation do not match")
        return self


class HospitalInfo(CamelModel):
    id: int
    code: str
    name: str


class UserInfo(CamelModel):
    id: str
    username: str
    name: str
    role: str
    role_id: int
    hospital_code: Optional[str] = None
    hospital: Optional[HospitalInfo] = None
    is_active: bool
    last_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def build(cls, user, hospital=None) -> "UserInfo":
        return cls(
            id=user.id,
            username=user.username,
            name=user.name,
            role=user.role.label,
            role_id=user.role_id,
            hospital_code=user.hospital_code,
            hospital=HospitalInfo.model_validate(hospital) if hospital is not None else None,
            is_active=user.is_active,
            last_login_at=user.last_login_at,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class SessionData(CamelModel):
    user: Optional[UserInfo] = None
    expires_in: str
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
