from typing import Optional

from pydantic import Field, model_validator

from disease_report.schemas.auth import USERNAME_PATTERN, UserInfo
from disease_report.schemas.common import CamelModel


class UserCreate(CamelModel):
    username: str = Field(..., min_length=3, max_length=50, pattern=USERNAME_PATTERN)
    password: str = Field(..., min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=200)
    role_id: int = Field(..., ge=1, le=3)
    hospital_code: Optional[str] = Field(default=None, min_length=9, max_length=9)


class UserUpdate(CamelModel):
    username: Optional[str] = Field(default=None, min_length=3, max_length=50, pattern=USERNAME_PATTERN)
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    role_id: Optional[int] = Field(default=None, ge=1, le=3)
    # Explicit null clears the hospital; omitting the field leaves it alone
    hospital_code: Optional[str] = Field(default=None, min_length=9, max_length=9)


class ProfileUpdate(CamelModel):
    name: str = Field(..., min_length=1, max_length=200)


class AdminPasswordReset(CamelModel):
    new_password: str = Field(..., min_length=1, max_length=100)
    confirm_password: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def _passwords_match(self) -> "AdminPasswordReset":
        if self.new_password != self.confirm_password:
            raise ValueError("New password and confirmation do not match")
        return self


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_previous: bool


class UserListResponse(CamelModel):
    users: list[UserInfo]
    pagination: Pagination
