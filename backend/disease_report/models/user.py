import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, text

from disease_report.auth.roles import Role
from disease_report.database import Base


def _new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"
    __table_args__ = (
        # Retired accounts keep their username; only active ones must be unique
        Index(
            "uq_users_active_username",
            "username",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )

    id = Column(String(36), primary_key=True, default=_new_id)
    username = Column(String(50), nullable=False, index=True)
    name = Column(String(200), nullable=False)
    password_hash = Column(String(100), nullable=False)
    role_id = Column(Integer, nullable=False)  # Role value: 1 superadmin, 2 admin, 3 user
    hospital_code = Column(String(9), ForeignKey("hospitals.code"), index=True)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    last_login_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def role(self) -> Role:
        return Role(self.role_id)
