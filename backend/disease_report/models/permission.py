from sqlalchemy import Boolean, Column, Integer, String, UniqueConstraint

from disease_report.database import Base


class PermissionGrant(Base):
    __tablename__ = "permission_grants"
    __table_args__ = (UniqueConstraint("role_id", "capability_code", name="uq_grant_role_capability"),)

    id = Column(Integer, primary_key=True, index=True)
    role_id = Column(Integer, nullable=False, index=True)
    capability_code = Column(String(50), nullable=False)
    allowed = Column(Boolean, nullable=False)
