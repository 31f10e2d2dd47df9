import uuid

from sqlalchemy import Boolean, Column, Date, DateTime, ForeignKey, String, Text

from disease_report.database import Base
from disease_report.models.user import utcnow


class PatientVisit(Base):
    __tablename__ = "patient_visits"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    hospital_code = Column(String(9), ForeignKey("hospitals.code"), nullable=False, index=True)
    disease_name = Column(String(200), nullable=False)
    patient_name = Column(String(200), nullable=False)
    illness_date = Column(Date, nullable=False, index=True)
    remarks = Column(Text)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
