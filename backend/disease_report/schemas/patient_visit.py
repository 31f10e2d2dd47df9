from datetime import date, datetime
from typing import Optional

from pydantic import Field

from disease_report.schemas.common import CamelModel
from disease_report.schemas.user import Pagination


class PatientVisitBase(CamelModel):
    disease_name: str = Field(..., min_length=1, max_length=200)
    patient_name: str = Field(..., min_length=1, max_length=200)
    illness_date: date
    remarks: Optional[str] = None


class PatientVisitCreate(PatientVisitBase):
    # Scoped callers may omit it; their own hospital is used
    hospital_code: Optional[str] = Field(default=None, min_length=9, max_length=9)


class PatientVisitResponse(PatientVisitBase):
    id: str
    hospital_code: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PatientVisitListResponse(CamelModel):
    patient_visits: list[PatientVisitResponse]
    pagination: Pagination
