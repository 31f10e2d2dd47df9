import math

from fastapi import APIRouter, Depends, Query
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from disease_report.auth.guards import (
    HOSPITAL_PARAM,
    Authorization,
    authorize,
    hospital_scoped,
    require_capability,
    require_hospital,
)
from disease_report.auth.policy import Capability
from disease_report.auth.scope import scope_for
from disease_report.database import get_db
from disease_report.exceptions import AppError, ErrorKind, not_found, permission_denied
from disease_report.models.hospital import Hospital
from disease_report.models.patient_visit import PatientVisit
from disease_report.models.user import utcnow
from disease_report.schemas.common import envelope
from disease_report.schemas.patient_visit import (
    PatientVisitCreate,
    PatientVisitListResponse,
    PatientVisitResponse,
)
from disease_report.schemas.user import Pagination

router = APIRouter()


@router.get("")
async def list_patient_visits(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: str = Query("", description="Search by patient or disease name"),
    auth: Authorization = Depends(
        authorize(
            require_capability(Capability.PATIENT_VISIT_READ, "You cannot view patient visits"),
            hospital_scoped(),
        )
    ),
    db: AsyncSession = Depends(get_db),
):
    query = select(PatientVisit).where(PatientVisit.is_active.is_(True))

    # Already forced to the caller's own hospital for scoped roles
    hospital_code = auth.query.get(HOSPITAL_PARAM)
    if hospital_code:
        query = query.where(PatientVisit.hospital_code == hospital_code)

    if search:
        query = query.where(
            or_(
                PatientVisit.patient_name.ilike(f"%{search}%"),
                PatientVisit.disease_name.ilike(f"%{search}%"),
            )
        )

    count_query = select(func.count()).select_from(query.subquery())
    total = await db.scalar(count_query) or 0

    query = (
        query.order_by(PatientVisit.illness_date.desc(), PatientVisit.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    result = await db.execute(query)
    visits = result.scalars().all()

    total_pages = math.ceil(total / limit) if total else 0
    return envelope(
        "Patient visits loaded",
        PatientVisitListResponse(
            patient_visits=[PatientVisitResponse.model_validate(v) for v in visits],
            pagination=Pagination(
                page=page,
                limit=limit,
                total=total,
                total_pages=total_pages,
                has_next=page < total_pages,
                has_previous=page > 1,
            ),
        ),
    )


@router.get("/{visit_id}")
async def get_patient_visit(
    visit_id: str,
    auth: Authorization = Depends(
        authorize(
            require_capability(Capability.PATIENT_VISIT_READ, "You cannot view patient visits"),
            require_hospital(),
        )
    ),
    db: AsyncSession = Depends(get_db),
):
    visit = await db.scalar(
        select(PatientVisit).where(PatientVisit.id == visit_id, PatientVisit.is_active.is_(True))
    )
    # Another hospital's record looks exactly like a missing one
    if visit is None or not scope_for(auth.principal).permits(visit.hospital_code):
        raise not_found(f"Patient visit {visit_id} not found")
    return envelope("Patient visit loaded", PatientVisitResponse.model_validate(visit))


@router.post("", status_code=201)
async def create_patient_visit(
    data: PatientVisitCreate,
    auth: Authorization = Depends(
        authorize(
            require_capability(Capability.PATIENT_VISIT_CREATE, "You cannot record patient visits"),
            require_hospital(),
        )
    ),
    db: AsyncSession = Depends(get_db),
):
    scope = scope_for(auth.principal)
    if scope.unrestricted:
        hospital_code = data.hospital_code
        if not hospital_code:
            raise AppError(ErrorKind.VALIDATION_FAILED, "hospitalCode is required")
    else:
        hospital_code = scope.constrain()
        if data.hospital_code and data.hospital_code != hospital_code:
            raise permission_denied("You can only record visits for your own hospital")

    hospital = await db.scalar(
        select(Hospital).where(Hospital.code == hospital_code, Hospital.is_active.is_(True))
    )
    if hospital is None:
        raise AppError(ErrorKind.VALIDATION_FAILED, f"Hospital {hospital_code} not found")

    now = utcnow()
    visit = PatientVisit(
        hospital_code=hospital_code,
        created_at=now,
        updated_at=now,
        **data.model_dump(exclude={"hospital_code"}),
    )
    db.add(visit)
    await db.flush()
    return envelope("Patient visit recorded", PatientVisitResponse.model_validate(visit))
