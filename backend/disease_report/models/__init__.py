from disease_report.models.hospital import Hospital
from disease_report.models.user import User
from disease_report.models.permission import PermissionGrant
from disease_report.models.patient_visit import PatientVisit

__all__ = ["Hospital", "User", "PermissionGrant", "PatientVisit"]
