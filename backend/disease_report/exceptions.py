from enum import Enum


class ErrorKind(str, Enum):
    AUTHENTICATION_REQUIRED = "Authentication required"
    INVALID_TOKEN = "Invalid token"
    TOKEN_EXPIRED = "Token expired"
    INVALID_CREDENTIALS = "Invalid credentials"
    SAME_PASSWORD = "Same password"
    PERMISSION_DENIED = "Permission denied"
    HOSPITAL_NOT_ASSIGNED = "No hospital assigned"
    ROLE_HIERARCHY_VIOLATION = "Role hierarchy violation"
    CORRUPT_CREDENTIAL = "Corrupt credential"
    SERVICE_UNAVAILABLE = "Service unavailable"
    VALIDATION_FAILED = "Validation failed"
    NOT_FOUND = "Not found"
    CONFLICT = "Conflict"


STATUS_BY_KIND = {
    ErrorKind.AUTHENTICATION_REQUIRED: 401,
    ErrorKind.INVALID_TOKEN: 401,
    ErrorKind.TOKEN_EXPIRED: 401,
    ErrorKind.INVALID_CREDENTIALS: 401,
    ErrorKind.SAME_PASSWORD: 400,
    ErrorKind.VALIDATION_FAILED: 400,
    ErrorKind.PERMISSION_DENIED: 403,
    ErrorKind.HOSPITAL_NOT_ASSIGNED: 403,
    ErrorKind.ROLE_HIERARCHY_VIOLATION: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.CORRUPT_CREDENTIAL: 500,
    ErrorKind.SERVICE_UNAVAILABLE: 503,
}


class AppError(Exception):
    """Tagged failure; the HTTP status comes from ``kind``, never from ``message``."""

    def __init__(self, kind: ErrorKind, message: str, details: dict = None):
        self.kind = kind
        self.message = message
        self.details = details or {}
        super().__init__(f"{kind.value}: {message}")

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]

    def to_body(self) -> dict:
        body = {"success": False, "message": self.message, "error": self.kind.value}
        if self.details:
            body["details"] = self.details
        return body


def authentication_required(message: str = "Access token not found, please log in") -> AppError:
    return AppError(ErrorKind.AUTHENTICATION_REQUIRED, message)


def invalid_token(message: str = "Invalid token, please log in again") -> AppError:
    return AppError(ErrorKind.INVALID_TOKEN, message)


def token_expired(message: str = "Token expired, please refresh your session") -> AppError:
    return AppError(ErrorKind.TOKEN_EXPIRED, message)


def permission_denied(message: str = "You do not have permission to perform this action") -> AppError:
    return AppError(ErrorKind.PERMISSION_DENIED, message)


def hospital_not_assigned() -> AppError:
    return AppError(ErrorKind.HOSPITAL_NOT_ASSIGNED, "No hospital is assigned to this account")


def not_found(message: str) -> AppError:
    return AppError(ErrorKind.NOT_FOUND, message)
