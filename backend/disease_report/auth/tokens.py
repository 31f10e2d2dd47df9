"""
Token codec: signs and verifies access and refresh JWTs.

The two token types share one claim set but are signed with different secrets
and carry different lifetimes, so a refresh token never verifies as an access
token (and vice versa). A correctly signed token past its ``exp`` is reported
as TOKEN_EXPIRED; everything else that fails is INVALID_TOKEN.
"""

import time
import uuid
from dataclasses import dataclass
from typing import Literal, Optional

from jose import ExpiredSignatureError, JWTError, jwt
from pydantic import BaseModel, Field, ValidationError

from disease_report.auth.principal import Principal
from disease_report.auth.roles import Role
from disease_report.config import Settings
from disease_report.exceptions import invalid_token, token_expired

ALGORITHM = "HS256"
TOKEN_ISSUER = "disease-report-system"
TOKEN_AUDIENCE = "disease-report-users"


class TokenClaims(BaseModel):
    user_id: str = Field(alias="userId", min_length=1)
    username: str
    role_id: int = Field(alias="roleId", ge=1, le=3, strict=True)
    hospital_code: Optional[str] = Field(alias="hospitalCode")
    iat: int = Field(strict=True)
    exp: int = Field(strict=True)
    iss: Literal["disease-report-system"]
    aud: Literal["disease-report-users"]
    jti: str = Field(min_length=1)

    class Config:
        populate_by_name = True

    @property
    def role(self) -> Role:
        return Role(self.role_id)


@dataclass(frozen=True)
class _TokenType:
    name: str
    secret: str
    ttl_seconds: int


class TokenCodec:
    def __init__(self, settings: Settings):
        self._access = _TokenType("access", settings.jwt_secret, settings.access_ttl_seconds)
        self._refresh = _TokenType("refresh", settings.jwt_refresh_secret, settings.refresh_ttl_seconds)

    @property
    def access_ttl_seconds(self) -> int:
        return self._access.ttl_seconds

    @property
    def refresh_ttl_seconds(self) -> int:
        return self._refresh.ttl_seconds

    def sign_access(self, subject: Principal, now: Optional[float] = None) -> str:
        return self._sign(self._access, subject, now)

    def sign_refresh(self, subject: Principal, now: Optional[float] = None) -> str:
        return self._sign(self._refresh, subject, now)

    def verify_access(self, token: str) -> TokenClaims:
        return self._verify(self._access, token)

    def verify_refresh(self, token: str) -> TokenClaims:
        return self._verify(self._refresh, token)

    @staticmethod
    def _sign(token_type: _TokenType, subject: Principal, now: Optional[float]) -> str:
        issued_at = int(now if now is not None else time.time())
        payload = {
            "userId": subject.user_id,
            "username": subject.username,
            "roleId": int(subject.role),
            "hospitalCode": subject.hospital_code,
            "iat": issued_at,
            "exp": issued_at + token_type.ttl_seconds,
            "iss": TOKEN_ISSUER,
            "aud": TOKEN_AUDIENCE,
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(payload, token_type.secret, algorithm=ALGORITHM)

    @staticmethod
    def _verify(token_type: _TokenType, token: str) -> TokenClaims:
        try:
            payload = jwt.decode(
                token,
                token_type.secret,
                algorithms=[ALGORITHM],
                audience=TOKEN_AUDIENCE,
                issuer=TOKEN_ISSUER,
            )
        except ExpiredSignatureError as e:
            raise token_expired() from e
        except JWTError as e:
            raise invalid_token() from e

        try:
            return TokenClaims.model_validate(payload)
        except ValidationError as e:
            raise invalid_token() from e
