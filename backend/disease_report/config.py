from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

from disease_report.auth.durations import parse_duration


class Settings(BaseSettings):
    """Application settings."""

    # Database
    database_url: str = Field(...)

    # Server
    environment: Literal["development", "production", "test"] = Field(default="development")
    frontend_url: str = Field(default="http://localhost:5173")
    log_level: str = Field(default="info")

    # JWT
    jwt_secret: str = Field(..., min_length=32)
    jwt_refresh_secret: str = Field(..., min_length=32)
    jwt_expires_in: str = Field(default="15m")
    jwt_refresh_expires_in: str = Field(default="7d")
    # Tokens always travel in cookies; this also returns them in the login/refresh body
    expose_tokens_in_body: bool = Field(default=False)

    # Security
    bcrypt_rounds: int = Field(default=12, ge=4, le=16)
    directory_timeout_seconds: float = Field(default=5.0, gt=0)

    # First-run bootstrap account
    seed_superadmin_username: Optional[str] = Field(default=None)
    seed_superadmin_password: Optional[str] = Field(default=None)

    class Config:
        env_file = ".env"
        case_sensitive = False

    @model_validator(mode="after")
    def _check_token_settings(self) -> "Settings":
        if self.jwt_secret == self.jwt_refresh_secret:
            raise ValueError("JWT_SECRET and JWT_REFRESH_SECRET must differ")
        if self.access_ttl_seconds >= self.refresh_ttl_seconds:
            raise ValueError("JWT_EXPIRES_IN must be shorter than JWT_REFRESH_EXPIRES_IN")
        return self

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def access_ttl_seconds(self) -> int:
        return parse_duration(self.jwt_expires_in)

    @property
    def refresh_ttl_seconds(self) -> int:
        return parse_duration(self.jwt_refresh_expires_in)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
