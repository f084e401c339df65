from __future__ import annotations
from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

MIN_SECRET_BYTES = 64  # HS512 key floor (512 bits)

_DEV_SECRET = "change-me-dev-secret-change-me-dev-secret-change-me-dev-secret-0000"


class AuthSettings(BaseSettings):
    secret: str = Field(default=_DEV_SECRET)
    access_ttl_seconds: int = Field(default=3600)        # 1 hour
    refresh_ttl_seconds: int = Field(default=86400)      # 1 day
    bcrypt_rounds: int = Field(default=12, ge=4, le=31)
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(
        env_prefix="AUTH_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    @field_validator("secret")
    @classmethod
    def secret_long_enough(cls, v: str) -> str:
        if len(v.encode("utf-8")) < MIN_SECRET_BYTES:
            raise ValueError(f"secret must be at least {MIN_SECRET_BYTES} bytes for HS512")
        return v

    @field_validator("access_ttl_seconds", "refresh_ttl_seconds")
    @classmethod
    def ttl_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("token TTLs must be positive")
        return v

    @field_validator("log_level")
    @classmethod
    def normalize_level(cls, v: str) -> str:
        return v.upper()

    @model_validator(mode="after")
    def refresh_outlives_access(self) -> "AuthSettings":
        if self.refresh_ttl_seconds < self.access_ttl_seconds:
            raise ValueError("refresh_ttl_seconds must be >= access_ttl_seconds")
        return self


@lru_cache(maxsize=1)
def get_settings() -> AuthSettings:
    return AuthSettings()
