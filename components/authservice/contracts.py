from __future__ import annotations
from typing import Any, Dict, Literal, Optional, Protocol
from pydantic import BaseModel, ConfigDict, Field, constr, field_validator

# ---------- Unified Wire Format (UWF) ----------
class ErrorPayload(BaseModel):
    type: Literal["AUTH_ERROR","VALIDATION","CONFLICT","INTERNAL"]
    code: constr(strip_whitespace=True, min_length=1)
    message: constr(strip_whitespace=True, min_length=1)
    details: Optional[Dict[str, Any]] = None

class MetaPayload(BaseModel):
    request_id: Optional[str] = None

class UWFResponse(BaseModel):
    ok: bool
    result: Optional[Any] = None
    error: Optional[ErrorPayload] = None
    meta: MetaPayload = Field(default_factory=MetaPayload)

# ---------- Domain Models ----------
class User(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    email: constr(strip_whitespace=True, min_length=3)
    password_hash: str
    name: str

    def view(self) -> "UserView":
        return UserView(id=self.id, email=self.email, name=self.name)

class UserView(BaseModel):
    """Public projection of a user; never carries the password hash."""
    id: str
    email: str
    name: str

class TokenClaims(BaseModel):
    sub: str
    iat: int
    exp: int

class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    email: str
    name: str
    token_type: Literal["Bearer"] = "Bearer"
    expires_in: int

# ---------- Ports (Contracts) ----------
class TokenCodecPort(Protocol):
    """
    Contract for issuing and verifying signed, time-bound bearer tokens.
    Access and refresh tokens share one encoding; only the TTL differs.
    """
    def issue(self, subject: str, ttl_seconds: int) -> str: ...
    def verify(self, token: str) -> TokenClaims: ...
    def subject_of(self, token: str) -> str: ...

class PasswordHasherPort(Protocol):
    def hash(self, plaintext: str) -> str: ...
    def matches(self, plaintext: str, hashed: str) -> bool: ...

class UserStorePort(Protocol):
    """
    Contract for user persistence keyed by email.
    `save` must refuse a second user with the same email (UserAlreadyExists).
    """
    def find_by_email(self, email: str) -> Optional[User]: ...
    def save(self, user: User) -> User: ...

class ClockPort(Protocol):
    def now_utc_ts(self) -> int: ...

# ---------- Service I/O ----------
MAX_PASSWORD_BYTES = 72

class RegisterRequest(BaseModel):
    email: constr(min_length=3, max_length=255)
    password: constr(min_length=1)
    name: constr(strip_whitespace=True, min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("password")
    @classmethod
    def fits_bcrypt(cls, v: str) -> str:
        # bcrypt only reads the first 72 bytes
        if len(v.encode("utf-8")) > MAX_PASSWORD_BYTES:
            raise ValueError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
        return v

class LoginRequest(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.strip().lower()

class RefreshRequest(BaseModel):
    refresh_token: str

class MeResponse(BaseModel):
    user: UserView

# ---------- Errors ----------
class AuthErrorCodes:
    EMAIL_TAKEN = "EMAIL_TAKEN"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    INVALID_TOKEN = "INVALID_TOKEN"
