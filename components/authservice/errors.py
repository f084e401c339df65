from __future__ import annotations
from typing import Optional
from .contracts import AuthErrorCodes, ErrorPayload

# ---------- Token codec errors ----------
class TokenError(Exception):
    """Base class for token verification failures."""
    reason = "invalid"

class MalformedToken(TokenError):
    reason = "malformed"

class InvalidSignature(TokenError):
    reason = "invalid_signature"

class ExpiredToken(TokenError):
    reason = "expired"

# ---------- User store errors ----------
class UserAlreadyExists(Exception):
    """Raised by a user store when saving a second user with the same email."""

# ---------- Workflow errors ----------
class AuthServiceException(Exception):
    type = "AUTH_ERROR"
    code = "AUTH_FAILED"
    message = "Authentication failed"
    status_code = 401

    def __init__(self, message: Optional[str] = None, *, details: Optional[dict] = None):
        self.payload = ErrorPayload(
            type=self.type,
            code=self.code,
            message=message or self.message,
            details=details,
        )
        super().__init__(self.payload.message)

class EmailTaken(AuthServiceException):
    type = "CONFLICT"
    code = AuthErrorCodes.EMAIL_TAKEN
    message = "Email already registered"
    status_code = 409

class InvalidCredentials(AuthServiceException):
    code = AuthErrorCodes.INVALID_CREDENTIALS
    message = "Invalid email or password"

class InvalidToken(AuthServiceException):
    code = AuthErrorCodes.INVALID_TOKEN
    message = "Invalid or expired token"

    @classmethod
    def because(cls, reason: str) -> "InvalidToken":
        return cls(details={"reason": reason})
