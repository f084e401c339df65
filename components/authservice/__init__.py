from .service import AuthService
from .crypto import HS512TokenCodec, SystemClock
from .models import BcryptPasswordHasher, InMemoryUserStore
from .config import AuthSettings, get_settings
from .deps import get_auth_service, require_user
from .errors import (
    AuthServiceException, EmailTaken, InvalidCredentials, InvalidToken,
    TokenError, MalformedToken, InvalidSignature, ExpiredToken, UserAlreadyExists,
)
from .routes import router as auth_router
from .app import create_app, build_auth_service

__all__ = [
    "AuthService",
    "HS512TokenCodec",
    "SystemClock",
    "BcryptPasswordHasher",
    "InMemoryUserStore",
    "AuthSettings",
    "get_settings",
    "get_auth_service",
    "require_user",
    "AuthServiceException",
    "EmailTaken",
    "InvalidCredentials",
    "InvalidToken",
    "TokenError",
    "MalformedToken",
    "InvalidSignature",
    "ExpiredToken",
    "UserAlreadyExists",
    "auth_router",
    "create_app",
    "build_auth_service",
]
