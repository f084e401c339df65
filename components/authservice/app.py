from __future__ import annotations
import logging
from typing import Optional
from fastapi import FastAPI
from .config import AuthSettings, get_settings
from .contracts import UserStorePort
from .crypto import HS512TokenCodec
from .errors import AuthServiceException
from .models import BcryptPasswordHasher, InMemoryUserStore
from .observability import RequestContextMiddleware, configure_logging
from .routes import auth_error_handler, router
from .service import AuthService

APP_NAME = "restauth"
APP_VERSION = "0.1.0"

log = logging.getLogger("authservice.app")

def build_auth_service(settings: AuthSettings, user_store: Optional[UserStorePort] = None) -> AuthService:
    return AuthService(
        user_store=user_store if user_store is not None else InMemoryUserStore(),
        hasher=BcryptPasswordHasher(rounds=settings.bcrypt_rounds),
        codec=HS512TokenCodec(settings.secret),
        cfg=settings,
    )

def create_app(settings: Optional[AuthSettings] = None, *, service: Optional[AuthService] = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(title=APP_NAME, version=APP_VERSION)
    app.state.auth_service = service or build_auth_service(settings)
    app.add_middleware(RequestContextMiddleware)
    app.add_exception_handler(AuthServiceException, auth_error_handler)

    # Routers
    app.include_router(router)

    @app.get("/healthz")
    def healthz():
        return {"ok": True}

    log.info(
        "app.ready access_ttl=%s refresh_ttl=%s",
        settings.access_ttl_seconds, settings.refresh_ttl_seconds,
    )
    return app
