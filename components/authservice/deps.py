from typing import Optional

from fastapi import Depends, Header, Request

from .contracts import UserView
from .errors import InvalidToken
from .service import AuthService


def get_auth_service(request: Request) -> AuthService:
    """The AuthService wired onto the app at startup (see app.create_app)."""
    svc = getattr(request.app.state, "auth_service", None)
    if svc is None:
        raise RuntimeError("AuthService not configured on app.state")
    return svc


def get_authorization_header(authorization: Optional[str] = Header(default=None, alias="Authorization")) -> Optional[str]:
    """
    Extract the Authorization header value (e.g., 'Bearer <token>').
    """
    return authorization


def require_user(
    auth: AuthService = Depends(get_auth_service),
    authorization: Optional[str] = Depends(get_authorization_header),
) -> UserView:
    """Resolve the bearer token to a user, or raise InvalidToken."""
    if not authorization or not authorization.lower().startswith("bearer "):
        raise InvalidToken("Missing or invalid Authorization header", details={"reason": "missing"})

    token = authorization.split(" ", 1)[1].strip()
    return auth.verify_access(token)
