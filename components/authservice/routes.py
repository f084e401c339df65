from __future__ import annotations
import logging
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from .contracts import LoginRequest, MeResponse, RefreshRequest, RegisterRequest, UWFResponse, MetaPayload
from .deps import get_auth_service, require_user
from .errors import AuthServiceException

log = logging.getLogger("authservice.http")

router = APIRouter(prefix="/auth", tags=["auth"])

def _meta(request: Request) -> MetaPayload:
    return MetaPayload(request_id=getattr(request.state, "request_id", None))

def auth_error_handler(request: Request, ex: AuthServiceException) -> JSONResponse:
    log.info("auth.error path=%s code=%s status=%s", request.url.path, ex.payload.code, ex.status_code)
    body = UWFResponse(ok=False, error=ex.payload, meta=_meta(request))
    return JSONResponse(status_code=ex.status_code, content=body.model_dump(mode="json"))

# Handlers are sync so bcrypt runs in the threadpool, off the event loop.
@router.post("/register", response_model=UWFResponse)
def register(req: RegisterRequest, request: Request, svc = Depends(get_auth_service)):
    tokens = svc.register(req)
    return UWFResponse(ok=True, result=tokens, meta=_meta(request))

@router.post("/login", response_model=UWFResponse)
def login(req: LoginRequest, request: Request, svc = Depends(get_auth_service)):
    tokens = svc.login(req)
    return UWFResponse(ok=True, result=tokens, meta=_meta(request))

@router.post("/refresh", response_model=UWFResponse)
def refresh(req: RefreshRequest, request: Request, svc = Depends(get_auth_service)):
    tokens = svc.refresh(req)
    return UWFResponse(ok=True, result=tokens, meta=_meta(request))

@router.get("/me", response_model=UWFResponse)
def me(request: Request, current_user = Depends(require_user)):
    return UWFResponse(ok=True, result=MeResponse(user=current_user), meta=_meta(request))
