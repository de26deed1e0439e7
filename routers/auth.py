from fastapi import APIRouter, Request
from starlette import status
from utils.deps import db_dependency, auth_dependency
from schemas.auth_schemas import (Token, LoginRequest, RefreshTokenRequest, RevokeTokenRequest,
    MessageResponse, OkResponse, MFASetupResponse, MFAVerifyRequest, ChangePasswordRequest, SessionResponse)
from services.auth_service import AuthService
from services.mfa_service import MFAService
from middleware.rate_limiter import limiter
from utils.logger import get_logger

logger = get_logger(__name__)


router = APIRouter(
    prefix="/auth",
    tags=["auth"]
)


@router.post("/login", response_model=Token)
@limiter.limit("5/minute")
async def login(request: Request, body: LoginRequest, db: db_dependency):
    return AuthService.login(body.email, body.password, body.totp, db, request)


@router.post("/refresh", response_model=Token)
@limiter.limit("10/minute")
async def refresh_token(request: Request, body: RefreshTokenRequest, db: db_dependency):
    """
    Exchange a refresh token for a new pair. The presented token is spent.
    """
    return AuthService.refresh(body.refresh_token, db, request)


@router.post("/logout", response_model=MessageResponse, status_code=status.HTTP_200_OK)
@limiter.limit("10/minute")
async def logout(request: Request, body: RevokeTokenRequest, db: db_dependency):
    """
    Revoke a refresh token. Always succeeds, so retries are harmless.
    """
    AuthService.logout(body.refresh_token, db)
    return {"message": "Logged out"}


@router.post("/mfa/setup", response_model=MFASetupResponse)
@limiter.limit("5/minute")
async def mfa_setup(request: Request, auth: auth_dependency):
    return MFAService.setup(auth.user)


@router.post("/mfa/verify", response_model=MessageResponse)
@limiter.limit("10/minute")
async def mfa_verify(request: Request, body: MFAVerifyRequest, auth: auth_dependency, db: db_dependency):
    MFAService.confirm(auth.user, body.base32, body.token, db, request)
    return {"message": "MFA enabled"}


@router.post("/mfa/disable", response_model=OkResponse)
@limiter.limit("5/minute")
async def mfa_disable(request: Request, auth: auth_dependency, db: db_dependency):
    MFAService.disable(auth.user, db, request)
    return {"ok": True}


@router.post("/change-password", response_model=OkResponse)
@limiter.limit("3/minute")
async def change_password(request: Request, body: ChangePasswordRequest, auth: auth_dependency, db: db_dependency):
    AuthService.change_password(auth.user, body.old, body.neu, db, request)
    return {"ok": True}


@router.get("/sessions", response_model=list[SessionResponse])
@limiter.limit("30/minute")
async def list_sessions(request: Request, auth: auth_dependency, db: db_dependency):
    return AuthService.list_sessions(auth, db)


@router.delete("/sessions/{session_id}", response_model=OkResponse)
@limiter.limit("30/minute")
async def revoke_session(request: Request, session_id: int, auth: auth_dependency, db: db_dependency):
    AuthService.revoke_session(auth, session_id, db, request)
    return {"ok": True}
