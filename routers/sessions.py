from typing import Annotated
from fastapi import APIRouter, Query, Request
from utils.deps import db_dependency, auth_dependency
from schemas.auth_schemas import OkResponse, SessionResponse
from services.auth_service import AuthService
from middleware.rate_limiter import limiter


router = APIRouter(
    prefix="/sessions",
    tags=["sessions"]
)


@router.get("/me", response_model=list[SessionResponse])
@limiter.limit("30/minute")
async def list_my_sessions(request: Request, auth: auth_dependency, db: db_dependency,
    user_id: Annotated[int | None, Query(alias="userId")] = None):
    """
    Sessions for the caller. A superuser may pass ?userId= to inspect someone else's.
    """
    return AuthService.list_sessions(auth, db, user_id)


@router.delete("/{session_id}", response_model=OkResponse)
@limiter.limit("30/minute")
async def revoke_session(request: Request, session_id: int, auth: auth_dependency, db: db_dependency):
    AuthService.revoke_session(auth, session_id, db, request)
    return {"ok": True}


@router.delete("", response_model=OkResponse)
@limiter.limit("10/minute")
async def revoke_all_sessions(request: Request, auth: auth_dependency, db: db_dependency):
    """
    Sign out everywhere, including the device making this call.
    """
    AuthService.revoke_all_sessions(auth, db, request)
    return {"ok": True}
