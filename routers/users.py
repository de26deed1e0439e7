from fastapi import APIRouter, Request
from utils.deps import auth_dependency
from schemas.auth_schemas import MeResponse
from middleware.rate_limiter import limiter


router = APIRouter(
    tags=["users"]
)


@router.get("/me", response_model=MeResponse)
@limiter.limit("30/minute")
async def get_user_info(request: Request, auth: auth_dependency):
    """
    The caller's identity as resolved by the auth gate on this request.
    """
    user = auth.user

    return {
        "id": user.id,
        "email": user.email,
        "roles": sorted(auth.roles),
        "permissions": sorted(auth.permissions),
        "mfa_enabled": user.mfa_enabled
    }
