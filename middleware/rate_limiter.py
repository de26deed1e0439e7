from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request
from core.config import settings
from core.exceptions import InvalidToken
from services.token_service import TokenService


def get_user_id(request: Request) -> str:
    """
    Rate-limit key: the user id of a valid access token, otherwise the client IP.
    Login/refresh/logout carry no access token, so they are limited per IP.
    """
    header = request.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        try:
            claims = TokenService.verify_access_token(header[len("Bearer "):])
            return f"user:{claims['user_id']}"
        except InvalidToken:
            pass

    return get_remote_address(request)


limiter = Limiter(
    key_func=get_user_id,
    default_limits=["200/hour"],
    enabled=settings.ENV != "testing"
)
