from typing import Iterable
from fastapi import Depends
from core.exceptions import Forbidden, Unauthorized
from utils.deps import AuthContext, get_current_user
from utils.logger import get_logger

logger = get_logger(__name__)


def check_permissions(context: AuthContext | None, required: Iterable[str]) -> None:
    """
    Route authorization decision, in order:
    superuser role -> allow, nothing required -> allow,
    any one of the required codes held -> allow, otherwise Forbidden.

    Raises:
        Unauthorized: no auth context (the auth gate did not run)
        Forbidden: none of the required permissions; the response does not
            say which ones were missing
    """
    if context is None or context.user is None:
        raise Unauthorized()

    if context.is_superuser:
        return

    required = set(required)
    if not required:
        return

    if context.permissions & required:
        return

    logger.warning(
        "Permission denied",
        extra={"user_id": context.user_id, "required": sorted(required)}
    )
    raise Forbidden()


def require_permissions(*codes: str):
    """
    Dependency factory for routes, e.g.

        @router.get("/admin/ping", dependencies=[Depends(require_permissions("USER_MANAGE"))])
    """
    def checker(context: AuthContext = Depends(get_current_user)) -> AuthContext:
        check_permissions(context, codes)
        return context

    return checker
