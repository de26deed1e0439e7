from typing import Annotated
from fastapi import APIRouter, Depends, Query, Request
from utils.deps import db_dependency
from utils.permissions import require_permissions
from schemas.auth_schemas import AuditPage
from services.audit_service import AuditService, DEFAULT_PAGE_SIZE
from middleware.rate_limiter import limiter


router = APIRouter(
    prefix="/audit",
    tags=["audit"]
)


@router.get("", response_model=AuditPage, dependencies=[Depends(require_permissions("AUDIT_READ"))])
@limiter.limit("30/minute")
async def list_audit_logs(
    request: Request,
    db: db_dependency,
    user_id: Annotated[int | None, Query(alias="userId")] = None,
    action: str | None = None,
    limit: int = DEFAULT_PAGE_SIZE,
    cursor: int | None = None
):
    """
    Audit trail, newest first. limit is clamped to 1..100; pass nextCursor
    back as cursor for the next page.
    """
    items, next_cursor = AuditService.list_entries(db, user_id, action, limit, cursor)
    return {"items": items, "next_cursor": next_cursor}
