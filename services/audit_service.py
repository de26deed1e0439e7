from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from models.audit_logs import AuditLog
from utils.logger import get_logger, sanitize_log_data

logger = get_logger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


def request_meta(request: Request | None) -> dict:
    """Client ip, user agent and request id for sessions and audit rows."""
    if request is None:
        return {"ip": None, "user_agent": None, "request_id": None}

    return {
        "ip": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent"),
        "request_id": getattr(request.state, "request_id", None)
    }


class AuditService:

    @staticmethod
    def record(db: Session, actor_id: int | None, action: str, entity: str,
               entity_id=None, meta: dict | None = None, request: Request | None = None) -> None:
        """
        Writes one audit row. Fire-and-forget: a failure is logged and
        rolled back but never reaches the caller, whose own change has
        already been committed.
        """
        context = request_meta(request)
        try:
            db.add(AuditLog(
                actor_id=actor_id,
                action=action,
                entity=entity,
                entity_id=str(entity_id) if entity_id is not None else None,
                meta=sanitize_log_data(meta) if meta else None,
                ip=context["ip"],
                user_agent=context["user_agent"],
                request_id=context["request_id"]
            ))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(
                f"Audit log failed: {str(e)}",
                extra={
                    "actor_id": actor_id,
                    "action": action,
                    "entity": entity,
                    "error_type": type(e).__name__
                }
            )

    @staticmethod
    def list_entries(db: Session, user_id: int | None = None, action: str | None = None,
                     limit: int = DEFAULT_PAGE_SIZE, cursor: int | None = None) -> tuple[list[AuditLog], int | None]:
        """
        Newest-first page of audit rows, optionally filtered by actor and action.

        cursor is the id of the last row of the previous page. Returns
        (items, next_cursor); next_cursor is None once a page comes back short.
        """
        limit = min(max(limit, 1), MAX_PAGE_SIZE)

        query = db.query(AuditLog)
        if user_id is not None:
            query = query.filter(AuditLog.actor_id == user_id)
        if action:
            query = query.filter(AuditLog.action == action)
        if cursor is not None:
            query = query.filter(AuditLog.id < cursor)

        items = query.order_by(AuditLog.id.desc()).limit(limit).all()
        next_cursor = items[-1].id if len(items) == limit else None
        return items, next_cursor
