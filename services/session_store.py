from datetime import datetime, timezone
from sqlalchemy.orm import Session
from models.sessions import UserSession
from core.exceptions import ExpiredOrInvalidSession
from utils.logger import get_logger

logger = get_logger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class SessionStore:
    """
    Repository for refresh-token sessions.

    Built per request around the injected SQLAlchemy session; holds no
    state of its own. find_by_hash is the only way a refresh token gets
    authorized, so deleting a row revokes the token even while its
    signature still verifies.
    """

    def __init__(self, db: Session):
        self.db = db

    def create(self, user_id: int, refresh_token_hash: str, user_agent: str | None,
               ip: str | None, expires_at: datetime) -> UserSession:
        model = UserSession(
            user_id=user_id,
            refresh_token_hash=refresh_token_hash,
            user_agent=user_agent,
            ip=ip,
            expires_at=expires_at
        )
        self.db.add(model)
        self.db.commit()
        self.db.refresh(model)
        return model

    def find_by_hash(self, refresh_token_hash: str) -> UserSession | None:
        """Returns the live session for this hash; expired rows count as absent."""
        return self.db.query(UserSession).filter(
            UserSession.refresh_token_hash == refresh_token_hash,
            UserSession.expires_at > _now()
        ).one_or_none()

    def get_by_id(self, session_id: int) -> UserSession | None:
        return self.db.get(UserSession, session_id)

    def list_for_user(self, user_id: int) -> list[UserSession]:
        return self.db.query(UserSession).filter(
            UserSession.user_id == user_id
        ).order_by(UserSession.created_at.desc(), UserSession.id.desc()).all()

    def delete_by_hash(self, refresh_token_hash: str) -> int:
        deleted = self.db.query(UserSession).filter(
            UserSession.refresh_token_hash == refresh_token_hash
        ).delete(synchronize_session=False)
        self.db.commit()
        return deleted

    def delete_by_id(self, session_id: int) -> int:
        deleted = self.db.query(UserSession).filter(
            UserSession.id == session_id
        ).delete(synchronize_session=False)
        self.db.commit()
        return deleted

    def delete_all_for_user(self, user_id: int) -> int:
        deleted = self.db.query(UserSession).filter(
            UserSession.user_id == user_id
        ).delete(synchronize_session=False)
        self.db.commit()
        return deleted

    def rotate(self, old_hash: str, user_id: int, new_hash: str, user_agent: str | None,
               ip: str | None, expires_at: datetime) -> UserSession:
        """
        Replaces the session for old_hash with a new one in a single transaction.

        The delete is conditional on the row still being live and reports how
        many rows it removed. When two refreshes race on the same token only
        one of them deletes the row; the other sees zero and fails.

        Raises:
            ExpiredOrInvalidSession: no live session owned by user_id for old_hash
        """
        deleted = self.db.query(UserSession).filter(
            UserSession.refresh_token_hash == old_hash,
            UserSession.user_id == user_id,
            UserSession.expires_at > _now()
        ).delete(synchronize_session=False)

        if deleted != 1:
            self.db.rollback()
            raise ExpiredOrInvalidSession()

        model = UserSession(
            user_id=user_id,
            refresh_token_hash=new_hash,
            user_agent=user_agent,
            ip=ip,
            expires_at=expires_at
        )
        try:
            self.db.add(model)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(model)
        return model

    def purge_expired(self, user_id: int | None = None) -> int:
        """Deletes sessions past their expiry. Optional housekeeping, not enforcement."""
        query = self.db.query(UserSession).filter(UserSession.expires_at <= _now())
        if user_id is not None:
            query = query.filter(UserSession.user_id == user_id)
        deleted = query.delete(synchronize_session=False)
        self.db.commit()

        if deleted:
            logger.debug("Purged expired sessions", extra={"user_id": user_id, "deleted": deleted})
        return deleted
