from fastapi import Request
from sqlalchemy.orm import Session
from core.config import settings
from core.exceptions import (
    InvalidCredentials, InvalidOrMissingTOTP, ExpiredOrInvalidSession,
    IncorrectPassword, Forbidden, NotFound, InvalidToken
)
from models.users import User
from models.sessions import UserSession
from services.token_service import TokenService
from services.session_store import SessionStore
from services.audit_service import AuditService, request_meta
from utils.deps import AuthContext
from utils.hashing import verify_password, get_password_hash, dummy_verify, needs_rehash
from utils import totp as totp_verifier
from utils.logger import get_logger

logger = get_logger(__name__)


class AuthService:

    @staticmethod
    def normalize_email(email: str) -> str:
        return email.lower().strip()

    @staticmethod
    def authenticate_user(email: str, password: str, totp: str | None, db: Session) -> User:
        """
        Checks email + password and, when MFA is enabled, the TOTP code.

        Unknown email, inactive account and wrong password all raise the same
        InvalidCredentials so the response can't be used to probe for emails.
        """
        email = AuthService.normalize_email(email)
        user = db.query(User).filter(User.email == email).one_or_none()

        if not user:
            dummy_verify()
            logger.warning("Login failed - user not found", extra={"email": email})
            raise InvalidCredentials()

        if not user.is_active:
            dummy_verify()
            logger.warning("Login failed - inactive account", extra={"user_id": user.id})
            raise InvalidCredentials()

        if not verify_password(password, user.hashed_password):
            logger.warning("Login failed - invalid password", extra={"user_id": user.id})
            raise InvalidCredentials()

        if user.mfa_secret and not totp_verifier.verify(totp, user.mfa_secret):
            logger.warning(
                "Login failed - invalid or missing TOTP",
                extra={"user_id": user.id, "totp_supplied": bool(totp)}
            )
            raise InvalidOrMissingTOTP()

        if needs_rehash(user.hashed_password):
            user.hashed_password = get_password_hash(password)
            db.commit()
            logger.info("Password hash upgraded", extra={"user_id": user.id})

        return user

    @staticmethod
    def issue_tokens(user_id: int, store: SessionStore, request: Request | None = None) -> dict:
        """
        Issues an access + refresh pair and persists the refresh token's hash.
        """
        access_token = TokenService.create_access_token(user_id)
        refresh_token, _, expires_at = TokenService.create_refresh_token(user_id)
        meta = request_meta(request)

        store.create(
            user_id=user_id,
            refresh_token_hash=TokenService.hash_value(refresh_token),
            user_agent=meta["user_agent"],
            ip=meta["ip"],
            expires_at=expires_at
        )

        return {
            "access_token": access_token,
            "refresh_token": refresh_token,
            "token_type": "bearer"
        }

    @staticmethod
    def login(email: str, password: str, totp: str | None, db: Session, request: Request | None = None) -> dict:
        """
        Flow:
        1. Verify credentials (and TOTP when enabled)
        2. Drop this user's expired sessions
        3. Issue tokens and persist the new session
        4. Audit the login
        """
        user = AuthService.authenticate_user(email, password, totp, db)
        store = SessionStore(db)

        store.purge_expired(user.id)
        tokens = AuthService.issue_tokens(user.id, store, request)

        AuditService.record(db, user.id, "LOGIN", "USER", user.id, request=request)
        logger.info("User logged in successfully", extra={"user_id": user.id})

        return tokens

    @staticmethod
    def refresh(refresh_token: str, db: Session, request: Request | None = None) -> dict:
        """
        Exchanges a refresh token for a new pair. Rotation is unconditional:
        the presented token's session is deleted in the same transaction that
        stores the new one, so each refresh token works once.

        Raises:
            ExpiredOrInvalidSession: bad signature, expired, revoked, already
                rotated, or the user is gone / deactivated
        """
        try:
            claims = TokenService.verify_refresh_token(refresh_token)
        except InvalidToken as e:
            logger.info("Refresh rejected - invalid token", extra={"reason": str(e)})
            raise ExpiredOrInvalidSession()

        user_id = claims["user_id"]
        user = db.get(User, user_id)
        if not user or not user.is_active:
            logger.warning("Refresh rejected - missing or inactive user", extra={"user_id": user_id})
            raise ExpiredOrInvalidSession()

        access_token = TokenService.create_access_token(user_id)
        new_refresh, _, expires_at = TokenService.create_refresh_token(user_id)
        meta = request_meta(request)

        try:
            SessionStore(db).rotate(
                old_hash=TokenService.hash_value(refresh_token),
                user_id=user_id,
                new_hash=TokenService.hash_value(new_refresh),
                user_agent=meta["user_agent"],
                ip=meta["ip"],
                expires_at=expires_at
            )
        except ExpiredOrInvalidSession:
            logger.warning("Refresh rejected - no live session", extra={"user_id": user_id})
            raise

        logger.info("Tokens refreshed", extra={"user_id": user_id})

        return {
            "access_token": access_token,
            "refresh_token": new_refresh,
            "token_type": "bearer"
        }

    @staticmethod
    def logout(refresh_token: str, db: Session) -> int:
        """
        Deletes the session for this refresh token. Idempotent: an unknown,
        already revoked or malformed token simply deletes nothing.
        """
        deleted = SessionStore(db).delete_by_hash(TokenService.hash_value(refresh_token))
        logger.info("User logged out", extra={"sessions_deleted": deleted})
        return deleted

    @staticmethod
    def list_sessions(context: AuthContext, db: Session, user_id: int | None = None) -> list[UserSession]:
        """
        Lists sessions newest first. Only a superuser may look at another
        user's sessions; for anyone else user_id is ignored.
        """
        target_id = context.user_id
        if user_id is not None and context.is_superuser:
            target_id = user_id

        return SessionStore(db).list_for_user(target_id)

    @staticmethod
    def revoke_session(context: AuthContext, session_id: int, db: Session, request: Request | None = None) -> None:
        store = SessionStore(db)
        model = store.get_by_id(session_id)

        if not model:
            raise NotFound()

        if model.user_id != context.user_id and not context.is_superuser:
            logger.warning(
                "Session revoke denied - not owner",
                extra={"user_id": context.user_id, "session_id": session_id}
            )
            raise Forbidden()

        store.delete_by_id(session_id)
        AuditService.record(
            db, context.user_id, "SESSION_REVOKE", "SESSION", session_id,
            meta={"owner_id": model.user_id}, request=request
        )

    @staticmethod
    def revoke_all_sessions(context: AuthContext, db: Session, request: Request | None = None) -> int:
        deleted = SessionStore(db).delete_all_for_user(context.user_id)
        AuditService.record(
            db, context.user_id, "SESSION_REVOKE_ALL", "USER", context.user_id,
            meta={"deleted": deleted}, request=request
        )
        logger.info("All sessions revoked", extra={"user_id": context.user_id, "deleted": deleted})
        return deleted

    @staticmethod
    def change_password(user: User, old_password: str, new_password: str, db: Session,
                        request: Request | None = None) -> None:
        """
        Replaces the password after re-checking the current one.

        Other sessions stay valid unless REVOKE_SESSIONS_ON_PASSWORD_CHANGE is set.
        """
        if not verify_password(old_password, user.hashed_password):
            logger.warning("Password change failed - incorrect current password", extra={"user_id": user.id})
            raise IncorrectPassword()

        user.hashed_password = get_password_hash(new_password)
        db.commit()

        revoked = 0
        if settings.REVOKE_SESSIONS_ON_PASSWORD_CHANGE:
            revoked = SessionStore(db).delete_all_for_user(user.id)

        AuditService.record(
            db, user.id, "PASSWORD_CHANGE", "USER", user.id,
            meta={"sessions_revoked": revoked}, request=request
        )
        logger.info("Password changed", extra={"user_id": user.id})
