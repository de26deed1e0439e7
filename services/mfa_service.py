from fastapi import Request
from sqlalchemy.orm import Session
from core.exceptions import InvalidTOTPCode
from models.users import User
from services.audit_service import AuditService
from utils import totp as totp_verifier
from utils.logger import get_logger

logger = get_logger(__name__)


class MFAService:
    """
    Enrolment and removal of the TOTP second factor.

    setup() hands out a fresh secret without storing it; confirm() stores it
    only after a valid code, so a mistyped setup never leaves MFA switched on
    with a secret the user's authenticator doesn't have.
    """

    @staticmethod
    def setup(user: User) -> dict:
        secret = totp_verifier.generate_secret(user.email)

        logger.info("MFA setup started", extra={"user_id": user.id})

        return {
            "otpauth_url": secret.provisioning_uri,
            "qr_data_url": totp_verifier.render_qr(secret.provisioning_uri),
            "base32": secret.secret
        }

    @staticmethod
    def confirm(user: User, base32: str, code: str, db: Session, request: Request | None = None) -> None:
        if not totp_verifier.verify(code, base32):
            logger.warning("MFA confirm failed - invalid code", extra={"user_id": user.id})
            raise InvalidTOTPCode()

        user.mfa_secret = base32
        db.commit()

        AuditService.record(db, user.id, "MFA_ENABLE", "USER", user.id, request=request)
        logger.info("MFA enabled", extra={"user_id": user.id})

    @staticmethod
    def disable(user: User, db: Session, request: Request | None = None) -> None:
        # Only a valid access token is required here; no password/TOTP re-check
        user.mfa_secret = None
        db.commit()

        AuditService.record(db, user.id, "MFA_DISABLE", "USER", user.id, request=request)
        logger.info("MFA disabled", extra={"user_id": user.id})
