"""
Error taxonomy for the auth subsystem.

Every error is an HTTPException so FastAPI renders it as {"detail": ...}
without a custom handler. Details are short and machine-stable; they never
carry persistence errors or say which permission was missing.
"""

from fastapi import HTTPException
from starlette import status


class AuthError(HTTPException):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Bad request"
    headers = None

    def __init__(self, detail: str | None = None):
        super().__init__(
            status_code=self.status_code,
            detail=detail or self.detail,
            headers=self.headers
        )


class InvalidCredentials(AuthError):
    # Same message whether the email is unknown, inactive or the password is wrong
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Invalid credentials"


class InvalidOrMissingTOTP(AuthError):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Invalid or missing TOTP"


class ExpiredOrInvalidSession(AuthError):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Expired/invalid session"


class Unauthorized(AuthError):
    status_code = status.HTTP_401_UNAUTHORIZED
    detail = "Unauthorized"
    headers = {"WWW-Authenticate": "Bearer"}


class Forbidden(AuthError):
    status_code = status.HTTP_403_FORBIDDEN
    detail = "Forbidden"


class InvalidTOTPCode(AuthError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Invalid TOTP"


class IncorrectPassword(AuthError):
    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Incorrect current password"


class NotFound(AuthError):
    status_code = status.HTTP_404_NOT_FOUND
    detail = "Not found"


class InvalidToken(Exception):
    """
    Raised by the token service when a token fails signature, expiry,
    type or claim checks. Callers translate it into Unauthorized or
    ExpiredOrInvalidSession depending on which flow they are in.
    """
