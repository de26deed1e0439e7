"""
TOTP helpers for the second factor (RFC 6238: 6 digits, 30 second step).

Nothing here touches the database. Callers persist a secret only after
the user has proven they can generate a valid code for it.
"""

import base64
import io
from dataclasses import dataclass
from datetime import datetime

import pyotp
import qrcode

from core.config import settings

DIGITS = 6
INTERVAL = 30
# Accept the previous and next step as well to absorb clock drift
VALID_WINDOW = 1


@dataclass(frozen=True)
class TOTPSecret:
    secret: str
    provisioning_uri: str


def generate_secret(label: str) -> TOTPSecret:
    secret = pyotp.random_base32()
    uri = pyotp.TOTP(secret, digits=DIGITS, interval=INTERVAL).provisioning_uri(
        name=label,
        issuer_name=settings.MFA_ISSUER
    )
    return TOTPSecret(secret=secret, provisioning_uri=uri)


def render_qr(provisioning_uri: str) -> str:
    """Render the otpauth:// URI as a PNG data URL for an <img> tag."""
    img = qrcode.make(provisioning_uri)
    buffer = io.BytesIO()
    img.save(buffer)
    encoded = base64.b64encode(buffer.getvalue()).decode("ascii")
    return f"data:image/png;base64,{encoded}"


def verify(code: str | None, secret: str | None, for_time: datetime | int | None = None) -> bool:
    if not code or not secret:
        return False

    code = code.strip()
    if len(code) != DIGITS or not code.isdigit():
        return False

    try:
        totp = pyotp.TOTP(secret, digits=DIGITS, interval=INTERVAL)
        return totp.verify(code, for_time=for_time, valid_window=VALID_WINDOW)
    except ValueError:
        # Malformed base32 secret (binascii.Error is a ValueError)
        return False
