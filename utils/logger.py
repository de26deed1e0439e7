"""
Logging helpers shared by routers, services and middleware.
"""

import logging
from typing import Any, Dict, Optional

SENSITIVE_FIELDS = {
    'password', 'old', 'neu', 'token', 'secret', 'base32', 'totp',
    'access_token', 'refresh_token', 'accesstoken', 'refreshtoken', 'authorization'
}


def get_logger(name: str) -> logging.Logger:
    """
    Usage:
        from utils.logger import get_logger
        logger = get_logger(__name__)
    """
    return logging.getLogger(name)


def _is_sensitive(key: str) -> bool:
    key = key.lower()
    if key in SENSITIVE_FIELDS:
        return True
    return any(field in key for field in ('password', 'token', 'secret'))


def sanitize_log_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Remove credentials from a dict before it is logged or audited.

    Tokens keep their first 8 characters so two log lines can still be
    matched up; passwords, TOTP codes and MFA secrets are fully redacted.
    Nested dicts are sanitized recursively.
    """
    sanitized = data.copy()

    for key, value in sanitized.items():
        if _is_sensitive(key):
            if isinstance(value, str) and 'token' in key.lower() and len(value) > 8:
                sanitized[key] = f"{value[:8]}..."
            elif value is not None:
                sanitized[key] = "***REDACTED***"
        elif isinstance(value, dict):
            sanitized[key] = sanitize_log_data(value)

    return sanitized


def log_request(
    logger: logging.Logger,
    method: str,
    path: str,
    status_code: int,
    duration_ms: float,
    user_id: Optional[int] = None,
    extra: Optional[Dict[str, Any]] = None
):
    """
    Log one HTTP request; the level follows the status code.

    Usage:
        log_request(logger, "POST", "/auth/login", 200, 45.2, user_id=123)
    """
    log_data = {
        "http_method": method,
        "path": path,
        "status_code": status_code,
        "duration_ms": round(duration_ms, 2),
    }

    if user_id:
        log_data["user_id"] = user_id

    if extra:
        log_data.update(sanitize_log_data(extra))

    if status_code >= 500:
        logger.error(f"{method} {path} - {status_code}", extra=log_data)
    elif status_code >= 400:
        logger.warning(f"{method} {path} - {status_code}", extra=log_data)
    else:
        logger.info(f"{method} {path} - {status_code}", extra=log_data)
