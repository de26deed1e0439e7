from datetime import datetime
from typing import Any
from pydantic import BaseModel, ConfigDict, EmailStr, field_validator
from pydantic.alias_generators import to_camel
from core.config import settings


class CamelModel(BaseModel):
    """Wire format is camelCase; snake_case names are accepted on input too."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _not_blank(value: str, name: str) -> str:
    if not value or not value.strip():
        raise ValueError(f'{name} cannot be empty')
    return value


class Token(CamelModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class LoginRequest(CamelModel):
    email: EmailStr
    password: str
    totp: str | None = None


class RefreshTokenRequest(CamelModel):
    refresh_token: str

    @field_validator('refresh_token')
    @classmethod
    def validate_token(cls, value):
        return _not_blank(value, 'Refresh token')


class RevokeTokenRequest(CamelModel):
    refresh_token: str

    @field_validator('refresh_token')
    @classmethod
    def validate_token(cls, value):
        return _not_blank(value, 'Refresh token')


class MessageResponse(BaseModel):
    message: str


class OkResponse(BaseModel):
    ok: bool = True


class MFASetupResponse(CamelModel):
    otpauth_url: str
    qr_data_url: str
    base32: str


class MFAVerifyRequest(CamelModel):
    base32: str
    token: str

    @field_validator('base32')
    @classmethod
    def validate_secret(cls, value):
        return _not_blank(value, 'Secret').strip().upper()

    @field_validator('token')
    @classmethod
    def validate_code(cls, value):
        return _not_blank(value, 'Code').strip()


class ChangePasswordRequest(CamelModel):
    old: str
    neu: str

    @field_validator('old')
    @classmethod
    def validate_old(cls, value):
        if not value:
            raise ValueError('Current password is required')
        return value

    @field_validator('neu')
    @classmethod
    def validate_new(cls, value):
        if len(value) < settings.PASSWORD_MIN_LENGTH:
            raise ValueError(f'Password must be at least {settings.PASSWORD_MIN_LENGTH} characters')
        return value


class SessionResponse(CamelModel):
    """A session as shown to its owner. The refresh token hash is never exposed."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    user_id: int
    user_agent: str | None = None
    ip: str | None = None
    created_at: datetime | None = None
    expires_at: datetime


class MeResponse(CamelModel):
    id: int
    email: str
    roles: list[str]
    permissions: list[str]
    mfa_enabled: bool


class AuditLogResponse(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: int
    actor_id: int | None = None
    action: str
    entity: str
    entity_id: str | None = None
    meta: dict[str, Any] | None = None
    ip: str | None = None
    user_agent: str | None = None
    request_id: str | None = None
    created_at: datetime | None = None


class AuditPage(CamelModel):
    items: list[AuditLogResponse]
    next_cursor: int | None = None
