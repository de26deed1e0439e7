from core.database import SessionLocal
from dataclasses import dataclass, field
from typing import Annotated
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session, selectinload
from core.config import settings
from core.exceptions import InvalidToken, Unauthorized
from models.users import User
from models.roles import Role
from services.token_service import TokenService
from utils.logger import get_logger

logger = get_logger(__name__)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

db_dependency = Annotated[Session, Depends(get_db)]


@dataclass(frozen=True)
class AuthContext:
    """Identity attached to an authenticated request."""
    user: User
    roles: frozenset[str] = field(default_factory=frozenset)
    permissions: frozenset[str] = field(default_factory=frozenset)

    @property
    def user_id(self) -> int:
        return self.user.id

    @property
    def is_superuser(self) -> bool:
        return settings.SUPERUSER_ROLE in self.roles


def load_user_with_permissions(db: Session, user_id: int) -> User | None:
    return db.query(User).options(
        selectinload(User.roles).selectinload(Role.permissions)
    ).filter(User.id == user_id).one_or_none()


def build_auth_context(user: User) -> AuthContext:
    return AuthContext(
        user=user,
        roles=frozenset(user.role_names),
        permissions=frozenset(user.permission_codes)
    )


bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    request: Request,
    db: db_dependency,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)]
) -> AuthContext:
    """
    Auth gate for every protected route.

    Verifies the bearer access token, then loads the user with all
    role -> permission links on every call. Nothing is cached in the
    token, so permission changes apply within one access-token lifetime.
    """
    if credentials is None or not credentials.credentials:
        raise Unauthorized("Missing token")

    try:
        claims = TokenService.verify_access_token(credentials.credentials)
    except InvalidToken as e:
        logger.info("Access token rejected", extra={"reason": str(e)})
        raise Unauthorized("Invalid/expired token")

    user = load_user_with_permissions(db, claims["user_id"])
    if not user or not user.is_active:
        logger.warning("Access token for missing or inactive user", extra={"user_id": claims["user_id"]})
        raise Unauthorized("Invalid user")

    context = build_auth_context(user)
    request.state.auth = context
    return context


auth_dependency = Annotated[AuthContext, Depends(get_current_user)]
