import os

# Must be set before anything imports core.config
os.environ["ENV"] = "testing"
os.environ.setdefault("JWT_ACCESS_SECRET", "test-access-secret-0123456789abcdef")
os.environ.setdefault("JWT_REFRESH_SECRET", "test-refresh-secret-fedcba9876543210")
os.environ.setdefault("DATABASE_URL", "sqlite:///./test_app.db")
os.environ.setdefault("LOG_DIR", "logs")

import pyotp
import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from typing import Generator

from main import app
from core.database import Base
from core.config import settings
from models.users import User
from services.bootstrap_service import ensure_permission, ensure_role, PERMISSIONS
from utils.deps import get_db
from utils.hashing import get_password_hash

SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False}
)

TestingSessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)

PASSWORD = "P@ssw0rd!"


@pytest.fixture
def session() -> Generator[Session, None, None]:
    """
    Fresh database per test, with the permission catalogue seeded.
    """
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    for code, label in PERMISSIONS:
        ensure_permission(db, code, label)
    try:
        yield db
    finally:
        db.close()

    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def session_factory(session):
    """
    Opens extra sessions on the test database, each on its own connection,
    for tests that need two independent callers. Closed after the test.
    """
    opened = []

    def _open() -> Session:
        db = TestingSessionLocal()
        opened.append(db)
        return db

    yield _open

    for db in opened:
        db.close()


@pytest.fixture
async def client(session: Session):
    """
    HTTP client against the app with get_db pointed at the test session.
    """
    def override_get_db():
        try:
            yield session
        finally:
            pass  # session fixture closes it

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


def create_user(session: Session, email: str, password: str = PASSWORD, roles=(),
                mfa_secret: str | None = None, is_active: bool = True) -> User:
    user = User(
        email=email,
        hashed_password=get_password_hash(password),
        is_active=is_active,
        mfa_secret=mfa_secret
    )
    user.roles.extend(roles)
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


@pytest.fixture
def active_user(session):
    return create_user(session, "a@x.com")


@pytest.fixture
def other_user(session):
    return create_user(session, "b@x.com")


@pytest.fixture
def mfa_secret():
    return pyotp.random_base32()


@pytest.fixture
def mfa_user(session, mfa_secret):
    return create_user(session, "mfa@x.com", mfa_secret=mfa_secret)


@pytest.fixture
def super_admin(session):
    role = ensure_role(session, settings.SUPERUSER_ROLE)
    return create_user(session, "admin@x.com", roles=[role])


@pytest.fixture
def editor_user(session):
    role = ensure_role(session, "Editor", ["PROJECT_EDIT", "DOC_UPLOAD"])
    return create_user(session, "editor@x.com", roles=[role])


@pytest.fixture
def login(client):
    """
    Logs a user in over HTTP and returns the token pair.

    Usage:
        tokens = await login(active_user.email)
    """
    async def _login(email: str, password: str = PASSWORD, totp: str | None = None) -> dict:
        body = {"email": email, "password": password}
        if totp is not None:
            body["totp"] = totp
        response = await client.post("/auth/login", json=body)
        assert response.status_code == 200, response.text
        return response.json()

    return _login


@pytest.fixture
def make_user(session):
    """
    Usage:
        user = make_user("c@x.com", mfa_secret=secret)
    """
    def _make(email: str = "a@x.com", **kwargs) -> User:
        return create_user(session, email, **kwargs)

    return _make
