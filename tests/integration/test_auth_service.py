import time
import pyotp
import pytest
from core.config import settings
from core.exceptions import (InvalidCredentials, InvalidOrMissingTOTP, ExpiredOrInvalidSession,
    IncorrectPassword, Forbidden, NotFound, InvalidTOTPCode)
from models.audit_logs import AuditLog
from models.sessions import UserSession
from services.auth_service import AuthService
from services.mfa_service import MFAService
from services.session_store import SessionStore
from services.token_service import TokenService
from utils.deps import build_auth_context, load_user_with_permissions
from utils.hashing import verify_password
from passlib.hash import bcrypt

PASSWORD = "P@ssw0rd!"


def wrong_code(secret):
    """A well-formed code that is not valid anywhere in the accepted window."""
    totp = pyotp.TOTP(secret)
    valid = {totp.at(time.time() + offset) for offset in (-30, 0, 30)}
    return next(code for code in ("000000", "111111", "222222", "333333") if code not in valid)


def context_for(session, user):
    return build_auth_context(load_user_with_permissions(session, user.id))


def test_login_issues_verifiable_tokens_and_persists_session(session, active_user):
    tokens = AuthService.login(active_user.email, PASSWORD, None, session)

    assert TokenService.verify_access_token(tokens["access_token"])["user_id"] == active_user.id
    assert TokenService.verify_refresh_token(tokens["refresh_token"])["user_id"] == active_user.id

    stored = SessionStore(session).find_by_hash(TokenService.hash_value(tokens["refresh_token"]))
    assert stored is not None
    assert stored.user_id == active_user.id
    # raw token is never stored
    assert session.query(UserSession).filter(
        UserSession.refresh_token_hash == tokens["refresh_token"]
    ).count() == 0


def test_login_is_case_insensitive_on_email(session, active_user):
    tokens = AuthService.login("  A@X.COM ", PASSWORD, None, session)
    assert tokens["access_token"]


def test_login_failures_are_indistinguishable(session, active_user, make_user):
    make_user("inactive@x.com", is_active=False)

    errors = []
    for email, password in [
        (active_user.email, "WrongPassword1!"),
        ("nobody@x.com", PASSWORD),
        ("inactive@x.com", PASSWORD),
    ]:
        with pytest.raises(InvalidCredentials) as exc_info:
            AuthService.login(email, password, None, session)
        errors.append((exc_info.value.status_code, exc_info.value.detail))

    assert len(set(errors)) == 1
    assert errors[0] == (401, "Invalid credentials")


def test_login_with_mfa_requires_code(session, mfa_user, mfa_secret):
    with pytest.raises(InvalidOrMissingTOTP):
        AuthService.login(mfa_user.email, PASSWORD, None, session)

    with pytest.raises(InvalidOrMissingTOTP):
        AuthService.login(mfa_user.email, PASSWORD, wrong_code(mfa_secret), session)

    tokens = AuthService.login(mfa_user.email, PASSWORD, pyotp.TOTP(mfa_secret).now(), session)
    assert tokens["refresh_token"]


def test_wrong_password_with_mfa_reports_credentials_not_totp(session, mfa_user, mfa_secret):
    with pytest.raises(InvalidCredentials):
        AuthService.login(mfa_user.email, "WrongPassword1!", pyotp.TOTP(mfa_secret).now(), session)


def test_login_records_audit_event(session, active_user):
    AuthService.login(active_user.email, PASSWORD, None, session)

    entry = session.query(AuditLog).filter(AuditLog.action == "LOGIN").one()
    assert entry.actor_id == active_user.id
    assert entry.entity == "USER"
    assert entry.entity_id == str(active_user.id)


def test_login_purges_expired_sessions(session, active_user):
    from datetime import datetime, timedelta, UTC

    SessionStore(session).create(active_user.id, "stale", None, None, datetime.now(UTC) - timedelta(days=1))

    AuthService.login(active_user.email, PASSWORD, None, session)

    hashes = [s.refresh_token_hash for s in SessionStore(session).list_for_user(active_user.id)]
    assert "stale" not in hashes
    assert len(hashes) == 1


def test_login_upgrades_legacy_hash(session, make_user):
    user = make_user("legacy@x.com")
    user.hashed_password = bcrypt.hash(PASSWORD)
    session.commit()

    AuthService.login(user.email, PASSWORD, None, session)

    session.refresh(user)
    assert user.hashed_password.startswith("$argon2")
    assert verify_password(PASSWORD, user.hashed_password)


def test_refresh_rotates_and_old_token_is_single_use(session, active_user):
    tokens = AuthService.login(active_user.email, PASSWORD, None, session)

    new_tokens = AuthService.refresh(tokens["refresh_token"], session)

    assert new_tokens["refresh_token"] != tokens["refresh_token"]
    assert TokenService.verify_access_token(new_tokens["access_token"])["user_id"] == active_user.id

    with pytest.raises(ExpiredOrInvalidSession):
        AuthService.refresh(tokens["refresh_token"], session)

    # the rotated token still works once
    AuthService.refresh(new_tokens["refresh_token"], session)
    assert len(SessionStore(session).list_for_user(active_user.id)) == 1


def test_refresh_rejects_revoked_but_validly_signed_token(session, active_user):
    tokens = AuthService.login(active_user.email, PASSWORD, None, session)
    SessionStore(session).delete_all_for_user(active_user.id)

    # signature is still fine
    TokenService.verify_refresh_token(tokens["refresh_token"])

    with pytest.raises(ExpiredOrInvalidSession):
        AuthService.refresh(tokens["refresh_token"], session)


def test_refresh_rejects_invalid_tokens(session, active_user):
    access = TokenService.create_access_token(active_user.id)

    for bad in ["garbage", access]:
        with pytest.raises(ExpiredOrInvalidSession) as exc_info:
            AuthService.refresh(bad, session)
        assert exc_info.value.status_code == 401


def test_refresh_rejects_deactivated_user(session, active_user):
    tokens = AuthService.login(active_user.email, PASSWORD, None, session)
    active_user.is_active = False
    session.commit()

    with pytest.raises(ExpiredOrInvalidSession):
        AuthService.refresh(tokens["refresh_token"], session)


def test_logout_is_idempotent(session, active_user):
    tokens = AuthService.login(active_user.email, PASSWORD, None, session)

    assert AuthService.logout(tokens["refresh_token"], session) == 1
    assert AuthService.logout(tokens["refresh_token"], session) == 0
    assert AuthService.logout("not-even-a-jwt", session) == 0

    with pytest.raises(ExpiredOrInvalidSession):
        AuthService.refresh(tokens["refresh_token"], session)


def test_revoke_session_ownership(session, active_user, other_user, super_admin):
    theirs = AuthService.login(other_user.email, PASSWORD, None, session)
    their_session = SessionStore(session).find_by_hash(TokenService.hash_value(theirs["refresh_token"]))

    with pytest.raises(Forbidden):
        AuthService.revoke_session(context_for(session, active_user), their_session.id, session)

    AuthService.revoke_session(context_for(session, super_admin), their_session.id, session)
    assert SessionStore(session).get_by_id(their_session.id) is None

    with pytest.raises(NotFound):
        AuthService.revoke_session(context_for(session, super_admin), their_session.id, session)


def test_owner_can_revoke_own_session(session, active_user):
    tokens = AuthService.login(active_user.email, PASSWORD, None, session)
    own = SessionStore(session).find_by_hash(TokenService.hash_value(tokens["refresh_token"]))

    AuthService.revoke_session(context_for(session, active_user), own.id, session)

    with pytest.raises(ExpiredOrInvalidSession):
        AuthService.refresh(tokens["refresh_token"], session)


def test_list_sessions_for_other_user_requires_superuser(session, active_user, other_user, super_admin):
    AuthService.login(other_user.email, PASSWORD, None, session)
    AuthService.login(active_user.email, PASSWORD, None, session)

    as_admin = AuthService.list_sessions(context_for(session, super_admin), session, other_user.id)
    assert [s.user_id for s in as_admin] == [other_user.id]

    # a regular user asking for someone else just gets their own
    as_user = AuthService.list_sessions(context_for(session, active_user), session, other_user.id)
    assert [s.user_id for s in as_user] == [active_user.id]


def test_revoke_all_sessions(session, active_user, other_user):
    AuthService.login(active_user.email, PASSWORD, None, session)
    AuthService.login(active_user.email, PASSWORD, None, session)
    AuthService.login(other_user.email, PASSWORD, None, session)

    assert AuthService.revoke_all_sessions(context_for(session, active_user), session) == 2
    assert SessionStore(session).list_for_user(active_user.id) == []
    assert len(SessionStore(session).list_for_user(other_user.id)) == 1


def test_change_password(session, active_user):
    tokens = AuthService.login(active_user.email, PASSWORD, None, session)

    with pytest.raises(IncorrectPassword):
        AuthService.change_password(active_user, "WrongPassword1!", "NewPassw0rd!", session)

    AuthService.change_password(active_user, PASSWORD, "NewPassw0rd!", session)

    with pytest.raises(InvalidCredentials):
        AuthService.login(active_user.email, PASSWORD, None, session)
    AuthService.login(active_user.email, "NewPassw0rd!", None, session)

    # existing sessions survive a password change by default
    AuthService.refresh(tokens["refresh_token"], session)
    assert session.query(AuditLog).filter(AuditLog.action == "PASSWORD_CHANGE").count() == 1


def test_change_password_can_revoke_sessions(session, active_user, monkeypatch):
    monkeypatch.setattr(settings, "REVOKE_SESSIONS_ON_PASSWORD_CHANGE", True)
    tokens = AuthService.login(active_user.email, PASSWORD, None, session)

    AuthService.change_password(active_user, PASSWORD, "NewPassw0rd!", session)

    with pytest.raises(ExpiredOrInvalidSession):
        AuthService.refresh(tokens["refresh_token"], session)


def test_mfa_confirm_persists_only_after_valid_code(session, active_user):
    setup = MFAService.setup(active_user)
    secret = setup["base32"]

    session.refresh(active_user)
    assert active_user.mfa_secret is None

    with pytest.raises(InvalidTOTPCode):
        MFAService.confirm(active_user, secret, wrong_code(secret), session)
    session.refresh(active_user)
    assert active_user.mfa_secret is None

    MFAService.confirm(active_user, secret, pyotp.TOTP(secret).now(), session)
    session.refresh(active_user)
    assert active_user.mfa_secret == secret
    assert active_user.mfa_enabled is True
    assert session.query(AuditLog).filter(AuditLog.action == "MFA_ENABLE").count() == 1

    MFAService.disable(active_user, session)
    session.refresh(active_user)
    assert active_user.mfa_enabled is False
