# FILE: tests/test_auth.py
"""
Tests for app/auth/config.py and app/auth/middleware.py
Client/admin sessions, password checks, session expiry and the auth dependencies.
"""

import sys
from pathlib import Path

_project_root = Path(__file__).parent.parent
if str(_project_root) not in sys.path:
    sys.path.insert(0, str(_project_root))

import pytest
import asyncio
from datetime import timedelta
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from app.auth import config
from app.auth.models import Admin, AuthSession
from app.db import utcnow


def run_async(coro):
    """Helper to run async functions in sync tests."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def creds(token):
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


class TestIdentity:
    """Email normalisation and derived user ids."""

    def test_normalize_email(self):
        assert config.normalize_email("  Jane@Example.COM ") == "jane@example.com"

    def test_user_id_stable_across_case(self):
        """Test the same mailbox always maps to the same id."""
        assert config.user_id_for_email("Jane@Example.com") == config.user_id_for_email("jane@example.com")
        assert len(config.user_id_for_email("jane@example.com")) == 32

    def test_user_id_differs_per_email(self):
        assert config.user_id_for_email("a@example.com") != config.user_id_for_email("b@example.com")


class TestClientSessions:
    """Test client login, validation and logout."""

    def test_login_creates_session(self, mock_db):
        result = config.login_client(mock_db, "Jane@Example.com", ttl_hours=1)

        assert result["session_token"].startswith(config.SESSION_PREFIX)
        assert result["email"] == "jane@example.com"
        assert result["role"] == config.ROLE_CLIENT
        assert mock_db.query(AuthSession).count() == 1

    def test_login_rejects_invalid_email(self, mock_db):
        """Test an address without @ is refused."""
        with pytest.raises(ValueError):
            config.login_client(mock_db, "not-an-email", ttl_hours=1)

    def test_validate_session(self, mock_db):
        token = config.login_client(mock_db, "jane@example.com", ttl_hours=1)["session_token"]

        session = config.validate_session(mock_db, token)

        assert session is not None
        assert session.email == "jane@example.com"

    def test_unknown_and_malformed_tokens(self, mock_db):
        assert config.validate_session(mock_db, "") is None
        assert config.validate_session(mock_db, "random-token") is None
        assert config.validate_session(mock_db, config.SESSION_PREFIX + "missing") is None

    def test_expired_session_removed(self, mock_db):
        """Test expired sessions fail validation and are deleted."""
        token = config.login_client(mock_db, "jane@example.com", ttl_hours=1)["session_token"]
        session = mock_db.get(AuthSession, token)
        session.expires_at = utcnow() - timedelta(minutes=1)
        mock_db.commit()

        assert config.validate_session(mock_db, token) is None
        assert mock_db.query(AuthSession).count() == 0

    def test_logout(self, mock_db):
        token = config.login_client(mock_db, "jane@example.com", ttl_hours=1)["session_token"]

        assert config.logout(mock_db, token) is True
        assert config.validate_session(mock_db, token) is None
        assert config.logout(mock_db, token) is False


class TestAdminAccounts:
    """Test admin setup and password login."""

    def test_setup_hashes_password(self, mock_db):
        admin = config.setup_admin(mock_db, "Admin@Klarnow.test", "correct-horse")

        assert admin.email == "admin@klarnow.test"
        assert admin.password_hash != "correct-horse"
        assert admin.password_hash.startswith("$2")
        assert config.is_admin_configured(mock_db) is True

    def test_not_configured_initially(self, mock_db):
        assert config.is_admin_configured(mock_db) is False

    def test_short_password_rejected(self, mock_db):
        with pytest.raises(ValueError, match="at least"):
            config.setup_admin(mock_db, "admin@klarnow.test", "short")
        assert mock_db.query(Admin).count() == 0

    def test_duplicate_admin_rejected(self, mock_db):
        config.setup_admin(mock_db, "admin@klarnow.test", "correct-horse")
        with pytest.raises(ValueError, match="already exists"):
            config.setup_admin(mock_db, "ADMIN@klarnow.test", "another-pass")

    def test_login_admin(self, mock_db):
        config.setup_admin(mock_db, "admin@klarnow.test", "correct-horse")

        result = config.login_admin(mock_db, "admin@klarnow.test", "correct-horse", ttl_hours=1)

        assert result["role"] == config.ROLE_ADMIN
        assert config.validate_session(mock_db, result["session_token"]).role == config.ROLE_ADMIN

    def test_login_admin_wrong_password(self, mock_db):
        config.setup_admin(mock_db, "admin@klarnow.test", "correct-horse")
        assert config.login_admin(mock_db, "admin@klarnow.test", "battery-staple", ttl_hours=1) is None

    def test_login_admin_unknown_email(self, mock_db):
        assert config.login_admin(mock_db, "ghost@klarnow.test", "correct-horse", ttl_hours=1) is None

    def test_malformed_hash_fails_closed(self, mock_db):
        mock_db.add(Admin(email="broken@klarnow.test", password_hash="not-a-bcrypt-hash"))
        mock_db.commit()
        assert config.login_admin(mock_db, "broken@klarnow.test", "whatever-pass", ttl_hours=1) is None


class TestAuthDependencies:
    """Test require_auth / require_admin / optional_auth."""

    def test_require_auth_without_credentials(self, mock_db):
        from app.auth.middleware import require_auth

        with pytest.raises(HTTPException) as exc_info:
            run_async(require_auth(credentials=None, db=mock_db))
        assert exc_info.value.status_code == 401

    def test_require_auth_bad_token(self, mock_db):
        from app.auth.middleware import require_auth

        with pytest.raises(HTTPException) as exc_info:
            run_async(require_auth(credentials=creds("klarnow_session_nope"), db=mock_db))
        assert exc_info.value.status_code == 401

    def test_require_auth_valid(self, mock_db):
        from app.auth.middleware import require_auth

        token = config.login_client(mock_db, "jane@example.com", ttl_hours=1)["session_token"]
        result = run_async(require_auth(credentials=creds(token), db=mock_db))

        assert result.authenticated is True
        assert result.email == "jane@example.com"
        assert result.user_id == config.user_id_for_email("jane@example.com")
        assert result.is_admin is False

    def test_require_admin_rejects_client(self, mock_db):
        from app.auth.middleware import require_admin, AuthResult

        client = AuthResult(authenticated=True, email="jane@example.com", role=config.ROLE_CLIENT)
        with pytest.raises(HTTPException) as exc_info:
            run_async(require_admin(auth=client))
        assert exc_info.value.status_code == 403

    def test_require_admin_accepts_admin(self):
        from app.auth.middleware import require_admin, AuthResult

        admin = AuthResult(authenticated=True, email="admin@klarnow.test", role=config.ROLE_ADMIN)
        assert run_async(require_admin(auth=admin)) is admin

    def test_optional_auth_without_credentials(self, mock_db):
        from app.auth.middleware import optional_auth

        result = run_async(optional_auth(credentials=None, db=mock_db))
        assert result.authenticated is False
        assert result.error == "No credentials provided"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
