# app/auth/config.py
"""
Session and credential management.

Clients identify with their email only (identity-provider integration is out
of scope); admins log in with a bcrypt-hashed password. Both get an opaque
session token stored in the auth_sessions table.
"""

import hashlib
import logging
import secrets
from datetime import timedelta
from typing import Optional

import bcrypt
from sqlalchemy.orm import Session

from app.db import utcnow, as_utc
from .models import Admin, AuthSession

logger = logging.getLogger(__name__)

SESSION_PREFIX = "klarnow_session_"
ROLE_CLIENT = "client"
ROLE_ADMIN = "admin"
MIN_PASSWORD_LENGTH = 8


def normalize_email(email: str) -> str:
    return email.strip().lower()


def user_id_for_email(email: str) -> str:
    """Stable user id derived from the normalised email."""
    return hashlib.sha256(normalize_email(email).encode()).hexdigest()[:32]


def _hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def _verify_password(password: str, stored_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode(), stored_hash.encode())
    except ValueError:
        # Malformed stored hash
        return False


def _generate_session_token() -> str:
    """Generate a secure session token."""
    return f"{SESSION_PREFIX}{secrets.token_hex(32)}"


def _create_session(db: Session, email: str, role: str, ttl_hours: int) -> dict:
    now = utcnow()
    session = AuthSession(
        token=_generate_session_token(),
        email=email,
        role=role,
        created_at=now,
        expires_at=now + timedelta(hours=ttl_hours),
    )
    db.add(session)
    db.commit()
    return {
        "session_token": session.token,
        "email": email,
        "user_id": user_id_for_email(email),
        "role": role,
    }


# ============ PUBLIC API ============

def login_client(db: Session, email: str, ttl_hours: int) -> dict:
    """Start a client session for an email address."""
    email = normalize_email(email)
    if not email or "@" not in email:
        raise ValueError("A valid email address is required")
    result = _create_session(db, email, ROLE_CLIENT, ttl_hours)
    logger.info(f"[auth] Client session started for user {result['user_id']}")
    return result


def is_admin_configured(db: Session) -> bool:
    return db.query(Admin.id).first() is not None


def setup_admin(db: Session, email: str, password: str) -> Admin:
    """
    Create an admin account.

    Raises:
        ValueError: password too short or admin already exists
    """
    email = normalize_email(email)
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if db.query(Admin).filter(Admin.email == email).first():
        raise ValueError("Admin already exists")

    admin = Admin(email=email, password_hash=_hash_password(password))
    db.add(admin)
    db.commit()
    db.refresh(admin)
    logger.info(f"[auth] Admin account created: {email}")
    return admin


def login_admin(db: Session, email: str, password: str, ttl_hours: int) -> Optional[dict]:
    """
    Authenticate an admin with password.
    Returns session info on success, None on failure.
    """
    email = normalize_email(email)
    admin = db.query(Admin).filter(Admin.email == email).first()
    if not admin or not _verify_password(password, admin.password_hash):
        logger.warning(f"[auth] Failed admin login for {email}")
        return None
    return _create_session(db, email, ROLE_ADMIN, ttl_hours)


def validate_session(db: Session, token: str) -> Optional[AuthSession]:
    """Return the live session for a token. Expired sessions are removed."""
    if not token or not token.startswith(SESSION_PREFIX):
        return None

    session = db.get(AuthSession, token)
    if session is None:
        return None

    if as_utc(session.expires_at) <= utcnow():
        db.delete(session)
        db.commit()
        return None
    return session


def logout(db: Session, token: str) -> bool:
    """Invalidate a session token."""
    session = db.get(AuthSession, token)
    if session is None:
        return False
    db.delete(session)
    db.commit()
    return True
