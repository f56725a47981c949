# app/auth/middleware.py
"""
FastAPI authentication dependencies using session tokens.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import Optional
from dataclasses import dataclass

from app.db import get_db
from . import config

security = HTTPBearer(auto_error=False)


@dataclass
class AuthResult:
    """Result of authentication check."""
    authenticated: bool
    email: Optional[str] = None
    user_id: Optional[str] = None
    role: Optional[str] = None
    token: Optional[str] = None
    error: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.authenticated and self.role == config.ROLE_ADMIN


def _resolve(db: Session, token: str) -> AuthResult:
    session = config.validate_session(db, token)
    if session is None:
        return AuthResult(authenticated=False, error="Invalid or expired session")
    return AuthResult(
        authenticated=True,
        email=session.email,
        user_id=config.user_id_for_email(session.email),
        role=session.role,
        token=token,
    )


async def require_auth(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> AuthResult:
    """
    Dependency that requires a valid session.

    Raises:
        HTTPException 401: If authentication fails
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"}
        )

    result = _resolve(db, credentials.credentials)
    if not result.authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired session. Please log in again.",
            headers={"WWW-Authenticate": "Bearer"}
        )
    return result


async def require_admin(auth: AuthResult = Depends(require_auth)) -> AuthResult:
    """
    Dependency that requires an admin session.

    Raises:
        HTTPException 403: If the session is not an admin session
    """
    if not auth.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden: Admin access required"
        )
    return auth


async def optional_auth(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> AuthResult:
    """
    Dependency that checks auth without requiring it.
    Returns AuthResult with authenticated=True/False.
    """
    if not credentials:
        return AuthResult(authenticated=False, error="No credentials provided")
    return _resolve(db, credentials.credentials)
