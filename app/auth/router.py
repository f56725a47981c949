# app/auth/router.py
"""
Authentication API endpoints.
"""

from fastapi import APIRouter, HTTPException, status, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session
from typing import Optional
import secrets

from app.config import Settings, get_settings
from app.db import get_db
from . import config
from .middleware import require_auth, optional_auth, AuthResult

router = APIRouter(prefix="/auth", tags=["auth"])


# ============ Request/Response Models ============

class AuthStatusResponse(BaseModel):
    authenticated: bool
    role: Optional[str] = None
    admin_configured: bool


class ClientLoginRequest(BaseModel):
    email: str = Field(..., min_length=3)


class AdminSetupRequest(BaseModel):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=config.MIN_PASSWORD_LENGTH)
    setup_token: Optional[str] = None


class AdminLoginRequest(BaseModel):
    email: str
    password: str


class LoginResponse(BaseModel):
    session_token: str
    email: str
    user_id: str
    role: str


class MeResponse(BaseModel):
    email: str
    user_id: str
    role: str


# ============ Public Endpoints (no auth required) ============

@router.get("/status", response_model=AuthStatusResponse)
def get_auth_status(
    auth: AuthResult = Depends(optional_auth),
    db: Session = Depends(get_db),
):
    """Whether the caller is signed in and whether any admin exists yet."""
    return AuthStatusResponse(
        authenticated=auth.authenticated,
        role=auth.role,
        admin_configured=config.is_admin_configured(db),
    )


@router.post("/login", response_model=LoginResponse)
def login(
    request: ClientLoginRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Start a client session for an email address."""
    try:
        return LoginResponse(**config.login_client(db, request.email, settings.session_ttl_hours))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.post("/admin/setup", response_model=MeResponse, status_code=201)
def setup_admin(
    request: AdminSetupRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """
    Create an admin account.
    When KLARNOW_ADMIN_SETUP_TOKEN is configured the request must carry it.
    """
    if settings.admin_setup_token and not secrets.compare_digest(
        request.setup_token or "", settings.admin_setup_token
    ):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid setup token"
        )

    try:
        admin = config.setup_admin(db, request.email, request.password)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return MeResponse(email=admin.email, user_id=config.user_id_for_email(admin.email), role=config.ROLE_ADMIN)


@router.post("/admin/login", response_model=LoginResponse)
def admin_login(
    request: AdminLoginRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    result = config.login_admin(db, request.email, request.password, settings.session_ttl_hours)
    if not result:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )
    return LoginResponse(**result)


# ============ Protected Endpoints ============

@router.get("/me", response_model=MeResponse)
def me(auth: AuthResult = Depends(require_auth)):
    return MeResponse(email=auth.email, user_id=auth.user_id, role=auth.role)


@router.post("/logout")
def logout(auth: AuthResult = Depends(require_auth), db: Session = Depends(get_db)):
    """Invalidate the current session."""
    config.logout(db, auth.token)
    return {"message": "Logged out successfully"}
