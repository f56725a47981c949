# app/auth/__init__.py
"""
Authentication module for Klarnow.
Email sessions for clients, password sessions for admins.
"""

from .middleware import require_auth, require_admin, optional_auth, AuthResult
from .router import router as auth_router
from .config import (
    ROLE_ADMIN,
    ROLE_CLIENT,
    normalize_email,
    user_id_for_email,
    login_client,
    setup_admin,
    login_admin,
    is_admin_configured,
    validate_session,
    logout,
)

__all__ = [
    # Middleware
    "require_auth",
    "require_admin",
    "optional_auth",
    "AuthResult",
    # Router
    "auth_router",
    # Config functions
    "ROLE_ADMIN",
    "ROLE_CLIENT",
    "normalize_email",
    "user_id_for_email",
    "login_client",
    "setup_admin",
    "login_admin",
    "is_admin_configured",
    "validate_session",
    "logout",
]
