"""FastAPI dependencies for injection."""
from fastapi import HTTPException, Request, status

from core.auth import get_current_principal
from core.clock import Clock
from core.config import Settings
from services.token_service import AccessTokenService


def get_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


def get_token_service(request: Request) -> AccessTokenService:
    """Token lifecycle service the application was created with."""
    return request.app.state.token_service


def get_clock(request: Request) -> Clock:
    """Clock the application was created with."""
    return request.app.state.clock


def require_security_enabled(request: Request) -> None:
    """Reject token management while authentication enforcement is disabled."""
    if not get_settings(request).security_enabled:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Security must be enabled to manage access tokens.",
        )


__all__ = [
    "get_clock",
    "get_current_principal",
    "get_settings",
    "get_token_service",
    "require_security_enabled",
]
