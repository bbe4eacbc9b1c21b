"""FastAPI application factory."""
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from sqlalchemy.ext.asyncio import AsyncEngine
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from api.routers import health, tokens, users
from core.auth import (
    AccessTokenAuthenticationMiddleware,
    AccessTokenAuthenticator,
    AuthenticationFailureHandler,
)
from core.clock import Clock, system_clock
from core.config import Settings, get_settings
from db.session import create_engine, create_session_factory
from db.token_store import SqlAlchemyTokenStore, TokenStore
from services.token_service import AccessTokenService
from services.user_directory import SqlAlchemyUserDirectory, UserDirectory


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process request and add security headers to response."""
        response = await call_next(request)
        response.headers["Strict-Transport-Security"] = (
            "max-age=31536000; includeSubDomains"
        )
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        # Token creation responses carry a plaintext secret
        response.headers["Cache-Control"] = "no-store"
        return response


def create_app(
    settings: Settings | None = None,
    *,
    token_store: TokenStore | None = None,
    user_directory: UserDirectory | None = None,
    clock: Clock = system_clock,
) -> FastAPI:
    """
    Build the application with its collaborators.

    When no store or directory is given, both are backed by the configured
    database. Run with `uvicorn --factory api.main:create_app`.
    """
    settings = settings or get_settings()

    engine: AsyncEngine | None = None
    if token_store is None or user_directory is None:
        engine = create_engine(settings)
        session_factory = create_session_factory(engine)
        token_store = token_store or SqlAlchemyTokenStore(session_factory)
        user_directory = user_directory or SqlAlchemyUserDirectory(session_factory)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncGenerator[None]:
        """Dispose of the database engine on shutdown."""
        yield
        if engine is not None:
            await engine.dispose()

    token_service = AccessTokenService(token_store)
    authenticator = AccessTokenAuthenticator(
        token_service,
        user_directory,
        clock,
        enabled=settings.security_enabled,
        lookup_timeout=settings.auth_lookup_timeout_seconds,
    )

    app = FastAPI(
        title="Access Tokens API",
        description="Issue, revoke and authenticate with personal access tokens.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.token_service = token_service
    app.state.clock = clock

    # Authentication runs inside the security headers middleware, so 401s get headers too
    app.add_middleware(
        AccessTokenAuthenticationMiddleware,
        authenticator=authenticator,
        failure_handler=AuthenticationFailureHandler(settings.auth_realm),
    )
    app.add_middleware(SecurityHeadersMiddleware)

    app.include_router(health.router)
    app.include_router(users.router)
    app.include_router(tokens.router)

    return app
