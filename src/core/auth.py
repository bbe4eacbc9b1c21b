"""
Bearer access token authentication.

Every request passes through AccessTokenAuthenticationMiddleware, which asks
AccessTokenAuthenticator for one of three outcomes:

- pass-through: no usable bearer credential (no header, another scheme, or a
  token value nobody issued). The request continues unauthenticated and later
  policy decides whether anonymous access is allowed.
- denied: the token was recognized but is expired, its owner is disabled, or
  the lookup failed. The request ends with a 401 and a bearer challenge.
- authenticated: the principal is bound to the request and it continues.

An unknown token is deliberately a pass-through while an expired token is a
denial. Keep the two paths separate.
"""
import asyncio
import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from fastapi import HTTPException, Request, Response, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from core.clock import Clock, system_clock
from core.request_context import (
    AuthenticatedPrincipal,
    AuthType,
    establish_security_context,
    get_principal,
)
from services.exceptions import AuthenticationError, DisabledUserError, ExpiredTokenError
from services.token_service import AccessTokenService
from services.user_directory import UserDirectory

logger = logging.getLogger(__name__)

# Scheme word is case-insensitive; the token value is taken verbatim
BEARER_PATTERN = re.compile(r"bearer (.*)", re.IGNORECASE)

DEFAULT_REALM = "access-tokens"


class AuthOutcome(StrEnum):
    """Terminal outcome of authenticating one request."""

    PASS_THROUGH = "pass_through"
    DENIED = "denied"
    AUTHENTICATED = "authenticated"


@dataclass(frozen=True)
class AuthenticationResult:
    """Outcome of the bearer filter for a single request."""

    outcome: AuthOutcome
    principal: AuthenticatedPrincipal | None = None
    message: str | None = None

    @classmethod
    def pass_through(cls) -> "AuthenticationResult":
        return cls(AuthOutcome.PASS_THROUGH)

    @classmethod
    def denied(cls, message: str) -> "AuthenticationResult":
        return cls(AuthOutcome.DENIED, message=message)

    @classmethod
    def authenticated(cls, principal: AuthenticatedPrincipal) -> "AuthenticationResult":
        return cls(AuthOutcome.AUTHENTICATED, principal=principal)


def extract_bearer_token(authorization: str | None) -> str | None:
    """
    Extract the token value from an Authorization header.

    Returns:
        The token value, or None if the header is missing, blank, uses a
        different scheme, or carries an empty token.
    """
    if authorization is None or not authorization.strip():
        return None
    match = BEARER_PATTERN.fullmatch(authorization)
    if match is None:
        return None
    return match.group(1) or None


def bearer_challenge(realm: str) -> dict[str, str]:
    """WWW-Authenticate header advertising the bearer scheme."""
    return {"WWW-Authenticate": f'Bearer realm="{realm}"'}


class AccessTokenAuthenticator:
    """
    Decides the authentication outcome for a request's Authorization header.

    Collaborators are passed in at construction. Each call is independent;
    nothing is kept between requests.
    """

    def __init__(
        self,
        token_service: AccessTokenService,
        user_directory: UserDirectory,
        clock: Clock = system_clock,
        *,
        enabled: bool = True,
        lookup_timeout: float | None = None,
    ) -> None:
        self._token_service = token_service
        self._user_directory = user_directory
        self._clock = clock
        self._enabled = enabled
        self._lookup_timeout = lookup_timeout

    async def authenticate(self, authorization: str | None) -> AuthenticationResult:
        """
        Authenticate a request from its Authorization header value.

        Never raises: failures after a token value is extracted become a
        denied result carrying the failure message.
        """
        if not self._enabled:
            return AuthenticationResult.pass_through()

        token = extract_bearer_token(authorization)
        if token is None:
            logger.debug("Access token credentials are not provided in request")
            return AuthenticationResult.pass_through()

        try:
            return await asyncio.wait_for(
                self._authenticate_token(token),
                timeout=self._lookup_timeout,
            )
        except AuthenticationError as e:
            logger.info("Access token rejected: %s", e)
            return AuthenticationResult.denied(str(e))
        except TimeoutError:
            logger.warning(
                "Access token validation timed out after %ss", self._lookup_timeout,
            )
            return AuthenticationResult.denied("Timed out while validating the access token")
        except Exception as e:
            logger.exception("Failed to authenticate access token")
            return AuthenticationResult.denied(str(e) or "Failed to authenticate access token")

    async def _authenticate_token(self, token: str) -> AuthenticationResult:
        record = await self._token_service.resolve_by_secret(token)
        if record is None:
            logger.debug("Specified access token was not recognized")
            return AuthenticationResult.pass_through()

        now = self._clock()
        if record.is_expired(now):
            raise ExpiredTokenError()

        user = await self._user_directory.load(record.owner_id)
        if not user.enabled:
            raise DisabledUserError()

        principal = AuthenticatedPrincipal(
            user_id=user.id,
            username=user.username,
            display_name=user.display_name,
            authorities=user.authorities,
            auth_type=AuthType.ACCESS_TOKEN,
            token_name=record.name,
            authenticated_at=now,
        )
        return AuthenticationResult.authenticated(principal)


class AuthenticationFailureHandler:
    """Builds the uniform 401 response for a denied request."""

    def __init__(self, realm: str = DEFAULT_REALM) -> None:
        self.realm = realm

    def __call__(self, request: Request, message: str) -> Response:
        logger.debug(
            "Denying %s %s: %s", request.method, request.url.path, message,
        )
        return JSONResponse(
            status_code=status.HTTP_401_UNAUTHORIZED,
            content={"detail": message},
            headers=bearer_challenge(self.realm),
        )


FailureHandler = Callable[[Request, str], Response]


class AccessTokenAuthenticationMiddleware(BaseHTTPMiddleware):
    """Runs the bearer filter once per request, before any route handler."""

    def __init__(
        self,
        app: ASGIApp,
        authenticator: AccessTokenAuthenticator,
        failure_handler: FailureHandler | None = None,
    ) -> None:
        super().__init__(app)
        self._authenticator = authenticator
        self._failure_handler = failure_handler or AuthenticationFailureHandler()

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        """Authenticate the request, then deny it or hand it on."""
        result = await self._authenticator.authenticate(
            request.headers.get("Authorization"),
        )

        if result.outcome is AuthOutcome.DENIED:
            return self._failure_handler(request, result.message or "Authentication failed")

        if result.outcome is AuthOutcome.AUTHENTICATED:
            try:
                establish_security_context(request, result.principal)
            except Exception as e:
                logger.exception("Failed to establish security context")
                return self._failure_handler(
                    request, str(e) or "Failed to establish security context",
                )

        return await call_next(request)


async def get_current_principal(request: Request) -> AuthenticatedPrincipal:
    """
    Dependency that returns the principal established by the bearer filter.

    Raises a 401 when the request went through unauthenticated.
    """
    principal = get_principal(request)
    if principal is None:
        settings = getattr(request.app.state, "settings", None)
        realm = settings.auth_realm if settings is not None else DEFAULT_REALM
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers=bearer_challenge(realm),
        )
    return principal
