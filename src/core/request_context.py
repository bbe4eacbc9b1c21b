"""Request context types for the authenticated principal of a request."""
from dataclasses import dataclass, field
from enum import StrEnum

from starlette.requests import HTTPConnection

# Key under which the principal is kept in a server-side session, when one exists
SESSION_PRINCIPAL_KEY = "principal"


class AuthType(StrEnum):
    """Authentication method used for the request."""

    ACCESS_TOKEN = "access_token"


@dataclass(frozen=True)
class AuthenticatedPrincipal:
    """
    Identity established for a single request.

    Nothing here survives the request; the next request authenticates again.
    """

    user_id: int
    username: str
    display_name: str | None
    authorities: frozenset[str] = field(default_factory=frozenset)
    auth_type: AuthType = AuthType.ACCESS_TOKEN
    token_name: str | None = None
    authenticated_at: int = 0  # epoch milliseconds


def establish_security_context(
    connection: HTTPConnection,
    principal: AuthenticatedPrincipal,
) -> None:
    """
    Bind the principal to the request.

    Any session state that arrived with the request is discarded and
    recreated holding only the new principal, so a session id planted before
    authentication cannot carry over into the authenticated request.
    """
    connection.state.principal = principal
    if "session" in connection.scope:
        session = connection.scope["session"]
        session.clear()
        session[SESSION_PRINCIPAL_KEY] = {
            "user_id": principal.user_id,
            "username": principal.username,
            "auth_type": principal.auth_type.value,
            "authenticated_at": principal.authenticated_at,
        }


def get_principal(connection: HTTPConnection) -> AuthenticatedPrincipal | None:
    """Return the principal established for this request, if any."""
    return getattr(connection.state, "principal", None)
