"""Access token management endpoints for the current user."""
import logging

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import (
    get_clock,
    get_current_principal,
    get_settings,
    get_token_service,
    require_security_enabled,
)
from core.clock import MILLIS_PER_HOUR, Clock
from core.config import Settings
from core.request_context import AuthenticatedPrincipal
from schemas.token import TokenCreate, TokenCreateResponse, TokenResponse
from services.exceptions import (
    DuplicateTokenError,
    StoreError,
    TokenNotFoundError,
    TokenValidationError,
)
from services.token_service import AccessTokenService

logger = logging.getLogger(__name__)

STORE_UNAVAILABLE = "Token store unavailable"

router = APIRouter(
    prefix="/current_user/access_tokens",
    tags=["access_tokens"],
    dependencies=[Depends(require_security_enabled)],
)


@router.get("", response_model=list[TokenResponse])
async def list_tokens(
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    service: AccessTokenService = Depends(get_token_service),
) -> list[TokenResponse]:
    """
    List all access tokens for the current user.

    Note: Secret values are never returned - only metadata.
    """
    try:
        tokens = await service.list_tokens(principal.user_id)
    except StoreError:
        raise HTTPException(status_code=503, detail=STORE_UNAVAILABLE)
    return [TokenResponse.model_validate(t) for t in tokens]


@router.get("/{name:path}", response_model=TokenResponse)
async def get_token(
    name: str,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    service: AccessTokenService = Depends(get_token_service),
) -> TokenResponse:
    """Get a single access token by name."""
    try:
        token = await service.find(principal.user_id, name)
    except StoreError:
        raise HTTPException(status_code=503, detail=STORE_UNAVAILABLE)
    if token is None:
        raise HTTPException(status_code=404, detail=str(TokenNotFoundError(name)))
    return TokenResponse.model_validate(token)


@router.post("", response_model=TokenCreateResponse, status_code=201)
async def create_token(
    data: TokenCreate,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    service: AccessTokenService = Depends(get_token_service),
    clock: Clock = Depends(get_clock),
    settings: Settings = Depends(get_settings),
) -> TokenCreateResponse:
    """
    Create a new access token.

    IMPORTANT: The plaintext token is only returned once. Store it securely.
    """
    if data.expires_in_hours > settings.max_token_lifetime_hours:
        raise HTTPException(
            status_code=422,
            detail={
                "field": "expires_in_hours",
                "message": (
                    f"Token lifetime must not exceed "
                    f"{settings.max_token_lifetime_hours} hours."
                ),
            },
        )

    expires_at = clock() + data.expires_in_hours * MILLIS_PER_HOUR
    try:
        secret = await service.issue(
            principal.user_id, data.name, data.description, expires_at,
        )
    except TokenValidationError as e:
        raise HTTPException(status_code=422, detail={"field": e.field, "message": e.reason})
    except DuplicateTokenError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except StoreError:
        raise HTTPException(status_code=503, detail=STORE_UNAVAILABLE)

    logger.info("Access token '%s' issued for user %s", data.name, principal.user_id)
    return TokenCreateResponse(
        name=data.name,
        description=data.description,
        expires_at=expires_at,
        token=secret,
    )


@router.delete("/{name:path}", status_code=204)
async def delete_token(
    name: str,
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
    service: AccessTokenService = Depends(get_token_service),
) -> None:
    """Revoke (delete) an access token."""
    try:
        await service.revoke(principal.user_id, name)
    except TokenNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StoreError:
        raise HTTPException(status_code=503, detail=STORE_UNAVAILABLE)

    logger.info("Access token '%s' revoked for user %s", name, principal.user_id)
