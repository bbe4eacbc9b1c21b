"""Current user endpoint for checking authentication."""
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from api.dependencies import get_current_principal
from core.request_context import AuthenticatedPrincipal


router = APIRouter(prefix="/current_user", tags=["users"])


class CurrentUserResponse(BaseModel):
    """Response model for the authenticated principal."""

    id: int
    username: str
    display_name: str | None
    authorities: list[str]
    auth_type: str
    token_name: str | None


@router.get("", response_model=CurrentUserResponse)
async def get_current_user(
    principal: AuthenticatedPrincipal = Depends(get_current_principal),
) -> CurrentUserResponse:
    """Get the identity the request authenticated as."""
    return CurrentUserResponse(
        id=principal.user_id,
        username=principal.username,
        display_name=principal.display_name,
        authorities=sorted(principal.authorities),
        auth_type=principal.auth_type.value,
        token_name=principal.token_name,
    )
