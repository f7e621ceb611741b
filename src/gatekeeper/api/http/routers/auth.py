"""Login and current-identity endpoints."""

from fastapi import APIRouter, Depends

from src.gatekeeper.api.http.deps import (
    get_auth_service,
    get_bearer_token,
    get_current_identity,
    get_request_context,
)
from src.gatekeeper.api.http.schemas import (
    LoginRequest,
    LoginResponse,
    MeResponse,
    MessageResponse,
    UserResponse,
)
from src.gatekeeper.core.services.auth_service import (
    AuthenticationService,
    CurrentIdentity,
    LoginResult,
    RequestContext,
)

router = APIRouter(prefix="/auth", tags=["auth"])


def _login_response(result: LoginResult) -> LoginResponse:
    return LoginResponse(
        token=result.access_token.token,
        token_type=result.access_token.token_type,
        user=UserResponse.from_user(result.user),
        expires_at=result.access_token.expires_at,
    )


@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    auth_service: AuthenticationService = Depends(get_auth_service),
    context: RequestContext = Depends(get_request_context),
) -> LoginResponse:
    """Authenticate with directory credentials and receive an access token."""
    result = await auth_service.login(body.username, body.password, context)
    return _login_response(result)


@router.post("/token", response_model=LoginResponse)
async def exchange_token(
    token: str | None = Depends(get_bearer_token),
    auth_service: AuthenticationService = Depends(get_auth_service),
    context: RequestContext = Depends(get_request_context),
) -> LoginResponse:
    """Exchange an identity provider token for an application access token."""
    result = await auth_service.login_with_token(token, context)
    return _login_response(result)


@router.get("/me", response_model=MeResponse)
async def me(identity: CurrentIdentity = Depends(get_current_identity)) -> MeResponse:
    return MeResponse(
        user=UserResponse.from_user(identity.user),
        role=identity.role.value,
        permissions=list(identity.permissions),
    )


@router.post("/logout", response_model=MessageResponse)
async def logout() -> MessageResponse:
    """Tokens are stateless; the client discards its copy."""
    return MessageResponse(message="Logged out successfully")
