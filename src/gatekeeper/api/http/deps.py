"""FastAPI dependency implementations."""

from __future__ import annotations

from collections.abc import Iterator

from fastapi import Depends, HTTPException, Request
from sqlmodel import Session

from src.gatekeeper.api.http.app_data import ApplicationDependencies
from src.gatekeeper.core.errors import AuthenticationError, PersistenceError
from src.gatekeeper.core.services.audit import LoginAuditLog
from src.gatekeeper.core.services.auth_service import (
    AuthenticationService,
    CurrentIdentity,
    RequestContext,
)
from src.gatekeeper.core.services.user import UserAdministrationService

NOT_AUTHENTICATED = "Not authenticated"


def get_app_dependencies(request: Request) -> ApplicationDependencies:
    return request.app.state.app_dependencies


def get_db_session(request: Request) -> Iterator[Session]:
    """Yield a database session for the duration of the request."""
    app_deps = get_app_dependencies(request)
    session = app_deps.database_service.get_session()
    try:
        yield session
    finally:
        session.close()


def get_auth_service(
    request: Request, db: Session = Depends(get_db_session)
) -> AuthenticationService:
    app_deps = get_app_dependencies(request)
    return AuthenticationService(
        db,
        password_verifier=app_deps.password_verifier,
        token_verifier=app_deps.token_verifier,
        access_tokens=app_deps.access_token_service,
    )


def get_user_admin_service(db: Session = Depends(get_db_session)) -> UserAdministrationService:
    return UserAdministrationService(db)


def get_login_audit_log(db: Session = Depends(get_db_session)) -> LoginAuditLog:
    return LoginAuditLog(db)


def get_request_context(request: Request) -> RequestContext:
    """Describe the caller for the login audit log.

    ``X-Forwarded-For`` is honoured only when ``app.trust_forwarded_for`` is
    set; otherwise any client could choose its recorded address.
    """
    trust_xff = get_app_dependencies(request).config.app.trust_forwarded_for
    xff = request.headers.get("x-forwarded-for") if trust_xff else None
    client_ip = (
        xff.split(",")[0].strip()
        if xff
        else request.client.host
        if request.client
        else None
    )
    return RequestContext(
        source_address=client_ip, user_agent=request.headers.get("user-agent")
    )


def get_bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_current_identity(
    token: str | None = Depends(get_bearer_token),
    auth_service: AuthenticationService = Depends(get_auth_service),
) -> CurrentIdentity:
    """Authenticate the request using an internal or identity provider bearer token."""
    if token is None:
        raise _not_authenticated()
    try:
        return await auth_service.current_identity(token)
    except PersistenceError:
        raise
    except AuthenticationError as exc:
        raise _not_authenticated() from exc


def _not_authenticated() -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=NOT_AUTHENTICATED,
        headers={"WWW-Authenticate": "Bearer"},
    )


def require_permission(permission: str):
    """Create a dependency that requires ``permission`` for the authenticated user."""

    async def dep(
        identity: CurrentIdentity = Depends(get_current_identity),
    ) -> CurrentIdentity:
        if permission not in identity.permissions:
            raise HTTPException(
                status_code=403, detail=f"Missing required permission: {permission}"
            )
        return identity

    return dep
