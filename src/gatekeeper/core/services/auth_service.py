"""Authentication orchestration.

verify -> derive role -> reconcile -> issue token -> audit, with the user
update and the success audit entry committed in one transaction.
"""

from dataclasses import dataclass

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from src.gatekeeper.core.errors import (
    AuthenticationError,
    BadInput,
    PersistenceError,
    TokenInvalid,
)
from src.gatekeeper.core.models.identity import (
    BearerCredentials,
    PasswordCredentials,
    Role,
    VerificationResult,
)
from src.gatekeeper.core.services.audit import LoginAuditLog
from src.gatekeeper.core.services.claims import USERNAME
from src.gatekeeper.core.services.jwt import AccessToken, AccessTokenService, preview_jwt
from src.gatekeeper.core.services.permissions import permissions_for
from src.gatekeeper.core.services.roles import derive_role
from src.gatekeeper.core.services.user import IdentityReconciliationService
from src.gatekeeper.core.services.verifiers import PasswordVerifier, TokenVerifier
from src.gatekeeper.entities import User, UserRepository

UNKNOWN_TOKEN_USER = "(unidentified token)"


@dataclass(frozen=True)
class RequestContext:
    source_address: str | None = None
    user_agent: str | None = None


@dataclass(frozen=True)
class LoginResult:
    user: User
    access_token: AccessToken
    permissions: tuple[str, ...]


@dataclass(frozen=True)
class CurrentIdentity:
    user: User
    role: Role
    permissions: tuple[str, ...]


class AuthenticationService:
    def __init__(
        self,
        db_session: Session,
        password_verifier: PasswordVerifier,
        token_verifier: TokenVerifier,
        access_tokens: AccessTokenService,
    ):
        self._db_session = db_session
        self._password_verifier = password_verifier
        self._token_verifier = token_verifier
        self._access_tokens = access_tokens
        self._reconciliation = IdentityReconciliationService(db_session)
        self._audit = LoginAuditLog(db_session)
        self._user_repo = UserRepository(db_session)

    async def login(
        self, username: str | None, password: str | None, context: RequestContext | None = None
    ) -> LoginResult:
        """Authenticate a username/password pair against the directory.

        Raises:
            BadInput: if either field is missing; nothing is audited.
            AuthenticationError: any other failure, after it has been audited.
        """
        if not username or not username.strip() or not password:
            raise BadInput("username and password are required")

        with logger.contextualize(username=username, flow="password"):
            result = await self._password_verifier.verify(
                PasswordCredentials(username=username, password=password)
            )
            return self._complete(username, result, context or RequestContext())

    async def login_with_token(
        self, token: str | None, context: RequestContext | None = None
    ) -> LoginResult:
        """Exchange an identity provider token for an application token."""
        if not token or not token.strip():
            raise BadInput("bearer token is required")

        attempted = self._attempted_token_username(token)
        with logger.contextualize(username=attempted, flow="token"):
            result = await self._token_verifier.verify(BearerCredentials(token=token))
            return self._complete(attempted, result, context or RequestContext())

    async def current_identity(self, token: str | None) -> CurrentIdentity:
        """Resolve the user and permissions behind a bearer token. Not audited.

        Raises:
            TokenInvalid: invalid token, or no active user behind it.
        """
        if not token:
            raise TokenInvalid("missing bearer token")

        claims = await self._access_tokens.validate(token)
        try:
            if claims.external:
                if not claims.username:
                    raise TokenInvalid("token carries no username")
                user = self._user_repo.get_by_external_username(claims.username)
            else:
                user = self._user_repo.get(claims.subject)
        except SQLAlchemyError as exc:
            raise PersistenceError("user store unavailable") from exc

        if user is None:
            raise TokenInvalid("no active user for token")
        return CurrentIdentity(
            user=user, role=claims.role, permissions=permissions_for(claims.role)
        )

    # ---------------------------- helpers ---------------------------------
    @staticmethod
    def _attempted_token_username(token: str) -> str:
        # unverified, only used to label the audit entry
        try:
            return USERNAME(preview_jwt(token).claims) or UNKNOWN_TOKEN_USER
        except AuthenticationError:
            return UNKNOWN_TOKEN_USER

    def _fail(
        self, attempted: str, error: AuthenticationError, context: RequestContext
    ) -> AuthenticationError:
        self._audit.record(
            attempted,
            success=False,
            failure_reason=error.reason,
            source_address=context.source_address,
            user_agent=context.user_agent,
        )
        logger.info("Authentication failed: {}", error.reason)
        return error

    def _complete(
        self, attempted: str, result: VerificationResult, context: RequestContext
    ) -> LoginResult:
        if not result.is_valid:
            raise self._fail(attempted, result.error, context)

        identity = result.identity
        try:
            user = self._reconciliation.reconcile(identity, derive_role(identity.groups))
        except PersistenceError as exc:
            raise self._fail(attempted, exc, context) from exc

        access_token = self._access_tokens.issue(user)
        try:
            self._audit.stage(
                attempted,
                success=True,
                source_address=context.source_address,
                user_agent=context.user_agent,
                user_id=user.id,
            )
            self._db_session.commit()
        except SQLAlchemyError as exc:
            self._db_session.rollback()
            logger.error("Could not commit login", error_type=type(exc).__name__)
            raise self._fail(attempted, PersistenceError("login not recorded"), context) from exc

        logger.info("Authenticated {} as {}", user.external_username, user.role.value)
        return LoginResult(
            user=user, access_token=access_token, permissions=permissions_for(user.role)
        )
