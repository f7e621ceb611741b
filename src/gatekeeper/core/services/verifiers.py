"""Credential and token verification.

Both verifiers answer the same question, "who is this?", and always return a
``VerificationResult`` rather than raising: a result is either valid with an
``Identity`` or invalid with the ``AuthenticationError`` explaining why.
"""

import asyncio
from abc import ABC, abstractmethod
from typing import Generic, TypeVar

from loguru import logger

from src.gatekeeper.core.errors import (
    AuthenticationError,
    IdentitySourceUnavailable,
    InvalidCredentials,
    TokenInvalid,
)
from src.gatekeeper.core.models.identity import (
    BearerCredentials,
    PasswordCredentials,
    VerificationResult,
)
from src.gatekeeper.core.services.claims import normalize_claims
from src.gatekeeper.core.services.directory import (
    DevelopmentFallbackDirectory,
    DirectoryClient,
)
from src.gatekeeper.core.services.jwt import AccessTokenService


C = TypeVar("C")


class CredentialVerifier(ABC, Generic[C]):
    @abstractmethod
    async def verify(self, credentials: C) -> VerificationResult:
        raise NotImplementedError


class PasswordVerifier(CredentialVerifier[PasswordCredentials]):
    def __init__(
        self,
        directory: DirectoryClient,
        timeout_seconds: float,
        fallback: DevelopmentFallbackDirectory | None = None,
    ) -> None:
        self._directory = directory
        self._timeout = timeout_seconds
        self._fallback = fallback

    @property
    def has_fallback(self) -> bool:
        return self._fallback is not None

    async def verify(self, credentials: PasswordCredentials) -> VerificationResult:
        username = credentials.username
        try:
            record = await asyncio.wait_for(
                self._directory.authenticate(username, credentials.password),
                timeout=self._timeout,
            )
        except (IdentitySourceUnavailable, TimeoutError) as exc:
            logger.warning("Directory unavailable while verifying {}: {}", username, exc)
            if self._fallback is None:
                return VerificationResult.invalid(
                    IdentitySourceUnavailable("source unreachable")
                )
            logger.warning("Using development fallback directory for {}", username)
            record = self._fallback.authenticate(username, credentials.password)

        if record is None:
            return VerificationResult.invalid(InvalidCredentials("bad credentials"))

        try:
            return VerificationResult.valid(normalize_claims(record))
        except AuthenticationError as exc:
            return VerificationResult.invalid(exc)


class TokenVerifier(CredentialVerifier[BearerCredentials]):
    """Verifies bearer tokens minted by the trusted external identity provider."""

    def __init__(self, access_tokens: AccessTokenService) -> None:
        self._access_tokens = access_tokens

    async def verify(self, credentials: BearerCredentials) -> VerificationResult:
        try:
            claims = await self._access_tokens.validate(credentials.token)
            if not claims.external:
                raise TokenInvalid("not an identity provider token")
            return VerificationResult.valid(normalize_claims(claims.claims))
        except AuthenticationError as exc:
            logger.debug("Token verification failed: {}", exc.detail)
            return VerificationResult.invalid(exc)
