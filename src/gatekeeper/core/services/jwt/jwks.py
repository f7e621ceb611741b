from abc import ABC, abstractmethod
from typing import Any

import httpx
from cachetools import TTLCache
from loguru import logger

from src.gatekeeper.core.errors import IdentitySourceUnavailable


class JWKSCache(ABC):
    @abstractmethod
    def get_jwks(self, jwks_uri: str) -> dict[str, Any]:
        """
        Get the cached JWKS document for ``jwks_uri``.

        Returns:
            JWKS dictionary, empty when nothing is cached
        """
        raise NotImplementedError

    @abstractmethod
    def set_jwks(self, jwks_uri: str, jwks: dict[str, Any]) -> None:
        """Cache the JWKS document fetched from ``jwks_uri``."""
        raise NotImplementedError

    @abstractmethod
    def clear_jwks_cache(self) -> None:
        """Clear the JWKS cache."""
        raise NotImplementedError


class JWKSCacheInMemory(JWKSCache):
    def __init__(self, ttl: int = 3600, maxsize: int = 10) -> None:
        self._cache: TTLCache[str, dict[str, Any]] = TTLCache(maxsize=maxsize, ttl=ttl)

    def get_jwks(self, jwks_uri: str) -> dict[str, Any]:
        return self._cache.get(jwks_uri, {})

    def set_jwks(self, jwks_uri: str, jwks: dict[str, Any]) -> None:
        self._cache[jwks_uri] = jwks

    def clear_jwks_cache(self) -> None:
        self._cache.clear()


class JwksService:
    """Fetches and caches the signing keys of a trusted token issuer."""

    def __init__(
        self,
        cache: JWKSCache,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._cache = cache
        self._timeout = timeout
        self._transport = transport

    async def fetch_jwks(self, jwks_uri: str) -> dict[str, Any]:
        """Return the JWKS document at ``jwks_uri``, using the cache when warm.

        Raises:
            IdentitySourceUnavailable: if no URI is configured or the fetch fails.
        """
        if not jwks_uri:
            raise IdentitySourceUnavailable("issuer has no JWKS URI configured")

        jwks = self._cache.get_jwks(jwks_uri)
        if jwks:
            return jwks

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                resp = await client.get(jwks_uri)
                resp.raise_for_status()
                jwks = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Failed to fetch JWKS from {}: {}", jwks_uri, type(exc).__name__)
            raise IdentitySourceUnavailable("failed to fetch JWKS") from exc

        if not isinstance(jwks, dict) or not isinstance(jwks.get("keys"), list):
            raise IdentitySourceUnavailable("JWKS document has no keys")

        self._cache.set_jwks(jwks_uri, jwks)
        logger.debug("Cached JWKS with {} keys from {}", len(jwks["keys"]), jwks_uri)
        return jwks
