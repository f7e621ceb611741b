"""Unit tests for JWKS fetching and caching."""

import httpx
import pytest

from src.gatekeeper.core.errors import IdentitySourceUnavailable
from src.gatekeeper.core.services.jwt import JWKSCacheInMemory, JwksService
from tests.fixtures.core import JWKS_URI


class TestJwksService:
    @pytest.mark.asyncio
    async def test_fetch_is_cached(self, jwks_data):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url)
            return httpx.Response(200, json=jwks_data)

        service = JwksService(JWKSCacheInMemory(), transport=httpx.MockTransport(handler))

        assert await service.fetch_jwks(JWKS_URI) == jwks_data
        assert await service.fetch_jwks(JWKS_URI) == jwks_data
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_cleared_cache_refetches(self, jwks_data):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request.url)
            return httpx.Response(200, json=jwks_data)

        cache = JWKSCacheInMemory()
        service = JwksService(cache, transport=httpx.MockTransport(handler))
        await service.fetch_jwks(JWKS_URI)
        cache.clear_jwks_cache()
        await service.fetch_jwks(JWKS_URI)
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_http_error(self):
        service = JwksService(
            JWKSCacheInMemory(),
            transport=httpx.MockTransport(lambda request: httpx.Response(500)),
        )
        with pytest.raises(IdentitySourceUnavailable):
            await service.fetch_jwks(JWKS_URI)

    @pytest.mark.asyncio
    async def test_document_without_keys(self):
        service = JwksService(
            JWKSCacheInMemory(),
            transport=httpx.MockTransport(lambda request: httpx.Response(200, json={})),
        )
        with pytest.raises(IdentitySourceUnavailable):
            await service.fetch_jwks(JWKS_URI)

    @pytest.mark.asyncio
    async def test_missing_uri(self):
        with pytest.raises(IdentitySourceUnavailable):
            await JwksService(JWKSCacheInMemory()).fetch_jwks("")
