"""JWT service package."""

from .access_tokens import AccessToken, AccessTokenClaims, AccessTokenService
from .jwks import JWKSCache, JWKSCacheInMemory, JwksService
from .jwt_utils import JwtPreview, preview_jwt

__all__ = [
    "AccessToken",
    "AccessTokenClaims",
    "AccessTokenService",
    "JWKSCache",
    "JWKSCacheInMemory",
    "JwksService",
    "JwtPreview",
    "preview_jwt",
]
