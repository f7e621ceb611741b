"""Issue and validate the access tokens handed out after a successful login.

Internal tokens are HMAC-signed with the configured secret. Tokens minted by
the trusted external identity provider are verified against its JWKS and
have their nested role documents flattened into a ``roles`` list plus a
derived application ``role``.
"""

from datetime import UTC, datetime
from typing import Any

from authlib.common.security import generate_token
from authlib.jose import JoseError, JsonWebKey, JsonWebToken
from loguru import logger
from pydantic import BaseModel, Field, ValidationError

from src.gatekeeper.core.errors import TokenInvalid
from src.gatekeeper.core.models.identity import Role
from src.gatekeeper.core.services.claims import (
    DISPLAY_NAME,
    EMAIL,
    USERNAME,
    flatten_role_claims,
)
from src.gatekeeper.core.services.jwt.jwks import JwksService
from src.gatekeeper.core.services.jwt.jwt_utils import JwtPreview, preview_jwt
from src.gatekeeper.core.services.roles import derive_role
from src.gatekeeper.entities import User
from src.gatekeeper.entities._base import utc_now
from src.gatekeeper.runtime.config.config_data import ConfigData


class AccessToken(BaseModel):
    token: str
    token_type: str = "Bearer"
    expires_at: datetime
    expires_in: int = Field(description="Lifetime in seconds")


class AccessTokenClaims(BaseModel):
    """Verified claims of an internal or external bearer token."""

    subject: str
    username: str | None = None
    role: Role = Role.VIEWER
    roles: list[str] = Field(default_factory=list)
    email: str = ""
    name: str = ""
    issuer: str
    expires_at: datetime
    jti: str | None = None
    external: bool = False
    claims: dict[str, Any] = Field(
        default_factory=dict, description="Verified claims as issued"
    )


def _timestamp(now: datetime | None) -> int:
    return int((now or utc_now()).timestamp())


def _token_claims(
    claims: dict[str, Any], role: Role, roles: list[str], username: str | None, external: bool
) -> AccessTokenClaims:
    jti = claims.get("jti")
    try:
        return AccessTokenClaims(
            subject=str(claims["sub"]),
            username=username,
            role=role,
            roles=roles,
            email=EMAIL(claims) or "",
            name=DISPLAY_NAME(claims) or "",
            issuer=claims["iss"],
            expires_at=datetime.fromtimestamp(int(claims["exp"]), tz=UTC),
            jti=None if jti is None else str(jti),
            external=external,
            claims=claims,
        )
    except (ValidationError, TypeError, ValueError, OverflowError) as exc:
        raise TokenInvalid("unusable token claims") from exc


class AccessTokenService:
    def __init__(self, config: ConfigData, jwks_service: JwksService | None = None):
        self._config = config
        self._jwks_service = jwks_service

    # ---------------------------- issue ---------------------------------
    def issue(self, user: User, now: datetime | None = None) -> AccessToken:
        """Sign an access token carrying the user's identity and role snapshot."""
        jwt_config = self._config.jwt
        if not jwt_config.signing_secret:
            raise RuntimeError("JWT signing secret not configured")

        issued_at = _timestamp(now)
        lifetime = jwt_config.lifetime_minutes * 60
        payload = {
            "iss": jwt_config.issuer,
            "sub": user.id,
            "aud": jwt_config.audience,
            "iat": issued_at,
            "nbf": issued_at,
            "exp": issued_at + lifetime,
            "jti": generate_token(16),
            "username": user.external_username,
            "role": user.role.value,
            "email": user.email,
            "name": user.display_name,
        }
        header = {"alg": jwt_config.algorithm, "typ": "JWT"}
        token = JsonWebToken([jwt_config.algorithm]).encode(
            header, payload, jwt_config.signing_secret
        )
        expires_at = datetime.fromtimestamp(payload["exp"], tz=UTC)
        return AccessToken(
            token=token.decode() if isinstance(token, bytes) else token,
            expires_at=expires_at,
            expires_in=lifetime,
        )

    # ---------------------------- validate ---------------------------------
    async def validate(self, token: str, now: datetime | None = None) -> AccessTokenClaims:
        """Verify ``token`` and return its claims.

        Raises:
            TokenInvalid: malformed, unknown issuer, bad signature, wrong
                audience, not yet valid or expired.
            IdentitySourceUnavailable: the external issuer's keys could not
                be fetched.
        """
        preview = preview_jwt(token)
        now_ts = _timestamp(now)

        if preview.iss == self._config.jwt.issuer.rstrip("/"):
            return self._validate_internal(token, preview, now_ts)

        oidc = self._config.oidc
        if oidc.enabled and oidc.issuer and preview.iss == oidc.issuer.rstrip("/"):
            return await self._validate_external(token, preview, now_ts)

        raise TokenInvalid(f"unknown issuer: {preview.iss}")

    def _validate_internal(
        self, token: str, preview: JwtPreview, now_ts: int
    ) -> AccessTokenClaims:
        jwt_config = self._config.jwt
        if not jwt_config.signing_secret:
            raise TokenInvalid("JWT signing secret not configured")
        if preview.alg != jwt_config.algorithm:
            raise TokenInvalid("disallowed JWT algorithm")

        claims = self._decode(
            JsonWebToken([jwt_config.algorithm]),
            token,
            jwt_config.signing_secret,
            {
                "iss": {"essential": True, "value": jwt_config.issuer},
                "aud": {"essential": True, "value": jwt_config.audience},
            },
            now_ts,
            leeway=0,
        )
        role = Role.parse(claims.get("role")) or Role.VIEWER
        return _token_claims(
            claims, role, [role.value], username=claims.get("username"), external=False
        )

    async def _validate_external(
        self, token: str, preview: JwtPreview, now_ts: int
    ) -> AccessTokenClaims:
        oidc = self._config.oidc
        if preview.alg not in oidc.allowed_algorithms:
            raise TokenInvalid("disallowed JWT algorithm")
        if not oidc.audience:
            raise TokenInvalid("no expected audience configured")
        if self._jwks_service is None:
            raise TokenInvalid("external tokens are not accepted")

        jwks = await self._jwks_service.fetch_jwks(oidc.jwks_uri)
        jwk_set = (
            {"keys": [k for k in jwks.get("keys", []) if k.get("kid") == preview.kid]}
            if preview.kid
            else jwks
        )
        if preview.kid and not jwk_set["keys"]:
            raise TokenInvalid(f"no JWK matches kid={preview.kid}")
        try:
            key_set = JsonWebKey.import_key_set(jwk_set)
        except (JoseError, ValueError) as exc:
            raise TokenInvalid("unusable JWKS") from exc

        issuer = oidc.issuer.rstrip("/")
        claims = self._decode(
            JsonWebToken(oidc.allowed_algorithms),
            token,
            key_set,
            {
                "iss": {"essential": True, "values": [issuer, issuer + "/"]},
                "aud": {"essential": True, "values": oidc.audience},
            },
            now_ts,
            leeway=self._config.jwt.clock_skew,
        )

        # nested role documents flattened into one list plus a derived role
        roles = flatten_role_claims(claims)
        role = derive_role(roles)

        logger.debug(
            "Validated external token for {} with {} roles", USERNAME(claims), len(roles)
        )
        return _token_claims(claims, role, roles, username=USERNAME(claims), external=True)

    @staticmethod
    def _decode(
        decoder: JsonWebToken,
        token: str,
        key: Any,
        options: dict[str, Any],
        now_ts: int,
        leeway: int,
    ) -> dict[str, Any]:
        options = {**options, "exp": {"essential": True}, "sub": {"essential": True}}
        try:
            claims = decoder.decode(token, key, claims_options=options)
            claims.validate(now=now_ts, leeway=leeway)
        except (JoseError, ValueError) as exc:
            raise TokenInvalid(f"JWT error: {exc}") from exc

        # a token is dead at its exp second
        if now_ts >= int(claims["exp"]) + leeway:
            raise TokenInvalid("token expired")
        nbf = claims.get("nbf")
        if nbf is not None and now_ts < int(nbf) - leeway:
            raise TokenInvalid("token not yet valid")
        return dict(claims)
