from dataclasses import dataclass

from sqlalchemy import Engine

from src.gatekeeper.core.services.database import DbSessionService
from src.gatekeeper.core.services.directory import (
    DirectoryClient,
    HttpDirectoryClient,
    build_fallback_directory,
)
from src.gatekeeper.core.services.jwt import (
    AccessTokenService,
    JWKSCacheInMemory,
    JwksService,
)
from src.gatekeeper.core.services.verifiers import PasswordVerifier, TokenVerifier
from src.gatekeeper.runtime.config.config_data import ConfigData


@dataclass
class ApplicationDependencies:
    config: ConfigData
    database_service: DbSessionService
    jwks_cache: JWKSCacheInMemory
    jwks_service: JwksService
    access_token_service: AccessTokenService
    password_verifier: PasswordVerifier
    token_verifier: TokenVerifier


def build_application_dependencies(
    config: ConfigData,
    engine: Engine | None = None,
    directory: DirectoryClient | None = None,
    jwks_service: JwksService | None = None,
) -> ApplicationDependencies:
    """Wire the process-wide services from configuration.

    ``engine``, ``directory`` and ``jwks_service`` replace the configured
    implementations, which is how tests run against fakes.

    Raises:
        RuntimeError: if no JWT signing secret is configured.
    """
    if not config.jwt.signing_secret:
        raise RuntimeError("jwt.signing_secret must be configured before serving logins")

    jwks_cache = JWKSCacheInMemory(ttl=config.oidc.jwks_cache_ttl)
    jwks_service = jwks_service or JwksService(jwks_cache)
    access_token_service = AccessTokenService(config, jwks_service)
    password_verifier = PasswordVerifier(
        directory or HttpDirectoryClient(config.directory),
        timeout_seconds=config.directory.timeout_seconds,
        fallback=build_fallback_directory(config),
    )
    return ApplicationDependencies(
        config=config,
        database_service=DbSessionService(config, engine=engine),
        jwks_cache=jwks_cache,
        jwks_service=jwks_service,
        access_token_service=access_token_service,
        password_verifier=password_verifier,
        token_verifier=TokenVerifier(access_token_service),
    )
