"""Pydantic models for parsing the config.yaml configuration file.

This module contains Pydantic models that correspond to the structure of config.yaml.
These models handle validation and type conversion of the YAML configuration data.
"""

from __future__ import annotations

import os
from typing import Literal

from loguru import logger
from pydantic import BaseModel, Field, computed_field


class CORSConfig(BaseModel):
    """CORS configuration for the application."""

    origins: list[str] = Field(
        default=["http://localhost:3000", "https://localhost:3000"]
    )
    allow_credentials: bool = True
    allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "DELETE", "OPTIONS"]
    )
    allow_headers: list[str] = Field(default=["*"])


class DirectoryConfig(BaseModel):
    """Connection settings for the external directory used in password logins.

    The directory is reached through an identity broker that accepts the
    resource-owner password grant and exposes a userinfo endpoint.
    """

    token_endpoint: str | None = Field(
        default=None, description="Token endpoint accepting the password grant"
    )
    userinfo_endpoint: str | None = Field(
        default=None, description="Userinfo endpoint returning directory attributes"
    )
    client_id: str = Field(default="gatekeeper", description="Client ID at the broker")
    client_secret: str | None = Field(
        default=None, description="Client secret at the broker"
    )
    scope: str = Field(
        default="openid profile email", description="Scopes requested on login"
    )
    timeout_seconds: float = Field(
        default=5.0, gt=0, description="Upper bound for one directory verification"
    )

    @property
    def configured(self) -> bool:
        return bool(self.token_endpoint and self.userinfo_endpoint)


class OIDCConfig(BaseModel):
    """Trust settings for bearer tokens issued by an external identity provider."""

    enabled: bool = Field(default=False, description="Accept externally issued tokens")
    issuer: str = Field(default="", description="Expected token issuer")
    audience: list[str] = Field(
        default_factory=list, description="Expected token audiences"
    )
    jwks_uri: str = Field(default="", description="JWKS endpoint of the issuer")
    allowed_algorithms: list[str] = Field(
        default_factory=lambda: ["RS256", "RS512", "ES256", "ES384"],
        description="JWT algorithms allowed for external token validation",
    )
    jwks_cache_ttl: int = Field(
        default=3600, description="Seconds a fetched JWKS document stays cached"
    )


class JWTConfig(BaseModel):
    """Settings for the access tokens this service issues."""

    signing_secret: str | None = Field(
        default=None, description="HMAC secret used to sign access tokens"
    )
    algorithm: Literal["HS256", "HS384", "HS512"] = Field(
        default="HS256", description="Signing algorithm for issued tokens"
    )
    issuer: str = Field(default="gatekeeper", description="Issuer of generated tokens")
    audience: str = Field(default="gatekeeper-api", description="Audience of generated tokens")
    lifetime_minutes: int = Field(
        default=60, gt=0, description="Lifetime of issued access tokens"
    )
    clock_skew: int = Field(
        default=0, ge=0, description="Clock skew tolerance in seconds for external tokens"
    )


class FallbackUserConfig(BaseModel):
    """A single development-only fallback account."""

    username: str
    password: str
    display_name: str
    email: str = ""
    groups: list[str] = Field(default_factory=list)


class FallbackConfig(BaseModel):
    """Development-only substitute for an unreachable directory."""

    enabled: bool = Field(
        default=False, description="Allow fallback accounts when the directory is down"
    )
    users: list[FallbackUserConfig] = Field(default_factory=list)


class LoggingConfig(BaseModel):
    """Logging configuration model."""

    level: str = Field(default="INFO", description="Logging level")
    format: Literal["json", "plain"] = Field(default="json", description="Log format")
    file: str = Field(default="logs/app.log", description="Log file path")
    max_size_mb: int = Field(default=10, description="Maximum log file size in MB")
    backup_count: int = Field(
        default=5, description="Number of backup log files to keep"
    )


class DatabaseConfig(BaseModel):
    """Database configuration model."""

    url: str = Field(
        default="sqlite:///./gatekeeper.db",
        description="Database connection URL",
    )
    pool_size: int = Field(default=20, description="Connection pool size")
    max_overflow: int = Field(default=10, description="Maximum pool overflow")
    pool_timeout: int = Field(default=30, description="Pool timeout in seconds")
    pool_recycle: int = Field(default=1800, description="Pool recycle time in seconds")
    password_env_var: str | None = Field(
        default=None,
        description="Environment variable name containing database password",
    )
    password_file: str | None = Field(
        default=None,
        description="Path to file containing database password",
    )

    @computed_field
    @property
    def password(self) -> str | None:
        """Resolve the database password from a secrets file or environment variable.

        Falls back to a password embedded in the URL when neither is configured.
        """
        if self.password_file:
            try:
                with open(self.password_file) as f:
                    return f.read().strip()
            except OSError as e:
                raise ValueError("Failed to read database password from file.") from e
        if self.password_env_var:
            password = os.getenv(self.password_env_var)
            if not password:
                raise ValueError(f"Environment variable {self.password_env_var} not set")
            return password

        from sqlalchemy.engine import make_url

        return make_url(self.url).password

    @computed_field
    @property
    def connection_string(self) -> str:
        """Construct the database connection string with the resolved password."""
        from sqlalchemy.engine import make_url

        base_url = make_url(self.url)
        if base_url.drivername.startswith("sqlite"):
            return self.url

        resolved_password = self.password
        if resolved_password and resolved_password != base_url.password:
            if base_url.password:
                logger.warning(
                    "Database password from secrets does not match the one in the URL. "
                    "Using the password from secrets."
                )
            base_url = base_url.set(password=resolved_password)
        # render_as_string keeps the password; str() would mask it
        return base_url.render_as_string(hide_password=False)


class AppConfig(BaseModel):
    """Application configuration model."""

    environment: Literal["development", "production", "test"] = Field(
        default="development", description="Application environment"
    )
    host: str = Field(default="localhost", description="Application host")
    port: int = Field(default=8000, description="Application port")
    trust_forwarded_for: bool = Field(
        default=False,
        description="Take the client address from X-Forwarded-For (behind a trusted proxy only)",
    )
    cors: CORSConfig = Field(
        default_factory=CORSConfig, description="CORS configuration"
    )

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def base_url(self) -> str:
        """Construct the base URL from host and port."""
        scheme = "https" if self.environment == "production" else "http"
        return f"{scheme}://{self.host}:{self.port}"


class ConfigData(BaseModel):
    """Root configuration model that matches the config.yaml structure."""

    app: AppConfig = Field(
        default_factory=AppConfig, description="Application configuration"
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    database: DatabaseConfig = Field(
        default_factory=DatabaseConfig, description="Database configuration"
    )
    directory: DirectoryConfig = Field(
        default_factory=DirectoryConfig, description="Directory connection"
    )
    oidc: OIDCConfig = Field(
        default_factory=OIDCConfig, description="External token issuer trust"
    )
    jwt: JWTConfig = Field(
        default_factory=JWTConfig, description="Issued access token settings"
    )
    fallback: FallbackConfig = Field(
        default_factory=FallbackConfig,
        description="Development-only fallback accounts",
    )
