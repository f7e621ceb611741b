"""Client for the external directory that verifies username/password pairs."""

import base64
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

import httpx
from loguru import logger
from pydantic import BaseModel, ValidationError

from src.gatekeeper.core.errors import IdentitySourceUnavailable
from src.gatekeeper.runtime.config.config_data import DirectoryConfig


class DirectoryClient(ABC):
    @abstractmethod
    async def authenticate(self, username: str, password: str) -> Mapping[str, Any] | None:
        """
        Check a username/password pair against the directory.

        Returns:
            The directory's attribute record on success, ``None`` when the
            directory rejects the credentials.

        Raises:
            IdentitySourceUnavailable: if the directory cannot be reached.
        """
        raise NotImplementedError


class TokenResponse(BaseModel):
    """Token endpoint response; only the access token is used."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int | None = None


class HttpDirectoryClient(DirectoryClient):
    """Directory fronted by an identity broker (for example a Keycloak realm
    federating LDAP or Active Directory).

    The password is checked with the resource-owner password grant and the
    account attributes are read from the userinfo endpoint with the token
    that grant returns.
    """

    def __init__(
        self,
        config: DirectoryConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config
        self._transport = transport

    def _client_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/x-www-form-urlencoded"}
        if self._config.client_secret:
            credentials = f"{self._config.client_id}:{self._config.client_secret}"
            encoded_credentials = base64.b64encode(credentials.encode()).decode()
            headers["Authorization"] = f"Basic {encoded_credentials}"
        return headers

    async def authenticate(self, username: str, password: str) -> Mapping[str, Any] | None:
        if not self._config.configured:
            raise IdentitySourceUnavailable("directory endpoints not configured")

        token_data = {
            "grant_type": "password",
            "username": username,
            "password": password,
            "client_id": self._config.client_id,
            "scope": self._config.scope,
        }

        try:
            async with httpx.AsyncClient(
                timeout=self._config.timeout_seconds, transport=self._transport
            ) as client:
                response = await client.post(
                    self._config.token_endpoint,
                    data=token_data,
                    headers=self._client_headers(),
                )
                if response.status_code in (400, 401):
                    logger.debug(
                        "Directory rejected credentials for {} ({})",
                        username,
                        response.status_code,
                    )
                    return None
                response.raise_for_status()
                tokens = TokenResponse.model_validate(response.json())

                response = await client.get(
                    self._config.userinfo_endpoint,
                    headers={"Authorization": f"Bearer {tokens.access_token}"},
                )
                response.raise_for_status()
                claims = response.json()
        except httpx.HTTPError as exc:
            raise IdentitySourceUnavailable(
                f"directory request failed: {type(exc).__name__}"
            ) from exc
        except (ValidationError, ValueError) as exc:
            raise IdentitySourceUnavailable("directory returned a malformed response") from exc

        if not isinstance(claims, dict):
            raise IdentitySourceUnavailable("directory returned a malformed userinfo record")
        return claims
