"""Development-only stand-in for an unreachable directory."""

import hmac
from collections.abc import Mapping
from typing import Any

from loguru import logger

from src.gatekeeper.core.services.claims import identity_claims
from src.gatekeeper.runtime.config.config_data import ConfigData, FallbackUserConfig


class DevelopmentFallbackDirectory:
    """Fixed table of accounts consulted only when the real directory is down.

    Never construct this outside development; use ``build_fallback_directory``.
    """

    def __init__(self, users: list[FallbackUserConfig]) -> None:
        self._users = {user.username: user for user in users}

    def __len__(self) -> int:
        return len(self._users)

    def authenticate(self, username: str, password: str) -> Mapping[str, Any] | None:
        user = self._users.get(username)
        # compare against a dummy when the user is unknown so timing is uniform
        expected = user.password if user else "\x00"
        matched = hmac.compare_digest(password.encode(), expected.encode())
        if user is None or not matched:
            return None
        return identity_claims(
            username=user.username,
            display_name=user.display_name,
            email=user.email,
            groups=user.groups,
        )


def build_fallback_directory(config: ConfigData) -> DevelopmentFallbackDirectory | None:
    """Return the fallback directory if this environment permits one."""
    if config.app.environment != "development" or not config.fallback.enabled:
        return None
    if not config.fallback.users:
        return None
    logger.warning(
        "Development fallback directory enabled with {} accounts; "
        "it is used only while the directory is unreachable",
        len(config.fallback.users),
    )
    return DevelopmentFallbackDirectory(config.fallback.users)
