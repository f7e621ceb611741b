"""Identity, role and verification models shared across the authentication flow."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from src.gatekeeper.core.errors import AuthenticationError


class Role(str, Enum):
    """Application role, ordered by privilege (Admin > Editor > Viewer)."""

    ADMIN = "Admin"
    EDITOR = "Editor"
    VIEWER = "Viewer"

    @property
    def rank(self) -> int:
        return _ROLE_RANK[self]

    # str already defines ordering, so every comparison is overridden
    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Role):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Role):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Role):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Role):
            return NotImplemented
        return self.rank >= other.rank

    @classmethod
    def parse(cls, value: str | None) -> Role | None:
        """Case-insensitive lookup of a role name; ``None`` if unrecognized."""
        if not value:
            return None
        lowered = value.strip().lower()
        for role in cls:
            if role.value.lower() == lowered:
                return role
        return None


_ROLE_RANK = {Role.VIEWER: 0, Role.EDITOR: 1, Role.ADMIN: 2}


class Identity(BaseModel):
    """Normalized identity produced fresh on every authentication event."""

    model_config = ConfigDict(frozen=True)

    external_username: str = Field(description="Username at the identity source")
    display_name: str = Field(description="Human readable name")
    email: str = Field(default="", description="Email address, empty if unknown")
    groups: frozenset[str] = Field(
        default_factory=frozenset, description="Directory groups or token roles"
    )


@dataclass(frozen=True)
class PasswordCredentials:
    username: str
    password: str

    def __repr__(self) -> str:
        return f"PasswordCredentials(username={self.username!r}, password='***')"


@dataclass(frozen=True)
class BearerCredentials:
    token: str

    def __repr__(self) -> str:
        return "BearerCredentials(token='***')"


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of a credential or token verification.

    Exactly one of ``identity`` and ``error`` is set.
    """

    identity: Identity | None = None
    error: AuthenticationError | None = None

    @classmethod
    def valid(cls, identity: Identity) -> VerificationResult:
        return cls(identity=identity)

    @classmethod
    def invalid(cls, error: AuthenticationError) -> VerificationResult:
        return cls(error=error)

    @property
    def is_valid(self) -> bool:
        return self.identity is not None
