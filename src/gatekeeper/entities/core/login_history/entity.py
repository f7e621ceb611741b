"""Login history domain entity."""

from datetime import datetime

from pydantic import Field

from src.gatekeeper.entities._base import Entity, utc_now

USERNAME_MAX_LENGTH = 256
SOURCE_ADDRESS_MAX_LENGTH = 45
TEXT_MAX_LENGTH = 500


class LoginHistoryEntry(Entity):
    """One authentication attempt, successful or not. Never mutated."""

    username: str = Field(description="Username as attempted, even if unknown")
    timestamp: datetime = Field(default_factory=utc_now)
    success: bool
    failure_reason: str | None = Field(default=None, description="Error reason code")
    source_address: str | None = None
    user_agent: str | None = None
    user_id: str | None = Field(default=None, description="Matched user, if any")
