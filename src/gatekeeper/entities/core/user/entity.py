"""User domain entity."""

from datetime import datetime

from pydantic import Field

from src.gatekeeper.core.models.identity import Role
from src.gatekeeper.entities._base import Entity, utc_now


class User(Entity):
    """Local record of an externally authenticated person.

    Keyed by ``external_username``. Kept for audit trail and last-login
    tracking; ``role`` is a snapshot taken at creation and only an
    administrator changes it afterwards.
    """

    external_username: str = Field(description="Username at the identity source")
    display_name: str = Field(default="", description="User's display name")
    email: str = Field(default="", description="User's email address")
    role: Role = Field(default=Role.VIEWER, description="Role snapshot")
    last_login_at: datetime = Field(
        default_factory=utc_now, description="Last successful authentication"
    )
    updated_at: datetime = Field(default_factory=utc_now)
    is_active: bool = Field(default=True, description="False once soft-deleted")
