"""Login history database table model."""

from datetime import datetime

import sqlalchemy as sa
from sqlmodel import Field

from src.gatekeeper.entities._base import EntityTable, utc_now
from src.gatekeeper.entities.core.login_history.entity import (
    SOURCE_ADDRESS_MAX_LENGTH,
    TEXT_MAX_LENGTH,
    USERNAME_MAX_LENGTH,
)


class LoginHistoryTable(EntityTable, table=True):
    """Append-only persistence model for authentication attempts."""

    __tablename__ = "login_history"

    username: str = Field(max_length=USERNAME_MAX_LENGTH, nullable=False, index=True)
    timestamp: datetime = Field(
        default_factory=utc_now,
        sa_type=sa.DateTime(timezone=True),
        nullable=False,
        index=True,
    )
    success: bool = Field(nullable=False)
    failure_reason: str | None = Field(default=None, max_length=TEXT_MAX_LENGTH)
    source_address: str | None = Field(
        default=None, max_length=SOURCE_ADDRESS_MAX_LENGTH
    )
    user_agent: str | None = Field(default=None, max_length=TEXT_MAX_LENGTH)
    user_id: str | None = Field(default=None, foreign_key="users.id", index=True)
