"""User database table model."""

from datetime import datetime

import sqlalchemy as sa
from sqlmodel import Field

from src.gatekeeper.entities._base import EntityTable, utc_now


class UserTable(EntityTable, table=True):
    """Database persistence model for users.

    The partial unique index allows at most one *active* row per external
    username while soft-deleted rows stay behind for the audit trail.
    """

    __tablename__ = "users"
    __table_args__ = (
        sa.Index(
            "uq_users_active_external_username",
            "external_username",
            unique=True,
            sqlite_where=sa.text("is_active = 1"),
            postgresql_where=sa.text("is_active"),
        ),
    )

    external_username: str = Field(max_length=256, nullable=False, index=True)
    display_name: str = Field(default="", max_length=256)
    email: str = Field(default="", max_length=256)
    role: str = Field(default="Viewer", max_length=50, nullable=False)
    last_login_at: datetime = Field(
        default_factory=utc_now, sa_type=sa.DateTime(timezone=True), nullable=False
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_type=sa.DateTime(timezone=True),
        nullable=False,
        sa_column_kwargs={"onupdate": utc_now},
    )
    is_active: bool = Field(default=True, nullable=False)
