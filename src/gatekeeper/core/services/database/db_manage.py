"""Schema management for the application database."""

from loguru import logger
from sqlalchemy import Engine
from sqlmodel import SQLModel


class DbManageService:
    def __init__(self, engine: Engine):
        self._engine = engine

    def create_all(self) -> None:
        """Create all database tables."""
        from src.gatekeeper.entities.core.login_history import (  # noqa: F401
            LoginHistoryTable,
        )
        from src.gatekeeper.entities.core.user import UserTable  # noqa: F401

        SQLModel.metadata.create_all(self._engine)
        logger.info("Database initialized with tables.")
