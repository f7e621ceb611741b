"""Database initialization script."""

from src.gatekeeper.core.services.database import DbManageService, DbSessionService
from src.gatekeeper.runtime.context import get_config


def init_db() -> None:
    """Create all database tables."""
    db_session_service = DbSessionService(get_config())
    DbManageService(db_session_service.engine).create_all()


if __name__ == "__main__":
    init_db()
