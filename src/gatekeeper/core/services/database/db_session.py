"""Database engine and session factory used across the application."""

from collections.abc import Iterator
from contextlib import contextmanager

from loguru import logger
from sqlalchemy import Engine, text
from sqlalchemy.engine import make_url
from sqlmodel import Session, create_engine

from src.gatekeeper.runtime.config.config_data import ConfigData
from src.gatekeeper.runtime.context import get_config


class DbSessionService:
    def __init__(self, config: ConfigData | None = None, engine: Engine | None = None):
        """Initialize the shared database engine and session factory.

        Args:
            config: Configuration to build the engine from (defaults to current config)
            engine: Pre-built engine, used by tests to share an in-memory database
        """
        main_config = config or get_config()
        if engine is not None:
            self._engine = engine
            return

        db_config = main_config.database
        logger.info(
            "Configuring database engine for environment: {}", main_config.app.environment
        )
        self._engine = create_engine(
            db_config.connection_string, **self._engine_kwargs(main_config)
        )

    @staticmethod
    def _engine_kwargs(config: ConfigData) -> dict:
        db_config = config.database
        url = make_url(db_config.url)

        if url.drivername.startswith("sqlite"):
            if config.app.environment == "production":
                logger.warning(
                    "SQLite is not recommended for production use. "
                    "Consider PostgreSQL for better performance and reliability."
                )
            return {
                "echo": False,
                # busy timeout for concurrent first logins
                "connect_args": {"check_same_thread": False, "timeout": 20},
            }

        return {
            "pool_size": db_config.pool_size,
            "max_overflow": db_config.max_overflow,
            "pool_timeout": db_config.pool_timeout,
            "pool_recycle": db_config.pool_recycle,
            "pool_pre_ping": True,
            "echo": False,
            "connect_args": {
                "application_name": f"{config.app.environment}_gatekeeper",
                "connect_timeout": 30,
            },
        }

    @property
    def engine(self) -> Engine:
        return self._engine

    def get_session(self) -> Session:
        """Return a new SQLModel session bound to the shared engine."""
        return Session(
            self._engine,
            expire_on_commit=False,
            autoflush=True,
        )

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Transactional scope: commit on success, roll back on error."""
        db = self.get_session()
        try:
            yield db
            db.commit()
        except Exception as e:
            db.rollback()
            logger.error(
                "Database transaction failed",
                error_type=type(e).__name__,
                error_message=str(e),
            )
            raise
        finally:
            db.close()

    def health_check(self) -> bool:
        """Perform a health check on the database connection."""
        try:
            with self._engine.connect() as connection:
                connection.execute(text("SELECT 1"))
                return True
        except Exception as e:
            logger.error(
                "Database health check failed",
                error_type=type(e).__name__,
                error_message=str(e),
            )
            return False
