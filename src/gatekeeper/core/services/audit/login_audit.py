"""Append-only record of every authentication attempt."""

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from src.gatekeeper.entities import LoginHistoryEntry, LoginHistoryRepository
from src.gatekeeper.entities.core.login_history.entity import (
    SOURCE_ADDRESS_MAX_LENGTH,
    TEXT_MAX_LENGTH,
    USERNAME_MAX_LENGTH,
)


def _clip(value: str | None, limit: int) -> str | None:
    if value is None:
        return None
    return value[:limit]


class LoginAuditLog:
    def __init__(self, db_session: Session):
        self._db_session = db_session
        self._repo = LoginHistoryRepository(db_session)

    @staticmethod
    def _entry(
        username: str,
        success: bool,
        failure_reason: str | None,
        source_address: str | None,
        user_agent: str | None,
        user_id: str | None,
    ) -> LoginHistoryEntry:
        return LoginHistoryEntry(
            username=username[:USERNAME_MAX_LENGTH],
            success=success,
            failure_reason=_clip(failure_reason, TEXT_MAX_LENGTH),
            source_address=_clip(source_address, SOURCE_ADDRESS_MAX_LENGTH),
            user_agent=_clip(user_agent, TEXT_MAX_LENGTH),
            user_id=user_id,
        )

    def stage(
        self,
        username: str,
        success: bool,
        failure_reason: str | None = None,
        source_address: str | None = None,
        user_agent: str | None = None,
        user_id: str | None = None,
    ) -> LoginHistoryEntry:
        """Add an entry to the caller's transaction without committing it.

        Storage errors propagate so the caller can abort its transaction.
        """
        return self._repo.add(
            self._entry(username, success, failure_reason, source_address, user_agent, user_id)
        )

    def record(
        self,
        username: str,
        success: bool,
        failure_reason: str | None = None,
        source_address: str | None = None,
        user_agent: str | None = None,
        user_id: str | None = None,
    ) -> LoginHistoryEntry | None:
        """Write and commit an entry on its own.

        Failures are logged and swallowed; an audit write never changes the
        outcome of the attempt being recorded. Returns ``None`` in that case.
        """
        try:
            entry = self.stage(
                username, success, failure_reason, source_address, user_agent, user_id
            )
            self._db_session.commit()
            return entry
        except SQLAlchemyError as exc:
            self._db_session.rollback()
            logger.error(
                "Failed to write login audit entry",
                username=username,
                success=success,
                failure_reason=failure_reason,
                error_type=type(exc).__name__,
            )
            return None

    def history_for_username(self, username: str) -> list[LoginHistoryEntry]:
        return self._repo.list_by_username(username)

    def history_for_user(self, user_id: str) -> list[LoginHistoryEntry]:
        return self._repo.list_by_user_id(user_id)

    def recent(self, count: int = 10) -> list[LoginHistoryEntry]:
        return self._repo.recent(count)
