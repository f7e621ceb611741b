"""Login history data access layer."""

from sqlmodel import Session, col, select

from src.gatekeeper.entities.core.login_history.entity import LoginHistoryEntry
from src.gatekeeper.entities.core.login_history.table import LoginHistoryTable


class LoginHistoryRepository:
    """Data-access layer for login history. Insert and read only."""

    def __init__(self, session: Session) -> None:
        self._session = session

    def add(self, entry: LoginHistoryEntry) -> LoginHistoryEntry:
        row = LoginHistoryTable.model_validate(entry.model_dump())
        self._session.add(row)
        self._session.flush()
        return LoginHistoryEntry.model_validate(row, from_attributes=True)

    def _newest_first(self, statement, limit: int | None = None) -> list[LoginHistoryEntry]:
        statement = statement.order_by(col(LoginHistoryTable.timestamp).desc())
        if limit is not None:
            statement = statement.limit(limit)
        return [
            LoginHistoryEntry.model_validate(row, from_attributes=True)
            for row in self._session.exec(statement)
        ]

    def list_by_username(self, username: str) -> list[LoginHistoryEntry]:
        return self._newest_first(
            select(LoginHistoryTable).where(LoginHistoryTable.username == username)
        )

    def list_by_user_id(self, user_id: str) -> list[LoginHistoryEntry]:
        return self._newest_first(
            select(LoginHistoryTable).where(LoginHistoryTable.user_id == user_id)
        )

    def recent(self, count: int = 10) -> list[LoginHistoryEntry]:
        return self._newest_first(select(LoginHistoryTable), limit=count)
