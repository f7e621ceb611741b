"""User data access layer."""

from sqlmodel import Session, col, select

from src.gatekeeper.entities._base import utc_now
from src.gatekeeper.entities.core.user.entity import User
from src.gatekeeper.entities.core.user.table import UserTable


class UserRepository:
    """Data-access layer for users.

    Every lookup except ``get_any`` sees active rows only. Writes are flushed
    but never committed; transaction boundaries belong to the caller.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def _active_row(self, user_id: str) -> UserTable | None:
        row = self._session.get(UserTable, user_id)
        if row is None or not row.is_active:
            return None
        return row

    def get(self, user_id: str) -> User | None:
        row = self._active_row(user_id)
        if row is None:
            return None
        return User.model_validate(row, from_attributes=True)

    def get_any(self, user_id: str) -> User | None:
        """Load a user regardless of soft-delete state."""
        row = self._session.get(UserTable, user_id)
        if row is None:
            return None
        return User.model_validate(row, from_attributes=True)

    def get_by_external_username(self, external_username: str) -> User | None:
        statement = select(UserTable).where(
            (UserTable.external_username == external_username)
            & (col(UserTable.is_active).is_(True))
        )
        row = self._session.exec(statement).first()
        if row is None:
            return None
        return User.model_validate(row, from_attributes=True)

    def list_active(self) -> list[User]:
        statement = (
            select(UserTable)
            .where(col(UserTable.is_active).is_(True))
            .order_by(col(UserTable.display_name))
        )
        return [
            User.model_validate(row, from_attributes=True)
            for row in self._session.exec(statement)
        ]

    def create(self, user: User) -> User:
        """Insert ``user``.

        Raises:
            sqlalchemy.exc.IntegrityError: if an active user with the same
                external username already exists.
        """
        row = UserTable(
            id=user.id,
            external_username=user.external_username,
            display_name=user.display_name,
            email=user.email,
            role=user.role.value,
            last_login_at=user.last_login_at,
            created_at=user.created_at,
            updated_at=user.updated_at,
            is_active=user.is_active,
        )
        self._session.add(row)
        self._session.flush()
        return User.model_validate(row, from_attributes=True)

    def update(self, user: User) -> User | None:
        row = self._active_row(user.id)
        if row is None:
            return None
        row.display_name = user.display_name
        row.email = user.email
        row.role = user.role.value
        row.last_login_at = user.last_login_at
        row.updated_at = utc_now()
        self._session.add(row)
        self._session.flush()
        return User.model_validate(row, from_attributes=True)

    def deactivate(self, user_id: str) -> bool:
        """Soft-delete a user. Returns False if no active user matched."""
        row = self._active_row(user_id)
        if row is None:
            return False
        row.is_active = False
        row.updated_at = utc_now()
        self._session.add(row)
        self._session.flush()
        return True
