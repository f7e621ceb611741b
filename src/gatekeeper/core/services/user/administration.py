from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from src.gatekeeper.core.errors import BadInput, PersistenceError
from src.gatekeeper.core.models.identity import Role
from src.gatekeeper.entities import User, UserRepository


class UserAdministrationService:
    """Administrative user management. The only path that changes a role."""

    def __init__(self, db_session: Session):
        self._db_session = db_session
        self._user_repo = UserRepository(db_session)

    def list_users(self) -> list[User]:
        return self._user_repo.list_active()

    def get_user(self, user_id: str) -> User | None:
        return self._user_repo.get(user_id)

    def update_user(
        self,
        user_id: str,
        display_name: str | None = None,
        email: str | None = None,
        role: Role | str | None = None,
    ) -> User | None:
        """Apply the given changes; fields left as ``None`` are untouched.

        Returns:
            The updated user, or ``None`` if no active user has ``user_id``.

        Raises:
            BadInput: if ``role`` is not a known role name.
        """
        changes: dict = {}
        if display_name is not None:
            changes["display_name"] = display_name
        if email is not None:
            changes["email"] = email
        if role is not None:
            parsed = role if isinstance(role, Role) else Role.parse(role)
            if parsed is None:
                raise BadInput(f"unknown role: {role}")
            changes["role"] = parsed

        user = self._user_repo.get(user_id)
        if user is None:
            return None

        updated = self._commit(lambda: self._user_repo.update(user.model_copy(update=changes)))
        if "role" in changes and changes["role"] != user.role:
            logger.info(
                "Role of {} changed from {} to {}",
                user.external_username,
                user.role.value,
                changes["role"].value,
            )
        return updated

    def deactivate_user(self, user_id: str) -> bool:
        """Soft-delete a user. Returns False if no active user matched."""
        deactivated = self._commit(lambda: self._user_repo.deactivate(user_id))
        if deactivated:
            logger.info("Deactivated user {}", user_id)
        return deactivated

    def _commit(self, operation):
        try:
            result = operation()
            self._db_session.commit()
            return result
        except SQLAlchemyError as exc:
            self._db_session.rollback()
            logger.error(
                "User administration write failed",
                error_type=type(exc).__name__,
                error_message=str(exc),
            )
            raise PersistenceError("user store unavailable") from exc
