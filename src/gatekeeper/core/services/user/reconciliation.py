from loguru import logger
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session

from src.gatekeeper.core.errors import PersistenceError
from src.gatekeeper.core.models.identity import Identity, Role
from src.gatekeeper.entities import User, UserRepository
from src.gatekeeper.entities._base import utc_now

MAX_RECONCILE_ATTEMPTS = 3


class IdentityReconciliationService:
    """Maps a freshly verified identity onto the local user record.

    Changes are flushed, not committed: the caller commits them together with
    the login audit entry. Reconcile must be the first write of its
    transaction because a uniqueness conflict rolls the transaction back.
    """

    def __init__(self, db_session: Session):
        self._db_session = db_session
        self._user_repo = UserRepository(db_session)

    def reconcile(self, identity: Identity, derived_role: Role) -> User:
        """Create the active user for ``identity`` or refresh the existing one.

        ``derived_role`` is only applied on creation. An existing user's role
        is left as stored.

        Raises:
            PersistenceError: if the user store fails or keeps conflicting.
        """
        username = identity.external_username
        for attempt in range(1, MAX_RECONCILE_ATTEMPTS + 1):
            try:
                existing = self._user_repo.get_by_external_username(username)
                if existing is not None:
                    return self._refresh(existing, identity)
                return self._create(identity, derived_role)
            except IntegrityError:
                # another request created the same user first
                self._db_session.rollback()
                logger.info(
                    "Concurrent creation of user {} (attempt {}/{}), re-reading",
                    username,
                    attempt,
                    MAX_RECONCILE_ATTEMPTS,
                )
            except SQLAlchemyError as exc:
                self._db_session.rollback()
                logger.error(
                    "User reconciliation failed",
                    username=username,
                    error_type=type(exc).__name__,
                )
                raise PersistenceError("user store unavailable") from exc

        raise PersistenceError(f"could not reconcile user after {MAX_RECONCILE_ATTEMPTS} attempts")

    def _create(self, identity: Identity, role: Role) -> User:
        now = utc_now()
        user = self._user_repo.create(
            User(
                external_username=identity.external_username,
                display_name=identity.display_name,
                email=identity.email,
                role=role,
                last_login_at=now,
                created_at=now,
                updated_at=now,
            )
        )
        logger.info("Created user {} with role {}", user.external_username, user.role.value)
        return user

    def _refresh(self, user: User, identity: Identity) -> User:
        refreshed = user.model_copy(
            update={
                "display_name": identity.display_name,
                "email": identity.email,
                "last_login_at": utc_now(),
            }
        )
        updated = self._user_repo.update(refreshed)
        if updated is None:
            # deactivated between lookup and update
            raise PersistenceError("user disappeared during reconciliation")
        return updated
