"""Unit tests for identity reconciliation and user administration."""

import threading

import pytest
from sqlalchemy.exc import OperationalError
from sqlmodel import Session, col, select

from src.gatekeeper.core.errors import BadInput, PersistenceError
from src.gatekeeper.core.models.identity import Identity, Role
from src.gatekeeper.core.services.user import (
    IdentityReconciliationService,
    UserAdministrationService,
)
from src.gatekeeper.entities import UserRepository, UserTable


def _identity(username="jdoe", display_name="John Doe", email="jdoe@corp.test", groups=()):
    return Identity(
        external_username=username,
        display_name=display_name,
        email=email,
        groups=frozenset(groups),
    )


def _active_rows(session: Session, username: str) -> list[UserTable]:
    statement = select(UserTable).where(
        (UserTable.external_username == username) & (col(UserTable.is_active).is_(True))
    )
    return list(session.exec(statement))


class TestReconcile:
    def test_creates_user_on_first_login(
        self, session: Session, reconciliation_service: IdentityReconciliationService
    ):
        user = reconciliation_service.reconcile(_identity(), Role.EDITOR)
        session.commit()

        assert user.external_username == "jdoe"
        assert user.display_name == "John Doe"
        assert user.email == "jdoe@corp.test"
        assert user.role is Role.EDITOR
        assert user.is_active
        assert len(_active_rows(session, "jdoe")) == 1

    def test_updates_profile_but_never_role(
        self, session: Session, reconciliation_service: IdentityReconciliationService
    ):
        first = reconciliation_service.reconcile(_identity(), Role.VIEWER)
        session.commit()

        second = reconciliation_service.reconcile(
            _identity(display_name="Johnny Doe", email="johnny@corp.test"), Role.ADMIN
        )
        session.commit()

        assert second.id == first.id
        assert second.display_name == "Johnny Doe"
        assert second.email == "johnny@corp.test"
        assert second.role is Role.VIEWER
        assert second.last_login_at >= first.last_login_at

    def test_username_match_is_case_sensitive(
        self, session: Session, reconciliation_service: IdentityReconciliationService
    ):
        lower = reconciliation_service.reconcile(_identity("jdoe"), Role.VIEWER)
        upper = reconciliation_service.reconcile(_identity("JDoe"), Role.VIEWER)
        session.commit()
        assert lower.id != upper.id

    def test_does_not_commit(self, session: Session):
        IdentityReconciliationService(session).reconcile(_identity(), Role.VIEWER)
        assert len(_active_rows(session, "jdoe")) == 1

        session.rollback()
        assert _active_rows(session, "jdoe") == []

    def test_soft_deleted_user_is_recreated(
        self, session: Session, reconciliation_service: IdentityReconciliationService
    ):
        original = reconciliation_service.reconcile(_identity(), Role.ADMIN)
        session.commit()
        UserRepository(session).deactivate(original.id)
        session.commit()

        recreated = reconciliation_service.reconcile(_identity(), Role.VIEWER)
        session.commit()

        assert recreated.id != original.id
        assert recreated.role is Role.VIEWER
        assert UserRepository(session).get_any(original.id).is_active is False

    def test_conflicting_insert_falls_back_to_update(
        self, session: Session, monkeypatch: pytest.MonkeyPatch
    ):
        existing = IdentityReconciliationService(session).reconcile(_identity(), Role.EDITOR)
        session.commit()

        service = IdentityReconciliationService(session)
        real_lookup = service._user_repo.get_by_external_username
        lookups = []

        def racing_lookup(username):
            # the first lookup misses, as if another request had not committed yet
            lookups.append(username)
            return None if len(lookups) == 1 else real_lookup(username)

        monkeypatch.setattr(service._user_repo, "get_by_external_username", racing_lookup)

        user = service.reconcile(_identity(display_name="Updated"), Role.ADMIN)
        session.commit()

        assert len(lookups) == 2
        assert user.id == existing.id
        assert user.display_name == "Updated"
        assert user.role is Role.EDITOR
        assert len(_active_rows(session, "jdoe")) == 1

    def test_gives_up_after_repeated_conflicts(
        self, session: Session, monkeypatch: pytest.MonkeyPatch
    ):
        IdentityReconciliationService(session).reconcile(_identity(), Role.EDITOR)
        session.commit()

        service = IdentityReconciliationService(session)
        monkeypatch.setattr(service._user_repo, "get_by_external_username", lambda u: None)

        with pytest.raises(PersistenceError):
            service.reconcile(_identity(), Role.EDITOR)

    def test_storage_failure_is_persistence_error(
        self, session: Session, monkeypatch: pytest.MonkeyPatch
    ):
        service = IdentityReconciliationService(session)

        def broken(username):
            raise OperationalError("SELECT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(service._user_repo, "get_by_external_username", broken)

        with pytest.raises(PersistenceError):
            service.reconcile(_identity(), Role.VIEWER)

    def test_concurrent_first_logins_create_one_user(self, file_engine):
        barrier = threading.Barrier(4)
        results = []
        errors = []

        def first_login():
            with Session(file_engine, expire_on_commit=False) as session:
                try:
                    barrier.wait()
                    user = IdentityReconciliationService(session).reconcile(
                        _identity("neweditor", "New Editor"), Role.EDITOR
                    )
                    session.commit()
                    results.append(user)
                except Exception as exc:  # surfaced by the assertions below
                    errors.append(exc)

        threads = [threading.Thread(target=first_login) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert errors == []
        assert len({user.id for user in results}) == 1
        with Session(file_engine) as session:
            rows = _active_rows(session, "neweditor")
        assert len(rows) == 1
        assert rows[0].role == "Editor"


class TestUserAdministration:
    @pytest.fixture
    def user(self, session: Session, reconciliation_service: IdentityReconciliationService):
        user = reconciliation_service.reconcile(_identity(), Role.VIEWER)
        session.commit()
        return user

    def test_list_users_sorted_by_display_name(
        self,
        session: Session,
        reconciliation_service: IdentityReconciliationService,
        user_admin_service: UserAdministrationService,
    ):
        for username, name in [("zed", "Zed"), ("amy", "Amy"), ("max", "Max")]:
            reconciliation_service.reconcile(_identity(username, name), Role.VIEWER)
        session.commit()

        names = [u.display_name for u in user_admin_service.list_users()]
        assert names == ["Amy", "Max", "Zed"]

    def test_update_role(self, user, user_admin_service: UserAdministrationService):
        updated = user_admin_service.update_user(user.id, role="admin")
        assert updated.role is Role.ADMIN
        assert user_admin_service.get_user(user.id).role is Role.ADMIN

    def test_role_change_survives_next_login(
        self,
        user,
        session: Session,
        reconciliation_service: IdentityReconciliationService,
        user_admin_service: UserAdministrationService,
    ):
        user_admin_service.update_user(user.id, role=Role.EDITOR)
        again = reconciliation_service.reconcile(_identity(), Role.VIEWER)
        session.commit()
        assert again.role is Role.EDITOR

    def test_partial_update_keeps_other_fields(
        self, user, user_admin_service: UserAdministrationService
    ):
        updated = user_admin_service.update_user(user.id, display_name="J. Doe")
        assert updated.display_name == "J. Doe"
        assert updated.email == "jdoe@corp.test"
        assert updated.role is Role.VIEWER

    def test_invalid_role(self, user, user_admin_service: UserAdministrationService):
        with pytest.raises(BadInput):
            user_admin_service.update_user(user.id, role="Overlord")
        assert user_admin_service.get_user(user.id).role is Role.VIEWER

    def test_update_unknown_user(self, user_admin_service: UserAdministrationService):
        assert user_admin_service.update_user("missing", display_name="x") is None

    def test_deactivate(self, user, user_admin_service: UserAdministrationService):
        assert user_admin_service.deactivate_user(user.id) is True
        assert user_admin_service.get_user(user.id) is None
        assert user_admin_service.list_users() == []
        assert user_admin_service.deactivate_user(user.id) is False
