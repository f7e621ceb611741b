"""Unit tests for role derivation and the permission table."""

import pytest

from src.gatekeeper.core.models.identity import Role
from src.gatekeeper.core.services import permissions
from src.gatekeeper.core.services.permissions import has_permission, permissions_for
from src.gatekeeper.core.services.roles import derive_role


class TestDeriveRole:
    """Group names map to exactly one role."""

    @pytest.mark.parametrize(
        "groups",
        [
            ["Administrators"],
            ["/admin"],
            ["CN=Domain Admins,OU=Groups"],
            ["SYSTEM ADMINISTRATOR"],
        ],
    )
    def test_admin_markers(self, groups):
        assert derive_role(groups) is Role.ADMIN

    def test_editor_marker(self):
        assert derive_role(["Content Editors"]) is Role.EDITOR

    def test_admin_wins_over_editor(self):
        assert derive_role(["Editors", "Staff", "Admins"]) is Role.ADMIN

    def test_no_marker_is_viewer(self):
        assert derive_role(["Staff", "Viewers"]) is Role.VIEWER

    def test_empty_groups_is_viewer(self):
        assert derive_role([]) is Role.VIEWER
        assert derive_role(frozenset()) is Role.VIEWER

    def test_substring_match_is_broad(self):
        """Any group that merely contains a marker elevates."""
        assert derive_role(["NonAdminStuff"]) is Role.ADMIN
        assert derive_role(["EditorialReaders"]) is Role.EDITOR

    def test_case_insensitive(self):
        assert derive_role(["aDmInIsTrAtOrS"]) is Role.ADMIN
        assert derive_role(["EDITOR"]) is Role.EDITOR


class TestRole:
    def test_privilege_ordering(self):
        assert Role.ADMIN > Role.EDITOR > Role.VIEWER
        assert Role.VIEWER < Role.ADMIN
        assert Role.EDITOR >= Role.EDITOR
        assert sorted([Role.ADMIN, Role.VIEWER, Role.EDITOR]) == [
            Role.VIEWER,
            Role.EDITOR,
            Role.ADMIN,
        ]

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("Admin", Role.ADMIN),
            ("admin", Role.ADMIN),
            (" EDITOR ", Role.EDITOR),
            ("viewer", Role.VIEWER),
            ("superuser", None),
            ("", None),
            (None, None),
        ],
    )
    def test_parse(self, value, expected):
        assert Role.parse(value) is expected


class TestPermissions:
    def test_admin_permissions_in_order(self):
        assert permissions_for(Role.ADMIN) == (
            "content:read",
            "content:create",
            "content:update",
            "content:delete",
            "users:read",
            "users:update",
            "users:delete",
            "system:admin",
        )

    def test_editor_permissions(self):
        assert permissions_for(Role.EDITOR) == (
            "content:read",
            "content:create",
            "content:update",
        )

    def test_viewer_permissions(self):
        assert permissions_for(Role.VIEWER) == ("content:read",)

    @pytest.mark.parametrize("role", [None, "", "Superuser", "root"])
    def test_unknown_role_falls_back_to_viewer(self, role):
        assert permissions_for(role) == permissions_for(Role.VIEWER)

    def test_string_roles_are_parsed(self):
        assert permissions_for("admin") == permissions_for(Role.ADMIN)

    def test_has_permission(self):
        assert has_permission(Role.ADMIN, permissions.SYSTEM_ADMIN)
        assert not has_permission(Role.EDITOR, permissions.CONTENT_DELETE)
        assert not has_permission("nobody", permissions.USERS_READ)

    def test_permission_sets_are_nested(self):
        """Every role holds at least the permissions of the roles below it."""
        viewer = set(permissions_for(Role.VIEWER))
        editor = set(permissions_for(Role.EDITOR))
        admin = set(permissions_for(Role.ADMIN))
        assert viewer < editor < admin
