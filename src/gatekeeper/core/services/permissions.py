"""Static role to permission table."""

from src.gatekeeper.core.models.identity import Role

CONTENT_READ = "content:read"
CONTENT_CREATE = "content:create"
CONTENT_UPDATE = "content:update"
CONTENT_DELETE = "content:delete"
USERS_READ = "users:read"
USERS_UPDATE = "users:update"
USERS_DELETE = "users:delete"
SYSTEM_ADMIN = "system:admin"

ROLE_PERMISSIONS: dict[Role, tuple[str, ...]] = {
    Role.ADMIN: (
        CONTENT_READ,
        CONTENT_CREATE,
        CONTENT_UPDATE,
        CONTENT_DELETE,
        USERS_READ,
        USERS_UPDATE,
        USERS_DELETE,
        SYSTEM_ADMIN,
    ),
    Role.EDITOR: (CONTENT_READ, CONTENT_CREATE, CONTENT_UPDATE),
    Role.VIEWER: (CONTENT_READ,),
}


def permissions_for(role: Role | str | None) -> tuple[str, ...]:
    """Return the ordered permissions granted to ``role``.

    Unrecognized roles resolve to the Viewer set, never to an empty set.
    """
    resolved = role if isinstance(role, Role) else Role.parse(role)
    return ROLE_PERMISSIONS[resolved or Role.VIEWER]


def has_permission(role: Role | str | None, permission: str) -> bool:
    return permission in permissions_for(role)
