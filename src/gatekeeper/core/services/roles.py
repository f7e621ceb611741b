"""Role derivation from directory groups or token roles."""

from collections.abc import Iterable

from src.gatekeeper.core.models.identity import Role

# Case-insensitive *substring* markers, checked in precedence order.
#
# This is a broad-match policy and it is security relevant: any group whose
# name merely contains a marker elevates, so "NonAdminStuff" yields Admin and
# "EditorialReaders" yields Editor. Directory group names must be curated
# with that in mind.
ROLE_MARKERS: tuple[tuple[Role, tuple[str, ...]], ...] = (
    (Role.ADMIN, ("admin", "administrator")),
    (Role.EDITOR, ("editor",)),
)


def derive_role(groups: Iterable[str]) -> Role:
    """Map group names to exactly one application role.

    Admin wins over Editor regardless of the other groups present; anything
    else, including no groups at all, is Viewer.
    """
    lowered = [g.lower() for g in groups if g]
    for role, markers in ROLE_MARKERS:
        if any(marker in group for group in lowered for marker in markers):
            return role
    return Role.VIEWER
