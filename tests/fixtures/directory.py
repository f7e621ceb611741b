from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import Any

import pytest

from src.gatekeeper.core.errors import IdentitySourceUnavailable
from src.gatekeeper.core.services.claims import identity_claims
from src.gatekeeper.core.services.directory import DirectoryClient


class FakeDirectory(DirectoryClient):
    """In-memory directory.

    ``accounts`` maps usernames to ``(password, claims)``. Setting
    ``unavailable`` makes every call fail as if the directory were down and
    ``delay`` makes every call take that many seconds.
    """

    def __init__(
        self,
        accounts: dict[str, tuple[str, dict[str, Any]]] | None = None,
        unavailable: bool = False,
        delay: float = 0.0,
    ) -> None:
        self.accounts = accounts or {}
        self.unavailable = unavailable
        self.delay = delay
        self.calls: list[str] = []

    def add_account(
        self, username: str, password: str, display_name: str, groups: list[str], email: str = ""
    ) -> None:
        self.accounts[username] = (
            password,
            identity_claims(username, display_name, email or f"{username}@corp.test", groups),
        )

    async def authenticate(self, username: str, password: str) -> Mapping[str, Any] | None:
        self.calls.append(username)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.unavailable:
            raise IdentitySourceUnavailable("directory down")
        account = self.accounts.get(username)
        if account is None or account[0] != password:
            return None
        return account[1]


@pytest.fixture
def directory() -> FakeDirectory:
    """Reachable directory with one account per role family."""
    directory = FakeDirectory()
    directory.add_account("alice", "alice-pw", "Alice Admin", ["CN=Domain Admins"])
    directory.add_account("viewer", "viewer123", "Directory Viewer", ["Staff"])
    directory.add_account("neweditor", "editor123", "New Editor", ["Content Editors"])
    return directory


@pytest.fixture
def unreachable_directory() -> FakeDirectory:
    return FakeDirectory(unavailable=True)
