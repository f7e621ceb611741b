"""Entities organized by business concept.

Each entity package contains:
- entity.py: Domain model
- table.py: Database persistence model
- repository.py: Data access layer
"""

from .core.login_history import (
    LoginHistoryEntry,
    LoginHistoryRepository,
    LoginHistoryTable,
)
from .core.user import User, UserRepository, UserTable

__all__ = [
    "User",
    "UserTable",
    "UserRepository",
    "LoginHistoryEntry",
    "LoginHistoryTable",
    "LoginHistoryRepository",
]
