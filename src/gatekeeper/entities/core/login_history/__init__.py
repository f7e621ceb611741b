"""Login history entity module.

- LoginHistoryEntry: Domain entity for one authentication attempt
- LoginHistoryTable: Database persistence model
- LoginHistoryRepository: Data access layer
"""

from .entity import LoginHistoryEntry
from .repository import LoginHistoryRepository
from .table import LoginHistoryTable

__all__ = ["LoginHistoryEntry", "LoginHistoryTable", "LoginHistoryRepository"]
