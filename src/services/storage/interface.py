"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep each user's expense list in local JSON files today
2. Use in-memory storage for testing
3. Swap in a real database later without touching the ledger
4. Keep business logic decoupled from storage implementation

The interface is intentionally small. An expense list is loaded whole,
changed, and saved whole: one read-modify-write per user action.
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from src.models.account import UserAccount
from src.models.audit import AuditEvent
from src.models.expense import Expense


class ExpenseStorageInterface(ABC):
    """
    Abstract interface for per-user expense lists.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    async def load_expenses(self, user_id: str) -> list[Expense]:
        """
        Load a user's expenses, newest first.

        Args:
            user_id: The username owning the list

        Returns:
            The stored expenses; an empty list for a user with none

        Raises:
            StorageError: If the stored list cannot be read or is malformed
        """
        pass

    @abstractmethod
    async def save_expenses(self, user_id: str, expenses: list[Expense]) -> bool:
        """
        Replace a user's expense list.

        Args:
            user_id: The username owning the list
            expenses: The complete new list

        Returns:
            True if saved successfully

        Raises:
            StorageError: If save fails
        """
        pass


class UserStorageInterface(ABC):
    """Abstract interface for the local user table."""

    @abstractmethod
    async def get_user(self, username: str) -> Optional[UserAccount]:
        """
        Get a user by exact username.

        Returns:
            The account if found, None otherwise
        """
        pass

    @abstractmethod
    async def find_user(
        self,
        username: Optional[str] = None,
        email: Optional[str] = None,
    ) -> Optional[UserAccount]:
        """
        Find a user matching the username OR the email.

        Email matching is case-insensitive.
        """
        pass

    @abstractmethod
    async def add_user(self, account: UserAccount) -> bool:
        """
        Add a user to the table.

        Raises:
            DuplicateError: If the username or email is taken
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def list_users(self) -> list[UserAccount]:
        """All registered users, in registration order."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID, in chronological order.
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
        username: Optional[str] = None,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events, newest first.

        Args:
            limit: Maximum number of events to return
            username: Only events recorded for this user
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass
