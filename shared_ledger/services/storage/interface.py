"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep the engine decoupled from storage implementation

Transactions are created and deleted, never edited. Budgets are upserted by
(category, owner). Audit events are append-only.
"""

from abc import ABC, abstractmethod
from datetime import date
from typing import Optional
from uuid import UUID

from shared_ledger.models.audit import AuditEvent
from shared_ledger.models.ledger import Budget, Transaction


class TransactionStorageInterface(ABC):
    """
    Abstract interface for transaction storage operations.

    Any storage implementation must implement these methods.
    """

    @abstractmethod
    async def save_transaction(self, txn: Transaction) -> bool:
        """
        Save a new transaction.

        Returns:
            True if saved successfully

        Raises:
            DuplicateError: If a transaction with the same ID exists
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def get_transaction_by_id(self, transaction_id: str) -> Optional[Transaction]:
        """Retrieve a transaction by its ID, or None."""
        pass

    @abstractmethod
    async def delete_transaction(self, transaction_id: str) -> bool:
        """
        Delete a transaction by ID.

        Returns:
            True if deleted, False if it did not exist
        """
        pass

    @abstractmethod
    async def list_transactions(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Transaction]:
        """
        List transactions, newest first.

        Args:
            date_from: Only transactions on or after this date
            date_to: Only transactions on or before this date

        Returns:
            Transactions sorted by date, then creation time, descending
        """
        pass


class BudgetStorageInterface(ABC):
    """Abstract interface for budget limits."""

    @abstractmethod
    async def upsert_budget(self, budget: Budget) -> bool:
        """
        Insert or replace the limit for budget.category and budget.owner.

        Returns:
            True if stored successfully
        """
        pass

    @abstractmethod
    async def list_budgets(self) -> list[Budget]:
        """All budget limits."""
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
        """Related events in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Most recent events, newest first."""
        pass


def sort_newest_first(transactions: list[Transaction]) -> list[Transaction]:
    """Order used by every backend: date desc, then created_at desc."""
    return sorted(
        transactions,
        key=lambda t: (t.date, t.created_at),
        reverse=True,
    )


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
