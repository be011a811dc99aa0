"""
In-Memory Storage Implementation

Used as the default backend for local use and in tests.
Data lives only as long as the process.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from shared_ledger.models.audit import AuditEvent
from shared_ledger.models.ledger import Budget, BudgetOwner, Transaction
from shared_ledger.services.storage.interface import (
    AuditStorageInterface,
    BudgetStorageInterface,
    DuplicateError,
    TransactionStorageInterface,
    sort_newest_first,
)


class InMemoryTransactionStorage(TransactionStorageInterface):
    """Transactions keyed by ID, in insertion order."""

    def __init__(self, transactions: Optional[list[Transaction]] = None):
        self._transactions: dict[str, Transaction] = {}
        for txn in transactions or []:
            self._transactions[txn.id] = txn

    async def save_transaction(self, txn: Transaction) -> bool:
        if txn.id in self._transactions:
            raise DuplicateError(f"Transaction already exists: {txn.id}")
        self._transactions[txn.id] = txn
        return True

    async def get_transaction_by_id(self, transaction_id: str) -> Optional[Transaction]:
        return self._transactions.get(transaction_id)

    async def delete_transaction(self, transaction_id: str) -> bool:
        return self._transactions.pop(transaction_id, None) is not None

    async def list_transactions(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> list[Transaction]:
        selected = [
            txn for txn in self._transactions.values()
            if (date_from is None or txn.date >= date_from)
            and (date_to is None or txn.date <= date_to)
        ]
        return sort_newest_first(selected)


class InMemoryBudgetStorage(BudgetStorageInterface):
    """One limit per (category, owner)."""

    def __init__(self, budgets: Optional[list[Budget]] = None):
        self._budgets: dict[tuple[str, BudgetOwner], Budget] = {}
        for budget in budgets or []:
            self._budgets[budget.key] = budget

    async def upsert_budget(self, budget: Budget) -> bool:
        self._budgets[budget.key] = budget
        return True

    async def list_budgets(self) -> list[Budget]:
        return list(self._budgets.values())


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
