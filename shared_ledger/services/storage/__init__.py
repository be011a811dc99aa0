"""
Storage Services Package

Provides abstract interfaces and concrete implementations for ledger storage.
The in-memory backend is the default; Google Sheets is the shared backend.
"""

from shared_ledger.services.storage.interface import (
    AuditStorageInterface,
    BudgetStorageInterface,
    ConnectionError,
    DuplicateError,
    NotFoundError,
    StorageError,
    TransactionStorageInterface,
)
from shared_ledger.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryBudgetStorage,
    InMemoryTransactionStorage,
)
from shared_ledger.services.storage.google_sheets import (
    GoogleSheetsAuditStorage,
    GoogleSheetsBudgetStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "BudgetStorageInterface",
    "TransactionStorageInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryBudgetStorage",
    "InMemoryTransactionStorage",
    # Google Sheets implementation
    "GoogleSheetsAuditStorage",
    "GoogleSheetsBudgetStorage",
    "GoogleSheetsClient",
    "GoogleSheetsTransactionStorage",
]
