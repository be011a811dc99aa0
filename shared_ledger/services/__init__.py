"""Services package."""

from shared_ledger.services.storage import (
    AuditStorageInterface,
    BudgetStorageInterface,
    ConnectionError,
    DuplicateError,
    GoogleSheetsAuditStorage,
    GoogleSheetsBudgetStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionStorage,
    InMemoryAuditStorage,
    InMemoryBudgetStorage,
    InMemoryTransactionStorage,
    NotFoundError,
    StorageError,
    TransactionStorageInterface,
)

__all__ = [
    "AuditStorageInterface",
    "BudgetStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsBudgetStorage",
    "GoogleSheetsClient",
    "GoogleSheetsTransactionStorage",
    "InMemoryAuditStorage",
    "InMemoryBudgetStorage",
    "InMemoryTransactionStorage",
    "NotFoundError",
    "StorageError",
    "TransactionStorageInterface",
]
