"""
Data Models Package

This package contains all Pydantic models used in the Shared Ledger system.
All data flowing into and out of the engine conforms to these schemas.
"""

from shared_ledger.models.ledger import (
    DEFAULT_CATEGORIES,
    SETTLEMENT_CATEGORY,
    SETTLEMENT_NOTE,
    Budget,
    BudgetOwner,
    BudgetStat,
    FinancialSummary,
    Granularity,
    IssueType,
    LedgerIssue,
    LedgerReport,
    LedgerSnapshot,
    Owner,
    Period,
    PeriodTotals,
    Settlement,
    SplitType,
    Transaction,
    TransactionType,
    ValidationIssue,
    ValidationResult,
    WhoOwes,
    collapse_budgets,
    parse_local_date,
)
from shared_ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "DEFAULT_CATEGORIES",
    "SETTLEMENT_CATEGORY",
    "SETTLEMENT_NOTE",
    "Budget",
    "BudgetOwner",
    "BudgetStat",
    "FinancialSummary",
    "Granularity",
    "IssueType",
    "LedgerIssue",
    "LedgerReport",
    "LedgerSnapshot",
    "Owner",
    "Period",
    "PeriodTotals",
    "Settlement",
    "SplitType",
    "Transaction",
    "TransactionType",
    "ValidationIssue",
    "ValidationResult",
    "WhoOwes",
    "collapse_budgets",
    "parse_local_date",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
