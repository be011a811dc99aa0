"""
Audit Models for Shared Ledger

Every change to the ledger, and every bad record the engine had to skip,
is logged for audit purposes. This provides:
1. Traceability of who recorded or deleted what
2. Debugging information when totals look wrong
3. Ability to reconstruct history

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
Budget limit changes are not audited.
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Ledger changes
    TRANSACTION_RECORDED = "transaction_recorded"
    TRANSACTION_REJECTED = "transaction_rejected"
    TRANSACTION_DELETED = "transaction_deleted"
    SETTLEMENT_RECORDED = "settlement_recorded"

    # Engine
    LEDGER_ISSUE_DETECTED = "ledger_issue_detected"
    SNAPSHOT_REFRESHED = "snapshot_refreshed"
    SNAPSHOT_REFRESH_FAILED = "snapshot_refresh_failed"

    # Storage
    STORAGE_WRITE_FAILED = "storage_write_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


# Column order of the audit sheet; also the key order of to_log_dict()
AUDIT_FIELDS = (
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details",
    "error_message",
    "is_user_action",
)


class AuditEvent(BaseModel):
    """
    One entry in the ledger's audit trail.

    `entity_id` is the transaction id for transaction events and empty for
    snapshot events. Events that belong to one user action share a
    `correlation_id`.
    """

    event_id: UUID = Field(default_factory=uuid4)
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="UTC time the event was created"
    )

    event_type: AuditEventType
    severity: AuditSeverity = Field(default=AuditSeverity.INFO)

    entity_type: Optional[str] = Field(
        default=None,
        description="'transaction' or 'snapshot'"
    )
    entity_id: Optional[str] = None
    correlation_id: Optional[UUID] = None

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="True for records, deletions and settlements"
    )

    def to_log_dict(self) -> dict:
        """JSON-safe dict for structlog; IDs and timestamp as strings."""
        data = self.model_dump(mode="json")
        # isoformat keeps "+00:00", which datetime.fromisoformat reads back
        data["timestamp"] = self.timestamp.isoformat()
        return {name: data[name] for name in AUDIT_FIELDS}

    def to_sheets_row(self) -> list:
        """
        Row for the audit sheet, in AUDIT_FIELDS order.

        Missing values become empty cells; details are stored as JSON text.
        """
        data = self.to_log_dict()
        row = []
        for name in AUDIT_FIELDS:
            value = data[name]
            if name == "details":
                row.append(json.dumps(value) if value else "")
            elif name == "is_user_action":
                row.append(str(value))
            else:
                row.append("" if value is None else value)
        return row


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_recorded(txn_id, "expense", "120.50", correlation_id)
        event = AuditEventBuilder.ledger_issue(txn_id, "invalid_amount", message)
    """

    @staticmethod
    def transaction_recorded(
        transaction_id: str,
        transaction_type: str,
        amount: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_RECORDED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Recorded {transaction_type} of {amount}",
            details={
                "type": transaction_type,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_rejected(
        transaction_id: str,
        issues: list[dict],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction rejected with {len(issues)} issues",
            details={
                "issues": issues,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(
        transaction_id: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description="Transaction deleted",
            is_user_action=True,
        )

    @staticmethod
    def settlement_recorded(
        transaction_id: str,
        payer: str,
        payee: str,
        amount: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SETTLEMENT_RECORDED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Settlement: {payer} paid {payee} {amount}",
            details={
                "from": payer,
                "to": payee,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def ledger_issue(
        transaction_id: str,
        issue_type: str,
        message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_ISSUE_DETECTED,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Skipped record: {issue_type}",
            error_message=message,
            details={
                "issue_type": issue_type,
            },
        )

    @staticmethod
    def snapshot_refreshed(
        transaction_count: int,
        budget_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_REFRESHED,
            severity=AuditSeverity.DEBUG,
            entity_type="snapshot",
            correlation_id=correlation_id,
            description=f"Snapshot refreshed: {transaction_count} transactions",
            details={
                "transaction_count": transaction_count,
                "budget_count": budget_count,
            },
        )

    @staticmethod
    def snapshot_refresh_failed(
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_REFRESH_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="snapshot",
            correlation_id=correlation_id,
            description="Snapshot refresh failed; keeping previous report",
            error_message=error_message,
        )

    @staticmethod
    def storage_write_failed(
        operation: str,
        entity_id: Optional[str],
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_WRITE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="transaction",
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Storage write failed: {operation}",
            error_message=error_message,
            details={
                "operation": operation,
            },
        )
