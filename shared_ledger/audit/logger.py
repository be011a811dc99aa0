"""
Audit Logger

DESIGN DECISION: Every change to the ledger leaves a trail.
Records, deletions and settlements are user actions; skipped records and
refresh failures are system events. Both go through this one class.

Behaviour:
- Every event is written to the structured local log
- Events are also appended to audit storage when one is configured
- A failed storage write is logged and reported, never raised
- Correlation IDs tie together the events of one user action
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from shared_ledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from shared_ledger.models.ledger import LedgerIssue
from shared_ledger.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

_LEVEL_BY_SEVERITY = {
    AuditSeverity.DEBUG: "debug",
    AuditSeverity.INFO: "info",
    AuditSeverity.WARNING: "warning",
    AuditSeverity.ERROR: "error",
    AuditSeverity.CRITICAL: "critical",
}


class AuditLogger:
    """
    Writes ledger audit events.

    Args:
        storage: Where events are persisted. Without one, events only go
            to the local structured log.
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Write one event.

        Returns False only when the storage write failed.
        """
        level = _LEVEL_BY_SEVERITY[event.severity]
        getattr(self._logger, level)("audit_event", **event.to_log_dict())

        if self._storage is None:
            return True

        try:
            return await self._storage.append_event(event)
        except Exception as e:
            self._logger.error(
                "audit_storage_failed",
                error=str(e),
                event_id=str(event.event_id),
                event_type=event.event_type.value,
            )
            return False

    # -------------------------------------------------------------------------
    # User actions
    # -------------------------------------------------------------------------

    async def log_transaction_recorded(
        self,
        transaction_id: str,
        transaction_type: str,
        amount: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_recorded(
            transaction_id, transaction_type, amount, correlation_id
        ))

    async def log_transaction_rejected(
        self,
        transaction_id: str,
        issues: list[dict],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_rejected(
            transaction_id, issues, correlation_id
        ))

    async def log_transaction_deleted(
        self,
        transaction_id: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_deleted(
            transaction_id, correlation_id
        ))

    async def log_settlement_recorded(
        self,
        transaction_id: str,
        payer: str,
        payee: str,
        amount: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.settlement_recorded(
            transaction_id, payer, payee, amount, correlation_id
        ))

    # -------------------------------------------------------------------------
    # System events
    # -------------------------------------------------------------------------

    async def log_ledger_issues(
        self,
        issues: list[LedgerIssue],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """One event per record the engine had to skip."""
        for issue in issues:
            await self.log(AuditEventBuilder.ledger_issue(
                issue.transaction_id,
                issue.issue_type.value,
                issue.message,
                correlation_id,
            ))

    async def log_snapshot_refreshed(
        self,
        transaction_count: int,
        budget_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.snapshot_refreshed(
            transaction_count, budget_count, correlation_id
        ))

    async def log_snapshot_refresh_failed(
        self,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.snapshot_refresh_failed(
            error_message, correlation_id
        ))

    async def log_storage_write_failed(
        self,
        operation: str,
        entity_id: Optional[str],
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.storage_write_failed(
            operation, entity_id, error_message, correlation_id
        ))


def create_correlation_id() -> UUID:
    """New ID shared by every event of one user action."""
    return uuid4()
