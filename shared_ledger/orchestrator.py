"""
Main Orchestrator for Shared Ledger

This module ties storage, validation, audit and the engine together and
defines the end-to-end flows for:
1. Recording (validate → save → audit), deleting, budgeting, settling up
2. Dashboard (load snapshot → compute report), including the polling loop

DESIGN DECISION: The engine never touches storage. Flows load a complete
snapshot, hand it to the engine, and publish the result. Each refresh starts
from scratch; if two refreshes overlap, only the newest one is published.
"""

import asyncio
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Optional, Union
from uuid import UUID

import structlog

from shared_ledger.audit import AuditLogger, create_correlation_id
from shared_ledger.config import LedgerSettings, get_settings
from shared_ledger.engine import LedgerEngine
from shared_ledger.models.ledger import (
    Budget,
    BudgetOwner,
    Granularity,
    LedgerReport,
    LedgerSnapshot,
    Period,
    Transaction,
    ValidationResult,
    collapse_budgets,
)
from shared_ledger.services.storage import (
    BudgetStorageInterface,
    GoogleSheetsAuditStorage,
    GoogleSheetsBudgetStorage,
    GoogleSheetsClient,
    GoogleSheetsTransactionStorage,
    InMemoryAuditStorage,
    InMemoryBudgetStorage,
    InMemoryTransactionStorage,
    StorageError,
    TransactionStorageInterface,
)
from shared_ledger.validation import TransactionValidator

logger = structlog.get_logger(__name__)


class TransactionFlow:
    """
    Orchestrates changes to the ledger.

    Transactions are validated before they are saved and are never edited;
    a mistake is fixed by deleting and recording again.
    """

    def __init__(
        self,
        transaction_storage: TransactionStorageInterface,
        budget_storage: BudgetStorageInterface,
        validator: Optional[TransactionValidator] = None,
        engine: Optional[LedgerEngine] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._transactions = transaction_storage
        self._budgets = budget_storage
        self._validator = validator or TransactionValidator()
        self._engine = engine or LedgerEngine()
        self._audit_logger = audit_logger

    async def record(
        self,
        txn: Transaction,
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[Optional[Transaction], ValidationResult, str]:
        """
        Validate and save a new transaction.

        Returns:
            (saved_transaction, validation_result, user_message)

        saved_transaction is None when validation found errors.
        """
        correlation_id = correlation_id or create_correlation_id()

        result = self._validator.validate(txn, today=today)
        message = self._validator.get_user_friendly_summary(result)

        if result.has_errors:
            if self._audit_logger:
                issues = [
                    {"field": i.field, "type": i.issue_type, "message": i.message}
                    for i in result.issues
                ]
                await self._audit_logger.log_transaction_rejected(
                    transaction_id=txn.id,
                    issues=issues,
                    correlation_id=correlation_id,
                )
            return None, result, message

        await self._save(txn, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_transaction_recorded(
                transaction_id=txn.id,
                transaction_type=txn.type.value,
                amount=txn.amount,
                correlation_id=correlation_id,
            )

        return txn, result, message

    async def delete(
        self,
        transaction_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """Delete a transaction. Returns False if it did not exist."""
        correlation_id = correlation_id or create_correlation_id()

        try:
            deleted = await self._transactions.delete_transaction(transaction_id)
        except StorageError as e:
            await self._audit_write_failure("delete_transaction", transaction_id, e, correlation_id)
            raise

        if deleted and self._audit_logger:
            await self._audit_logger.log_transaction_deleted(
                transaction_id=transaction_id,
                correlation_id=correlation_id,
            )
        return deleted

    async def set_budget(
        self,
        category: str,
        amount: Union[Decimal, int, float, str],
        owner: BudgetOwner = BudgetOwner.JOINT,
    ) -> Budget:
        """Create or replace the monthly limit for (category, owner)."""
        budget = Budget(category=category, amount=Decimal(str(amount)), owner=owner)
        await self._budgets.upsert_budget(budget)
        logger.info(
            "budget_set",
            category=budget.category,
            owner=budget.owner.value,
            amount=str(budget.amount),
        )
        return budget

    async def settle_up(
        self,
        today: Optional[date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> Optional[Transaction]:
        """
        Record the payment that clears the current all-time debt.

        Returns:
            The saved settlement transaction, or None if nobody owes anything
        """
        correlation_id = correlation_id or create_correlation_id()

        history = await self._transactions.list_transactions()
        calculator = self._engine.settlement_calculator
        settlement, issues = calculator.settle(history)

        if issues and self._audit_logger:
            await self._audit_logger.log_ledger_issues(issues, correlation_id)

        payment = calculator.settlement_payment(settlement, on=today or date.today())
        if payment is None:
            return None

        await self._save(payment, correlation_id)

        if self._audit_logger:
            await self._audit_logger.log_settlement_recorded(
                transaction_id=payment.id,
                payer=payment.from_owner.value,
                payee=payment.to_owner.value,
                amount=payment.amount,
                correlation_id=correlation_id,
            )
        return payment

    async def _save(self, txn: Transaction, correlation_id: UUID) -> None:
        try:
            await self._transactions.save_transaction(txn)
        except StorageError as e:
            await self._audit_write_failure("save_transaction", txn.id, e, correlation_id)
            raise

    async def _audit_write_failure(
        self,
        operation: str,
        transaction_id: str,
        error: StorageError,
        correlation_id: UUID,
    ) -> None:
        if self._audit_logger:
            await self._audit_logger.log_storage_write_failed(
                operation=operation,
                entity_id=transaction_id,
                error_message=str(error),
                correlation_id=correlation_id,
            )


class DashboardFlow:
    """
    Orchestrates dashboard computation.

    Loads a fresh snapshot on every refresh and runs it through the engine.
    The latest successfully computed report is kept in `latest_report`.
    """

    def __init__(
        self,
        transaction_storage: TransactionStorageInterface,
        budget_storage: BudgetStorageInterface,
        engine: Optional[LedgerEngine] = None,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[LedgerSettings] = None,
        budget_owner: Optional[BudgetOwner] = None,
    ):
        self._transactions = transaction_storage
        self._budgets = budget_storage
        self._engine = engine or LedgerEngine()
        self._audit_logger = audit_logger
        self._settings = settings or get_settings().ledger
        self._budget_owner = budget_owner
        self._generation = 0
        self._reported_issues: set[tuple[str, str]] = set()
        self.latest_report: Optional[LedgerReport] = None

    @property
    def engine(self) -> LedgerEngine:
        return self._engine

    def current_period(
        self,
        granularity: Optional[Union[Granularity, str]] = None,
        today: Optional[date] = None,
    ) -> Period:
        """Period containing today, for the given or default granularity."""
        return self._engine.resolver.switch_granularity(
            granularity or self._settings.default_granularity, today=today
        )

    async def load_snapshot(self) -> LedgerSnapshot:
        """Fetch transactions and budgets concurrently."""
        transactions, budgets = await asyncio.gather(
            self._transactions.list_transactions(),
            self._budgets.list_budgets(),
        )
        return LedgerSnapshot(
            transactions=tuple(transactions),
            budgets=collapse_budgets(budgets, owner=self._budget_owner),
        )

    async def build_report(
        self,
        period: Optional[Period] = None,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerReport:
        """
        Load a snapshot and compute the report for `period`.

        Defaults to the current period of the configured granularity.
        """
        correlation_id = correlation_id or create_correlation_id()
        period = period or self.current_period()

        snapshot = await self.load_snapshot()
        report = self._engine.compute(snapshot, period)

        if self._audit_logger:
            await self._audit_logger.log_snapshot_refreshed(
                transaction_count=len(snapshot.transactions),
                budget_count=len(snapshot.budgets),
                correlation_id=correlation_id,
            )
            # Only audit each bad record once, not on every poll
            new_issues = [
                issue for issue in report.issues
                if (issue.transaction_id, issue.issue_type.value) not in self._reported_issues
            ]
            if new_issues:
                await self._audit_logger.log_ledger_issues(new_issues, correlation_id)
                self._reported_issues.update(
                    (issue.transaction_id, issue.issue_type.value) for issue in new_issues
                )

        return report

    async def refresh(self, period: Optional[Period] = None) -> Optional[LedgerReport]:
        """
        Recompute and publish the report.

        If a newer refresh started while this one was loading, this result
        is stale and is discarded (returns None).
        """
        self._generation += 1
        generation = self._generation

        report = await self.build_report(period)

        if generation != self._generation:
            logger.debug("stale_report_discarded", generation=generation)
            return None

        self.latest_report = report
        return report

    async def refresh_loop(
        self,
        on_report: Callable[[LedgerReport], Any],
        stop_event: asyncio.Event,
        period_provider: Optional[Callable[[], Period]] = None,
        interval: Optional[float] = None,
    ) -> Optional[LedgerReport]:
        """
        Poll storage until `stop_event` is set.

        Args:
            on_report: Called with each newly published report
            stop_event: Set to end the loop
            period_provider: Returns the period currently on screen;
                defaults to the current period
            interval: Seconds between polls; defaults to settings

        Returns:
            The last published report
        """
        interval = interval if interval is not None else self._settings.poll_interval_seconds
        period_provider = period_provider or self.current_period

        while not stop_event.is_set():
            correlation_id = create_correlation_id()
            try:
                report = await self.refresh(period_provider())
            except StorageError as e:
                # Keep showing the previous report
                logger.warning("snapshot_refresh_failed", error=str(e))
                if self._audit_logger:
                    await self._audit_logger.log_snapshot_refresh_failed(
                        error_message=str(e),
                        correlation_id=correlation_id,
                    )
            else:
                if report is not None:
                    on_report(report)

            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval)
            except asyncio.TimeoutError:
                pass

        return self.latest_report


def create_app_components(
    use_storage: bool = True,
) -> tuple[TransactionFlow, DashboardFlow, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to connect the configured shared backend.
                    Set to False to run purely in memory.

    Returns:
        (transaction_flow, dashboard_flow, sheets_client)
    """
    settings = get_settings().ledger
    sheets_client = None
    transaction_storage = None
    budget_storage = None
    audit_logger = None

    if use_storage and settings.storage_backend == "google_sheets":
        try:
            sheets_client = GoogleSheetsClient()
            transaction_storage = GoogleSheetsTransactionStorage(sheets_client)
            budget_storage = GoogleSheetsBudgetStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            transaction_storage = None
            budget_storage = None

    if transaction_storage is None:
        transaction_storage = InMemoryTransactionStorage()
        budget_storage = InMemoryBudgetStorage()
        audit_logger = AuditLogger(InMemoryAuditStorage())

    engine = LedgerEngine()

    transaction_flow = TransactionFlow(
        transaction_storage=transaction_storage,
        budget_storage=budget_storage,
        validator=TransactionValidator(settings=settings),
        engine=engine,
        audit_logger=audit_logger,
    )

    dashboard_flow = DashboardFlow(
        transaction_storage=transaction_storage,
        budget_storage=budget_storage,
        engine=engine,
        audit_logger=audit_logger,
        settings=settings,
    )

    return transaction_flow, dashboard_flow, sheets_client
