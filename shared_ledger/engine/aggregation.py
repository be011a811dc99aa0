"""
Period Totals

Reduces a period's transactions into income, expense and balance.

Settlements move money between the owners; they are neither income nor
expense and are skipped here. Records with an unparseable amount are
skipped and reported, so one bad row cannot turn a total into garbage.
"""

from decimal import Decimal
from typing import Iterable

import structlog

from shared_ledger.engine.amounts import amount_of
from shared_ledger.engine.errors import InvalidAmountError
from shared_ledger.models.ledger import (
    LedgerIssue,
    PeriodTotals,
    Transaction,
    TransactionType,
)

logger = structlog.get_logger(__name__)


class FinancialAggregator:
    """Sums income and expense for one period."""

    def aggregate(
        self,
        transactions: Iterable[Transaction],
    ) -> tuple[PeriodTotals, list[LedgerIssue]]:
        """
        Total income and expense.

        Returns: (totals, issues) where issues lists every skipped record
        """
        income = Decimal("0")
        expense = Decimal("0")
        issues: list[LedgerIssue] = []

        for txn in transactions:
            if txn.type == TransactionType.SETTLEMENT:
                continue

            try:
                value = amount_of(txn)
            except InvalidAmountError as e:
                logger.warning(
                    "ledger_record_skipped",
                    fold="aggregate",
                    transaction_id=e.transaction_id,
                    issue_type=e.issue_type.value,
                    reason=e.reason,
                )
                issues.append(e.to_issue())
                continue

            if txn.type == TransactionType.INCOME:
                income += value
            else:
                expense += value

        totals = PeriodTotals(
            income=income,
            expense=expense,
            balance=income - expense,
        )
        return totals, issues

    def expenses_by_category(
        self,
        transactions: Iterable[Transaction],
    ) -> tuple[dict[str, Decimal], list[LedgerIssue]]:
        """
        Sum expense-type transactions per category.

        Categories appear in the order they are first seen.
        """
        usage: dict[str, Decimal] = {}
        issues: list[LedgerIssue] = []

        for txn in transactions:
            if txn.type != TransactionType.EXPENSE:
                continue
            try:
                value = amount_of(txn)
            except InvalidAmountError as e:
                logger.warning(
                    "ledger_record_skipped",
                    fold="expenses_by_category",
                    transaction_id=e.transaction_id,
                    issue_type=e.issue_type.value,
                    reason=e.reason,
                )
                issues.append(e.to_issue())
                continue
            usage[txn.category] = usage.get(txn.category, Decimal("0")) + value

        return usage, issues
