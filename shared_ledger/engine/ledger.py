"""
Ledger Engine

DESIGN DECISION: The engine is a pure function of (snapshot, period).
It holds no state between calls, performs no I/O and never mutates its input,
so it can be recomputed from scratch on every refresh. Running it twice on
the same snapshot gives identical results.

Flow:
    snapshot ─┬─ TransactionFilter(period) ─┬─ FinancialAggregator
              │                             └─ BudgetTracker
              └─ SettlementCalculator (full history)
"""

from datetime import date
from typing import Iterable, Optional, Union

import structlog

from shared_ledger.engine.aggregation import FinancialAggregator
from shared_ledger.engine.budgets import BudgetTracker
from shared_ledger.engine.filtering import TransactionFilter
from shared_ledger.engine.periods import PeriodResolver
from shared_ledger.engine.settlement import SettlementCalculator
from shared_ledger.models.ledger import (
    FinancialSummary,
    Granularity,
    LedgerIssue,
    LedgerReport,
    LedgerSnapshot,
    Period,
)

logger = structlog.get_logger(__name__)


def merge_issues(*groups: Iterable[LedgerIssue]) -> list[LedgerIssue]:
    """Combine issue lists, keeping the first report of each (record, type)."""
    seen = set()
    merged = []
    for group in groups:
        for issue in group:
            key = (issue.transaction_id, issue.issue_type)
            if key in seen:
                continue
            seen.add(key)
            merged.append(issue)
    return merged


class LedgerEngine:
    """
    Composes the period, filter, totals, settlement and budget components.
    """

    def __init__(
        self,
        resolver: Optional[PeriodResolver] = None,
        transaction_filter: Optional[TransactionFilter] = None,
        aggregator: Optional[FinancialAggregator] = None,
        settlement_calculator: Optional[SettlementCalculator] = None,
        budget_tracker: Optional[BudgetTracker] = None,
    ):
        self.resolver = resolver or PeriodResolver()
        self.transaction_filter = transaction_filter or TransactionFilter()
        self.aggregator = aggregator or FinancialAggregator()
        self.settlement_calculator = settlement_calculator or SettlementCalculator()
        self.budget_tracker = budget_tracker or BudgetTracker(self.aggregator)

    def compute(self, snapshot: LedgerSnapshot, period: Period) -> LedgerReport:
        """
        Derive the full report for one period.

        Bad records are skipped by each fold and returned in `issues`.
        """
        in_period = self.transaction_filter.select(snapshot.transactions, period)

        totals, total_issues = self.aggregator.aggregate(in_period)
        settlement, settle_issues = self.settlement_calculator.settle(
            snapshot.transactions
        )
        stats, budget_issues = self.budget_tracker.budget_stats(
            in_period, snapshot.budgets, period.granularity
        )
        breakdown, breakdown_issues = self.aggregator.expenses_by_category(in_period)

        issues = merge_issues(
            total_issues, settle_issues, budget_issues, breakdown_issues
        )
        if issues:
            logger.info(
                "ledger_computed_with_issues",
                period_start=period.start.isoformat(),
                period_end=period.end.isoformat(),
                issue_count=len(issues),
            )

        return LedgerReport(
            period=period,
            transactions=in_period,
            financials=FinancialSummary(
                income=totals.income,
                expense=totals.expense,
                balance=totals.balance,
                settlement=settlement,
            ),
            budget_stats=stats,
            expenses_by_category=breakdown,
            issues=issues,
        )

    def report(
        self,
        snapshot: LedgerSnapshot,
        reference_date: date,
        granularity: Union[Granularity, str],
    ) -> LedgerReport:
        """Resolve the period for `reference_date` and compute its report."""
        period = self.resolver.resolve(reference_date, granularity)
        return self.compute(snapshot, period)
