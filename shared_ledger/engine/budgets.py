"""
Budget Utilization

Budgets are monthly limits. For weekly and yearly views the limit is scaled:
yearly by 12, weekly by a fixed 0.23 (roughly one month in 4.33 weeks).
The weekly factor is a long-standing approximation; changing it would change
every utilization figure users have already seen.
"""

from decimal import Decimal
from typing import Iterable, Mapping, Optional, Union

from shared_ledger.engine.aggregation import FinancialAggregator
from shared_ledger.engine.periods import coerce_granularity
from shared_ledger.models.ledger import (
    BudgetStat,
    Granularity,
    LedgerIssue,
    Transaction,
)

BUDGET_SCALE = {
    Granularity.WEEKLY: Decimal("0.23"),
    Granularity.MONTHLY: Decimal("1"),
    Granularity.YEARLY: Decimal("12"),
}


def budget_scale(granularity: Union[Granularity, str]) -> Decimal:
    return BUDGET_SCALE[coerce_granularity(granularity)]


class BudgetTracker:
    """Combines monthly limits with the period's expense usage."""

    def __init__(self, aggregator: Optional[FinancialAggregator] = None):
        self._aggregator = aggregator or FinancialAggregator()

    def budget_stats(
        self,
        transactions: Iterable[Transaction],
        budgets: Mapping[str, Decimal],
        granularity: Union[Granularity, str],
    ) -> tuple[list[BudgetStat], list[LedgerIssue]]:
        """
        Utilization per budgeted category, most used first.

        Only categories with a configured limit produce a stat. Spending in
        unbudgeted categories is ignored here.

        Returns: (stats, issues)
        """
        scale = budget_scale(granularity)
        usage, issues = self._aggregator.expenses_by_category(transactions)

        stats = []
        for category, limit in budgets.items():
            monthly_limit = Decimal(str(limit))
            effective_limit = monthly_limit * scale
            spent = usage.get(category, Decimal("0"))
            if effective_limit > 0:
                pct = spent / effective_limit * 100
            else:
                pct = Decimal("0")
            stats.append(BudgetStat(
                category=category,
                monthly_limit=monthly_limit,
                effective_limit=effective_limit,
                spent=spent,
                pct=pct,
            ))

        # Stable sort: equal percentages keep budget order
        stats.sort(key=lambda stat: stat.pct, reverse=True)
        return stats, issues
