"""Ledger aggregation and settlement engine."""

from shared_ledger.engine.aggregation import FinancialAggregator
from shared_ledger.engine.amounts import amount_of, parse_amount, to_cents
from shared_ledger.engine.budgets import BUDGET_SCALE, BudgetTracker, budget_scale
from shared_ledger.engine.errors import (
    ConfigurationError,
    InvalidAmountError,
    InvalidSettlementError,
    LedgerError,
    RecordError,
)
from shared_ledger.engine.filtering import TransactionFilter
from shared_ledger.engine.ledger import LedgerEngine, merge_issues
from shared_ledger.engine.periods import (
    PeriodResolver,
    add_months,
    add_years,
    coerce_granularity,
)
from shared_ledger.engine.settlement import (
    SETTLEMENT_EPSILON,
    SettlementCalculator,
    check_settlement,
)

__all__ = [
    # Components
    "BudgetTracker",
    "FinancialAggregator",
    "LedgerEngine",
    "PeriodResolver",
    "SettlementCalculator",
    "TransactionFilter",
    # Helpers
    "BUDGET_SCALE",
    "SETTLEMENT_EPSILON",
    "add_months",
    "add_years",
    "amount_of",
    "budget_scale",
    "check_settlement",
    "coerce_granularity",
    "merge_issues",
    "parse_amount",
    "to_cents",
    # Exceptions
    "ConfigurationError",
    "InvalidAmountError",
    "InvalidSettlementError",
    "LedgerError",
    "RecordError",
]
