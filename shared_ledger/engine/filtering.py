"""Selecting the transactions that fall inside a period."""

from typing import Iterable

from shared_ledger.models.ledger import Period, Transaction


class TransactionFilter:
    """Date-range selection over a snapshot. Compares calendar dates only."""

    def filter(
        self,
        transactions: Iterable[Transaction],
        period: Period,
    ) -> list[Transaction]:
        """Transactions dated within [period.start, period.end], in input order."""
        return [txn for txn in transactions if period.contains(txn.date)]

    def sort_newest_first(
        self,
        transactions: Iterable[Transaction],
    ) -> list[Transaction]:
        """
        Sort by date descending.

        The sort is stable, so same-day transactions keep their input order.
        """
        return sorted(transactions, key=lambda txn: txn.date, reverse=True)

    def select(
        self,
        transactions: Iterable[Transaction],
        period: Period,
    ) -> list[Transaction]:
        """Filter to the period, then sort newest first."""
        return self.sort_newest_first(self.filter(transactions, period))
