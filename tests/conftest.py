"""Shared fixtures for the ledger test suite."""

from datetime import date, datetime, timezone

import pytest

from shared_ledger.models.ledger import (
    Owner,
    SplitType,
    Transaction,
    TransactionType,
)


@pytest.fixture
def make_txn():
    """
    Build transactions with sensible defaults.

    Each call gets a distinct, increasing created_at so ordering tests are
    deterministic.
    """
    counter = {"n": 0}

    def _make(**overrides) -> Transaction:
        counter["n"] += 1
        fields = dict(
            id=f"t{counter['n']}",
            amount="100",
            category="Groceries",
            date=date(2024, 1, 15),
            type=TransactionType.EXPENSE,
            owner=Owner.ME,
            split=SplitType.SHARED,
            created_at=datetime(2024, 1, 1, 0, 0, counter["n"], tzinfo=timezone.utc),
        )
        fields.update(overrides)
        return Transaction(**fields)

    return _make


@pytest.fixture
def make_settlement(make_txn):
    """Build a settlement paid by `payer` to the other owner."""

    def _make(payer: Owner, amount: str = "50", **overrides) -> Transaction:
        fields = dict(
            amount=amount,
            category="Settlement",
            type=TransactionType.SETTLEMENT,
            owner=payer,
            split=SplitType.PERSONAL,
            from_owner=payer,
            to_owner=payer.counterpart,
        )
        fields.update(overrides)
        return make_txn(**fields)

    return _make
