"""
Settlement Calculation

DESIGN DECISION: Debt is computed over the FULL history, never a period.
Shared expenses accumulate across months; settling up in March must still
account for what was fronted in January.

Each shared expense is split 50/50. Whoever paid more than their half is owed
the difference. Settlement payments reduce the debt in the direction they were
paid. The fold is a plain sum, so transaction order never matters.

Sign convention: a positive `raw` means "me" owes "her".
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

import structlog

from shared_ledger.engine.amounts import amount_of, to_cents
from shared_ledger.engine.errors import (
    InvalidAmountError,
    InvalidSettlementError,
    RecordError,
)
from shared_ledger.models.ledger import (
    SETTLEMENT_CATEGORY,
    SETTLEMENT_NOTE,
    LedgerIssue,
    Owner,
    Settlement,
    SplitType,
    Transaction,
    TransactionType,
    WhoOwes,
)

logger = structlog.get_logger(__name__)

# Absorbs rounding noise below the smallest currency unit.
SETTLEMENT_EPSILON = Decimal("0.01")


def check_settlement(txn: Transaction) -> None:
    """
    Ensure a settlement names two different owners and is paid by its owner.

    Raises:
        InvalidSettlementError: if from/to is missing, from == to,
            or owner != from
    """
    if txn.from_owner is None or txn.to_owner is None:
        raise InvalidSettlementError(txn.id, "Settlement must name both 'from' and 'to'")
    if txn.from_owner == txn.to_owner:
        raise InvalidSettlementError(
            txn.id, f"Settlement cannot be paid from {txn.from_owner.value} to themselves"
        )
    if txn.owner != txn.from_owner:
        raise InvalidSettlementError(
            txn.id,
            f"Settlement owner {txn.owner.value} does not match payer {txn.from_owner.value}",
        )


class SettlementCalculator:
    """Computes the all-time net debt between the two owners."""

    def settle(
        self,
        transactions: Iterable[Transaction],
    ) -> tuple[Settlement, list[LedgerIssue]]:
        """
        Fold the complete history into a signed net debt.

        Returns: (settlement, issues)
        """
        me_shared_paid = Decimal("0")
        her_shared_paid = Decimal("0")
        me_settled_to_her = Decimal("0")
        her_settled_to_me = Decimal("0")
        issues: list[LedgerIssue] = []

        for txn in transactions:
            is_shared_expense = (
                txn.type == TransactionType.EXPENSE
                and txn.split == SplitType.SHARED
            )
            if not (is_shared_expense or txn.is_settlement):
                continue

            try:
                if txn.is_settlement:
                    check_settlement(txn)
                value = amount_of(txn)
            except (InvalidAmountError, InvalidSettlementError) as e:
                self._report(e, issues)
                continue

            if is_shared_expense:
                if txn.owner == Owner.ME:
                    me_shared_paid += value
                else:
                    her_shared_paid += value
            elif txn.from_owner == Owner.ME:
                me_settled_to_her += value
            else:
                her_settled_to_me += value

        base_debt = her_shared_paid / 2 - me_shared_paid / 2
        net_debt = base_debt - me_settled_to_her + her_settled_to_me

        return self.position(net_debt), issues

    def position(self, raw: Decimal) -> Settlement:
        """Classify a signed net debt."""
        if raw > SETTLEMENT_EPSILON:
            who_owes = WhoOwes.ME
        elif raw < -SETTLEMENT_EPSILON:
            who_owes = WhoOwes.HER
        else:
            who_owes = WhoOwes.NONE
        return Settlement(amount=abs(raw), who_owes=who_owes, raw=raw)

    def settlement_payment(
        self,
        settlement: Settlement,
        on: date,
    ) -> Optional[Transaction]:
        """
        Build the transaction that clears the current debt.

        Returns None when nobody owes anything.
        """
        if settlement.who_owes == WhoOwes.NONE or settlement.amount <= 0:
            return None

        payer = Owner(settlement.who_owes.value)
        return Transaction(
            amount=str(to_cents(settlement.amount)),
            category=SETTLEMENT_CATEGORY,
            date=on,
            note=SETTLEMENT_NOTE,
            type=TransactionType.SETTLEMENT,
            owner=payer,
            split=SplitType.PERSONAL,
            from_owner=payer,
            to_owner=payer.counterpart,
        )

    @staticmethod
    def _report(error: RecordError, issues: list[LedgerIssue]) -> None:
        logger.warning(
            "ledger_record_skipped",
            fold="settle",
            transaction_id=error.transaction_id,
            issue_type=error.issue_type.value,
            reason=error.reason,
        )
        issues.append(error.to_issue())
