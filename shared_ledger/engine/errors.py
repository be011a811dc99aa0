"""Exceptions raised by the ledger engine."""

from shared_ledger.models.ledger import IssueType, LedgerIssue


class LedgerError(Exception):
    """Base exception for ledger computations."""
    pass


class RecordError(LedgerError):
    """A single transaction cannot take part in a computation."""

    issue_type: IssueType

    def __init__(self, transaction_id: str, reason: str):
        self.transaction_id = transaction_id
        self.reason = reason
        super().__init__(f"Transaction {transaction_id}: {reason}")

    def to_issue(self) -> LedgerIssue:
        """Convert to the issue reported back to the caller."""
        return LedgerIssue(
            transaction_id=self.transaction_id,
            issue_type=self.issue_type,
            message=self.reason,
        )


class InvalidAmountError(RecordError):
    """Amount is not a finite, non-negative decimal."""

    issue_type = IssueType.INVALID_AMOUNT


class InvalidSettlementError(RecordError):
    """Settlement has missing or inconsistent payer/payee."""

    issue_type = IssueType.INVALID_SETTLEMENT


class ConfigurationError(LedgerError, ValueError):
    """Engine was asked for something it is not configured to do."""
    pass
