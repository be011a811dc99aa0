"""
Two-Stage Transaction Validation

DESIGN DECISION: New transactions are validated before they are stored.

STAGE 1 - SCHEMA VALIDATION:
- Amount parses to a finite, non-negative decimal
- Income/expense records say how they are split
- Settlements name two different owners and are paid by their owner

STAGE 2 - SEMANTIC VALIDATION:
- Future-dated records
- Suspiciously large amounts
- Categories outside the known set

The engine still guards against bad records in stored data; this stage stops
new ones from getting in. Validation NEVER silently fixes input. It reports
issues for the user to correct.
"""

from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from shared_ledger.config import LedgerSettings, get_settings
from shared_ledger.engine.amounts import parse_amount
from shared_ledger.engine.errors import InvalidAmountError, InvalidSettlementError
from shared_ledger.engine.settlement import check_settlement
from shared_ledger.models.ledger import (
    DEFAULT_CATEGORIES,
    SETTLEMENT_CATEGORY,
    Transaction,
    TransactionType,
    ValidationIssue,
    ValidationResult,
)


class TransactionValidator:
    """
    Validates a transaction through a two-stage pipeline.

    Stage 1: Schema validation
    Stage 2: Semantic validation (only when stage 1 passes)
    """

    def __init__(
        self,
        settings: Optional[LedgerSettings] = None,
        categories: Iterable[str] = DEFAULT_CATEGORIES,
    ):
        self._settings = settings or get_settings().ledger
        self._categories = set(categories) | {SETTLEMENT_CATEGORY}

    def _validate_schema(
        self,
        txn: Transaction,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        try:
            amount = parse_amount(txn.amount, txn.id)
        except InvalidAmountError as e:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message=e.reason,
                severity="error",
                suggested_fix="Enter the amount as a plain number, e.g. 120.50",
            ))
        else:
            if amount == 0:
                issues.append(ValidationIssue(
                    field="amount",
                    issue_type="zero_amount",
                    message="Amount is zero",
                    severity="warning",
                    suggested_fix="Check the amount was entered",
                ))

        if txn.type == TransactionType.SETTLEMENT:
            try:
                check_settlement(txn)
            except InvalidSettlementError as e:
                issues.append(ValidationIssue(
                    field="settlement",
                    issue_type="inconsistent",
                    message=e.reason,
                    severity="error",
                    suggested_fix="A settlement is paid by one owner to the other",
                ))
        elif txn.split is None:
            issues.append(ValidationIssue(
                field="split",
                issue_type="missing",
                message=f"{txn.type.value.capitalize()} must be marked personal or shared",
                severity="error",
                suggested_fix="Choose whether this is personal or shared",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)

        return is_valid, issues

    def _validate_semantic(
        self,
        txn: Transaction,
        today: date,
    ) -> tuple[bool, list[ValidationIssue]]:
        """
        Stage 2: Semantic validation.

        Returns: (is_valid, list_of_issues)
        """
        issues = []

        max_future_date = today + timedelta(days=self._settings.future_date_tolerance_days)
        if txn.date > max_future_date:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Date ({txn.date}) is in the future",
                severity="warning",
                suggested_fix="Please verify the date is correct",
            ))

        # Stage 1 guarantees the amount parses
        amount = parse_amount(txn.amount, txn.id)
        max_amount = Decimal(str(self._settings.max_transaction_amount))
        if amount > max_amount:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount ({amount:,.2f}) seems unusually high",
                severity="warning",
                suggested_fix="Please verify this amount is correct",
            ))

        if txn.category not in self._categories:
            issues.append(ValidationIssue(
                field="category",
                issue_type="unknown_category",
                message=f"'{txn.category}' is not one of the usual categories",
                severity="info",
            ))

        is_valid = not any(issue.severity == "error" for issue in issues)

        return is_valid, issues

    def validate(
        self,
        txn: Transaction,
        today: Optional[date] = None,
    ) -> ValidationResult:
        """
        Run full two-stage validation pipeline.

        Args:
            txn: The transaction about to be recorded
            today: Reference date for the future-date check

        Returns:
            ValidationResult with all issues found
        """
        all_issues = []

        schema_valid, schema_issues = self._validate_schema(txn)
        all_issues.extend(schema_issues)

        semantic_valid = False
        if schema_valid:
            semantic_valid, semantic_issues = self._validate_semantic(
                txn, today or date.today()
            )
            all_issues.extend(semantic_issues)

        warnings = [issue.message for issue in all_issues if issue.severity == "warning"]

        return ValidationResult(
            transaction_id=txn.id,
            schema_valid=schema_valid,
            semantic_valid=semantic_valid,
            is_valid=schema_valid and semantic_valid,
            issues=all_issues,
            warnings=warnings,
        )

    def get_user_friendly_summary(
        self,
        result: ValidationResult,
    ) -> str:
        """Short message shown after trying to save."""
        if result.is_valid and not result.warnings:
            return "✅ Saved."

        lines = []

        if result.has_errors:
            lines.append("❌ This transaction can't be saved yet:")
            for issue in result.issues:
                if issue.severity == "error":
                    lines.append(f"   • {issue.message}")
                    if issue.suggested_fix:
                        lines.append(f"     💡 {issue.suggested_fix}")

        if result.warnings:
            if lines:
                lines.append("")
            lines.append("⚠️ Please double-check:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)
