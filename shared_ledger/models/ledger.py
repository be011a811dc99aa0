"""
Core Data Models for Shared Ledger

These models define the schemas for everything flowing into and out of the
ledger engine:
1. Transactions and budgets (the stored records)
2. Periods (derived, never persisted)
3. Summaries, settlement and budget statistics (derived values)
4. Issues discovered while folding over a snapshot

DESIGN DECISION: Transaction amounts stay textual, exactly as the user typed
them. They are parsed to Decimal only at the point of arithmetic, so a bad
stored value surfaces as a reported issue instead of poisoning a whole sum.
"""

import datetime as dt
from datetime import date, datetime, time, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(str, Enum):
    """Kinds of ledger records."""
    INCOME = "income"
    EXPENSE = "expense"
    SETTLEMENT = "settlement"


class Owner(str, Enum):
    """
    The two co-owners of the ledger.

    This is a closed enumeration. Supporting more people would need a
    different debt algorithm, not just another member here.
    """
    ME = "me"
    HER = "her"

    @property
    def counterpart(self) -> "Owner":
        return Owner.HER if self is Owner.ME else Owner.ME


class BudgetOwner(str, Enum):
    """Scope of a budget limit."""
    ME = "me"
    HER = "her"
    JOINT = "joint"


class SplitType(str, Enum):
    """How an income/expense is shared between the owners."""
    PERSONAL = "personal"
    SHARED = "shared"


class Granularity(str, Enum):
    """Reporting period sizes."""
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class WhoOwes(str, Enum):
    """Which owner currently owes the other."""
    ME = "me"
    HER = "her"
    NONE = "none"


class IssueType(str, Enum):
    """Conditions reported while folding over a snapshot."""
    INVALID_AMOUNT = "invalid_amount"
    INVALID_SETTLEMENT = "invalid_settlement"


# Categories offered when recording a transaction. Not enforced on the model.
DEFAULT_CATEGORIES = (
    "Food & Dining",
    "Groceries",
    "Rent & Housing",
    "Utilities",
    "Transport",
    "Shopping",
    "Entertainment",
    "Health",
    "Travel",
    "Savings",
    "Income",
    "Other",
)

SETTLEMENT_CATEGORY = "Settlement"
SETTLEMENT_NOTE = "Settlement Payment"


def parse_local_date(value: str) -> date:
    """
    Parse a "YYYY-MM-DD" string into a calendar date.

    The string is split into its year/month/day components directly.
    No timestamp is ever built, so there is no timezone to shift the day.
    """
    parts = value.strip().split("-")
    if len(parts) != 3 or not all(part.isdigit() for part in parts):
        raise ValueError(f"Invalid calendar date: {value!r}")
    year, month, day = (int(part) for part in parts)
    return date(year, month, day)


# =============================================================================
# STORED RECORDS
# =============================================================================

class Transaction(BaseModel):
    """
    A single income, expense or settlement record.

    Transactions are immutable once created and are only ever deleted as a
    whole. Settlements use `from`/`to` (exposed in Python as `from_owner` and
    `to_owner`) and never count towards income or expense totals.
    """
    model_config = ConfigDict(
        frozen=True,
        str_strip_whitespace=True,
        populate_by_name=True,
    )

    id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Opaque unique identifier"
    )
    amount: str = Field(
        ...,
        description="Amount exactly as entered; parsed before arithmetic"
    )
    category: str = Field(
        ...,
        max_length=100,
        description="Category label"
    )
    # Module-qualified so the field name cannot shadow the type
    date: dt.date = Field(
        ...,
        description="Calendar date of the transaction (no time component)"
    )
    type: TransactionType
    owner: Owner = Field(
        ...,
        description="Who received/paid; for settlements, the payer"
    )
    split: Optional[SplitType] = None
    from_owner: Optional[Owner] = Field(default=None, alias="from")
    to_owner: Optional[Owner] = Field(default=None, alias="to")
    note: str = Field(default="", max_length=500)
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the record was created"
    )

    @field_validator("amount", mode="before")
    @classmethod
    def amount_as_text(cls, v: Any) -> Any:
        """Keep numeric input as its textual form."""
        if isinstance(v, (int, float, Decimal)) and not isinstance(v, bool):
            return str(v)
        return v

    @field_validator("date", mode="before")
    @classmethod
    def date_from_components(cls, v: Any) -> Any:
        if isinstance(v, str):
            return parse_local_date(v)
        return v

    @field_validator("note", mode="before")
    @classmethod
    def note_default(cls, v: Any) -> Any:
        return "" if v is None else v

    @property
    def is_settlement(self) -> bool:
        return self.type == TransactionType.SETTLEMENT


class Budget(BaseModel):
    """
    A monthly spending limit for one category.

    At most one limit exists per (category, owner) pair.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    category: str = Field(..., min_length=1, max_length=100)
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Monthly limit"
    )
    owner: BudgetOwner = Field(default=BudgetOwner.JOINT)

    @property
    def key(self) -> tuple[str, BudgetOwner]:
        return (self.category, self.owner)


def collapse_budgets(
    budgets: list[Budget],
    owner: Optional[BudgetOwner] = None,
) -> dict[str, Decimal]:
    """
    Collapse budget rows into a flat category -> monthly limit map.

    With an owner, only that owner's rows are used. Without one, the last
    row listed for a category wins; limits are never added up. Categories
    keep their first-seen order.
    """
    collapsed: dict[str, Decimal] = {}
    for budget in budgets:
        if owner is not None and budget.owner != owner:
            continue
        collapsed[budget.category] = budget.amount
    return collapsed


# =============================================================================
# DERIVED VALUES
# =============================================================================

class Period(BaseModel):
    """
    An inclusive reporting window.

    Periods are derived from a reference date and a granularity and are
    recomputed on demand, never stored.
    """
    model_config = ConfigDict(frozen=True)

    start: date
    end: date
    reference_date: date
    granularity: Granularity

    @model_validator(mode="after")
    def validate_bounds(self) -> "Period":
        if self.end < self.start:
            raise ValueError("Period end cannot be before start")
        if not self.start <= self.reference_date <= self.end:
            raise ValueError("Reference date must fall inside the period")
        return self

    @property
    def starts_at(self) -> datetime:
        """First instant of the period (local, naive)."""
        return datetime.combine(self.start, time.min)

    @property
    def ends_at(self) -> datetime:
        """Last instant of the period, 23:59:59.999 local."""
        return datetime.combine(self.end, time(23, 59, 59, 999000))

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


class LedgerIssue(BaseModel):
    """A record that was skipped while folding over a snapshot."""
    model_config = ConfigDict(frozen=True)

    transaction_id: str
    issue_type: IssueType
    message: str


class PeriodTotals(BaseModel):
    """Income and expense totals for one period."""
    model_config = ConfigDict(frozen=True)

    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")
    balance: Decimal = Decimal("0")


class Settlement(BaseModel):
    """
    All-time debt between the two owners.

    `raw` is signed: positive means "me" owes "her", negative the opposite.
    """
    model_config = ConfigDict(frozen=True)

    amount: Decimal
    who_owes: WhoOwes
    raw: Decimal


class FinancialSummary(BaseModel):
    """Period totals plus the all-time settlement position."""
    model_config = ConfigDict(frozen=True)

    income: Decimal
    expense: Decimal
    balance: Decimal
    settlement: Settlement


class BudgetStat(BaseModel):
    """Utilization of one budgeted category for the active period."""
    model_config = ConfigDict(frozen=True)

    category: str
    monthly_limit: Decimal
    effective_limit: Decimal
    spent: Decimal
    pct: Decimal

    @property
    def over_budget(self) -> bool:
        return self.pct > 100


class LedgerSnapshot(BaseModel):
    """Everything the engine needs, captured at one point in time."""
    model_config = ConfigDict(frozen=True)

    transactions: tuple[Transaction, ...] = ()
    budgets: dict[str, Decimal] = Field(default_factory=dict)
    taken_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )


class LedgerReport(BaseModel):
    """
    The complete derived view of a snapshot for one period.

    Plain data only; safe to serialize with `model_dump(mode="json")`.
    """
    model_config = ConfigDict(frozen=True)

    period: Period
    transactions: list[Transaction]
    financials: FinancialSummary
    budget_stats: list[BudgetStat]
    expenses_by_category: dict[str, Decimal]
    issues: list[LedgerIssue] = Field(default_factory=list)

    @property
    def has_issues(self) -> bool:
        return bool(self.issues)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found in a new transaction."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'suspicious_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of validating a transaction before it is recorded.

    Stage 1: Schema validation (amount, required type-specific fields)
    Stage 2: Semantic validation (dates, suspicious values)
    """

    transaction_id: str
    validated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    schema_valid: bool
    semantic_valid: bool
    is_valid: bool

    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")
