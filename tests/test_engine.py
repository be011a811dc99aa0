"""Tests for the ledger engine: filtering, totals, settlement and budgets."""

import itertools

import pytest
from datetime import date
from decimal import Decimal

from shared_ledger.engine import (
    BudgetTracker,
    FinancialAggregator,
    InvalidAmountError,
    InvalidSettlementError,
    LedgerEngine,
    PeriodResolver,
    SettlementCalculator,
    TransactionFilter,
    check_settlement,
    parse_amount,
    to_cents,
)
from shared_ledger.models.ledger import (
    Granularity,
    IssueType,
    LedgerSnapshot,
    Owner,
    SplitType,
    TransactionType,
    WhoOwes,
)


class TestParseAmount:
    """Tests for amount parsing."""

    def test_plain_amounts(self):
        """Test ordinary decimal text."""
        assert parse_amount("120.50") == Decimal("120.50")
        assert parse_amount(" 7 ") == Decimal("7")
        assert parse_amount("0") == Decimal("0")
        assert parse_amount(".5") == Decimal("0.5")
        assert parse_amount("1e3") == Decimal("1000")
        assert parse_amount("999999999999999.99") == Decimal("999999999999999.99")

    @pytest.mark.parametrize("text", [
        "", "   ", "abc", "NaN", "Infinity", "-5", "1,200", "1_000", "\u0661\u0662",
        "1e15", "1e1000000",
    ])
    def test_rejected_amounts(self, text):
        """Test that unusable amounts raise InvalidAmountError."""
        with pytest.raises(InvalidAmountError) as exc_info:
            parse_amount(text, "t1")
        assert exc_info.value.transaction_id == "t1"
        assert exc_info.value.to_issue().issue_type == IssueType.INVALID_AMOUNT

    def test_to_cents_rounds_half_up(self):
        """Test display rounding."""
        assert to_cents(Decimal("0.125")) == Decimal("0.13")
        assert to_cents(Decimal("50")) == Decimal("50.00")


class TestTransactionFilter:
    """Tests for period selection and ordering."""

    def test_filter_is_inclusive(self, make_txn):
        """Test that both period boundaries are included."""
        period = PeriodResolver().resolve(date(2024, 1, 3), Granularity.WEEKLY)
        first = make_txn(date=date(2024, 1, 1))
        last = make_txn(date=date(2024, 1, 7))
        before = make_txn(date=date(2023, 12, 31))
        after = make_txn(date=date(2024, 1, 8))

        selected = TransactionFilter().filter([before, first, last, after], period)
        assert selected == [first, last]

    def test_sort_newest_first_is_stable(self, make_txn):
        """Test that same-day transactions keep input order."""
        a = make_txn(date=date(2024, 1, 2))
        b = make_txn(date=date(2024, 1, 5))
        c = make_txn(date=date(2024, 1, 2))

        ordered = TransactionFilter().sort_newest_first([a, b, c])
        assert ordered == [b, a, c]


class TestFinancialAggregator:
    """Tests for income/expense totals."""

    def test_totals_exclude_settlements(self, make_txn, make_settlement):
        """Test that settlements are neither income nor expense."""
        txns = [
            make_txn(amount="1000", type=TransactionType.INCOME, split=SplitType.PERSONAL),
            make_txn(amount="200"),
            make_txn(amount="100.50", split=SplitType.PERSONAL),
            make_settlement(Owner.ME, "75"),
        ]
        totals, issues = FinancialAggregator().aggregate(txns)
        assert totals.income == Decimal("1000")
        assert totals.expense == Decimal("300.50")
        assert totals.balance == Decimal("699.50")
        assert issues == []

    def test_empty_period(self):
        """Test totals for no transactions."""
        totals, issues = FinancialAggregator().aggregate([])
        assert totals.income == totals.expense == totals.balance == Decimal("0")
        assert issues == []

    def test_invalid_amount_is_skipped_and_reported(self, make_txn):
        """Test that one bad record cannot poison the total."""
        good = make_txn(amount="40")
        bad = make_txn(amount="abc")
        totals, issues = FinancialAggregator().aggregate([good, bad])
        assert totals.expense == Decimal("40")
        assert len(issues) == 1
        assert issues[0].transaction_id == bad.id
        assert issues[0].issue_type == IssueType.INVALID_AMOUNT

    def test_oversized_amount_is_skipped(self, make_txn):
        """Test that an amount too large to add up is reported, not raised."""
        huge = make_txn(amount="1e1000000")
        totals, issues = FinancialAggregator().aggregate([make_txn(amount="40"), huge])
        assert totals.expense == Decimal("40")
        assert [i.transaction_id for i in issues] == [huge.id]

    def test_expenses_by_category(self, make_txn):
        """Test the per-category expense breakdown."""
        txns = [
            make_txn(amount="10", category="Groceries"),
            make_txn(amount="5", category="Transport"),
            make_txn(amount="2.5", category="Groceries"),
            make_txn(amount="999", category="Income", type=TransactionType.INCOME),
        ]
        usage, issues = FinancialAggregator().expenses_by_category(txns)
        assert usage == {"Groceries": Decimal("12.5"), "Transport": Decimal("5")}
        assert issues == []


class TestSettlementCalculator:
    """Tests for the all-time debt between the owners."""

    def test_shared_expense_paid_by_me(self, make_txn):
        """Test that she owes half of what I fronted."""
        settlement, issues = SettlementCalculator().settle([make_txn(amount="100", owner=Owner.ME)])
        assert settlement.raw == Decimal("-50")
        assert settlement.amount == Decimal("50")
        assert settlement.who_owes == WhoOwes.HER
        assert issues == []

    def test_shared_expense_paid_by_her(self, make_txn):
        """Test that I owe half of what she fronted."""
        settlement, _ = SettlementCalculator().settle([make_txn(amount="100", owner=Owner.HER)])
        assert settlement.raw == Decimal("50")
        assert settlement.who_owes == WhoOwes.ME

    def test_settlement_clears_debt(self, make_txn, make_settlement):
        """Test that paying the owed amount brings the balance to zero."""
        txns = [
            make_txn(amount="100", owner=Owner.ME),
            make_settlement(Owner.HER, "50"),
        ]
        settlement, _ = SettlementCalculator().settle(txns)
        assert settlement.raw == Decimal("0")
        assert settlement.who_owes == WhoOwes.NONE

    def test_partial_settlement(self, make_txn, make_settlement):
        """Test that a partial payment reduces the debt."""
        txns = [
            make_txn(amount="100", owner=Owner.HER),
            make_settlement(Owner.ME, "30"),
        ]
        settlement, _ = SettlementCalculator().settle(txns)
        assert settlement.raw == Decimal("20")
        assert settlement.who_owes == WhoOwes.ME

    def test_personal_and_income_ignored(self, make_txn):
        """Test that only shared expenses create debt."""
        txns = [
            make_txn(amount="500", split=SplitType.PERSONAL),
            make_txn(amount="800", type=TransactionType.INCOME, split=SplitType.SHARED),
        ]
        settlement, _ = SettlementCalculator().settle(txns)
        assert settlement.raw == Decimal("0")
        assert settlement.who_owes == WhoOwes.NONE

    def test_debt_below_a_cent_is_settled(self, make_txn):
        """Test that rounding noise counts as settled."""
        settlement, _ = SettlementCalculator().settle([make_txn(amount="0.01", owner=Owner.HER)])
        assert settlement.raw == Decimal("0.005")
        assert settlement.who_owes == WhoOwes.NONE

    def test_order_does_not_matter(self, make_txn, make_settlement):
        """Test that every ordering of the history gives the same result."""
        txns = [
            make_txn(amount="120.10", owner=Owner.ME),
            make_txn(amount="33.33", owner=Owner.HER),
            make_settlement(Owner.HER, "20"),
            make_txn(amount="7", owner=Owner.HER),
        ]
        results = {
            SettlementCalculator().settle(list(order))[0].raw
            for order in itertools.permutations(txns)
        }
        assert len(results) == 1

    def test_invalid_settlement_is_skipped(self, make_txn, make_settlement):
        """Test that a self-payment is reported, not counted."""
        bad = make_settlement(Owner.ME, "40", to_owner=Owner.ME)
        settlement, issues = SettlementCalculator().settle([make_txn(amount="100", owner=Owner.HER), bad])
        assert settlement.raw == Decimal("50")
        assert [i.issue_type for i in issues] == [IssueType.INVALID_SETTLEMENT]
        assert issues[0].transaction_id == bad.id

    def test_check_settlement(self, make_settlement):
        """Test payer/payee consistency rules."""
        check_settlement(make_settlement(Owner.HER))
        with pytest.raises(InvalidSettlementError):
            check_settlement(make_settlement(Owner.ME, to_owner=None))
        with pytest.raises(InvalidSettlementError):
            check_settlement(make_settlement(Owner.ME, owner=Owner.HER))

    def test_settlement_payment(self, make_txn):
        """Test building the transaction that clears the debt."""
        calculator = SettlementCalculator()
        history = [make_txn(amount="100.255", owner=Owner.ME)]
        settlement, _ = calculator.settle(history)

        payment = calculator.settlement_payment(settlement, on=date(2024, 2, 1))
        assert payment.type == TransactionType.SETTLEMENT
        assert payment.owner == Owner.HER
        assert payment.from_owner == Owner.HER
        assert payment.to_owner == Owner.ME
        assert payment.amount == "50.13"
        assert payment.category == "Settlement"

    def test_no_payment_when_settled(self):
        """Test that nothing is built when nobody owes."""
        calculator = SettlementCalculator()
        settlement, _ = calculator.settle([])
        assert calculator.settlement_payment(settlement, on=date(2024, 2, 1)) is None

    def test_settlement_payment_at_largest_amount(self, make_txn):
        """Test that the largest accepted amount still rounds to cents."""
        calculator = SettlementCalculator()
        history = [
            make_txn(amount="999999999999999.99", owner=Owner.ME),
            make_txn(amount="1e30", owner=Owner.ME),
        ]
        settlement, issues = calculator.settle(history)

        payment = calculator.settlement_payment(settlement, on=date(2024, 2, 1))
        assert payment.amount == "500000000000000.00"
        assert [i.transaction_id for i in issues] == [history[1].id]


class TestBudgetTracker:
    """Tests for budget utilization."""

    def test_weekly_scaling(self, make_txn):
        """Test that a monthly limit of 1000 becomes 230 for a week."""
        stats, _ = BudgetTracker().budget_stats(
            [make_txn(amount="115", category="Groceries")],
            {"Groceries": Decimal("1000")},
            Granularity.WEEKLY,
        )
        assert stats[0].effective_limit == Decimal("230")
        assert stats[0].pct == Decimal("50")

    def test_yearly_scaling(self, make_txn):
        """Test that yearly limits are twelve months."""
        stats, _ = BudgetTracker().budget_stats(
            [make_txn(amount="600", category="Groceries")],
            {"Groceries": Decimal("100")},
            "yearly",
        )
        assert stats[0].effective_limit == Decimal("1200")
        assert stats[0].pct == Decimal("50")

    def test_sorted_by_utilization(self, make_txn):
        """Test that the most used budget comes first."""
        txns = [
            make_txn(amount="10", category="Transport"),
            make_txn(amount="90", category="Groceries"),
        ]
        stats, _ = BudgetTracker().budget_stats(
            txns,
            {"Transport": Decimal("100"), "Groceries": Decimal("100"), "Travel": Decimal("100")},
            Granularity.MONTHLY,
        )
        assert [s.category for s in stats] == ["Groceries", "Transport", "Travel"]
        assert stats[2].spent == Decimal("0")

    def test_equal_utilization_keeps_budget_order(self, make_txn):
        """Test that budgets with the same percentage stay in budget order."""
        txns = [
            make_txn(amount="50", category="Travel"),
            make_txn(amount="25", category="Groceries"),
            make_txn(amount="100", category="Transport"),
        ]
        stats, _ = BudgetTracker().budget_stats(
            txns,
            {"Travel": Decimal("100"), "Groceries": Decimal("50"), "Transport": Decimal("200")},
            Granularity.MONTHLY,
        )
        assert [s.category for s in stats] == ["Travel", "Groceries", "Transport"]
        assert {s.pct for s in stats} == {Decimal("50")}

    def test_unbudgeted_categories_skipped(self, make_txn):
        """Test that spending without a limit produces no stat."""
        stats, _ = BudgetTracker().budget_stats(
            [make_txn(amount="50", category="Shopping")],
            {"Groceries": Decimal("100")},
            Granularity.MONTHLY,
        )
        assert [s.category for s in stats] == ["Groceries"]

    def test_zero_limit(self, make_txn):
        """Test that a zero limit gives zero utilization instead of dividing by zero."""
        stats, _ = BudgetTracker().budget_stats(
            [make_txn(amount="50", category="Groceries")],
            {"Groceries": Decimal("0")},
            Granularity.MONTHLY,
        )
        assert stats[0].pct == Decimal("0")


class TestLedgerEngine:
    """Tests for the composed engine."""

    def test_report(self, make_txn, make_settlement):
        """Test the full report for one month."""
        snapshot = LedgerSnapshot(
            transactions=(
                make_txn(amount="3000", type=TransactionType.INCOME, split=SplitType.PERSONAL,
                         category="Income", date=date(2024, 1, 2)),
                make_txn(amount="100", owner=Owner.ME, date=date(2024, 1, 10)),
                make_txn(amount="40", owner=Owner.HER, date=date(2023, 12, 20)),
                make_settlement(Owner.HER, "10", date=date(2024, 1, 11)),
            ),
            budgets={"Groceries": Decimal("200")},
        )
        report = LedgerEngine().report(snapshot, date(2024, 1, 15), "monthly")

        assert report.period.start == date(2024, 1, 1)
        assert [t.date for t in report.transactions] == [
            date(2024, 1, 11), date(2024, 1, 10), date(2024, 1, 2),
        ]
        assert report.financials.income == Decimal("3000")
        assert report.financials.expense == Decimal("100")
        assert report.financials.balance == Decimal("2900")
        # Settlement spans all history: -50 + 20 + 10
        assert report.financials.settlement.raw == Decimal("-20")
        assert report.financials.settlement.who_owes == WhoOwes.HER
        assert report.budget_stats[0].pct == Decimal("50")
        assert report.expenses_by_category == {"Groceries": Decimal("100")}
        assert not report.has_issues

    def test_issue_reported_once(self, make_txn):
        """Test that a bad record skipped by several folds is reported once."""
        bad = make_txn(amount="oops")
        snapshot = LedgerSnapshot(transactions=(bad,), budgets={"Groceries": Decimal("10")})
        report = LedgerEngine().report(snapshot, date(2024, 1, 15), Granularity.MONTHLY)

        assert len(report.issues) == 1
        assert report.issues[0].transaction_id == bad.id
        assert report.financials.expense == Decimal("0")

    def test_compute_is_idempotent(self, make_txn, make_settlement):
        """Test that computing twice gives identical output."""
        snapshot = LedgerSnapshot(
            transactions=(make_txn(amount="12.34"), make_settlement(Owner.ME, "1")),
            budgets={"Groceries": Decimal("100")},
        )
        engine = LedgerEngine()
        period = engine.resolver.resolve(date(2024, 1, 15), Granularity.WEEKLY)

        first = engine.compute(snapshot, period)
        second = engine.compute(snapshot, period)
        assert first.model_dump_json() == second.model_dump_json()

    def test_empty_snapshot(self):
        """Test a snapshot with no data."""
        report = LedgerEngine().report(LedgerSnapshot(), date(2024, 1, 15), "weekly")
        assert report.transactions == []
        assert report.budget_stats == []
        assert report.financials.settlement.who_owes == WhoOwes.NONE
