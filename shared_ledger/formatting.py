"""
Display helpers.

The engine returns exact Decimals; rounding to two places happens only here,
at the point of display.
"""

from decimal import Decimal

from shared_ledger.engine.amounts import to_cents
from shared_ledger.models.ledger import Granularity, Period, Settlement, WhoOwes


def format_currency(amount: Decimal, symbol: str = "₹") -> str:
    """Format an amount, e.g. '₹1,234.56' or '-₹20.00'."""
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{to_cents(abs(amount)):,.2f}"


def format_period_label(period: Period) -> str:
    """
    Human label for a period.

    weekly:  'Jan 1 - Jan 7, 2024'
    monthly: 'January 2024'
    yearly:  '2024'
    """
    start, end = period.start, period.end
    if period.granularity == Granularity.WEEKLY:
        return (
            f"{start.strftime('%b')} {start.day} - "
            f"{end.strftime('%b')} {end.day}, {end.year}"
        )
    if period.granularity == Granularity.MONTHLY:
        return start.strftime("%B %Y")
    return str(start.year)


def describe_settlement(settlement: Settlement, symbol: str = "₹") -> str:
    """One-line summary of who owes whom."""
    amount = format_currency(settlement.amount, symbol)
    if settlement.who_owes == WhoOwes.ME:
        return f"You owe Her {amount}"
    if settlement.who_owes == WhoOwes.HER:
        return f"She owes You {amount}"
    return "All settled up"
