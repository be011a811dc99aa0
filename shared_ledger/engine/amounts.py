"""
Amount parsing.

Stored amounts are text. They become Decimal here and nowhere else, so every
fold sees either an exact, finite, non-negative value or an InvalidAmountError.
"""

import re
from decimal import ROUND_HALF_UP, Decimal

from shared_ledger.engine.errors import InvalidAmountError
from shared_ledger.models.ledger import Transaction

CENT = Decimal("0.01")

# Plain ASCII decimal with an optional exponent: "120.50", ".5", "1e3"
_AMOUNT_PATTERN = re.compile(r"^(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$", re.ASCII)

# Largest decimal exponent of an accepted amount (integer part of at most 15
# digits); keeps every sum and cent rounding inside the default context
MAX_AMOUNT_EXPONENT = 14


def parse_amount(text: str, transaction_id: str = "") -> Decimal:
    """
    Parse a textual amount into a Decimal.

    Raises:
        InvalidAmountError: if the text is empty, not a plain number,
            negative, or too large.
    """
    cleaned = (text or "").strip()
    if not cleaned:
        raise InvalidAmountError(transaction_id, "Amount is empty")

    if cleaned.startswith("-") and _AMOUNT_PATTERN.match(cleaned[1:]):
        raise InvalidAmountError(transaction_id, f"Amount {text!r} is negative")
    if not _AMOUNT_PATTERN.match(cleaned):
        raise InvalidAmountError(transaction_id, f"Amount {text!r} is not a number")

    value = Decimal(cleaned)
    if value and value.adjusted() > MAX_AMOUNT_EXPONENT:
        raise InvalidAmountError(transaction_id, f"Amount {text!r} is too large")

    return value


def amount_of(txn: Transaction) -> Decimal:
    """Parsed amount of a transaction."""
    return parse_amount(txn.amount, txn.id)


def to_cents(value: Decimal) -> Decimal:
    """Round half-up to two decimal places."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)
