"""
Monetary arithmetic and identifier normalization rules.

All monetary computations are quantized to 4 decimal places, half-up,
so that persisted values match downstream reporting exactly.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from app.domain.ledger.errors import InvalidAmountError

MONEY_PLACES = Decimal("0.0001")
ACCOUNT_NUMBER_WIDTH = 10


def quantize(value: Decimal) -> Decimal:
    """Round a monetary value to 4 decimal places, half-up."""
    return value.quantize(MONEY_PLACES, rounding=ROUND_HALF_UP)


def to_money(value: object) -> Decimal:
    """Coerce an incoming amount to a quantized Decimal.

    Floats are converted through ``str`` so that ``0.1`` stays ``0.1``.

    Raises:
        InvalidAmountError: If the value is not a finite number.
    """
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError) as exc:
        raise InvalidAmountError(f"not a number: {value!r}") from exc
    if not amount.is_finite():
        raise InvalidAmountError(f"not a finite amount: {value!r}")
    return quantize(amount)


def require_positive_amount(value: object) -> Decimal:
    """Return the quantized amount, rejecting anything that is not > 0."""
    amount = to_money(value)
    if amount <= 0:
        raise InvalidAmountError("amount must be greater than zero")
    return amount


def require_positive_quantity(quantity: int) -> int:
    """Reject non-integer or non-positive share quantities."""
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidAmountError("quantity must be a whole number of shares")
    if quantity <= 0:
        raise InvalidAmountError("quantity must be greater than zero")
    return quantity


def canonical_account_number(identifier: object) -> str:
    """Normalize an account identifier to its canonical form.

    Purely numeric identifiers are zero-padded to a fixed width of ten
    digits (``"42"`` -> ``"0000000042"``). Anything else is returned
    stripped but otherwise unchanged, so the SYSTEM sentinel survives.
    """
    text = str(identifier).strip()
    if text.isascii() and text.isdigit():
        return f"{int(text):0{ACCOUNT_NUMBER_WIDTH}d}"
    return text
