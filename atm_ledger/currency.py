"""
Money Handling Module

Decimal helpers for the ledger's single currency. Amounts are quantized to
cents with ROUND_HALF_UP and NEVER stored as float.
"""

from decimal import Decimal, ROUND_HALF_UP, InvalidOperation, getcontext
from typing import Union
import re

from .exceptions import MalformedAmountError

# High precision for intermediate arithmetic
getcontext().prec = 28

CURRENCY_SYMBOL = "$"
CENTS = Decimal("0.01")
ZERO = Decimal("0.00")

# Largest balance the ledger holds; sums below it stay exact under the
# 28-digit context
MAX_BALANCE = Decimal("999999999999999.99")

AmountLike = Union[Decimal, int, float, str]


def to_decimal(value: AmountLike) -> Decimal:
    """
    Coerce a numeric value to a cent-quantized Decimal

    Floats go through str() so 200.5 becomes Decimal('200.50') rather than
    the binary expansion.

    Args:
        value: Decimal, int, float or numeric string

    Returns:
        Decimal rounded to two places

    Raises:
        ValueError: If the value is not a finite number or needs more
            digits than the decimal context holds
    """
    if isinstance(value, bool):
        raise ValueError("Amount must be a number, not a boolean")

    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, (int, float, str)):
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            raise ValueError(f"Cannot convert '{value}' to Decimal")
    else:
        raise ValueError(f"Unsupported amount type: {type(value).__name__}")

    if not amount.is_finite():
        raise ValueError("Amount must be a finite number")

    try:
        return amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValueError(f"Amount {value} has too many digits")


def format_amount(amount: Decimal) -> str:
    """Two-decimal fixed-point without symbol, e.g. '200.50'"""
    return f"{amount:.2f}"


def format_money(amount: Decimal) -> str:
    """
    Format for display with currency symbol

    Args:
        amount: Decimal amount

    Returns:
        String such as '$1,200.50'
    """
    if amount < 0:
        return f"-{CURRENCY_SYMBOL}{-amount:,.2f}"
    return f"{CURRENCY_SYMBOL}{amount:,.2f}"


def parse_amount(text: str) -> Decimal:
    """
    Parse an amount typed by a user

    Accepts a leading currency symbol, surrounding whitespace and thousands
    separators ('$1,250.75'). This is a presentation-layer concern; the ledger
    itself only accepts numbers.

    Args:
        text: Raw user input

    Returns:
        Cent-quantized Decimal (may be zero or negative; the ledger decides)

    Raises:
        MalformedAmountError: If the text is empty or not a finite number
    """
    if text is None or not isinstance(text, str) or not text.strip():
        raise MalformedAmountError("Amount must be a non-empty string")

    clean_value = text.strip()
    if clean_value.startswith(CURRENCY_SYMBOL):
        clean_value = clean_value[len(CURRENCY_SYMBOL):].strip()

    # Thousands separators only in the integer part
    if re.fullmatch(r"[+-]?\d{1,3}(,\d{3})+(\.\d+)?", clean_value):
        clean_value = clean_value.replace(",", "")

    if not re.fullmatch(r"[+-]?(\d+(\.\d*)?|\.\d+)", clean_value):
        raise MalformedAmountError(f"Cannot convert '{text}' to an amount")

    try:
        return to_decimal(clean_value)
    except ValueError as e:
        raise MalformedAmountError(str(e)) from e
