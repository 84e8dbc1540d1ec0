"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
import re

CURRENCY_SYMBOLS = re.compile(r"[$€£¥₹]")
# Bank exports often mark direction with a trailing CR/DR instead of a sign.
DIRECTION_SUFFIX = re.compile(r"\s*(CR|DR)$", re.IGNORECASE)


def parse_amount(amount_str: str | int | float | Decimal) -> Decimal:
    """Parse an amount into a Decimal.

    Handles various formats:
    - "123.45"
    - "$123.45", "₹1,234.56"
    - "-123.45", "-$123.45"
    - "(123.45)" (negative in parentheses)
    - "123.45 DR" (negative), "123.45 CR" (positive)

    Args:
        amount_str: Amount string, or an already numeric value

    Returns:
        Decimal amount

    Raises:
        ValueError: If the amount cannot be parsed
    """
    if isinstance(amount_str, Decimal):
        value = amount_str
    elif isinstance(amount_str, (int, float)) and not isinstance(amount_str, bool):
        value = Decimal(str(amount_str))
    else:
        value = _parse_text(amount_str)

    if not value.is_finite():
        raise ValueError(f"Could not parse amount '{amount_str}'")
    return value


def parse_non_negative_amount(amount_str: str | int | float | Decimal) -> Decimal:
    """Parse an amount that must be zero or greater, e.g. a debit or credit column."""
    value = parse_amount(amount_str)
    if value < 0:
        raise ValueError(f"Amount '{amount_str}' cannot be negative")
    return value


def _parse_text(amount_str) -> Decimal:
    if amount_str is None or not str(amount_str).strip():
        raise ValueError("Empty amount string")

    text = str(amount_str).strip()

    is_negative = False
    if text.startswith("(") and text.endswith(")"):
        is_negative = True
        text = text[1:-1]

    suffix = DIRECTION_SUFFIX.search(text)
    if suffix:
        is_negative = is_negative != (suffix.group(1).upper() == "DR")
        text = text[: suffix.start()]

    text = CURRENCY_SYMBOLS.sub("", text).replace(",", "").strip()

    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise ValueError(f"Could not parse amount '{amount_str}'")
    return -amount if is_negative else amount
