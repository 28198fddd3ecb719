"""Amount formatting utilities."""

from decimal import Decimal

CURRENCY_SYMBOL = "৳"


def format_amount(amount: Decimal) -> str:
    """Format an amount with thousands separators.

    Trailing fractional zeros are dropped:
    - Decimal("1500.00") -> "1,500"
    - Decimal("12.50") -> "12.5"

    Args:
        amount: Amount to format

    Returns:
        Formatted amount without currency symbol
    """
    text = f"{amount:,.2f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def format_taka(amount: Decimal) -> str:
    """Format an amount with the taka sign, e.g. ``৳1,500``."""
    return f"{CURRENCY_SYMBOL}{format_amount(amount)}"
