"""
Helper utilities
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Union

Number = Union[Decimal, int, float, str]

CENTS = Decimal("0.01")


def to_decimal(value: Number) -> Decimal:
    """Coerce a stored number into Decimal without float artifacts"""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def round_money(amount: Number) -> Decimal:
    """Round to centavos, half away from zero"""
    return to_decimal(amount).quantize(CENTS, rounding=ROUND_HALF_UP)


def round_percent(value: Number) -> int:
    """Round to a whole percent, half away from zero"""
    return int(to_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_currency(amount: Number, symbol: str = "₱") -> str:
    """
    Format amount as currency

    Args:
        amount: Amount to format
        symbol: Currency symbol

    Returns:
        Formatted currency string, e.g. ₱1,234.50
    """
    value = round_money(amount)
    sign = "-" if value < 0 else ""
    return f"{sign}{symbol}{abs(value):,.2f}"


def generate_order_id() -> str:
    """Generate unique order id"""
    # Format: SK-YYYYMMDD-XXXXXXXXXX
    today = datetime.now(timezone.utc).strftime("%Y%m%d")
    return f"SK-{today}-{uuid.uuid4().hex[:10].upper()}"


def mask_card_number(card_number: str) -> str:
    """Keep only the last four digits visible"""
    digits = "".join(ch for ch in card_number if ch.isdigit())
    return f"•••• •••• •••• {digits[-4:]}"
