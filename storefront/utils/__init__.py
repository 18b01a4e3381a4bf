"""Utilities package"""

from .helpers import format_currency, generate_order_id, mask_card_number, round_money, round_percent, to_decimal
from .validators import detect_card_type, validate_card, validate_card_number, validate_expiry, validate_cvv

__all__ = [
    "format_currency",
    "generate_order_id",
    "mask_card_number",
    "round_money",
    "round_percent",
    "to_decimal",
    "detect_card_type",
    "validate_card",
    "validate_card_number",
    "validate_expiry",
    "validate_cvv",
]
