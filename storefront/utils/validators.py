"""Custom validators for payment card input"""

import re
from datetime import date
from typing import Dict, Optional

# Card brand prefixes
CARD_PATTERNS = {
    "visa": re.compile(r"^4"),
    "mastercard": re.compile(r"^5[1-5]"),
    "amex": re.compile(r"^3[47]"),
    "discover": re.compile(r"^6(?:011|5)"),
}

EXPIRY_PATTERN = re.compile(r"^(\d{2})/(\d{2})$")


def normalize_card_number(number: str) -> str:
    return re.sub(r"\s", "", number or "")


def validate_card_number(number: str) -> bool:
    """Luhn checksum"""
    num = normalize_card_number(number)
    if not num.isdigit():
        return False

    total = 0
    for i, ch in enumerate(num):
        digit = int(ch)
        if (len(num) - i) % 2 == 0:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


def detect_card_type(number: str) -> str:
    num = normalize_card_number(number)
    for card_type, pattern in CARD_PATTERNS.items():
        if pattern.match(num):
            return card_type
    return "unknown"


def validate_expiry(expiry: str, today: Optional[date] = None) -> bool:
    """MM/YY, not in the past"""
    match = EXPIRY_PATTERN.match((expiry or "").strip())
    if not match:
        return False

    month, year = int(match.group(1)), int(match.group(2))
    if month < 1 or month > 12:
        return False

    today = today or date.today()
    current_year = today.year % 100
    if year < current_year:
        return False
    if year == current_year and month < today.month:
        return False
    return True


def validate_cvv(cvv: str, card_type: str) -> bool:
    length = 4 if card_type == "amex" else 3
    return len(cvv or "") == length and cvv.isdigit()


def validate_card(
    card_number: str,
    expiry: str,
    cvv: str,
    card_holder: str,
    today: Optional[date] = None
) -> Dict[str, str]:
    """Return field -> error message for every invalid field"""
    errors = {}
    card_type = detect_card_type(card_number)

    if not validate_card_number(card_number):
        errors["card_number"] = "Invalid card number"
    if not (card_holder or "").strip():
        errors["card_holder"] = "Card holder name is required"
    if not validate_expiry(expiry, today):
        errors["expiry"] = "Invalid expiry date (MM/YY)"
    if not validate_cvv(cvv, card_type):
        errors["cvv"] = "Invalid 4-digit CVV" if card_type == "amex" else "Invalid 3-digit CVV"
    return errors
