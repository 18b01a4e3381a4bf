"""
Payment instrument models
Stored-value balance, saved cards and bank / e-wallet placeholders
"""

from datetime import datetime
from typing import Optional
import enum

from pydantic import Field

from .base import Money, StorefrontModel, utcnow


class InstrumentType(str, enum.Enum):
    WALLET = "wallet"
    CARD = "card"
    BANK = "bank"
    EWALLET = "ewallet"


class SavedCard(StorefrontModel):
    """Tokenized card stored under users/{id}/paymentMethods"""

    id: Optional[str] = Field(default=None, exclude=True)
    card_id: str
    card_holder: str
    card_type: str
    last_four: str
    masked_number: str
    expiry_month: str
    expiry_year: str
    is_default: bool = False
    is_active: bool = True
    created_at: datetime = Field(default_factory=utcnow)
    last_used: Optional[datetime] = None


class PaymentInstrument(StorefrontModel):
    """Something the buyer can pay with at checkout"""

    id: str
    type: InstrumentType
    name: str

    # Stored-value balance
    balance: Optional[Money] = None

    # Cards
    brand: Optional[str] = None
    masked_number: Optional[str] = None
    expiry: Optional[str] = None
    is_default: bool = False

    # Bank / e-wallet placeholders
    code: Optional[str] = None

    @property
    def is_wallet(self) -> bool:
        return self.type == InstrumentType.WALLET

    @property
    def label(self) -> str:
        """Display label recorded on the order"""
        return self.name
