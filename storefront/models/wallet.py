"""Stored-value balance and its ledger"""

from datetime import datetime
from typing import Optional
import enum

from pydantic import Field

from .base import Money, StorefrontModel, utcnow


class TransactionType(str, enum.Enum):
    DEBIT = "debit"
    CREDIT = "credit"


class StoredValueBalance(StorefrontModel):
    """Buyer's prepaid balance document"""
    current_balance: Money = Field(default=0)
    last_updated: Optional[datetime] = None


class LedgerEntry(StorefrontModel):
    """Append-only balance transaction"""
    id: Optional[str] = Field(default=None, exclude=True)
    amount: Money = Field(..., gt=0)
    type: TransactionType
    description: str
    created_at: datetime = Field(default_factory=utcnow)
    order_id: Optional[str] = None
    new_balance: Money
