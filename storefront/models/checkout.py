"""Checkout attempt models"""

from datetime import date
from decimal import Decimal
from typing import Optional
import enum

from pydantic import Field

from .base import Money, StorefrontModel
from .order import DeliveryOption, ProductSnapshot


class CheckoutState(str, enum.Enum):
    DRAFT = "draft"
    VALIDATING = "validating"
    COMMITTING = "committing"
    COMMITTED = "committed"
    ABORTED = "aborted"

    @property
    def is_terminal(self) -> bool:
        return self in (CheckoutState.COMMITTED, CheckoutState.ABORTED)


class OrderDraft(StorefrontModel):
    """Single-line order assembled before payment"""

    buyer_id: str
    product: ProductSnapshot
    quantity: int = Field(..., ge=1)
    delivery_option: DeliveryOption = DeliveryOption.DELIVERY
    delivery_date: Optional[date] = None
    discount_percent: Optional[Money] = None
    subtotal: Money
    discount: Money = Field(default=Decimal("0"))
    total: Money


class CheckoutReceipt(StorefrontModel):
    """What the confirmation screen shows"""
    order_id: str
    payment_method_label: str
    total: Money


class CheckoutResult(StorefrontModel):
    state: CheckoutState
    receipt: Optional[CheckoutReceipt] = None
    reason: Optional[str] = None
    error_code: Optional[str] = None

    @property
    def committed(self) -> bool:
        return self.state == CheckoutState.COMMITTED
