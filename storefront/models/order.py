"""Order model with status enums"""

from datetime import date, datetime
from typing import Optional
import enum

from pydantic import Field

from .base import Money, StorefrontModel, utcnow


class OrderStatus(str, enum.Enum):
    PROCESSING = "processing"
    READY = "ready"
    CANCELLED = "cancelled"
    DELIVERED = "delivered"


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"


class DeliveryOption(str, enum.Enum):
    DELIVERY = "delivery"
    PICKUP = "pickup"


class ProductSnapshot(StorefrontModel):
    """Product as it was when the order was placed"""
    id: str
    name: str
    price: Money
    unit: Optional[str] = None
    stock: Optional[int] = None
    seller_id: Optional[str] = Field(None, alias="farmId")
    seller_name: Optional[str] = Field(None, alias="farmName")
    image_url: Optional[str] = None


class Order(StorefrontModel):
    """Order record, immutable once created except for status"""

    order_id: str
    buyer_id: str = Field(..., alias="userId")
    product: ProductSnapshot
    quantity: int = Field(..., ge=1)

    # Delivery
    delivery_option: DeliveryOption = DeliveryOption.DELIVERY
    delivery_date: Optional[date] = None

    # Amounts
    subtotal: Money
    discount: Money = Field(default=0)
    total: Money

    # Payment
    payment_method: str
    status: OrderStatus = OrderStatus.PROCESSING
    payment_status: PaymentStatus = PaymentStatus.PAID

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None
