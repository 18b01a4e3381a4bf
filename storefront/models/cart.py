"""
Shopping cart models
Line items grouped by the farm seller they are bought from
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import Field

from .base import Money, StorefrontModel


class CartLineItem(StorefrontModel):
    """One product entry in the cart"""

    product_id: str
    seller_id: str
    seller_name: str = "Unknown Farm"
    product_name: str
    price: Money = Field(..., ge=0)
    quantity: int = Field(default=1, ge=1)
    unit: Optional[str] = None
    image_ref: Optional[str] = None

    # Local UI state, never persisted
    selected: bool = Field(default=False, exclude=True)

    @property
    def key(self):
        return (self.seller_id, self.product_id)

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


class SellerGroup(StorefrontModel):
    """All cart line items belonging to one seller"""

    seller_id: str
    seller_name: str
    items: List[CartLineItem] = Field(default_factory=list)

    @property
    def selected(self) -> bool:
        return bool(self.items) and all(item.selected for item in self.items)

    def find(self, product_id: str) -> Optional[CartLineItem]:
        return next((i for i in self.items if i.product_id == product_id), None)


class CartDocument(StorefrontModel):
    """Persisted cart: a flat ordered list of line items"""

    items: List[CartLineItem] = Field(default_factory=list)
    updated_at: Optional[datetime] = None

    def to_document(self, **kwargs) -> Dict[str, Any]:
        return super().to_document(exclude_none=True, **kwargs)
