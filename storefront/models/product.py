"""
Product document model
Includes bundle offers composed of other products
"""

from typing import List, Optional

from pydantic import Field

from .base import Money, StorefrontModel


class ProductDiscount(StorefrontModel):
    percentage: Money = Field(default=0, ge=0, le=100)


class BundleItem(StorefrontModel):
    """Constituent reference inside a bundle"""
    product_id: str
    quantity: int = Field(default=1, ge=1)


class Product(StorefrontModel):
    """Product as listed by a farm seller"""

    id: str
    name: str
    price: Money = Field(..., ge=0)
    unit: Optional[str] = None
    stock: Optional[int] = None

    # Seller
    seller_id: Optional[str] = Field(None, alias="farmId")
    seller_name: Optional[str] = Field(None, alias="farmName")

    image_url: Optional[str] = None
    discount: Optional[ProductDiscount] = None
    minimum_order: int = Field(default=1, ge=1)

    # Bundles: bundle_price wins over price when both are stored
    is_bundled: bool = False
    bundle_price: Optional[Money] = Field(None, ge=0)
    bundle_items: List[BundleItem] = Field(default_factory=list)

    @property
    def discount_percent(self) -> Optional[Money]:
        if self.discount and self.discount.percentage:
            return self.discount.percentage
        return None

    @property
    def tracks_stock(self) -> bool:
        return self.stock is not None
