"""Aggregate pricing for multi-product bundle offers"""

import asyncio
import logging
import warnings
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from storefront.core.exceptions import DataIntegrityWarning
from storefront.models.product import Product
from storefront.services.product_service import ProductLookup
from storefront.utils.helpers import round_percent

logger = logging.getLogger(__name__)


@dataclass
class BundlePricing:
    original_total: Decimal
    discount_percent: int
    bundle_price: Decimal
    missing_product_ids: List[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return not self.missing_product_ids


class BundlePricingResolver:
    """
    Resolves a bundle's constituent prices and derives its discount.

    A constituent that cannot be resolved contributes zero to the original
    total and is reported as a DataIntegrityWarning instead of failing.
    """

    def __init__(self, product_lookup: ProductLookup):
        self.product_lookup = product_lookup

    async def _lookup(self, product_id: str) -> Optional[Product]:
        return await self.product_lookup.get_product(product_id)

    async def resolve(self, bundle: Product) -> BundlePricing:
        constituents = bundle.bundle_items
        results = await asyncio.gather(
            *(self._lookup(item.product_id) for item in constituents),
            return_exceptions=True
        )

        original_total = Decimal("0")
        missing = []
        for item, result in zip(constituents, results):
            if isinstance(result, Exception) or result is None:
                missing.append(item.product_id)
                message = f"Bundle {bundle.id} constituent {item.product_id} could not be resolved"
                if isinstance(result, Exception):
                    message = f"{message}: {result}"
                logger.warning(message)
                warnings.warn(message, DataIntegrityWarning, stacklevel=2)
                continue
            original_total += result.price * item.quantity

        bundle_price = bundle.bundle_price if bundle.bundle_price is not None else bundle.price
        if original_total > 0:
            discount_percent = round_percent((1 - bundle_price / original_total) * 100)
        else:
            discount_percent = 0

        return BundlePricing(
            original_total=original_total,
            discount_percent=discount_percent,
            bundle_price=bundle_price,
            missing_product_ids=missing,
        )
