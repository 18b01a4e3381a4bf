"""Product lookup backed by the products collection"""

import logging
from typing import Optional, Protocol

from pydantic import ValidationError

from storefront.core.config import settings
from storefront.core.document_store import DocumentStore
from storefront.models.product import Product

logger = logging.getLogger(__name__)


class ProductLookup(Protocol):
    async def get_product(self, product_id: str) -> Optional[Product]:
        ...


class DocumentStoreProductLookup:
    """Reads products/{id} documents"""

    def __init__(self, store: DocumentStore, config=None):
        self.store = store
        self.settings = config or settings

    async def get_product(self, product_id: str) -> Optional[Product]:
        data = await self.store.get_document(self.settings.product_path(product_id))
        if data is None:
            return None
        try:
            return Product.from_document(data, id=product_id)
        except ValidationError as e:
            logger.warning(f"Product {product_id} has an unreadable document: {e}")
            return None
