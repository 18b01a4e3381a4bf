"""
Cart synchronizer
Keeps the in-memory cart aggregate and the remote cart document consistent
"""

import asyncio
import logging
from typing import Optional

from pydantic import ValidationError

from storefront.core.config import settings
from storefront.core.document_store import DocumentStore
from storefront.core.exceptions import DocumentStoreException, SyncException
from storefront.models.cart import CartDocument, CartLineItem
from storefront.services.cart_service import CartAggregate

logger = logging.getLogger(__name__)


class CartSynchronizer:
    """
    Loads the buyer's cart document and overwrites it with a full snapshot
    after every mutation that changes persisted fields.

    The in-memory aggregate stays authoritative until a snapshot is
    confirmed written. A failed persist leaves the cart dirty and the next
    mutation (or an explicit flush) writes the latest full snapshot.
    Selection toggles are local UI state and never trigger a write.
    """

    def __init__(
        self,
        store: DocumentStore,
        buyer_id: str,
        cart: Optional[CartAggregate] = None,
        config=None
    ):
        self.store = store
        self.buyer_id = buyer_id
        self.settings = config or settings
        self.cart = cart or CartAggregate()

        self._version = 0
        self._persisted_version = 0
        self._lock = asyncio.Lock()
        self.consecutive_failures = 0
        self.last_error: Optional[Exception] = None

    @property
    def path(self) -> str:
        return self.settings.cart_path(self.buyer_id)

    @property
    def dirty(self) -> bool:
        return self._persisted_version != self._version

    @property
    def needs_attention(self) -> bool:
        """Repeated persist failures; the caller may surface an outage"""
        return self.consecutive_failures >= self.settings.SYNC_FAILURE_ALERT_THRESHOLD

    # ------------------------------------------
    # Load / persist
    # ------------------------------------------

    async def load(self) -> CartAggregate:
        """Fetch the cart document, creating an empty one on first use"""
        try:
            data = await self.store.get_document(self.path)
            if data is None:
                await self.store.set_document(self.path, CartDocument().to_document())
                self.cart = CartAggregate()
                logger.info(f"Initialized empty cart for buyer {self.buyer_id}")
            else:
                self.cart = CartAggregate.from_document(data)
        except DocumentStoreException as e:
            logger.error(f"Failed to load cart for buyer {self.buyer_id}: {e}")
            raise SyncException(f"Failed to load cart: {e.detail}")
        except ValidationError as e:
            logger.error(f"Cart document for buyer {self.buyer_id} is unreadable: {e}")
            raise SyncException("Failed to load cart: stored document is unreadable")

        self._version = 0
        self._persisted_version = 0
        self.consecutive_failures = 0
        return self.cart

    async def persist(self) -> bool:
        """
        Overwrite the remote cart with the current full snapshot.

        Returns False when the write did not complete; the change is kept
        locally and retried on the next mutation.
        """
        async with self._lock:
            if not self.dirty:
                return True

            # Snapshot is taken under the lock so it is the latest state
            version = self._version
            document = self.cart.to_document()
            try:
                await self.store.set_document(self.path, document)
            except DocumentStoreException as e:
                self.consecutive_failures += 1
                self.last_error = e
                logger.warning(
                    f"Cart persist failed for buyer {self.buyer_id} "
                    f"({self.consecutive_failures} in a row): {e}"
                )
                return False

            self._persisted_version = version
            if self.consecutive_failures:
                logger.info(f"Cart persist recovered for buyer {self.buyer_id}")
            self.consecutive_failures = 0
            self.last_error = None
            return True

    async def flush(self) -> bool:
        """Retry any pending persist"""
        return await self.persist()

    async def _after_mutation(self, changed: bool) -> bool:
        if changed:
            self._version += 1
        if not self.dirty:
            return True
        return await self.persist()

    # ------------------------------------------
    # Mutations
    # ------------------------------------------

    async def merge_incoming_line(self, line: CartLineItem) -> bool:
        """Line item arriving out-of-band, e.g. from a product page"""
        return await self.add_item(line)

    async def add_item(self, line: CartLineItem) -> bool:
        return await self._after_mutation(self.cart.add_item(line))

    async def set_quantity(self, seller_id: str, product_id: str, quantity: int) -> bool:
        return await self._after_mutation(self.cart.set_quantity(seller_id, product_id, quantity))

    async def change_quantity(self, seller_id: str, product_id: str, delta: int) -> bool:
        return await self._after_mutation(self.cart.change_quantity(seller_id, product_id, delta))

    async def remove_item(self, seller_id: str, product_id: str) -> bool:
        return await self._after_mutation(self.cart.remove_item(seller_id, product_id))

    async def remove_selected(self) -> bool:
        return await self._after_mutation(self.cart.remove_selected())

    async def clear(self) -> bool:
        return await self._after_mutation(self.cart.clear())
