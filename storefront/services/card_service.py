"""Saved payment card management"""

import logging
import time
from typing import List, Optional

from storefront.core.config import settings
from storefront.core.document_store import BatchWrite, DocumentStore, Predicate
from storefront.core.exceptions import CommitException, DocumentStoreException, InvalidCardException, NotFoundException
from storefront.models.payment import SavedCard
from storefront.utils.helpers import mask_card_number
from storefront.utils.validators import detect_card_type, normalize_card_number, validate_card

logger = logging.getLogger(__name__)


class PaymentCardService:
    """Service for the buyer's saved cards under users/{id}/paymentMethods"""

    def __init__(self, store: DocumentStore, config=None):
        self.store = store
        self.settings = config or settings

    def _card_path(self, buyer_id: str, card_id: str) -> str:
        return f"{self.settings.payment_methods_path(buyer_id)}/{card_id}"

    async def list_cards(self, buyer_id: str) -> List[SavedCard]:
        """Active cards, default first"""
        docs = await self.store.query_collection(
            self.settings.payment_methods_path(buyer_id),
            [Predicate("isActive", "==", True)]
        )
        cards = []
        for doc in docs:
            card = SavedCard.from_document(doc.data)
            card.id = doc.id
            cards.append(card)
        cards.sort(key=lambda c: (not c.is_default, -c.created_at.timestamp()))
        return cards

    async def _commit(self, buyer_id: str, writes: List[BatchWrite], action: str) -> None:
        try:
            await self.store.run_atomic_batch(writes)
        except DocumentStoreException as e:
            logger.warning(f"Failed to {action} for buyer {buyer_id}: {e}")
            raise CommitException(f"Failed to {action}", error_code="CARD_UPDATE_FAILED")

    async def _unset_default_writes(self, buyer_id: str, keep_id: Optional[str] = None) -> List[BatchWrite]:
        docs = await self.store.query_collection(
            self.settings.payment_methods_path(buyer_id),
            [Predicate("isDefault", "==", True)]
        )
        return [
            BatchWrite.update(doc.path, {"isDefault": False})
            for doc in docs
            if doc.id != keep_id
        ]

    async def add_card(
        self,
        buyer_id: str,
        card_number: str,
        expiry: str,
        cvv: str,
        card_holder: str,
        is_default: bool = False
    ) -> SavedCard:
        """
        Validate and save a card

        Only the last four digits are stored. When the new card is the
        default, every other default is unset in the same batch.
        """
        errors = validate_card(card_number, expiry, cvv, card_holder)
        if errors:
            raise InvalidCardException(errors)

        number = normalize_card_number(card_number)
        expiry_month, expiry_year = expiry.strip().split("/")
        card = SavedCard(
            card_id=f"card_{int(time.time() * 1000)}",
            card_holder=card_holder.strip(),
            card_type=detect_card_type(number),
            last_four=number[-4:],
            masked_number=mask_card_number(number),
            expiry_month=expiry_month,
            expiry_year=expiry_year,
            is_default=is_default,
        )
        card.id = self.store.new_document_id()

        writes = []
        if is_default:
            writes.extend(await self._unset_default_writes(buyer_id))
        writes.append(BatchWrite.set(self._card_path(buyer_id, card.id), card.to_document()))

        await self._commit(buyer_id, writes, "add card")
        logger.info(f"Buyer {buyer_id} added {card.card_type} card ending {card.last_four}")
        return card

    async def set_default(self, buyer_id: str, card_id: str) -> None:
        """Make one card the default, unsetting all others atomically"""
        path = self._card_path(buyer_id, card_id)
        data = await self.store.get_document(path)
        if data is None or not data.get("isActive", True):
            raise NotFoundException("Payment method not found")

        writes = await self._unset_default_writes(buyer_id, keep_id=card_id)
        writes.append(BatchWrite.update(path, {"isDefault": True}))
        await self._commit(buyer_id, writes, "set default payment method")

    async def remove_card(self, buyer_id: str, card_id: str) -> None:
        """Soft delete; the card stays for order history"""
        path = self._card_path(buyer_id, card_id)
        data = await self.store.get_document(path)
        if data is None:
            raise NotFoundException("Payment method not found")

        await self._commit(
            buyer_id,
            [BatchWrite.update(path, {"isActive": False, "isDefault": False})],
            "remove payment method"
        )
