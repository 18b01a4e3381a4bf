"""Stored-value balance management service"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, List, Optional

from storefront.core.config import settings
from storefront.core.document_store import BatchWrite, DocumentStore
from storefront.core.exceptions import CommitException, DocumentStoreException, InvalidAmountException
from storefront.models.base import utcnow
from storefront.models.wallet import LedgerEntry, StoredValueBalance, TransactionType
from storefront.utils.helpers import round_money, to_decimal

logger = logging.getLogger(__name__)


@dataclass
class BalanceSnapshot:
    """Balance as read, plus the raw stored value used as a write precondition"""
    amount: Decimal
    raw: Any
    exists: bool


class WalletService:
    """Service for the buyer's stored-value balance and its ledger"""

    def __init__(self, store: DocumentStore, config=None):
        self.store = store
        self.settings = config or settings

    async def read_balance(self, buyer_id: str) -> BalanceSnapshot:
        """Read without creating; an absent document reads as zero"""
        data = await self.store.get_document(self.settings.balance_path(buyer_id))
        if data is None:
            return BalanceSnapshot(amount=Decimal("0"), raw=None, exists=False)
        raw = data.get("currentBalance")
        return BalanceSnapshot(amount=to_decimal(raw or 0), raw=raw, exists=True)

    async def get_balance(self, buyer_id: str) -> Decimal:
        """Current balance, creating a zero balance document on first use"""
        snapshot = await self.read_balance(buyer_id)
        if not snapshot.exists:
            await self.store.set_document(
                self.settings.balance_path(buyer_id),
                StoredValueBalance(current_balance=Decimal("0"), last_updated=utcnow()).to_document()
            )
        return snapshot.amount

    def _ledger_writes(
        self,
        buyer_id: str,
        snapshot: BalanceSnapshot,
        entry: LedgerEntry,
        ledger_id: str
    ) -> List[BatchWrite]:
        # Balance update is conditional on the stored value still being the one read
        return [
            BatchWrite.update(
                self.settings.balance_path(buyer_id),
                {"currentBalance": float(entry.new_balance), "lastUpdated": utcnow().isoformat()},
                precondition={"currentBalance": snapshot.raw},
            ),
            BatchWrite.set(f"{self.settings.ledger_path(buyer_id)}/{ledger_id}", entry.to_document()),
        ]

    def debit_writes(
        self,
        buyer_id: str,
        snapshot: BalanceSnapshot,
        amount: Decimal,
        order_id: str,
        ledger_id: Optional[str] = None
    ) -> List[BatchWrite]:
        """
        Writes that debit the balance and append the ledger entry.

        A concurrent balance change between read and commit fails the
        whole batch.
        """
        entry = LedgerEntry(
            amount=amount,
            type=TransactionType.DEBIT,
            description=f"Payment for order #{order_id}",
            order_id=order_id,
            new_balance=round_money(snapshot.amount - amount),
        )
        return self._ledger_writes(buyer_id, snapshot, entry, ledger_id or self.store.new_document_id())

    async def top_up(self, buyer_id: str, amount) -> LedgerEntry:
        """Add funds to the balance"""
        amount = round_money(amount)
        if amount <= 0:
            raise InvalidAmountException()

        await self.get_balance(buyer_id)
        snapshot = await self.read_balance(buyer_id)
        new_balance = round_money(snapshot.amount + amount)

        entry = LedgerEntry(
            amount=amount,
            type=TransactionType.CREDIT,
            description="Wallet top-up",
            new_balance=new_balance,
        )
        ledger_id = self.store.new_document_id()

        try:
            await self.store.run_atomic_batch(self._ledger_writes(buyer_id, snapshot, entry, ledger_id))
        except DocumentStoreException as e:
            logger.warning(f"Top-up failed for buyer {buyer_id}: {e}")
            raise CommitException("Failed to update your balance", error_code="TOP_UP_FAILED")

        logger.info(f"Buyer {buyer_id} topped up {amount}, balance now {new_balance}")
        entry.id = ledger_id
        return entry

    async def list_transactions(self, buyer_id: str) -> List[LedgerEntry]:
        """Ledger entries, newest first"""
        docs = await self.store.query_collection(self.settings.ledger_path(buyer_id))
        entries = []
        for doc in docs:
            entry = LedgerEntry.from_document(doc.data)
            entry.id = doc.id
            entries.append(entry)
        entries.sort(key=lambda e: e.created_at, reverse=True)
        return entries
