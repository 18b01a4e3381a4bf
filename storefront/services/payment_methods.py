"""
Payment instrument selector
Lists what the buyer can pay with and validates the choice before commit
"""

import logging
from decimal import Decimal
from typing import List, Optional

from storefront.core.config import settings
from storefront.core.document_store import DocumentStore
from storefront.core.exceptions import InsufficientBalanceException, NoPaymentMethodException
from storefront.models.payment import InstrumentType, PaymentInstrument, SavedCard
from storefront.services.card_service import PaymentCardService
from storefront.services.wallet_service import WalletService

logger = logging.getLogger(__name__)

WALLET_INSTRUMENT_ID = "wallet"


def card_instrument(card: SavedCard) -> PaymentInstrument:
    return PaymentInstrument(
        id=card.id or card.card_id,
        type=InstrumentType.CARD,
        name=f"{card.card_type.title()} •••• {card.last_four}",
        brand=card.card_type,
        masked_number=card.masked_number,
        expiry=f"{card.expiry_month}/{card.expiry_year}",
        is_default=card.is_default,
    )


class PaymentInstrumentSelector:
    """
    Holds the available instruments and at most one selection.

    The stored-value balance is always listed first, followed by saved
    cards (default first) and the bank / e-wallet placeholders.
    """

    def __init__(self, instruments: List[PaymentInstrument]):
        self.instruments = list(instruments)
        self.selected: Optional[PaymentInstrument] = None

    @classmethod
    async def load(cls, store: DocumentStore, buyer_id: str, config=None) -> "PaymentInstrumentSelector":
        config = config or settings
        snapshot = await WalletService(store, config).read_balance(buyer_id)
        cards = await PaymentCardService(store, config).list_cards(buyer_id)

        instruments = [
            PaymentInstrument(
                id=WALLET_INSTRUMENT_ID,
                type=InstrumentType.WALLET,
                name=config.WALLET_LABEL,
                balance=snapshot.amount,
            )
        ]
        instruments.extend(card_instrument(card) for card in cards)
        for placeholder in config.BANK_PLACEHOLDERS:
            instruments.append(
                PaymentInstrument(
                    id=placeholder["code"],
                    type=InstrumentType(placeholder.get("type", "bank")),
                    name=placeholder["name"],
                    code=placeholder["code"],
                )
            )

        selector = cls(instruments)
        default_card = next((i for i in instruments if i.type == InstrumentType.CARD and i.is_default), None)
        if default_card:
            selector.select(default_card)
        return selector

    @property
    def wallet(self) -> Optional[PaymentInstrument]:
        return next((i for i in self.instruments if i.is_wallet), None)

    def get(self, instrument_id: str) -> Optional[PaymentInstrument]:
        return next((i for i in self.instruments if i.id == instrument_id), None)

    def select(self, instrument: PaymentInstrument) -> None:
        """Replace any prior selection"""
        self.selected = instrument

    def select_by_id(self, instrument_id: str) -> bool:
        instrument = self.get(instrument_id)
        if instrument is None:
            return False
        self.select(instrument)
        return True

    def clear_selection(self) -> None:
        self.selected = None

    @staticmethod
    def is_valid(instrument: Optional[PaymentInstrument], total: Decimal) -> bool:
        if instrument is None:
            return False
        if not instrument.is_wallet:
            return True
        return (instrument.balance or Decimal("0")) >= total

    def validate(self, total: Decimal) -> PaymentInstrument:
        """Return the selected instrument or raise a ValidationException"""
        if self.selected is None:
            raise NoPaymentMethodException()
        if not self.is_valid(self.selected, total):
            raise InsufficientBalanceException(balance=self.selected.balance, required=total)
        return self.selected

    def update_balance(self, balance: Decimal) -> None:
        """Apply a freshly read balance to the wallet instrument"""
        wallet = self.wallet
        if wallet is None:
            return
        wallet.balance = balance
        if self.selected is not None and self.selected.is_wallet:
            self.selected = wallet

    async def refresh_balance(self, store: DocumentStore, buyer_id: str, config=None) -> Decimal:
        snapshot = await WalletService(store, config).read_balance(buyer_id)
        self.update_balance(snapshot.amount)
        logger.debug(f"Refreshed balance for buyer {buyer_id}: {snapshot.amount}")
        return snapshot.amount
