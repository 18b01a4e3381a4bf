"""
Checkout commit protocol
Turns a single-line order draft into an order record, a balance debit and a
stock decrement applied in one atomic batch
"""

import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional, Protocol

from storefront.core.config import settings
from storefront.core.document_store import BatchWrite, DocumentStore
from storefront.core.exceptions import (
    CommitException,
    DocumentStoreException,
    InsufficientBalanceException,
    InvalidQuantityException,
    StorefrontException,
    ValidationException,
)
from storefront.models.base import utcnow
from storefront.models.cart import CartLineItem
from storefront.models.checkout import CheckoutReceipt, CheckoutResult, CheckoutState, OrderDraft
from storefront.models.order import DeliveryOption, Order, OrderStatus, PaymentStatus, ProductSnapshot
from storefront.models.payment import PaymentInstrument
from storefront.models.product import Product
from storefront.services.payment_methods import PaymentInstrumentSelector
from storefront.services.product_service import DocumentStoreProductLookup, ProductLookup
from storefront.services.wallet_service import WalletService
from storefront.utils.helpers import generate_order_id, round_money

logger = logging.getLogger(__name__)


class ConfirmationPresenter(Protocol):
    """Renders the outcome of a checkout attempt"""

    def show_confirmation(self, receipt: CheckoutReceipt) -> None:
        ...

    def show_failure(self, reason: str) -> None:
        ...


def snapshot_product(product: Product) -> ProductSnapshot:
    return ProductSnapshot(
        id=product.id,
        name=product.name,
        price=product.price,
        unit=product.unit,
        stock=product.stock,
        seller_id=product.seller_id,
        seller_name=product.seller_name,
        image_url=product.image_url,
    )


class CheckoutService:
    """Builds order drafts and starts checkout sessions"""

    def __init__(
        self,
        store: DocumentStore,
        product_lookup: Optional[ProductLookup] = None,
        wallet_service: Optional[WalletService] = None,
        config=None
    ):
        self.store = store
        self.settings = config or settings
        self.product_lookup = product_lookup or DocumentStoreProductLookup(store, self.settings)
        self.wallet_service = wallet_service or WalletService(store, self.settings)

    def build_draft(
        self,
        buyer_id: str,
        product: Product,
        quantity: int,
        delivery_option: DeliveryOption = DeliveryOption.DELIVERY,
        delivery_date: Optional[date] = None,
        discount_percent: Optional[Decimal] = None
    ) -> OrderDraft:
        """
        Assemble the draft and compute its amounts

        Uses the product's stored discount unless discount_percent is
        given. Raises InvalidQuantityException below the minimum order.
        """
        minimum = max(1, product.minimum_order)
        if quantity < minimum:
            raise InvalidQuantityException(f"Minimum order is {minimum} {product.unit or 'item(s)'}")

        percent = discount_percent if discount_percent is not None else product.discount_percent
        subtotal = round_money(product.price * quantity)
        discount = round_money(subtotal * Decimal(percent) / 100) if percent else Decimal("0.00")

        return OrderDraft(
            buyer_id=buyer_id,
            product=snapshot_product(product),
            quantity=quantity,
            delivery_option=delivery_option,
            delivery_date=delivery_date,
            discount_percent=percent,
            subtotal=subtotal,
            discount=discount,
            total=subtotal - discount,
        )

    async def draft_from_line(
        self,
        buyer_id: str,
        line: CartLineItem,
        delivery_option: DeliveryOption = DeliveryOption.DELIVERY,
        delivery_date: Optional[date] = None
    ) -> OrderDraft:
        """Draft for one cart line at the price it was added to the cart"""
        product = await self.product_lookup.get_product(line.product_id)
        if product is None:
            product = Product(
                id=line.product_id,
                name=line.product_name,
                price=line.price,
                unit=line.unit,
                seller_id=line.seller_id,
                seller_name=line.seller_name,
                image_url=line.image_ref,
            )
        else:
            product = product.model_copy(update={"price": line.price})
        return self.build_draft(buyer_id, product, line.quantity, delivery_option, delivery_date)

    def start(
        self,
        draft: OrderDraft,
        selector: PaymentInstrumentSelector,
        presenter: Optional[ConfirmationPresenter] = None
    ) -> "CheckoutSession":
        return CheckoutSession(self, draft, selector, presenter)


class CheckoutSession:
    """
    One checkout attempt: DRAFT -> VALIDATING -> COMMITTING -> COMMITTED | ABORTED

    Validation failures abort before any network call. Commit failures
    abort with nothing applied and are never retried automatically; a new
    submit() from ABORTED re-enters VALIDATING.
    """

    def __init__(
        self,
        service: CheckoutService,
        draft: OrderDraft,
        selector: PaymentInstrumentSelector,
        presenter: Optional[ConfirmationPresenter] = None
    ):
        self.service = service
        self.draft = draft
        self.selector = selector
        self.presenter = presenter
        self.state = CheckoutState.DRAFT
        self.result: Optional[CheckoutResult] = None

    @property
    def store(self) -> DocumentStore:
        return self.service.store

    def cancel(self) -> bool:
        """Cancel before the batch is submitted; False once committing"""
        if self.state not in (CheckoutState.DRAFT, CheckoutState.VALIDATING):
            return False
        self.state = CheckoutState.ABORTED
        self.result = CheckoutResult(state=self.state, reason="Checkout cancelled", error_code="CANCELLED")
        logger.info(f"Checkout cancelled by buyer {self.draft.buyer_id}")
        return True

    async def submit(self) -> CheckoutResult:
        if self.state == CheckoutState.COMMITTED:
            return self.result
        if self.state not in (CheckoutState.DRAFT, CheckoutState.ABORTED):
            raise ValueError(f"Checkout is already {self.state.value}")

        self.state = CheckoutState.VALIDATING
        try:
            instrument = self.selector.validate(self.draft.total)
        except ValidationException as e:
            return self._abort(e.detail, e.error_code)

        self.state = CheckoutState.COMMITTING
        order_id = generate_order_id()
        try:
            writes = await self._build_writes(order_id, instrument)
            await self.store.run_atomic_batch(writes)
        except ValidationException as e:
            return self._abort(e.detail, e.error_code)
        except DocumentStoreException as e:
            logger.error(f"Atomic commit for order {order_id} failed: {e}")
            error = CommitException()
            return self._abort(error.detail, error.error_code)
        except StorefrontException as e:
            return self._abort(e.detail, e.error_code)
        except Exception:
            self._abort("Checkout failed unexpectedly", error_code="CHECKOUT_FAILED")
            raise

        if instrument.is_wallet:
            self.selector.update_balance(self.selector.wallet.balance - self.draft.total)

        receipt = CheckoutReceipt(
            order_id=order_id,
            payment_method_label=instrument.label,
            total=self.draft.total,
        )
        self.state = CheckoutState.COMMITTED
        self.result = CheckoutResult(state=self.state, receipt=receipt)
        logger.info(
            f"Order {order_id} committed for buyer {self.draft.buyer_id}: "
            f"{self.draft.total} via {instrument.label}"
        )
        if self.presenter is not None:
            self.presenter.show_confirmation(receipt)
        return self.result

    async def _build_writes(self, order_id: str, instrument: PaymentInstrument) -> List[BatchWrite]:
        """Re-read balance and stock, then collect every write of the commit"""
        draft = self.draft
        config = self.service.settings
        writes = []

        snapshot = None
        if instrument.is_wallet:
            snapshot = await self.service.wallet_service.read_balance(draft.buyer_id)
            self.selector.update_balance(snapshot.amount)
            instrument = self.selector.wallet
            if snapshot.amount < draft.total:
                raise InsufficientBalanceException(balance=snapshot.amount, required=draft.total)

        product = await self.service.product_lookup.get_product(draft.product.id)
        # A line with no product document carries no stock counter to decrement
        if product is None and draft.product.stock is not None:
            raise ValidationException("This product is no longer available", error_code="PRODUCT_UNAVAILABLE")
        stock = product.stock if product is not None else None
        if product is not None and product.tracks_stock and product.stock < draft.quantity:
            raise ValidationException(f"Only {product.stock} left in stock", error_code="OUT_OF_STOCK")

        now = utcnow()
        order = Order(
            order_id=order_id,
            buyer_id=draft.buyer_id,
            product=draft.product.model_copy(update={"stock": stock}),
            quantity=draft.quantity,
            delivery_option=draft.delivery_option,
            delivery_date=draft.delivery_date,
            subtotal=draft.subtotal,
            discount=draft.discount,
            total=draft.total,
            payment_method=instrument.label,
            status=OrderStatus.PROCESSING,
            payment_status=PaymentStatus.PAID,
            created_at=now,
            updated_at=now,
        )
        document = order.to_document()
        writes.append(BatchWrite.set(config.order_path(order_id), document))
        writes.append(BatchWrite.set(config.buyer_order_path(draft.buyer_id, order_id), document))

        # A zero total leaves the balance and ledger untouched
        if snapshot is not None and draft.total > 0:
            writes.extend(
                self.service.wallet_service.debit_writes(draft.buyer_id, snapshot, draft.total, order_id)
            )

        if product is not None and product.tracks_stock:
            writes.append(
                BatchWrite.update(
                    config.product_path(product.id),
                    {"stock": product.stock - draft.quantity},
                    precondition={"stock": product.stock},
                )
            )
        return writes

    def _abort(self, reason: str, error_code: Optional[str] = None) -> CheckoutResult:
        self.state = CheckoutState.ABORTED
        self.result = CheckoutResult(state=self.state, reason=reason, error_code=error_code)
        logger.warning(f"Checkout aborted for buyer {self.draft.buyer_id}: {reason}")
        if self.presenter is not None:
            self.presenter.show_failure(reason)
        return self.result
