"""Tests for the checkout commit protocol"""

from datetime import date
from decimal import Decimal

import pytest

from conftest import make_line, product_doc
from storefront.core.exceptions import InvalidQuantityException
from storefront.models.checkout import CheckoutState
from storefront.models.order import DeliveryOption
from storefront.services.checkout_service import CheckoutService
from storefront.services.payment_methods import PaymentInstrumentSelector
from storefront.services.product_service import DocumentStoreProductLookup


class RecordingPresenter:
    def __init__(self):
        self.confirmations = []
        self.failures = []

    def show_confirmation(self, receipt):
        self.confirmations.append(receipt)

    def show_failure(self, reason):
        self.failures.append(reason)


class FlakyLookup:
    """Wraps a lookup and raises while broken"""

    def __init__(self, inner):
        self.inner = inner
        self.broken = False

    async def get_product(self, product_id):
        if self.broken:
            raise RuntimeError("catalog backend unreachable")
        return await self.inner.get_product(product_id)


@pytest.fixture
def service(store, config):
    return CheckoutService(store, config=config)


@pytest.fixture
def lookup(store, config):
    return DocumentStoreProductLookup(store, config)


@pytest.fixture
def selector_for(store, buyer_id, config):
    async def load(instrument_id=None):
        selector = await PaymentInstrumentSelector.load(store, buyer_id, config)
        if instrument_id:
            assert selector.select_by_id(instrument_id)
        return selector
    return load


async def _draft(service, lookup, buyer_id, product_id="p1", quantity=1, **kwargs):
    product = await lookup.get_product(product_id)
    return service.build_draft(buyer_id, product, quantity, **kwargs)


def _orders(store):
    return {path: doc for path, doc in store.dump().items() if "/orders/" in f"/{path}"}


def _ledger(store, buyer_id):
    prefix = f"users/{buyer_id}/wallet/balance/transactions/"
    return [doc for path, doc in store.dump().items() if path.startswith(prefix)]


class TestDraft:
    async def test_amounts_without_discount(self, service, lookup, buyer_id, seed_products):
        seed_products(p1=product_doc("Tomato", 40.0))

        draft = await _draft(service, lookup, buyer_id, quantity=3)

        assert draft.subtotal == Decimal("120")
        assert draft.discount == Decimal("0")
        assert draft.total == Decimal("120")

    async def test_stored_discount_is_applied(self, service, lookup, buyer_id, seed_products):
        seed_products(p1=product_doc("Tomato", 40.0, discount={"percentage": 10}))

        draft = await _draft(service, lookup, buyer_id, quantity=3)

        assert draft.subtotal == Decimal("120.00")
        assert draft.discount == Decimal("12.00")
        assert draft.total == Decimal("108.00")

    async def test_explicit_discount_overrides(self, service, lookup, buyer_id, seed_products):
        seed_products(p1=product_doc("Tomato", 33.33, discount={"percentage": 10}))

        draft = await _draft(service, lookup, buyer_id, quantity=1, discount_percent=Decimal("15"))

        # 33.33 * 0.15 = 4.9995
        assert draft.discount == Decimal("5.00")
        assert draft.total == Decimal("28.33")

    async def test_below_minimum_order_is_rejected(self, service, lookup, buyer_id, seed_products):
        seed_products(p1=product_doc("Rice", 50.0, minimumOrder=5))

        with pytest.raises(InvalidQuantityException):
            await _draft(service, lookup, buyer_id, quantity=4)

    async def test_delivery_choice_is_kept(self, service, lookup, buyer_id, seed_products):
        seed_products(p1=product_doc("Tomato", 40.0))

        draft = await _draft(
            service, lookup, buyer_id,
            delivery_option=DeliveryOption.PICKUP,
            delivery_date=date(2026, 11, 2),
        )

        assert draft.delivery_option == DeliveryOption.PICKUP
        assert draft.delivery_date == date(2026, 11, 2)

    async def test_draft_from_cart_line_uses_cart_price(self, service, buyer_id, seed_products):
        seed_products(x=product_doc("Tomato", 45.0, stock=3))

        draft = await service.draft_from_line(buyer_id, make_line("x", price="40", quantity=2))

        assert draft.product.stock == 3
        assert draft.total == Decimal("80")

    async def test_draft_from_line_without_product_document(self, service, buyer_id):
        draft = await service.draft_from_line(buyer_id, make_line("x", price="40", quantity=2))

        assert draft.product.name == "Product x"
        assert draft.product.stock is None
        assert draft.total == Decimal("80")


class TestValidation:
    async def test_insufficient_balance_aborts_without_writes(
        self, service, lookup, store, buyer_id, seed_products, seed_balance, selector_for
    ):
        seed_products(p1=product_doc("Honey", 150.0))
        seed_balance(100.0)
        draft = await _draft(service, lookup, buyer_id)
        presenter = RecordingPresenter()

        session = service.start(draft, await selector_for("wallet"), presenter)
        result = await session.submit()

        assert result.state == CheckoutState.ABORTED
        assert result.error_code == "INSUFFICIENT_BALANCE"
        assert "Insufficient balance" in result.reason
        assert store.commits == []
        assert _orders(store) == {}
        assert presenter.failures == [result.reason]

    async def test_no_method_selected(self, service, lookup, store, buyer_id, seed_products, selector_for):
        seed_products(p1=product_doc("Honey", 150.0))
        draft = await _draft(service, lookup, buyer_id)

        result = await service.start(draft, await selector_for()).submit()

        assert result.state == CheckoutState.ABORTED
        assert result.error_code == "NO_PAYMENT_METHOD"
        assert store.commits == []


class TestCommit:
    async def test_balance_checkout_writes_everything(
        self, service, lookup, store, buyer_id, seed_products, seed_balance, selector_for
    ):
        seed_products(p1=product_doc("Tomato", 40.0, stock=10))
        seed_balance(500.0)
        draft = await _draft(service, lookup, buyer_id, quantity=3)
        selector = await selector_for("wallet")
        presenter = RecordingPresenter()

        result = await service.start(draft, selector, presenter).submit()

        assert result.committed
        receipt = result.receipt
        assert receipt.payment_method_label == "Suki Cash"
        assert receipt.total == Decimal("120")
        assert presenter.confirmations == [receipt]

        order = await store.get_document(f"orders/{receipt.order_id}")
        assert order == await store.get_document(f"users/{buyer_id}/orders/{receipt.order_id}")
        assert order["orderId"] == receipt.order_id
        assert order["userId"] == buyer_id
        assert order["status"] == "processing"
        assert order["paymentStatus"] == "paid"
        assert order["paymentMethod"] == "Suki Cash"
        assert order["total"] == 120.0
        assert order["product"]["farmId"] == "farm-a"
        assert order["product"]["stock"] == 10

        balance = await store.get_document(f"users/{buyer_id}/wallet/balance")
        assert balance["currentBalance"] == 380.0

        [entry] = _ledger(store, buyer_id)
        assert entry["type"] == "debit"
        assert entry["amount"] == 120.0
        assert entry["orderId"] == receipt.order_id
        assert entry["newBalance"] == 380.0

        assert (await store.get_document("products/p1"))["stock"] == 7
        assert len(store.commits) == 1
        assert selector.wallet.balance == Decimal("380")

    async def test_non_balance_instrument_leaves_balance_alone(
        self, service, lookup, store, buyer_id, seed_products, seed_balance, selector_for
    ):
        seed_products(p1=product_doc("Tomato", 40.0, stock=10))
        seed_balance(5.0)
        draft = await _draft(service, lookup, buyer_id, quantity=2)

        result = await service.start(draft, await selector_for("gcash")).submit()

        assert result.committed
        assert result.receipt.payment_method_label == "GCash"
        assert (await store.get_document(f"users/{buyer_id}/wallet/balance"))["currentBalance"] == 5.0
        assert _ledger(store, buyer_id) == []
        assert (await store.get_document("products/p1"))["stock"] == 8

    async def test_product_without_stock_counter(
        self, service, lookup, store, buyer_id, seed_products, selector_for
    ):
        seed_products(p1=product_doc("Tomato", 40.0, stock=None))
        draft = await _draft(service, lookup, buyer_id, quantity=2)

        result = await service.start(draft, await selector_for("bpi")).submit()

        assert result.committed
        assert "stock" not in await store.get_document("products/p1")
        assert [w.path for w in store.commits[0]] == [
            f"orders/{result.receipt.order_id}",
            f"users/{buyer_id}/orders/{result.receipt.order_id}",
        ]

    async def test_line_without_product_document_commits(self, service, store, buyer_id, selector_for):
        draft = await service.draft_from_line(buyer_id, make_line("x", price="40", quantity=2))

        result = await service.start(draft, await selector_for("gcash")).submit()

        assert result.committed
        assert result.receipt.total == Decimal("80")
        assert [w.path for w in store.commits[0]] == [
            f"orders/{result.receipt.order_id}",
            f"users/{buyer_id}/orders/{result.receipt.order_id}",
        ]
        assert await store.get_document("products/x") is None
        order = await store.get_document(f"orders/{result.receipt.order_id}")
        assert order["product"].get("stock") is None

    async def test_zero_total_skips_debit(
        self, service, lookup, store, buyer_id, seed_products, seed_balance, selector_for
    ):
        seed_products(p1=product_doc("Sample", 10.0, discount={"percentage": 100}))
        seed_balance(0.0)
        draft = await _draft(service, lookup, buyer_id)

        result = await service.start(draft, await selector_for("wallet")).submit()

        assert result.committed
        assert result.receipt.total == Decimal("0")
        assert _ledger(store, buyer_id) == []


class TestAtomicity:
    async def test_failed_stock_write_leaves_no_order(
        self, service, lookup, store, buyer_id, seed_products, seed_balance, selector_for
    ):
        seed_products(p1=product_doc("Tomato", 40.0, stock=10))
        seed_balance(500.0)
        store.fail_paths.add("products/p1")
        draft = await _draft(service, lookup, buyer_id, quantity=3)
        presenter = RecordingPresenter()

        result = await service.start(draft, await selector_for("wallet"), presenter).submit()

        assert result.state == CheckoutState.ABORTED
        assert result.reason == "Payment failed, please retry"
        assert result.error_code == "COMMIT_FAILED"
        assert _orders(store) == {}
        assert _ledger(store, buyer_id) == []
        assert (await store.get_document(f"users/{buyer_id}/wallet/balance"))["currentBalance"] == 500.0
        assert (await store.get_document("products/p1"))["stock"] == 10
        assert presenter.failures == ["Payment failed, please retry"]

    async def test_timeout_aborts_like_a_failed_commit(
        self, service, lookup, store, buyer_id, seed_products, selector_for
    ):
        seed_products(p1=product_doc("Tomato", 40.0))
        draft = await _draft(service, lookup, buyer_id)
        store.hang = True

        result = await service.start(draft, await selector_for("bdo")).submit()

        assert result.state == CheckoutState.ABORTED
        assert result.error_code == "COMMIT_FAILED"
        assert _orders(store) == {}

    async def test_concurrent_balance_change_fails_precondition(
        self, service, lookup, store, buyer_id, seed_products, seed_balance, selector_for
    ):
        seed_products(p1=product_doc("Tomato", 40.0))
        seed_balance(100.0)
        draft = await _draft(service, lookup, buyer_id, quantity=2)

        def spend_elsewhere(s):
            s.seed({f"users/{buyer_id}/wallet/balance": {"currentBalance": 30.0}})

        store.before_commit = spend_elsewhere
        result = await service.start(draft, await selector_for("wallet")).submit()

        assert result.state == CheckoutState.ABORTED
        assert result.error_code == "COMMIT_FAILED"
        assert _orders(store) == {}
        assert (await store.get_document(f"users/{buyer_id}/wallet/balance"))["currentBalance"] == 30.0

    async def test_concurrent_stock_change_fails_precondition(
        self, service, lookup, store, buyer_id, seed_products, selector_for
    ):
        seed_products(p1=product_doc("Tomato", 40.0, stock=2))
        draft = await _draft(service, lookup, buyer_id, quantity=2)

        def sell_elsewhere(s):
            s.seed({"products/p1": product_doc("Tomato", 40.0, stock=1)})

        store.before_commit = sell_elsewhere
        result = await service.start(draft, await selector_for("gcash")).submit()

        assert result.state == CheckoutState.ABORTED
        assert _orders(store) == {}
        assert (await store.get_document("products/p1"))["stock"] == 1

    async def test_balance_is_rechecked_at_commit(
        self, service, lookup, store, buyer_id, seed_products, seed_balance, selector_for
    ):
        seed_products(p1=product_doc("Tomato", 40.0))
        seed_balance(500.0)
        draft = await _draft(service, lookup, buyer_id, quantity=2)
        selector = await selector_for("wallet")
        seed_balance(50.0)

        result = await service.start(draft, selector).submit()

        assert result.error_code == "INSUFFICIENT_BALANCE"
        assert store.commits == []
        assert selector.wallet.balance == Decimal("50")

    async def test_out_of_stock_at_commit(
        self, service, lookup, store, buyer_id, seed_products, selector_for
    ):
        seed_products(p1=product_doc("Tomato", 40.0, stock=5))
        draft = await _draft(service, lookup, buyer_id, quantity=4)
        seed_products(p1=product_doc("Tomato", 40.0, stock=3))

        result = await service.start(draft, await selector_for("gcash")).submit()

        assert result.error_code == "OUT_OF_STOCK"
        assert store.commits == []

    async def test_removed_product_aborts(
        self, service, lookup, store, buyer_id, seed_products, selector_for
    ):
        seed_products(p1=product_doc("Tomato", 40.0, stock=5))
        draft = await _draft(service, lookup, buyer_id, quantity=2)
        await store.delete_document("products/p1")

        result = await service.start(draft, await selector_for("gcash")).submit()

        assert result.state == CheckoutState.ABORTED
        assert result.error_code == "PRODUCT_UNAVAILABLE"
        assert _orders(store) == {}

    async def test_balance_never_goes_negative(
        self, service, lookup, store, buyer_id, seed_products, seed_balance, selector_for
    ):
        seed_products(p1=product_doc("Tomato", 40.0, stock=None))
        seed_balance(100.0)
        selector = await selector_for("wallet")

        outcomes = []
        for _ in range(3):
            draft = await _draft(service, lookup, buyer_id)
            result = await service.start(draft, selector).submit()
            outcomes.append(result.state)
            balance = await store.get_document(f"users/{buyer_id}/wallet/balance")
            assert balance["currentBalance"] >= 0

        assert outcomes == [CheckoutState.COMMITTED, CheckoutState.COMMITTED, CheckoutState.ABORTED]
        assert balance["currentBalance"] == 20.0


class TestSessionLifecycle:
    async def test_retry_after_abort(
        self, service, lookup, store, buyer_id, seed_products, selector_for
    ):
        seed_products(p1=product_doc("Tomato", 40.0, stock=10))
        draft = await _draft(service, lookup, buyer_id)
        session = service.start(draft, await selector_for("gcash"))
        store.fail_paths.add("products/p1")

        assert (await session.submit()).state == CheckoutState.ABORTED

        store.fail_paths.clear()
        result = await session.submit()
        assert result.committed
        assert len(_orders(store)) == 2

    async def test_submit_after_commit_returns_same_result(
        self, service, lookup, store, buyer_id, seed_products, selector_for
    ):
        seed_products(p1=product_doc("Tomato", 40.0))
        draft = await _draft(service, lookup, buyer_id)
        session = service.start(draft, await selector_for("gcash"))

        first = await session.submit()
        second = await session.submit()

        assert second is first
        assert len(store.commits) == 1

    async def test_cancel_before_commit(self, service, lookup, store, buyer_id, seed_products, selector_for):
        seed_products(p1=product_doc("Tomato", 40.0))
        draft = await _draft(service, lookup, buyer_id)
        session = service.start(draft, await selector_for("gcash"))

        assert session.cancel() is True
        assert session.state == CheckoutState.ABORTED
        assert session.result.error_code == "CANCELLED"
        assert store.commits == []

    async def test_cancel_after_commit_is_refused(
        self, service, lookup, buyer_id, seed_products, selector_for
    ):
        seed_products(p1=product_doc("Tomato", 40.0))
        draft = await _draft(service, lookup, buyer_id)
        session = service.start(draft, await selector_for("gcash"))
        await session.submit()

        assert session.cancel() is False
        assert session.state == CheckoutState.COMMITTED

    async def test_unexpected_lookup_error_ends_session(
        self, store, config, buyer_id, seed_products, selector_for
    ):
        seed_products(p1=product_doc("Tomato", 40.0, stock=10))
        lookup = FlakyLookup(DocumentStoreProductLookup(store, config))
        service = CheckoutService(store, product_lookup=lookup, config=config)
        draft = await _draft(service, lookup, buyer_id)
        session = service.start(draft, await selector_for("gcash"))
        lookup.broken = True

        with pytest.raises(RuntimeError):
            await session.submit()

        assert session.state == CheckoutState.ABORTED
        assert session.result.error_code == "CHECKOUT_FAILED"
        assert _orders(store) == {}

        lookup.broken = False
        result = await session.submit()
        assert result.committed
        assert (await store.get_document("products/p1"))["stock"] == 9
