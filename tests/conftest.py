import asyncio
from decimal import Decimal
from typing import Callable, List, Optional, Set

import pytest

from storefront.core.config import Settings
from storefront.core.document_store import BatchWrite
from storefront.core.exceptions import DocumentStoreException
from storefront.core.memory_store import InMemoryDocumentStore
from storefront.models.cart import CartLineItem

BUYER_ID = "buyer-1"


class FaultyStore(InMemoryDocumentStore):
    """In-memory store with injectable failures

    fail_paths: any batch (or single write) touching one of these paths fails
    hang: every write blocks past the store timeout
    before_commit: called with the store right before a batch is checked
    """

    def __init__(self, timeout: Optional[float] = None):
        super().__init__(timeout=timeout)
        self.fail_paths: Set[str] = set()
        self.hang = False
        self.before_commit: Optional[Callable[["FaultyStore"], None]] = None
        self.commits: List[List[BatchWrite]] = []

    async def _commit(self, writes: List[BatchWrite]) -> None:
        if self.hang:
            await asyncio.sleep(60)
        if self.before_commit is not None:
            hook, self.before_commit = self.before_commit, None
            hook(self)
        for write in writes:
            if write.path in self.fail_paths:
                raise DocumentStoreException(f"Injected failure on {write.path}")
        await super()._commit(writes)
        self.commits.append(list(writes))


@pytest.fixture
def config():
    return Settings(STORE_BACKEND="memory", STORE_TIMEOUT_SECONDS=0.2, LOG_FILE=None)


@pytest.fixture
def store(config):
    return FaultyStore(timeout=config.STORE_TIMEOUT_SECONDS)


@pytest.fixture
def buyer_id():
    return BUYER_ID


def product_doc(name: str, price: float, stock: Optional[int] = 10, **extra) -> dict:
    doc = {
        "name": name,
        "price": price,
        "unit": "kg",
        "farmId": "farm-a",
        "farmName": "Farm A",
        "imageUrl": f"https://img.example/{name.lower()}.jpg",
    }
    if stock is not None:
        doc["stock"] = stock
    doc.update(extra)
    return doc


@pytest.fixture
def seed_products(store):
    """Seed products/{id} documents keyed by id"""
    def seed(**products):
        store.seed({f"products/{pid}": data for pid, data in products.items()})
    return seed


@pytest.fixture
def seed_balance(store, buyer_id):
    def seed(amount: float, buyer: str = None):
        store.seed({
            f"users/{buyer or buyer_id}/wallet/balance": {
                "currentBalance": amount,
                "lastUpdated": "2026-01-01T00:00:00+00:00",
            }
        })
    return seed


def make_line(
    product_id: str = "x",
    seller_id: str = "farm-a",
    price: str = "40",
    quantity: int = 1,
    **extra
) -> CartLineItem:
    return CartLineItem(
        product_id=product_id,
        seller_id=seller_id,
        seller_name=extra.pop("seller_name", f"Seller {seller_id}"),
        product_name=extra.pop("product_name", f"Product {product_id}"),
        price=Decimal(price),
        quantity=quantity,
        **extra,
    )
