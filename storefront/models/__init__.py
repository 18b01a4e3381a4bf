"""Models package initialization"""

from .base import Money, StorefrontModel
from .product import Product, ProductDiscount, BundleItem
from .cart import CartLineItem, SellerGroup, CartDocument
from .order import Order, OrderStatus, PaymentStatus, DeliveryOption, ProductSnapshot
from .wallet import StoredValueBalance, LedgerEntry, TransactionType
from .payment import PaymentInstrument, InstrumentType, SavedCard
from .checkout import CheckoutState, OrderDraft, CheckoutReceipt, CheckoutResult

__all__ = [
    "Money",
    "StorefrontModel",
    "Product",
    "ProductDiscount",
    "BundleItem",
    "CartLineItem",
    "SellerGroup",
    "CartDocument",
    "Order",
    "OrderStatus",
    "PaymentStatus",
    "DeliveryOption",
    "ProductSnapshot",
    "StoredValueBalance",
    "LedgerEntry",
    "TransactionType",
    "PaymentInstrument",
    "InstrumentType",
    "SavedCard",
    "CheckoutState",
    "OrderDraft",
    "CheckoutReceipt",
    "CheckoutResult",
]
