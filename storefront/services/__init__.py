"""Services package"""

from .cart_service import CartAggregate
from .cart_sync import CartSynchronizer
from .bundle_pricing import BundlePricing, BundlePricingResolver
from .product_service import DocumentStoreProductLookup, ProductLookup
from .wallet_service import BalanceSnapshot, WalletService
from .card_service import PaymentCardService
from .payment_methods import PaymentInstrumentSelector
from .checkout_service import CheckoutService, CheckoutSession, ConfirmationPresenter
from .order_service import OrderService, OrderStateMachine, tracking_step

__all__ = [
    "CartAggregate",
    "CartSynchronizer",
    "BundlePricing",
    "BundlePricingResolver",
    "DocumentStoreProductLookup",
    "ProductLookup",
    "BalanceSnapshot",
    "WalletService",
    "PaymentCardService",
    "PaymentInstrumentSelector",
    "CheckoutService",
    "CheckoutSession",
    "ConfirmationPresenter",
    "OrderService",
    "OrderStateMachine",
    "tracking_step",
]
