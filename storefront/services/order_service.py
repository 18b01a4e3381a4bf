"""
Order tracking service
Status transitions after checkout and the buyer's order history
"""

import logging
from typing import Dict, List, Optional, Set

from storefront.core.config import settings
from storefront.core.document_store import BatchWrite, DocumentStore, Predicate
from storefront.core.exceptions import (
    CommitException,
    DocumentStoreException,
    InvalidStatusTransitionException,
    NotFoundException,
)
from storefront.models.base import utcnow
from storefront.models.order import Order, OrderStatus

logger = logging.getLogger(__name__)


# Step 0 is the placed order itself, so processing deliberately maps to step 1
TRACKING_STEPS = ["Order Placed", "Processing", "Ready", "Delivered"]

_STATUS_STEP = {
    OrderStatus.PROCESSING: 1,
    OrderStatus.READY: 2,
    OrderStatus.DELIVERED: 3,
}


def tracking_step(status) -> int:
    """0-based index into TRACKING_STEPS; unknown and cancelled map to 0"""
    try:
        status = OrderStatus(status)
    except ValueError:
        return 0
    return _STATUS_STEP.get(status, 0)


class OrderStateMachine:
    """
    Manages valid order status transitions
    """

    def __init__(self):
        self.transitions: Dict[OrderStatus, Set[OrderStatus]] = {
            OrderStatus.PROCESSING: {
                OrderStatus.READY,
                OrderStatus.CANCELLED
            },
            OrderStatus.READY: {
                OrderStatus.DELIVERED
            },
            OrderStatus.CANCELLED: set(),
            OrderStatus.DELIVERED: set()
        }

    def can_transition(self, current_status: OrderStatus, new_status: OrderStatus) -> bool:
        return new_status in self.transitions.get(current_status, set())

    def get_valid_transitions(self, current_status: OrderStatus) -> List[OrderStatus]:
        """
        Get list of valid transitions from current status

        Args:
            current_status: Current order status

        Returns:
            Next statuses in declaration order
        """
        allowed = self.transitions.get(current_status, set())
        return [status for status in OrderStatus if status in allowed]

    def is_terminal_state(self, status: OrderStatus) -> bool:
        return len(self.transitions.get(status, set())) == 0

    def is_cancellable(self, status: OrderStatus) -> bool:
        return OrderStatus.CANCELLED in self.transitions.get(status, set())


class OrderService:
    """Reads orders and moves them through fulfillment statuses"""

    def __init__(self, store: DocumentStore, config=None):
        self.store = store
        self.settings = config or settings
        self.state_machine = OrderStateMachine()

    @staticmethod
    def tracking_step(status) -> int:
        return tracking_step(status)

    async def get_order(self, order_id: str) -> Order:
        data = await self.store.get_document(self.settings.order_path(order_id))
        if data is None:
            raise NotFoundException("Order not found")
        return Order.from_document(data)

    async def list_orders(self, buyer_id: str, include_cancelled: bool = False) -> List[Order]:
        """Buyer's orders, newest first"""
        path = self.settings.buyer_orders_path(buyer_id)
        predicates = []
        if not include_cancelled:
            predicates.append(Predicate("status", "!=", OrderStatus.CANCELLED.value))

        docs = await self.store.query_collection(path, predicates)
        orders = [Order.from_document(doc.data) for doc in docs]
        orders.sort(key=lambda o: o.created_at, reverse=True)
        return orders

    async def advance_status(self, order_id: str, new_status, buyer_id: Optional[str] = None) -> Order:
        """
        Update order status with state machine validation

        The shared order and the buyer's copy are updated in one batch.
        """
        order = await self.get_order(order_id)
        new_status = OrderStatus(new_status)

        if buyer_id is not None and buyer_id != order.buyer_id:
            raise NotFoundException("Order not found")

        if not self.state_machine.can_transition(order.status, new_status):
            raise InvalidStatusTransitionException(order.status.value, new_status.value)

        now = utcnow()
        changes = {"status": new_status.value, "updatedAt": now.isoformat()}
        # Status precondition rejects a concurrent transition from the same state
        precondition = {"status": order.status.value}
        writes = [
            BatchWrite.update(self.settings.order_path(order_id), changes, precondition=precondition),
            BatchWrite.update(
                self.settings.buyer_order_path(order.buyer_id, order_id),
                changes,
                precondition=precondition
            ),
        ]

        try:
            await self.store.run_atomic_batch(writes)
        except DocumentStoreException as e:
            logger.warning(f"Status update for order {order_id} failed: {e}")
            raise CommitException("Failed to update order status", error_code="STATUS_UPDATE_FAILED")

        logger.info(f"Order {order_id} moved from {order.status.value} to {new_status.value}")
        return order.model_copy(update={"status": new_status, "updated_at": now})
