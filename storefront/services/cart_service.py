"""
Cart aggregate for managing cart operations in memory

Every mutation is a total function: unknown sellers or products are a
silent no-op, so a repeated tap in the UI is harmless. Mutations return
True when a persisted field changed.
"""

import logging
from decimal import Decimal
from typing import Any, Dict, Iterator, List, Optional

from pydantic import ValidationError

from storefront.models.base import utcnow
from storefront.models.cart import CartDocument, CartLineItem, SellerGroup

logger = logging.getLogger(__name__)


class CartAggregate:
    """
    Buyer's cart as an ordered set of seller groups
    """

    def __init__(self, groups: Optional[List[SellerGroup]] = None):
        self._groups: List[SellerGroup] = list(groups or [])

    # ------------------------------------------
    # Queries
    # ------------------------------------------

    @property
    def groups(self) -> List[SellerGroup]:
        return list(self._groups)

    def items(self) -> Iterator[CartLineItem]:
        for group in self._groups:
            yield from group.items

    def is_empty(self) -> bool:
        return not self._groups

    def item_count(self) -> int:
        return sum(1 for _ in self.items())

    def get_group(self, seller_id: str) -> Optional[SellerGroup]:
        return next((g for g in self._groups if g.seller_id == seller_id), None)

    def get_item(self, seller_id: str, product_id: str) -> Optional[CartLineItem]:
        group = self.get_group(seller_id)
        return group.find(product_id) if group else None

    def selected_items(self) -> List[CartLineItem]:
        return [item for item in self.items() if item.selected]

    def selection(self) -> set:
        """Keys (seller_id, product_id) of every selected item"""
        return {item.key for item in self.items() if item.selected}

    def total_for_selected(self) -> Decimal:
        """Sum of price x quantity over selected items"""
        return sum((item.line_total for item in self.items() if item.selected), Decimal("0"))

    # ------------------------------------------
    # Item management
    # ------------------------------------------

    def add_item(self, line: CartLineItem) -> bool:
        """
        Add item to cart or increase quantity if it already exists
        """
        group = self.get_group(line.seller_id)
        if group is None:
            group = SellerGroup(seller_id=line.seller_id, seller_name=line.seller_name)
            self._groups.append(group)

        existing = group.find(line.product_id)
        if existing:
            # Merge: keep the price already in the cart
            existing.quantity += line.quantity
        else:
            group.items.append(line.model_copy(deep=True))
        return True

    def set_quantity(self, seller_id: str, product_id: str, quantity: int) -> bool:
        """Replace an item's quantity; values below 1 are ignored"""
        if quantity < 1:
            return False

        item = self.get_item(seller_id, product_id)
        if item is None or item.quantity == quantity:
            return False
        item.quantity = quantity
        return True

    def change_quantity(self, seller_id: str, product_id: str, delta: int) -> bool:
        """Step quantity up or down, never below 1"""
        item = self.get_item(seller_id, product_id)
        if item is None:
            return False
        return self.set_quantity(seller_id, product_id, item.quantity + delta)

    def remove_item(self, seller_id: str, product_id: str) -> bool:
        """Remove item; an emptied seller group is removed with it"""
        group = self.get_group(seller_id)
        if group is None:
            return False

        item = group.find(product_id)
        if item is None:
            return False

        group.items.remove(item)
        if not group.items:
            self._groups.remove(group)
        return True

    def remove_selected(self) -> bool:
        """Remove every selected item, cascading empty groups"""
        changed = False
        for group in list(self._groups):
            kept = [item for item in group.items if not item.selected]
            if len(kept) == len(group.items):
                continue
            changed = True
            if kept:
                group.items = kept
            else:
                self._groups.remove(group)
        return changed

    def clear(self) -> bool:
        changed = bool(self._groups)
        self._groups = []
        return changed

    # ------------------------------------------
    # Selection (local only)
    # ------------------------------------------

    def toggle_item_selection(self, seller_id: str, product_id: str) -> None:
        item = self.get_item(seller_id, product_id)
        if item is not None:
            item.selected = not item.selected

    def toggle_group_selection(self, seller_id: str) -> None:
        group = self.get_group(seller_id)
        if group is None:
            return
        value = not group.selected
        for item in group.items:
            item.selected = value

    def set_all_selected(self, value: bool) -> None:
        for item in self.items():
            item.selected = value

    def select_all(self) -> None:
        self.set_all_selected(True)

    def deselect_all(self) -> None:
        self.set_all_selected(False)

    # ------------------------------------------
    # Persistence mapping
    # ------------------------------------------

    def to_document(self) -> Dict[str, Any]:
        """Flatten seller groups into the stored item list"""
        return CartDocument(items=list(self.items()), updated_at=utcnow()).to_document()

    @classmethod
    def from_items(cls, items: List[CartLineItem]) -> "CartAggregate":
        cart = cls()
        for item in items:
            cart.add_item(item)
        return cart

    @classmethod
    def from_document(cls, data: Dict[str, Any]) -> "CartAggregate":
        """Rebuild seller groups from the stored item list, skipping unreadable items"""
        data = dict(data or {})
        items = []
        for raw in data.pop("items", None) or []:
            try:
                items.append(CartLineItem.from_document(raw))
            except (ValidationError, TypeError) as e:
                logger.warning(f"Skipping unreadable cart item {raw!r}: {e}")
        document = CartDocument.from_document(data, items=items)
        return cls.from_items(document.items)
