"""
Cart stored in the local mirror, one entry per client session
(restaurant_cart_<client id>): menu item id -> quantity.

Quantities are always positive; an entry that would drop to zero is removed.
The cart never reaches the remote service.
"""

import logging
from typing import Iterable

from app.schemas import CartLine, MenuItem
from app.services.local_store import LocalStore, CART_KEY

logger = logging.getLogger(__name__)


class CartStore:
    def __init__(self, local: LocalStore, client_id: str):
        self.local = local
        self.key = f"{CART_KEY}_{client_id}"

    def items(self) -> dict[int, int]:
        stored = self.local.get_item(self.key) or {}
        # JSON object keys are strings
        return {int(item_id): int(qty) for item_id, qty in stored.items() if int(qty) > 0}

    def _save(self, cart: dict[int, int]) -> None:
        self.local.set_item(self.key, {str(item_id): qty for item_id, qty in cart.items()})

    def change(self, item_id: int, delta: int) -> dict[int, int]:
        cart = self.items()
        quantity = cart.get(item_id, 0) + delta
        if quantity <= 0:
            cart.pop(item_id, None)
        else:
            cart[item_id] = quantity
        self._save(cart)
        return cart

    def add(self, item_id: int) -> dict[int, int]:
        return self.change(item_id, 1)

    def remove(self, item_id: int) -> dict[int, int]:
        return self.change(item_id, -1)

    def clear(self) -> None:
        self.local.remove_item(self.key)
        logger.debug("Cart cleared")

    def lines(self, menu: Iterable[MenuItem]) -> list[CartLine]:
        """Cart joined with the current menu; ids no longer on the menu are skipped."""
        by_id = {item.id: item for item in menu}
        lines = []
        for item_id, quantity in self.items().items():
            item = by_id.get(item_id)
            if item is None:
                continue
            lines.append(CartLine(
                item_id=item_id,
                name=item.name,
                price=item.price,
                quantity=quantity,
                subtotal=item.price * quantity,
            ))
        return lines

    @staticmethod
    def count(lines: Iterable[CartLine]) -> int:
        return sum(line.quantity for line in lines)

    @staticmethod
    def total(lines: Iterable[CartLine]) -> int:
        return sum(line.subtotal for line in lines)
