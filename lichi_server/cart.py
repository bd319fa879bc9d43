"""Shopping cart with write-through persistence."""

import json
import logging
from decimal import Decimal
from typing import Callable, Optional

from .errors import DecodeError, LichiError, PersistenceError
from .models import Cart, CartItem, Product
from .storage import KeyValueStore

logger = logging.getLogger(__name__)

CART_KEY = "cart"

ErrorObserver = Callable[[LichiError], None]


class CartStore:
    """
    Owns the cart items and keeps the key-value store in sync.

    Every mutation is saved immediately. If the save fails the mutation is
    rolled back and the error goes to ``on_error``; mutators then return False.
    """

    def __init__(self, store: KeyValueStore, on_error: Optional[ErrorObserver] = None) -> None:
        self.store = store
        self.on_error = on_error
        self.items: list[CartItem] = []

    def load(self) -> None:
        """Replace the items with the stored cart. Missing or unreadable data yields an empty cart."""
        raw = self.store.get(CART_KEY)
        if raw is None:
            self.items = []
            return

        try:
            data = json.loads(raw)
            if not isinstance(data, list):
                raise DecodeError(f"Stored cart must be a list, got {type(data).__name__}")
            items = [CartItem.parse(entry) for entry in data]
        except (ValueError, RecursionError, LichiError) as e:
            logger.warning(f"Discarding unreadable stored cart: {e}")
            self.items = []
            return

        self.items = self._merge_duplicates(items)
        logger.info(f"Loaded cart with {len(self.items)} item(s)")

    @staticmethod
    def _merge_duplicates(items: list[CartItem]) -> list[CartItem]:
        merged: dict[tuple[int, str], CartItem] = {}
        for item in items:
            key = (item.product.id, item.size)
            if key in merged:
                merged[key].quantity += item.quantity
            else:
                merged[key] = item
        return list(merged.values())

    def save(self) -> None:
        """
        Write the full item list under the cart key.

        Raises:
            PersistenceError: If the store rejects the write
        """
        payload = json.dumps([item.serialize() for item in self.items])
        try:
            self.store.set(CART_KEY, payload)
        except Exception as e:
            raise PersistenceError(f"Could not save cart: {e}") from e

    def _commit(self, previous: list[tuple[CartItem, int]]) -> bool:
        """Save, or restore ``previous`` (items with their quantities) and report the failure."""
        try:
            self.save()
        except PersistenceError as e:
            logger.error(str(e))
            self.items = [item for item, _ in previous]
            for item, quantity in previous:
                item.quantity = quantity
            if self.on_error:
                self.on_error(e)
            return False
        return True

    def _checkpoint(self) -> list[tuple[CartItem, int]]:
        return [(item, item.quantity) for item in self.items]

    def find(self, product_id: int, size: str) -> Optional[CartItem]:
        for item in self.items:
            if item.product.id == product_id and item.size == size:
                return item
        return None

    def add_item(self, product: Product, size: str) -> bool:
        """Add one unit of ``product`` in ``size``, merging with an existing line."""
        previous = self._checkpoint()
        existing = self.find(product.id, size)
        if existing is not None:
            existing.quantity += 1
        else:
            self.items.append(CartItem(product=product, size=size))
        logger.info(f"Added product {product.id} (size {size}) to cart")
        return self._commit(previous)

    def remove_item(self, item: CartItem) -> bool:
        """Remove exactly this item instance (not any equal-looking line)."""
        previous = self._checkpoint()
        for index, existing in enumerate(self.items):
            if existing is item:
                del self.items[index]
                logger.info(f"Removed product {item.product.id} (size {item.size}) from cart")
                break
        else:
            logger.warning(f"Product {item.product.id} (size {item.size}) not in cart")
        return self._commit(previous)

    def increment(self, item: CartItem) -> bool:
        previous = self._checkpoint()
        item.quantity += 1
        return self._commit(previous)

    def decrement(self, item: CartItem) -> bool:
        """Decrease the quantity by one; a single unit is removed instead of reaching zero."""
        if item.quantity <= 1:
            return self.remove_item(item)
        previous = self._checkpoint()
        item.quantity -= 1
        return self._commit(previous)

    def set_quantity(self, item: CartItem, quantity: int) -> bool:
        """Set the quantity; anything below one removes the item."""
        if quantity < 1:
            return self.remove_item(item)
        previous = self._checkpoint()
        item.quantity = quantity
        return self._commit(previous)

    @property
    def total_count(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def total_price(self) -> Decimal:
        return sum((item.subtotal for item in self.items), Decimal("0"))

    def snapshot(self) -> Cart:
        return Cart(
            items=[item.model_copy(deep=True) for item in self.items],
            total=self.total_price,
            item_count=self.total_count,
        )
