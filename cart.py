import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Dict, Iterable, List, Tuple

from errors import ValidationError
from schemas import CartEntry, CatalogItem

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

CartSnapshot = Tuple[CartEntry, ...]
CartObserver = Callable[[CartSnapshot], None]


def money(value: Decimal) -> Decimal:
    """Round to cents, half-up."""
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def entries_total(entries: Iterable[CartEntry]) -> Decimal:
    return money(sum((e.line_total for e in entries), Decimal("0")))


class CartStore:
    """Mutable mapping of item id -> CartEntry.

    Every mutation publishes the new snapshot to the registered observers.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, CartEntry] = {}
        self._observers: List[CartObserver] = []

    def subscribe(self, observer: CartObserver) -> Callable[[], None]:
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    def _publish(self) -> None:
        snapshot = self.entries()
        for observer in list(self._observers):
            observer(snapshot)

    def entries(self) -> CartSnapshot:
        return tuple(self._entries.values())

    def item_count(self) -> int:
        return sum(e.quantity for e in self._entries.values())

    def add_to_cart(self, item: CatalogItem, qty: int = 1) -> None:
        if qty < 1:
            raise ValidationError("quantity must be >= 1")
        existing = self._entries.get(item.id)
        if existing is not None:
            qty += existing.quantity
        self._entries[item.id] = CartEntry(item=item, quantity=qty)
        logger.debug("cart: %s x%d", item.id, qty)
        self._publish()

    def remove_from_cart(self, item_id: str) -> None:
        if self._entries.pop(item_id, None) is not None:
            logger.debug("cart: removed %s", item_id)
        self._publish()

    def update_quantity(self, item_id: str, qty: int) -> None:
        if qty <= 0:
            self.remove_from_cart(item_id)
            return
        entry = self._entries.get(item_id)
        if entry is not None:
            self._entries[item_id] = entry.model_copy(update={"quantity": qty})
        self._publish()

    def clear_cart(self) -> None:
        self._entries.clear()
        self._publish()

    def get_cart_total(self) -> Decimal:
        return entries_total(self._entries.values())
