import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence

from pymongo.database import Database

from cart import CartStore, entries_total
from database import create_document, get_documents, update_document
from errors import EmptyCartError, NotFoundError, ValidationError
from schemas import CartEntry, Order, OrderStatus

logger = logging.getLogger(__name__)

ORDER_COLLECTION = "order"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OrderStore:
    """Append-only order history.

    Creating an order clears the cart. When a MongoDB database is given,
    orders are archived to the ``order`` collection as well.
    """

    def __init__(self, cart: CartStore, db: Optional[Database] = None,
                 clock: Callable[[], datetime] = utcnow) -> None:
        self.cart = cart
        self.db = db
        self.clock = clock
        self._orders: Dict[str, Order] = {}

    def restore(self) -> int:
        """Reload archived orders. Returns how many were loaded."""
        if self.db is None:
            return 0
        loaded = 0
        for doc in get_documents(self.db, ORDER_COLLECTION):
            order = Order.model_validate(doc)
            self._orders[order.id] = order
            loaded += 1
        logger.info("restored %d archived orders", loaded)
        return loaded

    def create_order(self, entries: Sequence[CartEntry], customer_email: str) -> Order:
        if not entries:
            raise EmptyCartError()
        currencies = {e.item.currency for e in entries}
        if len(currencies) > 1:
            raise ValidationError(f"Cart mixes currencies: {', '.join(sorted(currencies))}")

        order = Order(
            id=str(uuid.uuid4()),
            items=tuple(entries),
            total_amount=entries_total(entries),
            currency=currencies.pop(),
            status=OrderStatus.PENDING,
            created_at=self.clock(),
            customer_email=customer_email,
        )
        self._orders[order.id] = order
        if self.db is not None:
            create_document(self.db, ORDER_COLLECTION, order)
        logger.info("order %s created: %s %s, %d lines",
                    order.id, order.total_amount, order.currency, len(order.items))

        self.cart.clear_cart()
        return order

    def get_order(self, order_id: str) -> Order:
        order = self._orders.get(order_id)
        if order is None:
            raise NotFoundError(f"Order not found: {order_id}")
        return order

    def mark_paid(self, order_id: str, payment_id: str) -> Order:
        order = self.get_order(order_id).model_copy(
            update={"status": OrderStatus.PAID, "payment_id": payment_id}
        )
        self._orders[order_id] = order
        if self.db is not None:
            update_document(self.db, ORDER_COLLECTION, {"id": order_id},
                            {"status": order.status.value, "payment_id": payment_id})
        logger.info("order %s paid by payment %s", order_id, payment_id)
        return order

    def get_order_history(self) -> List[Order]:
        # dict keeps insertion order, so equal timestamps list newest first too
        history = list(self._orders.values())
        history.reverse()
        return sorted(history, key=lambda o: o.created_at, reverse=True)
