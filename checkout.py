from __future__ import annotations

import asyncio
import logging
import re
from typing import Optional

from cart import CartStore
from errors import GenericError, InvalidEmailError, ShopError, ValidationError, EmptyCartError
from orders import OrderStore
from payments import FAILURE_MESSAGE, PaymentManager
from schemas import (
    CheckoutResult,
    CheckoutSuccess,
    PaymentFailed,
    PaymentPending,
    PaymentStatus,
)

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}$")


def validate_email(email: str) -> str:
    email = (email or "").strip()
    if not email:
        raise ValidationError("Email is required")
    if not EMAIL_RE.match(email):
        raise InvalidEmailError()
    return email


def describe(result: CheckoutResult) -> str:
    """User-facing message for a checkout outcome."""
    if isinstance(result, CheckoutSuccess):
        return f"Payment successful! Order #{result.order.id}"
    if isinstance(result, PaymentFailed):
        return result.error_message
    if isinstance(result, PaymentPending):
        return "Payment is being processed..."
    raise TypeError(f"unknown checkout result: {type(result).__name__}")


class Checkout:
    """Turns the current cart into an order and pays for it.

    cart -> order (cart cleared) -> payment session -> processing -> result.
    A failed payment keeps the order and does not restore the cart.
    """

    def __init__(self, cart: CartStore, orders: OrderStore, payments: PaymentManager,
                 default_currency: str = "USDT") -> None:
        self.cart = cart
        self.orders = orders
        self.payments = payments
        self.default_currency = default_currency
        self._lock = asyncio.Lock()

    async def checkout(self, customer_email: str, currency: Optional[str] = None) -> CheckoutResult:
        email = validate_email(customer_email)
        async with self._lock:
            try:
                return await self._run(email, currency or self.default_currency)
            except ShopError as e:
                logger.warning("checkout for %s failed: %s", email, e.message)
                raise

    async def _run(self, email: str, currency: str) -> CheckoutResult:
        entries = self.cart.entries()
        if not entries:
            raise EmptyCartError()

        try:
            order = self.orders.create_order(entries, email)
        except ShopError:
            raise
        except Exception as e:
            raise GenericError(str(e) or "Failed to create order") from e

        try:
            session = await self.payments.initialize_payment(
                amount=order.total_amount,
                currency=currency,
                order_id=order.id,
                customer_email=email,
                description=f"Order {order.id} - {len(order.items)} items",
            )
        except ShopError:
            raise
        except Exception as e:
            raise GenericError(str(e) or "Failed to initialize payment") from e

        try:
            result = await self.payments.process_payment(session)
        except ShopError:
            raise
        except Exception as e:
            raise GenericError(str(e) or "Payment processing failed") from e

        if result.status is PaymentStatus.COMPLETED:
            paid = self.orders.mark_paid(order.id, result.payment_id)
            return CheckoutSuccess(order=paid, payment_result=result)
        if result.status is PaymentStatus.FAILED:
            return PaymentFailed(order=order, error_message=result.error_message or FAILURE_MESSAGE)
        return PaymentPending(order=order, payment_session=session)
