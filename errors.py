"""Error taxonomy shared by the stores, the payment manager and the API.

Every error carries the HTTP status the storefront API answers with.
"""

from typing import Iterable


class ShopError(Exception):
    status_code = 500
    default_message = "Something went wrong"

    def __init__(self, message: str = "") -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(ShopError):
    status_code = 400
    default_message = "Invalid request"


class EmptyCartError(ValidationError):
    default_message = "Cart is empty"


class InvalidEmailError(ValidationError):
    default_message = "Please enter a valid email address"


class UnsupportedCurrencyError(ValidationError):
    def __init__(self, currency: str, supported: Iterable[str]) -> None:
        self.currency = currency
        self.supported = sorted(supported)
        super().__init__(
            f"Unsupported cryptocurrency: {currency}. Supported: {', '.join(self.supported)}"
        )


class InvalidTransitionError(ValidationError):
    def __init__(self, payment_id: str, current: str, target: str) -> None:
        self.payment_id = payment_id
        self.current = current
        self.target = target
        super().__init__(f"Payment {payment_id} cannot move from {current} to {target}")


class NotFoundError(ShopError):
    status_code = 404
    default_message = "Not found"


class GatewayError(ShopError):
    status_code = 502
    default_message = "Wallet gateway unavailable"


class GenericError(ShopError):
    status_code = 500
