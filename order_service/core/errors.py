"""Error kinds surfaced by the order service.

Every error carries an HTTP status code and a caller-safe message. Internal
causes (datastore errors, collaborator response bodies) are logged where they
are caught and never copied into ``message``.
"""
from typing import Iterable


class OrderServiceError(Exception):
    status_code: int = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidProducts(OrderServiceError):
    status_code = 400

    def __init__(self, missing: Iterable[int] = ()):
        self.missing = sorted(set(missing))
        if self.missing:
            message = f"Invalid products: {', '.join(str(m) for m in self.missing)}"
        else:
            message = "Invalid products"
        super().__init__(message)


class OrderCreationFailed(OrderServiceError):
    status_code = 400

    def __init__(self):
        super().__init__("Order could not be created, check the service logs")


class OrderNotFound(OrderServiceError):
    status_code = 404

    def __init__(self, order_id):
        self.order_id = order_id
        super().__init__(f"Order with id {order_id} not found")


class ProductLookupError(OrderServiceError):
    status_code = 502

    def __init__(self, message: str = "Product catalog unavailable"):
        super().__init__(message)


class PaymentSessionError(OrderServiceError):
    status_code = 502

    def __init__(self, message: str = "Payment service unavailable"):
        super().__init__(message)


class PaymentSessionFailed(PaymentSessionError):
    """Raised to callers when an order was stored but has no payment session."""

    def __init__(self, order_id):
        self.order_id = order_id
        super().__init__(f"Payment session could not be created for order {order_id}")
