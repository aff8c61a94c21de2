"""Error taxonomy for the Ordering service.

Every failure the orchestrators raise derives from OrderingError and carries
its category (the error-body header), the HTTP status it maps to, and any
context needed to reconcile by hand (order id, product id).

Field-level validation failures are raised as Protean's ValidationError, the
same as everywhere else in the domain layer.
"""

from enum import Enum


class ErrorCategory(Enum):
    AUTHENTICATION = "AUTHENTICATION_ERROR"
    AUTHORIZATION = "AUTHORIZATION_ERROR"
    VALIDATION = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    UPSTREAM = "UPSTREAM_ERROR"
    PARTIAL_FAILURE = "PARTIAL_FAILURE"
    API = "API_ERROR"


class OrderingError(Exception):
    category = ErrorCategory.API
    status_code = 500

    def __init__(self, message: str, **context) -> None:
        super().__init__(message)
        self.message = message
        self.context = {key: value for key, value in context.items() if value is not None}


# --- Authentication / Authorization ---


class AuthenticationFailed(OrderingError):
    category = ErrorCategory.AUTHENTICATION
    status_code = 401


class AccessDenied(OrderingError):
    category = ErrorCategory.AUTHORIZATION
    status_code = 403


class PaymentNotAuthorized(AccessDenied):
    def __init__(self, order_id: str) -> None:
        super().__init__("You do not have permission to pay for this order.", order_id=order_id)


# --- Not found ---


class OrderNotFound(OrderingError):
    category = ErrorCategory.NOT_FOUND
    status_code = 404

    def __init__(self, order_id: str, message: str | None = None) -> None:
        super().__init__(message or f"Order not found with ID: {order_id}", order_id=order_id)


class ProductNotFound(OrderingError):
    category = ErrorCategory.NOT_FOUND
    status_code = 404

    def __init__(self, product_id: str) -> None:
        super().__init__(f"Product not found with ID: {product_id}", product_id=product_id)


# --- Conflict ---


class InsufficientStock(OrderingError):
    category = ErrorCategory.CONFLICT
    status_code = 409

    def __init__(self, product_id: str, product_name: str, available: int, requested: int) -> None:
        super().__init__(
            f"Insufficient stock for product: {product_name}. Available: {available}, Requested: {requested}",
            product_id=product_id,
            available=available,
            requested=requested,
        )


class InvalidOrderStatus(OrderingError):
    category = ErrorCategory.CONFLICT
    status_code = 409

    def __init__(self, order_id: str, current_status: str) -> None:
        super().__init__(
            f"Order is not in a state that allows payment. Current status: {current_status}",
            order_id=order_id,
            current_status=current_status,
        )


# --- Upstream ---


class UpstreamFailure(OrderingError):
    category = ErrorCategory.UPSTREAM
    status_code = 502


class ProductLookupFailed(UpstreamFailure):
    def __init__(self, product_id: str, detail: str) -> None:
        super().__init__(
            f"Could not retrieve product details for {product_id}. Please try again later.",
            product_id=product_id,
            detail=detail,
        )


class InvalidPrice(UpstreamFailure):
    def __init__(self, product_id: str, product_name: str) -> None:
        super().__init__(
            f"Invalid price received from product service for: {product_name}",
            product_id=product_id,
        )


class StockDecrementFailed(UpstreamFailure):
    def __init__(self, product_id: str, detail: str) -> None:
        super().__init__(f"Could not reduce stock for product {product_id}", product_id=product_id, detail=detail)


class PaymentProcessingFailed(UpstreamFailure):
    def __init__(self, order_id: str, detail: str) -> None:
        super().__init__(f"Payment failed: {detail}", order_id=order_id, detail=detail)


# --- Partial failure ---


class OrderPartiallyFailed(OrderingError):
    """The order row is committed but a stock decrement failed afterwards.

    The order is valid and stays in PENDING_PAYMENT. No compensation is run;
    the signal exists so reconciliation can replay the missing decrements.
    """

    category = ErrorCategory.PARTIAL_FAILURE
    status_code = 500

    def __init__(self, order_id: str, product_id: str, decremented: list[str] | None = None) -> None:
        super().__init__(
            f"Order creation partially failed: could not update product stock for {product_id}. "
            f"Order ID {order_id} might need reconciliation.",
            order_id=order_id,
            product_id=product_id,
            decremented=decremented or [],
        )
        self.order_id = order_id
        self.product_id = product_id
