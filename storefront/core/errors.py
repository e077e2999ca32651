# storefront/core/errors.py
"""
Domain errors for the cart / checkout / payment flow.

Every error is an HTTPException so services can raise it exactly where they
would raise a plain HTTPException; the extra `code` lets clients tell the
failure kinds apart without parsing messages. `main.py` registers a handler
that renders {"detail": ..., "code": ...}.
"""
from fastapi import HTTPException, status


class StorefrontError(HTTPException):
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "storefront_error"
    message: str = "Request failed"

    def __init__(self, detail: str | None = None):
        super().__init__(status_code=self.status_code, detail=detail or self.message)


# ---- Not found ----


class ProductNotFound(StorefrontError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "product_not_found"
    message = "Product not found"


class OrderNotFound(StorefrontError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "order_not_found"
    message = "Order not found"


class NotInCart(StorefrontError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_in_cart"
    message = "Product not found in cart"


# ---- Authorization ----


class Forbidden(StorefrontError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"
    message = "Not authorized to view this order"


# ---- Cart / stock ----


class InvalidQuantity(StorefrontError):
    code = "invalid_quantity"
    message = "Quantity must be at least 1"


class InsufficientStock(StorefrontError):
    code = "insufficient_stock"
    message = "Not enough stock available"

    def __init__(self, product_name: str, available: int, requested: int):
        self.available = available
        self.requested = requested
        super().__init__(
            f"Not enough stock for {product_name}. "
            f"Only {available} available, requested {requested}."
        )


class CartConflict(StorefrontError):
    status_code = status.HTTP_409_CONFLICT
    code = "cart_conflict"
    message = "Cart was modified by another request, please retry"


# ---- Orders ----


class EmptyOrder(StorefrontError):
    code = "empty_order"
    message = "No order items"


class AlreadyPaid(StorefrontError):
    status_code = status.HTTP_409_CONFLICT
    code = "already_paid"
    message = "Order is already paid"


class OrderNotPaid(StorefrontError):
    code = "order_not_paid"
    message = "Order must be paid before it can be delivered"


# ---- Payment handshake ----


class AmountMismatch(StorefrontError):
    code = "amount_mismatch"
    message = "Payment amount does not match the order total"


class InvalidSignature(StorefrontError):
    code = "invalid_signature"
    message = "Invalid payment signature"


class ExternalServiceError(StorefrontError):
    status_code = status.HTTP_502_BAD_GATEWAY
    code = "payment_gateway_error"
    message = "Failed to reach the payment gateway"


class GatewayTimeout(StorefrontError):
    status_code = status.HTTP_504_GATEWAY_TIMEOUT
    code = "payment_gateway_timeout"
    message = "Payment gateway timed out"


class PaymentMismatch(StorefrontError):
    code = "payment_mismatch"
    message = "Payment was made for a different order or amount"


class PaymentAlreadyUsed(StorefrontError):
    status_code = status.HTTP_409_CONFLICT
    code = "payment_already_used"
    message = "Payment has already been recorded against another order"
