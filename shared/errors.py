"""
Error taxonomy shared by every service.

Services raise these; the handler registered in main.py turns them into the
`{"success": false, "message": ...}` envelope the storefront client expects.
"""
import structlog
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

logger = structlog.get_logger(__name__)


class StorefrontError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(StorefrontError):
    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(StorefrontError):
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(StorefrontError):
    status_code = status.HTTP_409_CONFLICT


class AuthorizationError(StorefrontError):
    status_code = status.HTTP_403_FORBIDDEN


class ExternalProviderError(StorefrontError):
    status_code = status.HTTP_502_BAD_GATEWAY


class IntegrityError(StorefrontError):
    """Linkage that should always exist is missing; the data needs fixing."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


# --- Catalogue / inventory ---

class ProductNotFound(NotFoundError):
    def __init__(self, product_id: int):
        self.product_id = product_id
        super().__init__("Product not found")


class InsufficientStock(ConflictError):
    def __init__(self, product_name: str):
        self.product_name = product_name
        super().__init__(f"Not enough stock for {product_name}")


class MissingSellerLink(IntegrityError):
    def __init__(self, product_name: str):
        self.product_name = product_name
        super().__init__(f"Product {product_name} is missing seller link")


# --- Orders ---

class OrderNotFound(NotFoundError):
    def __init__(self, order_id: int):
        self.order_id = order_id
        super().__init__("Order not found")


class InvalidStatus(ValidationError):
    def __init__(self, value: str):
        self.value = value
        super().__init__("Invalid status value")


class OrderLocked(ConflictError):
    def __init__(self, current_status: str):
        self.current_status = current_status
        super().__init__(f"{current_status} orders cannot be changed")


class InvalidTransition(ConflictError):
    def __init__(self, current_status: str, target_status: str):
        self.current_status = current_status
        self.target_status = target_status
        super().__init__(f"Cannot move order from {current_status} to {target_status}")


class BelowMinimumAmount(ValidationError):
    def __init__(self, amount: int, minimum: int):
        self.amount = amount
        self.minimum = minimum
        super().__init__(
            f"Online payment requires a minimum amount of {minimum}. Please add more items."
        )


# --- Payment provider ---

class PaymentProviderError(ExternalProviderError):
    pass


class PaymentSessionNotFound(NotFoundError):
    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__("Session not found")


class WebhookSignatureError(ExternalProviderError):
    status_code = status.HTTP_400_BAD_REQUEST


async def storefront_error_handler(request: Request, exc: StorefrontError) -> JSONResponse:
    log = logger.error if isinstance(exc, ExternalProviderError) else logger.warning
    log(
        "request_failed",
        error=type(exc).__name__,
        message=exc.message,
        path=request.url.path,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.message},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StorefrontError, storefront_error_handler)
