"""Global error handling middleware for consistent error responses."""

import logging
import traceback
from typing import Any, Callable

from fastapi import HTTPException, Request, Response, status
from fastapi.responses import JSONResponse

from src.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Base exception for API errors.

    Use this class to raise application-specific errors that should
    be returned to the client with a specific status code and message.
    """

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_type: str = "api_error",
        details: list[dict[str, Any]] | None = None,
    ) -> None:
        """Initialize API error.

        Args:
            message: Human-readable error message.
            status_code: HTTP status code to return.
            error_type: Error category/type for client handling.
            details: Optional additional error details.
        """
        self.message = message
        self.status_code = status_code
        self.error_type = error_type
        self.details = details
        super().__init__(message)


class NotFoundError(APIError):
    """Resource not found error."""

    def __init__(self, message: str = "Resource not found", details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            error_type="not_found",
            details=details,
        )


class ValidationError(APIError):
    """Request validation error."""

    def __init__(self, message: str = "Validation error", details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_type="validation_error",
            details=details,
        )


class AuthenticationError(APIError):
    """Authentication failure error."""

    def __init__(self, message: str = "Authentication required", details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_type="authentication_error",
            details=details,
        )


class AuthorizationError(APIError):
    """Authorization failure error."""

    def __init__(self, message: str = "Access denied", details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_type="authorization_error",
            details=details,
        )


class EmptyCartError(ValidationError):
    """Order creation attempted without any line items."""

    def __init__(self, message: str = "At least one product is required", details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(message=message, details=details)
        self.error_type = "empty_cart"


class InvalidStateError(APIError):
    """Operation not permitted in the resource's current state."""

    def __init__(self, message: str = "Invalid state transition", details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            error_type="invalid_state",
            details=details,
        )


class InsufficientPointsError(APIError):
    """Redemption exceeds the available loyalty balance."""

    def __init__(
        self,
        message: str = "Insufficient loyalty points",
        balance: int = 0,
        requested: int = 0,
    ) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            error_type="insufficient_points",
            details=[
                {"loc": ["points"], "msg": f"requested {requested}, available {balance}", "type": "insufficient_points"}
            ],
        )
        self.balance = balance
        self.requested = requested


class ConcurrentUpdateError(APIError):
    """A compare-and-swap update kept losing to concurrent writers."""

    def __init__(self, message: str = "Resource was modified concurrently, please retry", details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            error_type="concurrent_update",
            details=details,
        )


class PartialBatchError(APIError):
    """Multi-line order creation failed partway and was rolled back."""

    def __init__(self, order_id: str, message: str | None = None) -> None:
        super().__init__(
            message=message or f"Order {order_id} could not be saved",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            error_type="partial_batch",
            details=[{"loc": ["order_id"], "msg": order_id, "type": "partial_batch"}],
        )
        self.order_id = order_id


class PaymentReconciliationError(APIError):
    """Payment succeeded but the order could not be persisted.

    Carries the payment reference so support can reconcile manually.
    """

    def __init__(self, payment_reference: str, order_id: str) -> None:
        super().__init__(
            message=(
                "Payment successful but failed to save order. "
                f"Please contact support with Payment ID: {payment_reference}"
            ),
            status_code=status.HTTP_502_BAD_GATEWAY,
            error_type="payment_reconciliation",
            details=[
                {"loc": ["payment_reference"], "msg": payment_reference, "type": "payment_reference"},
                {"loc": ["order_id"], "msg": order_id, "type": "order_id"},
            ],
        )
        self.payment_reference = payment_reference
        self.order_id = order_id


def create_error_response(
    error_type: str,
    message: str,
    status_code: int,
    details: list[dict[str, Any]] | None = None,
    request_id: str | None = None,
) -> JSONResponse:
    """Create a standardized JSON error response.

    Args:
        error_type: Error category for client handling.
        message: Human-readable error description.
        status_code: HTTP status code.
        details: Optional error details.
        request_id: Optional request ID for tracing.

    Returns:
        JSONResponse: Formatted error response.
    """
    error_response = ErrorResponse.from_exception(
        error_type=error_type,
        message=message,
        details=details,
        request_id=request_id,
    )
    return JSONResponse(
        status_code=status_code,
        content=error_response.model_dump(mode="json", exclude_none=True),
    )


async def error_handler_middleware(request: Request, call_next: Callable[[Request], Any]) -> Response:
    """Middleware to catch and format all exceptions.

    Ensures consistent error response format across the application.
    Logs full stack traces for debugging while returning safe messages to clients.

    Args:
        request: The incoming request.
        call_next: Next middleware or route handler.

    Returns:
        Response: Either the successful response or formatted error response.
    """
    # Extract request ID if present (can be set by upstream middleware/load balancer)
    request_id = request.headers.get("X-Request-ID")

    try:
        response = await call_next(request)
        return response

    except APIError as e:
        # Application-specific errors - log at warning level
        logger.warning(
            "API error: %s - %s",
            e.error_type,
            e.message,
            extra={"request_id": request_id, "status_code": e.status_code},
        )
        return create_error_response(
            error_type=e.error_type,
            message=e.message,
            status_code=e.status_code,
            details=e.details,
            request_id=request_id,
        )

    except HTTPException as e:
        # FastAPI HTTP exceptions
        logger.warning(
            "HTTP exception: %s - %s",
            e.status_code,
            e.detail,
            extra={"request_id": request_id},
        )
        return create_error_response(
            error_type="http_error",
            message=str(e.detail),
            status_code=e.status_code,
            request_id=request_id,
        )

    except Exception as e:
        # Unexpected exceptions - log full stack trace
        logger.error(
            "Unhandled exception: %s\n%s",
            str(e),
            traceback.format_exc(),
            extra={"request_id": request_id},
        )
        return create_error_response(
            error_type="internal_error",
            message="An unexpected error occurred",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            request_id=request_id,
        )


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    """Exception handler for APIError raised inside route handlers.

    Registered on the application so typed errors are formatted even when
    they are raised below the middleware stack.

    Args:
        request: The incoming request.
        exc: The raised API error.

    Returns:
        JSONResponse: Formatted error response.
    """
    request_id = request.headers.get("X-Request-ID")
    if exc.status_code >= 500:
        logger.error(
            "API error: %s - %s",
            exc.error_type,
            exc.message,
            extra={"request_id": request_id, "status_code": exc.status_code},
        )
    else:
        logger.warning(
            "API error: %s - %s",
            exc.error_type,
            exc.message,
            extra={"request_id": request_id, "status_code": exc.status_code},
        )
    return create_error_response(
        error_type=exc.error_type,
        message=exc.message,
        status_code=exc.status_code,
        details=exc.details,
        request_id=request_id,
    )
