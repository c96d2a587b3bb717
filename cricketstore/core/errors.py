"""
Error taxonomy and the mapper that turns failures into JSON responses.

Every failure response the API sends has the shape ``{"error": <message>, "code": <CODE>}``
(plus ``details`` for client errors when there is something useful to say). Handlers
raise ``ApiError`` for expected failures; anything else goes through
``handle_unexpected_error`` which logs it and answers with a generic 500.
"""
import inspect
import functools
import logging
from enum import Enum
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    # authentication / authorization
    AUTH_REQUIRED = "AUTH_REQUIRED"
    AUTH_INVALID_TOKEN = "AUTH_INVALID_TOKEN"
    AUTH_INSUFFICIENT_PERMISSIONS = "AUTH_INSUFFICIENT_PERMISSIONS"
    AUTH_ADMIN_REQUIRED = "AUTH_ADMIN_REQUIRED"

    # validation
    VALIDATION_FAILED = "VALIDATION_FAILED"
    VALIDATION_DUPLICATE = "VALIDATION_DUPLICATE"
    INVALID_QUERY_PARAMS = "INVALID_QUERY_PARAMS"

    # resources
    PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"
    CATEGORY_NOT_FOUND = "CATEGORY_NOT_FOUND"
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    WISHLIST_ITEM_NOT_FOUND = "WISHLIST_ITEM_NOT_FOUND"
    CART_NOT_FOUND = "CART_NOT_FOUND"
    USER_NOT_FOUND = "USER_NOT_FOUND"

    # business rules
    PRODUCT_INSUFFICIENT_STOCK = "PRODUCT_INSUFFICIENT_STOCK"
    ORDER_CANNOT_BE_CANCELLED = "ORDER_CANNOT_BE_CANCELLED"
    ORDER_ALREADY_CANCELLED = "ORDER_ALREADY_CANCELLED"
    ORDER_ALREADY_REFUNDED = "ORDER_ALREADY_REFUNDED"
    ORDER_NOT_PAID = "ORDER_NOT_PAID"
    INVALID_REFUND_AMOUNT = "INVALID_REFUND_AMOUNT"
    WISHLIST_ALREADY_EXISTS = "WISHLIST_ALREADY_EXISTS"
    CART_ITEM_LIMIT_EXCEEDED = "CART_ITEM_LIMIT_EXCEEDED"
    PRICE_MISMATCH = "PRICE_MISMATCH"
    ORDER_MODIFIED = "ORDER_MODIFIED"

    # rate limiting
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    # server
    SERVER_ERROR = "SERVER_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"


ERROR_STATUS: Dict[ErrorCode, int] = {
    ErrorCode.AUTH_REQUIRED: 401,
    ErrorCode.AUTH_INVALID_TOKEN: 401,
    ErrorCode.AUTH_INSUFFICIENT_PERMISSIONS: 403,
    ErrorCode.AUTH_ADMIN_REQUIRED: 403,
    ErrorCode.VALIDATION_FAILED: 400,
    ErrorCode.VALIDATION_DUPLICATE: 409,
    ErrorCode.INVALID_QUERY_PARAMS: 400,
    ErrorCode.PRODUCT_NOT_FOUND: 404,
    ErrorCode.CATEGORY_NOT_FOUND: 404,
    ErrorCode.ORDER_NOT_FOUND: 404,
    ErrorCode.WISHLIST_ITEM_NOT_FOUND: 404,
    ErrorCode.CART_NOT_FOUND: 404,
    ErrorCode.USER_NOT_FOUND: 404,
    ErrorCode.PRODUCT_INSUFFICIENT_STOCK: 400,
    ErrorCode.ORDER_CANNOT_BE_CANCELLED: 422,
    ErrorCode.ORDER_ALREADY_CANCELLED: 409,
    ErrorCode.ORDER_ALREADY_REFUNDED: 409,
    ErrorCode.ORDER_NOT_PAID: 422,
    ErrorCode.INVALID_REFUND_AMOUNT: 400,
    ErrorCode.WISHLIST_ALREADY_EXISTS: 409,
    ErrorCode.CART_ITEM_LIMIT_EXCEEDED: 400,
    ErrorCode.PRICE_MISMATCH: 400,
    ErrorCode.ORDER_MODIFIED: 409,
    ErrorCode.RATE_LIMIT_EXCEEDED: 429,
    ErrorCode.SERVER_ERROR: 500,
    ErrorCode.DATABASE_ERROR: 500,
}

ERROR_MESSAGES: Dict[ErrorCode, str] = {
    ErrorCode.AUTH_REQUIRED: "Authentication is required to access this resource",
    ErrorCode.AUTH_INVALID_TOKEN: "Invalid authentication token",
    ErrorCode.AUTH_INSUFFICIENT_PERMISSIONS: "You do not have permission to perform this action",
    ErrorCode.AUTH_ADMIN_REQUIRED: "Admin access is required",
    ErrorCode.VALIDATION_FAILED: "The request data is invalid",
    ErrorCode.VALIDATION_DUPLICATE: "A record with this value already exists",
    ErrorCode.INVALID_QUERY_PARAMS: "Invalid query parameters",
    ErrorCode.PRODUCT_NOT_FOUND: "Product not found",
    ErrorCode.CATEGORY_NOT_FOUND: "Category not found",
    ErrorCode.ORDER_NOT_FOUND: "Order not found",
    ErrorCode.WISHLIST_ITEM_NOT_FOUND: "Wishlist item not found",
    ErrorCode.CART_NOT_FOUND: "Cart not found",
    ErrorCode.USER_NOT_FOUND: "User not found",
    ErrorCode.PRODUCT_INSUFFICIENT_STOCK: "Not enough stock available for this product",
    ErrorCode.ORDER_CANNOT_BE_CANCELLED: "This order can no longer be cancelled",
    ErrorCode.ORDER_ALREADY_CANCELLED: "This order has already been cancelled",
    ErrorCode.ORDER_ALREADY_REFUNDED: "This order has already been refunded",
    ErrorCode.ORDER_NOT_PAID: "Only paid orders can be refunded",
    ErrorCode.INVALID_REFUND_AMOUNT: "Refund amount cannot exceed the order total",
    ErrorCode.WISHLIST_ALREADY_EXISTS: "This product is already in your wishlist",
    ErrorCode.CART_ITEM_LIMIT_EXCEEDED: "Your cart has reached the maximum number of items",
    ErrorCode.PRICE_MISMATCH: "Prices have changed. Please review your cart",
    ErrorCode.ORDER_MODIFIED: "The order was changed by another request. Please try again",
    ErrorCode.RATE_LIMIT_EXCEEDED: "Too many requests. Please try again later.",
    ErrorCode.SERVER_ERROR: "An unexpected error occurred. Please try again",
    ErrorCode.DATABASE_ERROR: "A database error occurred. Please try again",
}


class ApiError(Exception):
    """Expected failure raised from inside a handler; rendered by the error mapper."""

    def __init__(self, code: ErrorCode, message: Optional[str] = None, details: Any = None):
        self.code = code
        self.message = message or ERROR_MESSAGES[code]
        self.details = details
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return ERROR_STATUS[self.code]


class GuardRejected(Exception):
    """Short-circuit from an auth or rate-limit guard carrying its pre-built response."""

    def __init__(self, response: JSONResponse):
        self.response = response
        super().__init__(response.status_code)


def create_error_response(
    code: ErrorCode,
    message: Optional[str] = None,
    details: Any = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    status_code = ERROR_STATUS[code]
    body: Dict[str, Any] = {"error": message or ERROR_MESSAGES[code], "code": code.value}
    # internals never leave the process for server errors
    if details is not None and status_code < 500:
        body["details"] = details
    if status_code >= 500:
        logger.error("Error response %s (%s): %s", code.value, status_code, message or ERROR_MESSAGES[code])
    return JSONResponse(body, status_code=status_code, headers=headers)


def handle_unexpected_error(error: BaseException, context: Optional[str] = None) -> JSONResponse:
    logger.error("Unexpected error%s: %s", f" in {context}" if context else "", error, exc_info=error)
    return create_error_response(ErrorCode.SERVER_ERROR)


def _format_errors(errors) -> Dict[str, str]:
    fields: Dict[str, str] = {}
    for err in errors:
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        fields[".".join(loc) or "body"] = err.get("msg", "Invalid value")
    return fields


def handle_validation_error(error: Exception) -> JSONResponse:
    """Map pydantic/FastAPI validation failures to a 400 with per-field messages."""
    if isinstance(error, (RequestValidationError, ValidationError)):
        details = _format_errors(error.errors())
    else:
        details = None
    return create_error_response(ErrorCode.VALIDATION_FAILED, details=details)


def with_error_handler(context: str):
    """
    Wrap a route function so expected failures propagate to the registered
    exception handlers and anything else is logged under `context` and
    answered with the generic server error.
    """
    passthrough = (ApiError, GuardRejected, HTTPException, RequestValidationError)

    def decorator(fn):
        if inspect.iscoroutinefunction(fn):
            @functools.wraps(fn)
            async def async_wrapper(*args, **kwargs):
                try:
                    return await fn(*args, **kwargs)
                except passthrough:
                    raise
                except ValidationError as exc:
                    return handle_validation_error(exc)
                except Exception as exc:
                    return handle_unexpected_error(exc, context)

            return async_wrapper

        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            try:
                return fn(*args, **kwargs)
            except passthrough:
                raise
            except ValidationError as exc:
                return handle_validation_error(exc)
            except Exception as exc:
                return handle_unexpected_error(exc, context)

        return wrapper

    return decorator


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def _api_error(request: Request, exc: ApiError):
        return create_error_response(exc.code, exc.message, exc.details)

    @app.exception_handler(GuardRejected)
    async def _guard_rejected(request: Request, exc: GuardRejected):
        return exc.response

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError):
        return handle_validation_error(exc)
