"""
Error Handler Utility for Store API routes

Provides centralized error handling for the store routers with:
- Automatic exception to (HTTP status, error code) mapping
- Consistent {code, message} response bodies
- Original error text in non-production environments only
- Logging for debugging

Usage in routes:
    from utils.error_handler import error_response

    try:
        cart = await CartUpdateService.update_cart(cart_id, payload, session)
    except Exception as e:
        return error_response(e, correlation_id)
"""

import logging

from fastapi import status
from fastapi.responses import JSONResponse

import config
from exceptions import (
    StoreException,
    InvalidSelectionException,
    PricingTableException,
    CartNotFoundException,
    CartCompletedException,
    CartUnavailableException,
    InvalidEmailException,
    NoRegionConfiguredException,
    DesignProductNotFoundException,
    DesignVariantNotFoundException,
    PlatformException,
)

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Internal error"

# Exception type -> (HTTP status, error code); subclasses inherit their parent's entry
ERROR_MAPPING: dict[type, tuple[int, str]] = {
    # Input
    InvalidSelectionException: (status.HTTP_400_BAD_REQUEST, "invalid_payload"),
    InvalidEmailException: (status.HTTP_400_BAD_REQUEST, "invalid_payload"),

    # Cart
    CartNotFoundException: (status.HTTP_404_NOT_FOUND, "cart_not_found"),
    CartCompletedException: (status.HTTP_409_CONFLICT, "cart_completed"),
    CartUnavailableException: (status.HTTP_500_INTERNAL_SERVER_ERROR, "cart_unavailable"),

    # Catalog / store configuration
    NoRegionConfiguredException: (status.HTTP_500_INTERNAL_SERVER_ERROR, "no_region"),
    DesignProductNotFoundException: (status.HTTP_404_NOT_FOUND, "product_not_found"),
    DesignVariantNotFoundException: (status.HTTP_500_INTERNAL_SERVER_ERROR, "variant_not_found"),
    PricingTableException: (status.HTTP_500_INTERNAL_SERVER_ERROR, "pricing_unavailable"),
}

PLATFORM_ERROR_STATUS: dict[str, int] = {
    PlatformException.NOT_FOUND: status.HTTP_404_NOT_FOUND,
}


def map_exception(exception: Exception) -> tuple[int, str]:
    """
    Resolve the HTTP status and error code for an exception.

    Returns:
        (status, code); unmapped exceptions give (500, "server_error")
    """
    if isinstance(exception, PlatformException):
        return PLATFORM_ERROR_STATUS.get(exception.type, status.HTTP_500_INTERNAL_SERVER_ERROR), exception.type

    for exception_type in type(exception).__mro__:
        if exception_type in ERROR_MAPPING:
            return ERROR_MAPPING[exception_type]
    return status.HTTP_500_INTERNAL_SERVER_ERROR, "server_error"


def build_error_body(exception: Exception, code: str, mapped: bool) -> dict:
    # Platform messages may carry customer data (emails), only our own messages are shown
    exposable = mapped and isinstance(exception, StoreException) and not isinstance(exception, PlatformException)
    message = exception.message if exposable else GENERIC_ERROR_MESSAGE
    body = {"code": code, "message": message}
    field = getattr(exception, "field", None)
    if field:
        body["field"] = field
    if not config.IS_PRODUCTION:
        body["error"] = str(exception)
    return body


def error_response(exception: Exception, correlation_id: str = "", status_code: int | None = None) -> JSONResponse:
    """
    Convert an exception into a JSON error response.

    Args:
        exception: Exception raised by a service
        correlation_id: Request correlation id for log lines
        status_code: Optional status replacing the mapped one (e.g. 422 for previews)

    Returns:
        JSONResponse with {code, message[, field][, error]}
    """
    mapped_status, code = map_exception(exception)
    mapped = code != "server_error"
    if mapped:
        logger.warning(f"[{correlation_id}] Service error handled: {type(exception).__name__} - {exception}")
    else:
        logger.error(f"[{correlation_id}] Unexpected error: {type(exception).__name__} - {exception}", exc_info=exception)

    return JSONResponse(
        status_code=status_code or mapped_status,
        content=build_error_body(exception, code, mapped)
    )
