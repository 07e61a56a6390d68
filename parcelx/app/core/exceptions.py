"""
Custom exceptions and error handlers for consistent error responses.

Every payment confirmation failure carries a machine-readable error code
and a human message. Handlers render them in the same envelope the
success responses use (``success: false``).
"""

import logging

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from typing import Any, Dict

logger = logging.getLogger("parcelx")


class AppException(Exception):
    """Base application exception."""

    def __init__(self, message: str, error_code: str, status_code: int = 500, details: Dict[str, Any] = None):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class MissingFieldError(AppException):
    """Raised when a required request field is absent or blank."""

    def __init__(self, field: str):
        super().__init__(
            message=f"Missing required field: {field}",
            error_code="ERR_MISSING_FIELD",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"field": field}
        )


class PaymentNotSucceededError(AppException):
    """Raised when the gateway does not report the payment as succeeded."""

    def __init__(self, payment_intent_id: str, gateway_status: str = None, message: str = None):
        super().__init__(
            message=message or f"Payment {payment_intent_id} has not succeeded",
            error_code="ERR_PAYMENT_NOT_SUCCEEDED",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"payment_intent_id": payment_intent_id, "gateway_status": gateway_status}
        )


class AmountMismatchError(AppException):
    """Raised when the caller's expected amount differs from the verified one."""

    def __init__(self, expected: int, actual: int):
        super().__init__(
            message=f"Amount mismatch: expected {expected}, gateway reports {actual}",
            error_code="ERR_AMOUNT_MISMATCH",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"expected": expected, "actual": actual}
        )


class CurrencyMismatchError(AppException):
    """Raised when the caller's expected currency differs from the verified one."""

    def __init__(self, expected: str, actual: str):
        super().__init__(
            message=f"Currency mismatch: expected {expected}, gateway reports {actual}",
            error_code="ERR_CURRENCY_MISMATCH",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"expected": expected, "actual": actual}
        )


class ParcelNotFoundError(AppException):
    """Raised when no parcel matches the supplied identifier."""

    def __init__(self, parcel_id: Any = None):
        message = "Parcel not found"
        if parcel_id:
            message = f"Parcel with ID {parcel_id} not found"
        super().__init__(
            message=message,
            error_code="ERR_PARCEL_NOT_FOUND",
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": "parcel", "id": parcel_id}
        )


class GatewayUnreachableError(AppException):
    """Raised when the payment gateway call cannot complete."""

    def __init__(self, message: str = "Payment gateway unreachable", details: Dict[str, Any] = None):
        super().__init__(
            message=message,
            error_code="ERR_GATEWAY_UNREACHABLE",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=details
        )


class StoreUnavailableError(AppException):
    """Raised when a persistence operation fails."""

    def __init__(self, operation: str, message: str = None):
        super().__init__(
            message=message or f"Store unavailable during {operation}",
            error_code="ERR_STORE_UNAVAILABLE",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details={"operation": operation}
        )


# Global Exception Handlers

async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Handler for custom application exceptions."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error_code": exc.error_code,
            "message": exc.message,
            "details": exc.details
        }
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for FastAPI HTTPException with standardized format."""
    # Map status code to error code
    error_code_map = {
        400: "ERR_BAD_REQUEST",
        404: "ERR_NOT_FOUND",
        405: "ERR_METHOD_NOT_ALLOWED",
        500: "ERR_INTERNAL_SERVER"
    }

    error_code = error_code_map.get(exc.status_code, "ERR_UNKNOWN")

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "success": False,
            "error_code": error_code,
            "message": exc.detail,
            "details": {}
        }
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handler for Pydantic validation errors."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "success": False,
            "error_code": "ERR_VALIDATION",
            "message": "Validation error",
            "details": {
                "errors": jsonable_errors(exc)
            }
        }
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    # ctx may hold exception instances which are not JSON serializable
    return [
        {key: value for key, value in error.items() if key != "ctx"}
        for error in exc.errors()
    ]


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler for unhandled exceptions."""
    logger.error(
        "Unhandled exception",
        extra={"path": request.url.path, "exception": type(exc).__name__},
        exc_info=exc,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error_code": "ERR_INTERNAL_SERVER",
            "message": "An internal server error occurred",
            "details": {}
        }
    )
