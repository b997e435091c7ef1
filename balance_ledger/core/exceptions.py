from enum import Enum
from typing import Any

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import ORJSONResponse


class AppError(Exception):
    """Base application error with consistent schema."""

    def __init__(
        self,
        message: str,
        code: str = "ERROR",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class NotFoundError(AppError):
    def __init__(self, message: str = "Not found", details: dict[str, Any] | None = None):
        super().__init__(message, code="NOT_FOUND", status_code=status.HTTP_404_NOT_FOUND, details=details)


class ErrorKind(str, Enum):
    INVALID_USER_ID = "INVALID_USER_ID"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    INVALID_IDEMPOTENCY_KEY = "INVALID_IDEMPOTENCY_KEY"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    INVALID_TRANSACTION_TYPE = "INVALID_TRANSACTION_TYPE"
    INSUFFICIENT_BALANCE = "INSUFFICIENT_BALANCE"
    # Replays resolve to a successful no-op; the kind exists for logs and callers that want to tag them.
    DUPLICATE_TRANSACTION = "DUPLICATE_TRANSACTION"
    TRANSACTION_FAILED = "TRANSACTION_FAILED"


_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.INVALID_USER_ID: "Missing required user_id field",
    ErrorKind.USER_NOT_FOUND: "User not found",
    ErrorKind.INVALID_IDEMPOTENCY_KEY: "Invalid idempotency key",
    ErrorKind.INVALID_AMOUNT: "Invalid amount",
    ErrorKind.INVALID_TRANSACTION_TYPE: "Invalid transaction type",
    ErrorKind.INSUFFICIENT_BALANCE: "Insufficient balance",
    ErrorKind.DUPLICATE_TRANSACTION: "Transaction has already been processed",
    ErrorKind.TRANSACTION_FAILED: "Transaction failed",
}

_STATUS: dict[ErrorKind, int] = {
    ErrorKind.INVALID_USER_ID: status.HTTP_400_BAD_REQUEST,
    ErrorKind.USER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.INVALID_IDEMPOTENCY_KEY: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_AMOUNT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_TRANSACTION_TYPE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INSUFFICIENT_BALANCE: status.HTTP_409_CONFLICT,
    ErrorKind.DUPLICATE_TRANSACTION: status.HTTP_409_CONFLICT,
    ErrorKind.TRANSACTION_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class LedgerError(AppError):
    """Domain error of the ledger, tagged by kind.

    ``details`` carries the structured context of the failure (user id,
    idempotency key, store cancellation reasons).
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.kind = kind
        super().__init__(
            message or _MESSAGES[kind],
            code=kind.value,
            status_code=_STATUS[kind],
            details=details,
        )


def error_response(request: Request, exc: AppError) -> ORJSONResponse:
    body = {
        "error": {
            "message": exc.message,
            "code": exc.code,
            "details": exc.details,
        }
    }
    if hasattr(request.state, "request_id"):
        body["request_id"] = request.state.request_id
    return ORJSONResponse(status_code=exc.status_code, content=body)


async def app_exception_handler(request: Request, exc: AppError) -> ORJSONResponse:
    return error_response(request, exc)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> ORJSONResponse:
    body = {
        "error": {
            "message": "Validation error",
            "code": "VALIDATION_ERROR",
            "details": {"errors": exc.errors()},
        }
    }
    if hasattr(request.state, "request_id"):
        body["request_id"] = request.state.request_id
    return ORJSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=body,
    )


async def generic_exception_handler(request: Request, exc: Exception) -> ORJSONResponse:
    from balance_ledger.core.logging import get_logger
    get_logger(__name__).exception("unhandled_exception", exc_info=exc)
    body = {
        "error": {
            "message": "Internal server error",
            "code": "INTERNAL_ERROR",
            "details": {},
        }
    }
    if hasattr(request.state, "request_id"):
        body["request_id"] = request.state.request_id
    return ORJSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=body,
    )
