"""Centralized exception hierarchy and handlers for the ledger core.

Every service raises exceptions from this hierarchy rather than generic
exceptions. Each class carries the HTTP status it maps to, so the FastAPI
handler can turn it into a response without a lookup table, and callers that
are not HTTP-facing (the command interpreter) can still branch on the type.

Exception Hierarchy:
    AppException (base)
    ├── ValidationError (400)
    │   ├── InvalidAmountError
    │   ├── SameAccountTransferError
    │   ├── CurrencyMismatchError
    │   └── RecognitionFailedError
    ├── NotFoundError (404)
    │   └── ReferenceNotFoundError
    ├── ConflictError (409)
    │   ├── DuplicateNameError
    │   └── HasDependentsError
    ├── ConversionUnavailableError (422)
    └── ExternalAPIError (503)
        └── RateProviderError

Usage in Services:
    from expense_ledger.core.exceptions import ReferenceNotFoundError

    account = await repo.get_by_name(name)
    if account is None:
        raise ReferenceNotFoundError(f"Account '{name}' not found", field="account")
"""

import logging
from typing import Any

from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppException(Exception):
    """
    Base exception class for all application errors.

    Attributes:
        status_code: HTTP status code for this error type
        detail: User-facing error message
        error_code: Machine-readable error code (optional)
        context: Extra machine-readable fields added to the response body
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    detail: str = "Internal server error"
    error_code: str | None = None

    def __init__(
        self,
        detail: str | None = None,
        *,
        error_code: str | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        """
        Initialize the exception.

        Args:
            detail: Custom error message (overrides class default)
            error_code: Machine-readable error identifier
            context: Additional fields describing the failure
        """
        self.detail = detail or self.__class__.detail
        self.error_code = error_code or self.__class__.error_code
        self.context = context or {}
        super().__init__(self.detail)


class ValidationError(AppException):
    """
    Raised when input validation fails.

    Maps to HTTP 400 Bad Request.
    """

    status_code = status.HTTP_400_BAD_REQUEST
    detail = "Validation error"
    error_code = "VALIDATION_ERROR"


class NotFoundError(AppException):
    """
    Raised when a requested resource is not found.

    Maps to HTTP 404 Not Found.
    """

    status_code = status.HTTP_404_NOT_FOUND
    detail = "Resource not found"
    error_code = "NOT_FOUND"


class ConflictError(AppException):
    """
    Raised when there's a conflict in the operation.

    Maps to HTTP 409 Conflict.
    """

    status_code = status.HTTP_409_CONFLICT
    detail = "Resource conflict"
    error_code = "CONFLICT"


class ExternalAPIError(AppException):
    """
    Raised when an external API call fails.

    Used when every exchange rate provider is unavailable or returns no data.
    Maps to HTTP 503 Service Unavailable.
    """

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    detail = "External service unavailable"
    error_code = "EXTERNAL_API_ERROR"


class ReferenceNotFoundError(NotFoundError):
    """
    Raised when a transaction or transfer names an account or category that
    does not exist.

    The ``field`` attribute tells the caller which input to highlight:
    ``account``, ``category``, ``source_account``, ``destination_account``,
    ``related_debt``, ``keywords`` or ``currency``.
    """

    detail = "Referenced entity not found"
    error_code = "REFERENCE_NOT_FOUND"

    def __init__(self, detail: str | None = None, *, field: str) -> None:
        self.field = field
        super().__init__(detail, context={"field": field})


class HasDependentsError(ConflictError):
    """Raised when deleting an entity that transactions or transfers still reference."""

    detail = "Entity has dependent records"
    error_code = "HAS_DEPENDENTS"


class DuplicateNameError(ConflictError):
    """Raised when an account or category name is already taken (case-insensitive)."""

    detail = "Name already exists"
    error_code = "DUPLICATE_NAME"


class InvalidAmountError(ValidationError):
    """Raised for negative, non-numeric or unparseable amounts and rates."""

    detail = "Invalid amount"
    error_code = "INVALID_AMOUNT"


class SameAccountTransferError(ValidationError):
    """Raised when a transfer's source and destination are the same account."""

    detail = "Source and destination accounts must be different"
    error_code = "SAME_ACCOUNT_TRANSFER"


class CurrencyMismatchError(ValidationError):
    """Raised when a record's currency does not match the account it touches."""

    detail = "Currency mismatch"
    error_code = "CURRENCY_MISMATCH"


class RecognitionFailedError(ValidationError):
    """Raised when command text matches none of the supported grammars."""

    detail = "Command not recognized"
    error_code = "RECOGNITION_FAILED"


class ConversionUnavailableError(AppException):
    """
    Raised when no exchange rate can be derived for a required pair and date.

    Maps to HTTP 422: the request is well formed, but the ledger refuses to
    report an approximated number.
    """

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    detail = "Exchange rate unavailable"
    error_code = "CONVERSION_UNAVAILABLE"


class RateProviderError(ExternalAPIError):
    """Raised by a single rate provider when it cannot deliver a day's rates."""

    detail = "Rate provider failed"
    error_code = "RATE_PROVIDER_ERROR"


async def app_exception_handler(
    request: Request,
    exc: AppException,
) -> JSONResponse:
    """
    Handle application exceptions and convert to HTTP responses.

    Response Format:
        {
            "detail": "User-facing error message",
            "error_code": "MACHINE_READABLE_CODE",
            "field": "account"  # only for reference errors
        }
    """
    if exc.status_code >= 500:
        logger.error(
            f"{exc.__class__.__name__}: {exc.detail}",
            exc_info=True,
            extra={
                "status_code": exc.status_code,
                "error_code": exc.error_code,
                "request_path": request.url.path,
            },
        )
    else:
        logger.warning(
            f"{exc.__class__.__name__}: {exc.detail}",
            extra={
                "status_code": exc.status_code,
                "error_code": exc.error_code,
                "request_path": request.url.path,
            },
        )

    response_body: dict[str, Any] = {"detail": exc.detail}
    if exc.error_code:
        response_body["error_code"] = exc.error_code
    response_body.update(exc.context)

    return JSONResponse(
        status_code=exc.status_code,
        content=response_body,
    )
