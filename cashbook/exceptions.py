"""
Custom exception classes and FastAPI exception handlers.

The service layer raises domain-specific errors (like InsufficientFundsError)
without importing HTTP concepts. The handlers registered here translate
them into the API's error envelope:

    {"status": "error", "message": "...", "error_type": "..."}

Exception hierarchy:
    CashbookError (base)
    ├── ValidationError          — malformed/missing input, length limits   (400)
    ├── ConflictError            — duplicate identifier or name             (400)
    ├── InsufficientFundsError   — debit exceeds the cached balance         (400)
    ├── NotFoundError            — referenced entity absent                 (404)
    ├── AuthError                — missing token or unknown user            (401)
    │   └── ForbiddenError       — invalid token or missing claim           (403)
    ├── StoreError               — connectivity / transaction failure       (500)
    │   └── StoreUnavailableError — no connection pool available            (503)
    └── ImmutableRecordError     — attempt to modify a ledger entry         (500)
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Base exception
# ---------------------------------------------------------------------------

class CashbookError(Exception):
    """Base exception for all Cashbook domain errors."""

    status_code: int = 500
    error_type: str = "error"

    def __init__(self, detail: str = "An error occurred"):
        self.detail = detail
        super().__init__(self.detail)


# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------

class ValidationError(CashbookError):
    """Raised when request input is missing, malformed or too long."""

    status_code = 400
    error_type = "validation_error"


class ConflictError(CashbookError):
    """Raised when a name or account number already exists."""

    status_code = 400
    error_type = "conflict"


class NotFoundError(CashbookError):
    """Raised when a referenced entity does not exist."""

    status_code = 404
    error_type = "not_found"


class InsufficientFundsError(CashbookError):
    """
    Raised when a debit would take the cached balance below zero.

    Attributes:
        account_code: The account that lacks sufficient funds.
        requested_cents: The amount the caller tried to debit.
        available_cents: The current cached balance of the account.
    """

    status_code = 400
    error_type = "insufficient_funds"

    def __init__(self, account_code: int, requested_cents: int, available_cents: int):
        self.account_code = account_code
        self.requested_cents = requested_cents
        self.available_cents = available_cents
        super().__init__("Insufficient balance")


class AuthError(CashbookError):
    """Raised when no usable credentials were presented."""

    status_code = 401
    error_type = "unauthorized"


class ForbiddenError(AuthError):
    """Raised when a token is invalid, expired or lacks a required claim."""

    status_code = 403
    error_type = "forbidden"


class StoreError(CashbookError):
    """Raised on store connectivity or transaction failures."""

    status_code = 500
    error_type = "store_error"


class StoreUnavailableError(StoreError):
    """Raised when a request arrives while no connection pool is ready."""

    status_code = 503
    error_type = "store_unavailable"

    def __init__(self, detail: str = "Database not available"):
        super().__init__(detail)


class ImmutableRecordError(CashbookError):
    """Raised when code attempts to update or delete a ledger entry."""

    error_type = "immutable_record"


# ---------------------------------------------------------------------------
# FastAPI exception handlers
# ---------------------------------------------------------------------------

def _error_response(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"status": "error", "message": message, **extra},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """
    Register exception handlers with the FastAPI application.

    Every error leaves the API in the same envelope. This is called once
    during app construction in main.py.
    """

    @app.exception_handler(CashbookError)
    async def cashbook_error_handler(request: Request, exc: CashbookError) -> JSONResponse:
        extra = {"error_type": exc.error_type}
        if isinstance(exc, InsufficientFundsError):
            extra["requested_cents"] = exc.requested_cents
            extra["available_cents"] = exc.available_cents
        if exc.status_code >= 500:
            logger.error(
                "Request failed",
                extra={"path": request.url.path, "error_type": exc.error_type, "error": exc.detail},
            )
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
        response = _error_response(exc.status_code, exc.detail, **extra)
        if headers:
            response.headers.update(headers)
        return response

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        # Collapse pydantic's error list into one readable message
        parts = []
        for error in exc.errors():
            location = ".".join(str(item) for item in error.get("loc", ()) if item != "body")
            parts.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
        return _error_response(
            400, "; ".join(parts) or "Invalid request", error_type="validation_error"
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return _error_response(exc.status_code, str(exc.detail))

    @app.exception_handler(SQLAlchemyError)
    async def store_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        # Internal admin tool: the driver message is surfaced as-is
        logger.error("Store error", extra={"path": request.url.path, "error": str(exc)})
        return _error_response(500, f"Store error: {exc}", error_type=StoreError.error_type)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error", extra={"path": request.url.path})
        return _error_response(500, "Internal server error", error_type="internal_error")
