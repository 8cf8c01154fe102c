"""
Centralized error handlers for FastAPI.

Maps ledger domain errors to HTTP responses.
No stack traces or internal details are exposed to clients.
All error responses use the ErrorResponse schema.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.domain.ledger.errors import (
    AccountNotFoundError,
    AuditEntryNotFoundError,
    HoldingNotFoundError,
    InsufficientFundsError,
    InsufficientSharesError,
    InvalidAmountError,
    LedgerDomainError,
    NotReversibleError,
    TransactionNotFoundError,
)

logger = logging.getLogger(__name__)

HTTP_400 = 400
HTTP_404 = 404
HTTP_409 = 409
HTTP_422 = 422
HTTP_500 = 500


def _error_response(status_code: int, error: str, detail: str | None = None) -> JSONResponse:
    """Build a consistent JSON error response."""
    body: dict[str, str | None] = {"error": error}
    if detail:
        body["detail"] = detail
    return JSONResponse(status_code=status_code, content=body)


def register_error_handlers(app: FastAPI) -> None:
    """Register all domain error handlers on the FastAPI application.

    Args:
        app: The FastAPI application instance.
    """

    @app.exception_handler(InvalidAmountError)
    async def handle_invalid_amount(
        _request: Request, exc: InvalidAmountError
    ) -> JSONResponse:
        """Handle non-positive amounts, bad quantities and self-transfers."""
        logger.warning("Rejected request: %s", exc.reason)
        return _error_response(HTTP_422, "Invalid request", exc.reason)

    @app.exception_handler(AccountNotFoundError)
    async def handle_account_not_found(
        _request: Request, exc: AccountNotFoundError
    ) -> JSONResponse:
        logger.warning("Account not found: %s", exc.account_number)
        return _error_response(HTTP_404, "Account not found", exc.message)

    @app.exception_handler(HoldingNotFoundError)
    async def handle_holding_not_found(
        _request: Request, exc: HoldingNotFoundError
    ) -> JSONResponse:
        logger.warning("Holding not found: %s %s", exc.account_number, exc.symbol)
        return _error_response(HTTP_404, "Holding not found", exc.message)

    @app.exception_handler(TransactionNotFoundError)
    async def handle_transaction_not_found(
        _request: Request, exc: TransactionNotFoundError
    ) -> JSONResponse:
        logger.warning("Transaction not found: %s", exc.transaction_id)
        return _error_response(HTTP_404, "Transaction not found", exc.message)

    @app.exception_handler(AuditEntryNotFoundError)
    async def handle_audit_entry_not_found(
        _request: Request, exc: AuditEntryNotFoundError
    ) -> JSONResponse:
        return _error_response(HTTP_404, "Audit entry not found", exc.message)

    @app.exception_handler(InsufficientFundsError)
    async def handle_insufficient_funds(
        _request: Request, exc: InsufficientFundsError
    ) -> JSONResponse:
        """Handle debits larger than the cash balance."""
        logger.warning("Insufficient funds")
        return _error_response(HTTP_409, "Insufficient funds", exc.message)

    @app.exception_handler(InsufficientSharesError)
    async def handle_insufficient_shares(
        _request: Request, exc: InsufficientSharesError
    ) -> JSONResponse:
        logger.warning("Insufficient shares: %s", exc.symbol)
        return _error_response(HTTP_409, "Insufficient shares", exc.message)

    @app.exception_handler(NotReversibleError)
    async def handle_not_reversible(
        _request: Request, exc: NotReversibleError
    ) -> JSONResponse:
        logger.warning(
            "Reversal refused for #%s (%s)", exc.transaction_id, exc.transaction_type
        )
        return _error_response(HTTP_409, "Transaction not reversible", exc.message)

    @app.exception_handler(LedgerDomainError)
    async def handle_ledger_domain(
        _request: Request, exc: LedgerDomainError
    ) -> JSONResponse:
        """Catch-all for ledger domain errors without a dedicated mapping."""
        logger.warning("Ledger domain error: %s", exc.message)
        return _error_response(HTTP_400, "Request rejected", exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected(
        _request: Request, exc: Exception
    ) -> JSONResponse:
        """Catch-all for unexpected errors. Never exposes internals."""
        logger.exception("Unexpected error: %s", type(exc).__name__)
        return _error_response(HTTP_500, "Internal server error")
