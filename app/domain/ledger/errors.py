"""
Domain-specific errors for the ledger bounded context.

All errors raised from the domain layer must be defined here.
These are mapped to HTTP responses at the interface layer.
No framework imports allowed.
"""

from decimal import Decimal


class LedgerDomainError(Exception):
    """Base error for all ledger domain errors."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class InsufficientFundsError(LedgerDomainError):
    """Raised when a debit exceeds the account's cash balance."""

    def __init__(self, required: Decimal, available: Decimal) -> None:
        super().__init__(
            f"Insufficient funds: required {required}, available {available}"
        )
        self.required = required
        self.available = available


class InsufficientSharesError(LedgerDomainError):
    """Raised when a sell asks for more shares than the lot holds."""

    def __init__(self, symbol: str, requested: int, held: int) -> None:
        super().__init__(
            f"Insufficient shares of {symbol}: requested {requested}, held {held}"
        )
        self.symbol = symbol
        self.requested = requested
        self.held = held


class HoldingNotFoundError(LedgerDomainError):
    """Raised when no lot exists for (account, symbol, investment class)."""

    def __init__(self, account_number: str, symbol: str, investment_class: str) -> None:
        super().__init__(
            f"Holding not found for symbol: {symbol} ({investment_class})"
        )
        self.account_number = account_number
        self.symbol = symbol
        self.investment_class = investment_class


class AccountNotFoundError(LedgerDomainError):
    """Raised when an account identifier does not resolve to an account."""

    def __init__(self, account_number: str) -> None:
        super().__init__(f"Account not found: {account_number}")
        self.account_number = account_number


class InvalidAmountError(LedgerDomainError):
    """Raised for non-positive amounts or quantities, and self-transfers."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Invalid request: {reason}")
        self.reason = reason


class NotReversibleError(LedgerDomainError):
    """Raised when a reversal targets anything other than a TRANSFER."""

    def __init__(self, transaction_id: int, transaction_type: str) -> None:
        super().__init__(
            f"Transaction #{transaction_id} of type {transaction_type} "
            "cannot be reversed; only TRANSFER transactions can be reversed"
        )
        self.transaction_id = transaction_id
        self.transaction_type = transaction_type


class TransactionNotFoundError(LedgerDomainError):
    """Raised when a transaction id does not exist."""

    def __init__(self, transaction_id: int) -> None:
        super().__init__(f"Transaction not found: {transaction_id}")
        self.transaction_id = transaction_id


class AuditEntryNotFoundError(LedgerDomainError):
    """Raised when an audit entry id does not exist."""

    def __init__(self, entry_id: int) -> None:
        super().__init__(f"Audit entry not found: {entry_id}")
        self.entry_id = entry_id
