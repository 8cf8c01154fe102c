"""
Audit trail for money-moving operations.

Each successful deposit, withdrawal, transfer, reversal and trade leaves
one entry: operation name, parameters, result, execution time and
timestamp. The entry is written after the operation has committed; a
failing audit store is logged and never fails the operation.

Use cases:
    ListAuditLogUseCase: recent entries, optionally for one account.
    GetAuditEntryUseCase: one entry by id.
"""

import logging
import time
from typing import Optional

from app.application.ledger.dtos import AuditLogPage, AuditLogQuery
from app.domain.ledger.entities import AuditEntry
from app.domain.ledger.errors import AuditEntryNotFoundError, InvalidAmountError
from app.domain.ledger.money import canonical_account_number
from app.domain.ledger.ports import AuditTrail
from app.shared.clock import Clock

logger = logging.getLogger(__name__)

MAX_AUDIT_PAGE = 500


def record_audit(
    trail: Optional[AuditTrail],
    operation: str,
    account_number: str,
    parameters: object,
    result: object,
    started: float,
    clock: Clock,
) -> None:
    """Write one audit entry; a failing trail never fails the caller.

    Args:
        started: ``time.monotonic()`` taken when the operation began.
    """
    if trail is None:
        return
    entry = AuditEntry(
        operation=operation,
        account_number=account_number,
        parameters=repr(parameters),
        result=repr(result),
        execution_time_ms=int((time.monotonic() - started) * 1000),
        timestamp=clock(),
    )
    try:
        trail.record(entry)
    except Exception:
        logger.exception(
            "Failed to audit %s for %s; financial operation unaffected",
            operation,
            account_number,
        )


class ListAuditLogUseCase:
    """Lists the most recent audit entries."""

    def __init__(self, trail: AuditTrail) -> None:
        self._trail = trail

    def execute(self, query: AuditLogQuery) -> AuditLogPage:
        """Return the newest entries and the total count.

        Raises:
            InvalidAmountError: If the limit is outside 1-500.
        """
        if not 1 <= query.limit <= MAX_AUDIT_PAGE:
            raise InvalidAmountError(f"limit must be between 1 and {MAX_AUDIT_PAGE}")
        account_number = (
            canonical_account_number(query.account_number)
            if query.account_number
            else None
        )
        return AuditLogPage(
            total=self._trail.count(account_number),
            entries=self._trail.recent(query.limit, account_number),
        )


class GetAuditEntryUseCase:
    def __init__(self, trail: AuditTrail) -> None:
        self._trail = trail

    def execute(self, entry_id: int) -> AuditEntry:
        entry = self._trail.get(entry_id)
        if entry is None:
            raise AuditEntryNotFoundError(entry_id)
        return entry
