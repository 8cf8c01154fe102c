"""
Post-commit notification helper shared by the use cases.
"""

import logging
from typing import Any

from app.domain.ledger.entities import EventKind
from app.domain.ledger.ports import EventSink

logger = logging.getLogger(__name__)


def publish_after_commit(
    sink: EventSink, account_number: str, kind: EventKind, payload: dict[str, Any]
) -> None:
    """Hand an event to the sink; a failing sink never fails the caller."""
    try:
        sink.publish(account_number, kind, payload)
    except Exception:
        logger.exception(
            "Failed to publish %s for %s; financial operation unaffected",
            kind.value,
            account_number,
        )
