"""
Adapter: Audit trail.

Implements AuditTrail port over the ``audit_logs`` table. Every write
runs in its own short transaction, separate from the audited operation.
"""

import dataclasses
from typing import Optional

from sqlalchemy import func, insert, select
from sqlalchemy.engine import Engine

from app.domain.ledger.entities import AUDIT_TEXT_LIMIT, AuditEntry
from app.domain.ledger.ports import AuditTrail
from app.infrastructure.ledger.row_mapping import row_to_audit_entry
from app.infrastructure.ledger.schema import audit_logs


class SqlAuditTrail(AuditTrail):
    """Stores and lists audit entries."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def record(self, entry: AuditEntry) -> AuditEntry:
        entry = dataclasses.replace(
            entry,
            parameters=entry.parameters[:AUDIT_TEXT_LIMIT],
            result=entry.result[:AUDIT_TEXT_LIMIT],
        )
        with self._engine.begin() as conn:
            result = conn.execute(
                insert(audit_logs).values(
                    operation=entry.operation,
                    account_number=entry.account_number,
                    parameters=entry.parameters,
                    result=entry.result,
                    execution_time_ms=entry.execution_time_ms,
                    timestamp=entry.timestamp,
                )
            )
        return dataclasses.replace(entry, id=result.inserted_primary_key[0])

    def get(self, entry_id: int) -> Optional[AuditEntry]:
        with self._engine.begin() as conn:
            row = conn.execute(
                select(audit_logs).where(audit_logs.c.id == entry_id)
            ).fetchone()
        return row_to_audit_entry(row) if row else None

    def recent(
        self, limit: int, account_number: Optional[str] = None
    ) -> list[AuditEntry]:
        """Return up to ``limit`` entries, newest first."""
        query = select(audit_logs)
        if account_number is not None:
            query = query.where(audit_logs.c.account_number == account_number)
        query = query.order_by(
            audit_logs.c.timestamp.desc(), audit_logs.c.id.desc()
        ).limit(limit)
        with self._engine.begin() as conn:
            rows = conn.execute(query).fetchall()
        return [row_to_audit_entry(row) for row in rows]

    def count(self, account_number: Optional[str] = None) -> int:
        query = select(func.count()).select_from(audit_logs)
        if account_number is not None:
            query = query.where(audit_logs.c.account_number == account_number)
        with self._engine.begin() as conn:
            return int(conn.execute(query).scalar_one())
