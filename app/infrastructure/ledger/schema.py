"""
Relational schema for the ledger.

SQLAlchemy Core table definitions shared by the unit of work and the
read repositories. CHECK constraints back up the domain invariants at
the storage level: balances never negative, lots never empty,
recorded amounts and quantities always positive.

Money columns are NUMERIC(19, 4) on PostgreSQL. SQLite has no
fixed-point type and would round-trip Decimals through floats, so there
they are stored as decimal strings and the CHECKs cast before comparing.
"""

from decimal import Decimal

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
)
from sqlalchemy.engine import Dialect, Engine

from app.domain.ledger.money import quantize


class Money(TypeDecorator):
    """Fixed-point 4 dp money column that never passes through float."""

    impl = Numeric(19, 4)
    cache_ok = True

    def load_dialect_impl(self, dialect: Dialect):
        if dialect.name == "sqlite":
            return dialect.type_descriptor(String(40))
        return dialect.type_descriptor(Numeric(19, 4, asdecimal=True))

    def process_bind_param(self, value, dialect: Dialect):
        if value is None:
            return None
        amount = quantize(value if isinstance(value, Decimal) else Decimal(str(value)))
        if dialect.name == "sqlite":
            return format(amount, "f")
        return amount

    def process_result_value(self, value, dialect: Dialect):
        if value is None:
            return None
        return Decimal(str(value))


MONEY = Money()

metadata = MetaData()

accounts = Table(
    "accounts",
    metadata,
    Column("account_number", String(20), primary_key=True),
    Column("balance", MONEY, nullable=False),
    Column("role", String(20), nullable=False, server_default="USER"),
    Column("pin_hash", String(64), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
    CheckConstraint("CAST(balance AS NUMERIC) >= 0", name="ck_accounts_balance_non_negative"),
)

holdings = Table(
    "holdings",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "account_number",
        String(20),
        ForeignKey("accounts.account_number"),
        nullable=False,
    ),
    Column("symbol", String(20), nullable=False),
    Column("investment_class", String(20), nullable=False),
    Column("quantity", BigInteger, nullable=False),
    Column("average_cost", MONEY, nullable=False),
    Column("acquired_at", DateTime(timezone=True), nullable=False),
    UniqueConstraint(
        "account_number", "symbol", "investment_class", name="uq_holdings_lot"
    ),
    CheckConstraint("quantity > 0", name="ck_holdings_quantity_positive"),
)

transactions = Table(
    "transactions",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("sender_account", String(20), nullable=False),
    Column("receiver_account", String(20), nullable=False),
    Column("amount", MONEY, nullable=False),
    Column("type", String(20), nullable=False),
    Column("description", String(255), nullable=False, server_default=""),
    Column("timestamp", DateTime(timezone=True), nullable=False),
    CheckConstraint("CAST(amount AS NUMERIC) > 0", name="ck_transactions_amount_positive"),
    Index("ix_transactions_sender", "sender_account", "timestamp"),
    Index("ix_transactions_receiver", "receiver_account", "timestamp"),
)

trades = Table(
    "trades",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column(
        "account_number",
        String(20),
        ForeignKey("accounts.account_number"),
        nullable=False,
    ),
    Column("symbol", String(20), nullable=False),
    Column("direction", String(4), nullable=False),
    Column("quantity", BigInteger, nullable=False),
    Column("price", MONEY, nullable=False),
    Column("total", MONEY, nullable=False),
    Column("investment_class", String(20), nullable=False),
    Column("timestamp", DateTime(timezone=True), nullable=False),
    CheckConstraint("quantity > 0", name="ck_trades_quantity_positive"),
    CheckConstraint("CAST(price AS NUMERIC) > 0", name="ck_trades_price_positive"),
    Index("ix_trades_account", "account_number", "timestamp"),
)

audit_logs = Table(
    "audit_logs",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("operation", String(100), nullable=False),
    Column("account_number", String(20), nullable=False),
    Column("parameters", Text, nullable=False),
    Column("result", Text, nullable=False),
    Column("execution_time_ms", BigInteger, nullable=False),
    Column("timestamp", DateTime(timezone=True), nullable=False),
    Index("ix_audit_logs_account", "account_number", "timestamp"),
)


def init_schema(engine: Engine) -> None:
    """Create missing ledger tables (idempotent)."""
    metadata.create_all(engine)
