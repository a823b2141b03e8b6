import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import (
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    create_engine,
    event,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.pool import StaticPool
from sqlalchemy.sql.expression import Executable

from .errors import ConflictError, StoreError

logger = logging.getLogger(__name__)

metadata = MetaData()


def _timestamps() -> list[Column]:
    return [
        Column("created_at", DateTime(timezone=True), nullable=False),
        Column("updated_at", DateTime(timezone=True), nullable=False),
    ]


users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(320), nullable=False, unique=True),
    Column("password_hash", String(255), nullable=False),
    *_timestamps(),
)

accounts = Table(
    "accounts",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id"), nullable=False, index=True),
    Column("name", String(200), nullable=False),
    Column("type", String(100), nullable=False),
    *_timestamps(),
)

categories = Table(
    "categories",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id"), nullable=False, index=True),
    Column("name", String(200), nullable=False),
    *_timestamps(),
)

funds = Table(
    "funds",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id"), nullable=False, index=True),
    Column("name", String(200), nullable=False),
    Column("isin", String(32), nullable=False),
    Column("category_type", String(100), nullable=False),
    *_timestamps(),
)

years = Table(
    "years",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id"), nullable=False, index=True),
    Column("year_number", Integer, nullable=False),
    *_timestamps(),
)

monthly_records = Table(
    "monthly_records",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("users.id"), nullable=False, index=True),
    Column("year_id", Integer, ForeignKey("years.id"), nullable=False, index=True),
    Column("month", Integer, nullable=False),
    Column("gross_salary", Float, nullable=False, default=0),
    Column("net_salary", Float, nullable=False, default=0),
    *_timestamps(),
)

monthly_balances = Table(
    "monthly_balances",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("monthly_record_id", Integer, ForeignKey("monthly_records.id"), nullable=False, index=True),
    Column("account_id", Integer, ForeignKey("accounts.id"), nullable=False, index=True),
    Column("balance", Float, nullable=False, default=0),
    *_timestamps(),
)

category_allocations = Table(
    "category_allocations",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("monthly_record_id", Integer, ForeignKey("monthly_records.id"), nullable=False, index=True),
    Column("category_id", Integer, ForeignKey("categories.id"), nullable=False, index=True),
    Column("percentage_of_net", Float, nullable=False, default=0),
    *_timestamps(),
)

fund_contributions = Table(
    "fund_contributions",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("monthly_record_id", Integer, ForeignKey("monthly_records.id"), nullable=False, index=True),
    Column("fund_id", Integer, ForeignKey("funds.id"), nullable=False, index=True),
    Column("percentage_of_investment", Float, nullable=False, default=0),
    *_timestamps(),
)


# Largest value an INTEGER column holds on every supported backend.
MAX_INT = 2**31 - 1


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back without their offset; they were written in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def make_engine(database_url: str) -> Engine:
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, future=True, pool_pre_ping=True)
    kwargs: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        # One shared connection, otherwise every checkout sees an empty database.
        kwargs["poolclass"] = StaticPool
    engine = create_engine(database_url, future=True, **kwargs)
    event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


class Store:
    """Thin wrapper around a SQLAlchemy engine.

    Each call runs in its own short transaction. Driver failures are logged
    here and re-raised as ``StoreError``; integrity violations (unique email,
    rows still referenced by children) surface as ``ConflictError``.
    """

    def __init__(self, database_url: str) -> None:
        self.engine: Engine = make_engine(database_url)

    def create_schema(self) -> None:
        try:
            metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            logger.exception("schema creation failed")
            raise StoreError() from exc

    def _run(self, stmt: Executable) -> list[dict[str, Any]]:
        try:
            with self.engine.begin() as conn:
                result = conn.execute(stmt)
                if result.returns_rows:
                    return [dict(row._mapping) for row in result.fetchall()]
                return []
        except IntegrityError as exc:
            logger.info("integrity violation: %s", exc.orig)
            raise ConflictError() from exc
        except SQLAlchemyError as exc:
            logger.exception("store call failed: %s", exc.__class__.__name__)
            raise StoreError() from exc

    def fetch_all(self, stmt: Executable) -> list[dict[str, Any]]:
        return self._run(stmt)

    def fetch_one(self, stmt: Executable) -> Optional[dict[str, Any]]:
        rows = self._run(stmt)
        return rows[0] if rows else None

    def execute(self, stmt: Executable) -> None:
        self._run(stmt)

    def dispose(self) -> None:
        self.engine.dispose()
