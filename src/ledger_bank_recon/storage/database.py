"""Engine, session and error helpers for the relational store."""

from typing import Iterable, Sequence
import logging

from sqlalchemy import Table, create_engine
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, DisconnectionError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import DatabaseConfig
from ..utils.exceptions import StorageError, TransientError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


def create_engine_from_config(config: DatabaseConfig) -> Engine:
    """
    Build an engine for the configured database URL.

    In-memory SQLite databases share one connection so every session sees
    the same data.
    """
    url = config.url
    if url.startswith("sqlite") and (":memory:" in url or url.rstrip("/") == "sqlite:"):
        return create_engine(
            url,
            echo=config.echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(url, echo=config.echo)


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=True, expire_on_commit=False)


def create_db_and_tables(engine: Engine) -> None:
    """Create every reconciliation table that does not exist yet."""
    # Registers the mapped tables on Base.metadata
    from . import tables  # noqa: F401

    Base.metadata.create_all(engine)
    logger.info(f"Database tables ready on {engine.url.render_as_string(hide_password=True)}")


def upsert(
    session: Session,
    table: Table,
    rows: Sequence[dict],
    key_columns: Iterable[str],
    update_columns: Iterable[str],
) -> None:
    """
    Insert rows, updating ``update_columns`` of rows whose key already exists.

    Uses a single ON CONFLICT statement on PostgreSQL and SQLite; other
    dialects fall back to a merge per row inside the same transaction.
    """
    if not rows:
        return

    dialect = session.get_bind().dialect.name
    if dialect in ("postgresql", "sqlite"):
        insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
        stmt = insert(table)
        stmt = stmt.on_conflict_do_update(
            index_elements=list(key_columns),
            set_={column: stmt.excluded[column] for column in update_columns},
        )
        session.execute(stmt, list(rows))
        return

    mapper = next(m for m in Base.registry.mappers if m.local_table is table)
    for row in rows:
        session.merge(mapper.class_(**row))


def storage_error(exc: SQLAlchemyError, message: str, stage: str) -> StorageError:
    """Wrap a SQLAlchemy failure, marking connection loss and pool timeouts as transient."""
    transient = isinstance(exc, (DisconnectionError, PoolTimeoutError)) or (
        isinstance(exc, DBAPIError) and exc.connection_invalidated
    )
    error_cls = TransientError if transient else StorageError
    return error_cls(f"{message}: {exc}", stage=stage)
