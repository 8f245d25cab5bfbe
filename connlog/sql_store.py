"""SQLAlchemy-backed event store."""
from __future__ import annotations

import contextlib
import logging
from typing import Any, Dict, Iterator, List, Optional, Union

from sqlalchemy import and_, create_engine, delete, func, or_, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from connlog.errors import StorageError, ValidationError
from connlog.models import Base, ConnectionEvent, ConnectionEventRow
from connlog.store import (
    DEFAULT_BATCH_SIZE,
    Clock,
    EventStore,
    Order,
    check_batch_size,
    check_order,
)

logger = logging.getLogger(__name__)

_MEMORY_SQLITE_URLS = ("sqlite://", "sqlite:///:memory:")


def create_store_engine(url: str, *, echo: bool = False) -> Engine:
    """Build an engine; in-memory SQLite shares one connection across threads."""
    kwargs: Dict[str, Any] = {}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in _MEMORY_SQLITE_URLS:
            kwargs["poolclass"] = StaticPool
    return create_engine(url, echo=echo, **kwargs)


class SqlEventStore(EventStore):
    """Event store persisted to any SQLAlchemy-supported database.

    Each operation runs in its own short session; driver failures are rolled
    back, logged and re-raised as :class:`StorageError`.
    """

    def __init__(
        self,
        url: Union[str, Engine],
        *,
        clock: Optional[Clock] = None,
        create_schema: bool = True,
        echo: bool = False,
    ) -> None:
        super().__init__(clock=clock)
        self.engine = url if isinstance(url, Engine) else create_store_engine(url, echo=echo)
        self._sessions = sessionmaker(bind=self.engine, expire_on_commit=False)
        if create_schema:
            self.create_schema()

    def create_schema(self) -> None:
        try:
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as exc:
            logger.exception("Database bootstrap failed")
            raise StorageError(f"failed to create schema: {exc}") from exc

    @contextlib.contextmanager
    def _session(self, action: str) -> Iterator[Session]:
        session = self._sessions()
        try:
            yield session
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise ValidationError(f"failed to {action}: {exc.orig}") from exc
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception("Failed to %s", action)
            raise StorageError(f"failed to {action}: {exc}") from exc
        finally:
            session.close()

    def _insert(self, event: ConnectionEvent) -> None:
        with self._session("insert event") as session:
            session.add(ConnectionEventRow.from_event(event))

    def query_by_account(
        self,
        account_id: str,
        order: Order = "desc",
        limit: Optional[int] = None,
    ) -> List[ConnectionEvent]:
        order = check_order(order)
        if limit is not None and limit <= 0:
            return []
        stmt = (
            select(ConnectionEventRow)
            .where(ConnectionEventRow.account_id == account_id)
            .order_by(*_ordering(order))
        )
        if limit:
            stmt = stmt.limit(limit)
        with self._session("query events by account") as session:
            rows = session.execute(stmt).scalars().all()
            return [row.to_event() for row in rows]

    def iter_by_account(
        self,
        account_id: str,
        order: Order = "desc",
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> Iterator[ConnectionEvent]:
        order = check_order(order)
        batch_size = check_batch_size(batch_size)
        cursor: Optional[tuple] = None
        while True:
            stmt = select(ConnectionEventRow).where(ConnectionEventRow.account_id == account_id)
            if cursor is not None:
                stmt = stmt.where(_after(cursor, order))
            stmt = stmt.order_by(*_ordering(order)).limit(batch_size)
            with self._session("scan events by account") as session:
                rows = session.execute(stmt).scalars().all()
                page = [row.to_event() for row in rows]
                if rows:
                    cursor = (rows[-1].timestamp, rows[-1].seq)
            yield from page
            if len(page) < batch_size:
                return

    def query_older_than(self, cutoff: int) -> List[ConnectionEvent]:
        stmt = (
            select(ConnectionEventRow)
            .where(ConnectionEventRow.timestamp < cutoff)
            .order_by(*_ordering("asc"))
        )
        with self._session("query expired events") as session:
            return [row.to_event() for row in session.execute(stmt).scalars().all()]

    def delete(self, event_id: str) -> bool:
        stmt = delete(ConnectionEventRow).where(ConnectionEventRow.id == event_id)
        with self._session("delete event") as session:
            removed = session.execute(stmt).rowcount or 0
        logger.debug("delete: %s (removed=%d)", event_id, removed)
        return removed > 0

    def delete_account(self, account_id: str) -> int:
        stmt = delete(ConnectionEventRow).where(ConnectionEventRow.account_id == account_id)
        with self._session("delete account events") as session:
            removed = session.execute(stmt).rowcount or 0
        logger.debug("delete_account: %s (%d events)", account_id, removed)
        return removed

    def count(self) -> int:
        with self._session("count events") as session:
            return int(session.scalar(select(func.count()).select_from(ConnectionEventRow)) or 0)

    def close(self) -> None:
        self.engine.dispose()


def _ordering(order: Order) -> tuple:
    if order == "desc":
        return (ConnectionEventRow.timestamp.desc(), ConnectionEventRow.seq.desc())
    return (ConnectionEventRow.timestamp.asc(), ConnectionEventRow.seq.asc())


def _after(cursor: tuple, order: Order):
    """Keyset predicate selecting rows that follow ``cursor`` in scan order."""
    timestamp, seq = cursor
    if order == "desc":
        return or_(
            ConnectionEventRow.timestamp < timestamp,
            and_(ConnectionEventRow.timestamp == timestamp, ConnectionEventRow.seq < seq),
        )
    return or_(
        ConnectionEventRow.timestamp > timestamp,
        and_(ConnectionEventRow.timestamp == timestamp, ConnectionEventRow.seq > seq),
    )


__all__ = ["SqlEventStore", "create_store_engine"]
