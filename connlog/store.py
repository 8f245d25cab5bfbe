"""Indexed event storage: the store contract and an in-process implementation."""
from __future__ import annotations

import itertools
import logging
import threading
import time
import uuid
from abc import ABC, abstractmethod
from bisect import bisect_left, insort
from typing import Callable, Dict, Iterator, List, Literal, Optional, Tuple

from connlog.config import DEFAULT_SCAN_BATCH
from connlog.errors import ValidationError
from connlog.models import ConnectionEvent

logger = logging.getLogger(__name__)

Order = Literal["asc", "desc"]
Clock = Callable[[], int]

DEFAULT_BATCH_SIZE = DEFAULT_SCAN_BATCH


def now_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


def require_text(value: Optional[str], field: str) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} must be a non-empty string")
    return str(value)


def check_order(order: str) -> Order:
    if order not in ("asc", "desc"):
        raise ValidationError(f"order must be 'asc' or 'desc', got {order!r}")
    return order  # type: ignore[return-value]


def check_batch_size(batch_size: int) -> int:
    if batch_size is None or int(batch_size) <= 0:
        raise ValidationError("batch_size must be a positive integer")
    return int(batch_size)


class EventStore(ABC):
    """Durable, account-indexed storage of :class:`ConnectionEvent` records.

    Subclasses implement the storage primitives; identity and timestamp
    assignment on insert is shared here so every backend stamps records the
    same way.
    """

    def __init__(self, *, clock: Optional[Clock] = None) -> None:
        self._clock: Clock = clock or now_ms

    def insert(self, event: ConnectionEvent) -> str:
        """Append ``event`` and return its id.

        A missing ``id`` is generated and a missing ``timestamp`` is taken
        from the store clock; values already set by the caller are kept.
        """
        require_text(event.account_id, "accountId")
        require_text(event.event_type, "event")
        stored = event.with_identity(
            event.id or uuid.uuid4().hex,
            int(event.timestamp) if event.timestamp is not None else int(self._clock()),
        )
        self._insert(stored)
        logger.debug("insert: %s %s for %s", stored.id, stored.event_type, stored.account_id)
        return stored.id  # type: ignore[return-value]

    @abstractmethod
    def _insert(self, event: ConnectionEvent) -> None:
        ...

    @abstractmethod
    def query_by_account(
        self,
        account_id: str,
        order: Order = "desc",
        limit: Optional[int] = None,
    ) -> List[ConnectionEvent]:
        """Up to ``limit`` events of one account ordered by timestamp."""

    @abstractmethod
    def iter_by_account(
        self,
        account_id: str,
        order: Order = "desc",
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> Iterator[ConnectionEvent]:
        """Lazily scan one account's events, fetching ``batch_size`` at a time."""

    @abstractmethod
    def query_older_than(self, cutoff: int) -> List[ConnectionEvent]:
        """All events, across accounts, with ``timestamp < cutoff``."""

    @abstractmethod
    def delete(self, event_id: str) -> bool:
        """Remove one event. Unknown ids are a no-op and return ``False``."""

    @abstractmethod
    def delete_account(self, account_id: str) -> int:
        """Remove every event of one account and return how many were removed."""

    @abstractmethod
    def count(self) -> int:
        ...

    def close(self) -> None:
        """Release backend resources. No-op by default."""


_Entry = Tuple[int, int, ConnectionEvent]


class MemoryEventStore(EventStore):
    """In-process store keeping each account's events sorted by time.

    Entries are ``(timestamp, seq, event)`` tuples; ``seq`` is unique so
    comparisons never reach the event and ties resolve in insertion order.
    """

    def __init__(self, *, clock: Optional[Clock] = None) -> None:
        super().__init__(clock=clock)
        self._lock = threading.Lock()
        self._seq = itertools.count()
        self._accounts: Dict[str, List[_Entry]] = {}
        self._index: Dict[str, Tuple[str, int, int]] = {}

    def _insert(self, event: ConnectionEvent) -> None:
        with self._lock:
            if event.id in self._index:
                raise ValidationError(f"duplicate event id {event.id!r}")
            seq = next(self._seq)
            insort(self._accounts.setdefault(event.account_id, []), (event.timestamp, seq, event))
            self._index[event.id] = (event.account_id, event.timestamp, seq)

    def query_by_account(
        self,
        account_id: str,
        order: Order = "desc",
        limit: Optional[int] = None,
    ) -> List[ConnectionEvent]:
        order = check_order(order)
        if limit is not None and limit <= 0:
            return []
        with self._lock:
            entries = self._accounts.get(account_id, [])
            if order == "desc":
                window = entries[-limit:] if limit else entries[:]
                window.reverse()
            else:
                window = entries[:limit] if limit else entries[:]
        return [event for _, _, event in window]

    def iter_by_account(
        self,
        account_id: str,
        order: Order = "desc",
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> Iterator[ConnectionEvent]:
        order = check_order(order)
        batch_size = check_batch_size(batch_size)
        cursor: Optional[Tuple[int, int]] = None
        while True:
            with self._lock:
                entries = self._accounts.get(account_id, [])
                if order == "desc":
                    end = len(entries) if cursor is None else bisect_left(entries, cursor)
                    page = entries[max(0, end - batch_size):end]
                    page.reverse()
                else:
                    start = 0 if cursor is None else bisect_left(entries, (cursor[0], cursor[1] + 1))
                    page = entries[start:start + batch_size]
            if not page:
                return
            for _, _, event in page:
                yield event
            if len(page) < batch_size:
                return
            cursor = (page[-1][0], page[-1][1])

    def query_older_than(self, cutoff: int) -> List[ConnectionEvent]:
        matches: List[_Entry] = []
        with self._lock:
            for entries in self._accounts.values():
                # (cutoff,) sorts before every entry stamped at cutoff
                matches.extend(entries[:bisect_left(entries, (cutoff,))])
        matches.sort(key=lambda entry: (entry[0], entry[1]))
        return [event for _, _, event in matches]

    def delete(self, event_id: str) -> bool:
        with self._lock:
            located = self._index.pop(event_id, None)
            if located is None:
                return False
            account_id, timestamp, seq = located
            entries = self._accounts[account_id]
            del entries[bisect_left(entries, (timestamp, seq))]
            if not entries:
                del self._accounts[account_id]
        logger.debug("delete: %s", event_id)
        return True

    def delete_account(self, account_id: str) -> int:
        with self._lock:
            entries = self._accounts.pop(account_id, [])
            for _, _, event in entries:
                self._index.pop(event.id, None)  # type: ignore[arg-type]
        logger.debug("delete_account: %s (%d events)", account_id, len(entries))
        return len(entries)

    def count(self) -> int:
        with self._lock:
            return len(self._index)


__all__ = [
    "EventStore",
    "MemoryEventStore",
    "Order",
    "Clock",
    "DEFAULT_BATCH_SIZE",
    "now_ms",
    "check_order",
    "check_batch_size",
    "require_text",
]
