"""Composition of recorder, queries and retention over one store."""
from __future__ import annotations

import logging
from typing import List, Optional

from connlog.config import Settings
from connlog.models import ConnectionEvent
from connlog.query import QueryService
from connlog.recorder import Recorder
from connlog.retention import RetentionManager, RetentionResult
from connlog.sql_store import SqlEventStore
from connlog.store import Clock, EventStore, MemoryEventStore, now_ms

logger = logging.getLogger(__name__)


class EventLog:
    """Single entry point exposing the four event log operations."""

    def __init__(
        self,
        store: EventStore,
        *,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.settings = settings or Settings()
        self.store = store
        clock = clock or now_ms
        self.recorder = Recorder(store, clock=clock)
        self.queries = QueryService(
            store,
            recent_limit=self.settings.recent_limit,
            by_event_limit=self.settings.by_event_limit,
            scan_batch=self.settings.scan_batch,
        )
        self.retention = RetentionManager(
            store,
            clock=clock,
            default_days=self.settings.retention_days,
        )

    def log(self, account_id: str, event_type: str, details: Optional[str] = None) -> str:
        return self.recorder.log(account_id, event_type, details)

    def get_recent(self, account_id: str, limit: Optional[int] = None) -> List[ConnectionEvent]:
        return self.queries.get_recent(account_id, limit)

    def get_by_event(
        self,
        account_id: str,
        event_type: str,
        limit: Optional[int] = None,
    ) -> List[ConnectionEvent]:
        return self.queries.get_by_event(account_id, event_type, limit)

    def clear_old(self, days_to_keep: Optional[float] = None) -> RetentionResult:
        return self.retention.clear_old(days_to_keep)

    def purge_account(self, account_id: str) -> RetentionResult:
        return self.retention.purge_account(account_id)

    def close(self) -> None:
        self.store.close()


def build_store(settings: Settings, *, clock: Optional[Clock] = None) -> EventStore:
    if settings.uses_memory_store:
        logger.debug("Using in-memory event store")
        return MemoryEventStore(clock=clock)
    logger.debug("Using SQL event store at %s", settings.database_url)
    return SqlEventStore(settings.database_url, clock=clock)


def build_event_log(settings: Optional[Settings] = None, *, clock: Optional[Clock] = None) -> EventLog:
    settings = settings or Settings.from_env()
    return EventLog(build_store(settings, clock=clock), settings=settings, clock=clock)


__all__ = ["EventLog", "build_store", "build_event_log"]
