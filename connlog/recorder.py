"""Validation and recording of single connection events."""
from __future__ import annotations

import logging
from typing import Optional

from connlog.models import ConnectionEvent
from connlog.store import Clock, EventStore, now_ms, require_text

logger = logging.getLogger(__name__)


class Recorder:
    """Validate one event, stamp it and append it to the store."""

    def __init__(self, store: EventStore, *, clock: Optional[Clock] = None) -> None:
        self.store = store
        self._clock: Clock = clock or now_ms

    def log(self, account_id: str, event_type: str, details: Optional[str] = None) -> str:
        event = ConnectionEvent(
            account_id=require_text(account_id, "accountId"),
            event_type=require_text(event_type, "event"),
            details=details,
            timestamp=int(self._clock()),
        )
        event_id = self.store.insert(event)
        logger.debug("log: %s %s -> %s", account_id, event_type, event_id)
        return event_id


__all__ = ["Recorder"]
