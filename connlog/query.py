"""Read-only lookups over the event store."""
from __future__ import annotations

from itertools import islice
from typing import List, Optional

from connlog.config import DEFAULT_BY_EVENT_LIMIT, DEFAULT_RECENT_LIMIT, DEFAULT_SCAN_BATCH
from connlog.models import ConnectionEvent
from connlog.store import EventStore, require_text


def _effective_limit(limit: Optional[int], default: int) -> int:
    if limit is None or limit <= 0:
        return default
    return int(limit)


class QueryService:
    """Answer "recent" and "by type" questions for one account.

    Results are always newest first.
    """

    def __init__(
        self,
        store: EventStore,
        *,
        recent_limit: int = DEFAULT_RECENT_LIMIT,
        by_event_limit: int = DEFAULT_BY_EVENT_LIMIT,
        scan_batch: int = DEFAULT_SCAN_BATCH,
    ) -> None:
        self.store = store
        self.recent_limit = recent_limit
        self.by_event_limit = by_event_limit
        self.scan_batch = scan_batch

    def get_recent(self, account_id: str, limit: Optional[int] = None) -> List[ConnectionEvent]:
        account_id = require_text(account_id, "accountId")
        return self.store.query_by_account(
            account_id,
            order="desc",
            limit=_effective_limit(limit, self.recent_limit),
        )

    def get_by_event(
        self,
        account_id: str,
        event_type: str,
        limit: Optional[int] = None,
    ) -> List[ConnectionEvent]:
        """Most recent events of ``event_type`` for the account.

        The match runs over a lazy scan of the whole account history, so
        older matches are still found behind any number of other events.
        """
        account_id = require_text(account_id, "accountId")
        event_type = require_text(event_type, "event")
        limit = _effective_limit(limit, self.by_event_limit)
        candidates = self.store.iter_by_account(account_id, order="desc", batch_size=self.scan_batch)
        matches = (event for event in candidates if event.event_type == event_type)
        return list(islice(matches, limit))


__all__ = ["QueryService"]
