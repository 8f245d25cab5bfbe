"""Expiry of old events."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from connlog.config import DEFAULT_RETENTION_DAYS
from connlog.errors import StorageError, ValidationError
from connlog.store import Clock, EventStore, now_ms, require_text

logger = logging.getLogger(__name__)

DAY_MS = 86_400_000


@dataclass(slots=True)
class RetentionResult:
    """Outcome of a deletion pass."""

    deleted_count: int = 0
    failed_ids: List[str] = field(default_factory=list)
    cutoff: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"deletedCount": self.deleted_count, "failed": list(self.failed_ids)}


class RetentionManager:
    """Delete events past the retention horizon.

    ``clear_old`` is a global maintenance sweep across every account.
    Per-account removal lives in the separately named ``purge_account``.
    """

    def __init__(
        self,
        store: EventStore,
        *,
        clock: Optional[Clock] = None,
        default_days: int = DEFAULT_RETENTION_DAYS,
    ) -> None:
        self.store = store
        self._clock: Clock = clock or now_ms
        self.default_days = default_days

    def cutoff_for(self, days_to_keep: Optional[float] = None) -> int:
        days = self.default_days if not days_to_keep else days_to_keep
        if not math.isfinite(days):
            raise ValidationError("daysToKeep must be a finite number")
        if days < 0:
            raise ValidationError("daysToKeep must not be negative")
        return int(self._clock() - days * DAY_MS)

    def clear_old(self, days_to_keep: Optional[float] = None) -> RetentionResult:
        """Delete every event stamped before ``now - days_to_keep``.

        Deletes are attempted one at a time; a failed delete is logged and
        reported in ``failed_ids`` and the sweep carries on. Failure to read
        the candidate set raises :class:`StorageError`.
        """
        cutoff = self.cutoff_for(days_to_keep)
        result = RetentionResult(cutoff=cutoff)
        for event in self.store.query_older_than(cutoff):
            try:
                if self.store.delete(event.id):  # type: ignore[arg-type]
                    result.deleted_count += 1
            except StorageError as exc:
                result.failed_ids.append(event.id)  # type: ignore[arg-type]
                logger.warning("Retention sweep could not delete %s: %s", event.id, exc)
        logger.info(
            "Retention sweep removed %d events older than %d (%d failed)",
            result.deleted_count,
            cutoff,
            len(result.failed_ids),
        )
        return result

    def purge_account(self, account_id: str) -> RetentionResult:
        account_id = require_text(account_id, "accountId")
        removed = self.store.delete_account(account_id)
        logger.info("Purged %d events for account %s", removed, account_id)
        return RetentionResult(deleted_count=removed)


__all__ = ["RetentionManager", "RetentionResult", "DAY_MS"]
