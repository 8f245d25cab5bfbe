from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping, Optional


@dataclass(slots=True)
class ConnectionEvent:
    """A single connection lifecycle event recorded for an account.

    ``timestamp`` is milliseconds since the epoch. ``id`` and ``timestamp``
    stay ``None`` until the event is inserted into a store.
    """
    account_id: str
    event_type: str  # e.g. 'qr_generated' | 'authenticated' | 'ready' | 'disconnected' | 'error'
    details: Optional[str] = None
    timestamp: Optional[int] = None
    id: Optional[str] = None

    def with_identity(self, event_id: str, timestamp: int) -> "ConnectionEvent":
        return replace(self, id=event_id, timestamp=timestamp)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted/wire representation."""
        payload: Dict[str, Any] = {
            "id": self.id,
            "accountId": self.account_id,
            "event": self.event_type,
            "timestamp": self.timestamp,
        }
        if self.details is not None:
            payload["details"] = self.details
        return payload

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ConnectionEvent":
        timestamp = payload.get("timestamp")
        return cls(
            account_id=str(payload["accountId"]),
            event_type=str(payload["event"]),
            details=payload.get("details"),
            timestamp=int(timestamp) if timestamp is not None else None,
            id=str(payload["id"]) if payload.get("id") is not None else None,
        )
