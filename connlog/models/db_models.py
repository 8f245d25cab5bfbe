"""SQLAlchemy table definitions for persistent event storage."""
from __future__ import annotations

from sqlalchemy import BigInteger, Column, Index, Integer, String, Text
from sqlalchemy.orm import declarative_base

from .connection_event import ConnectionEvent

Base = declarative_base()


class ConnectionEventRow(Base):  # type: ignore[misc, valid-type]
    """Database model for connection events."""
    __tablename__ = "connection_events"

    # Surrogate key; breaks timestamp ties in insertion order.
    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(64), nullable=False, unique=True)
    account_id = Column(String(255), nullable=False)
    event = Column(String(255), nullable=False)
    details = Column(Text, nullable=True)
    timestamp = Column(BigInteger, nullable=False)

    __table_args__ = (
        Index("ix_connection_events_account_id", "account_id"),
        Index("ix_connection_events_account_id_timestamp", "account_id", "timestamp"),
        Index("ix_connection_events_timestamp", "timestamp"),
    )

    @classmethod
    def from_event(cls, event: ConnectionEvent) -> "ConnectionEventRow":
        return cls(
            id=event.id,
            account_id=event.account_id,
            event=event.event_type,
            details=event.details,
            timestamp=event.timestamp,
        )

    def to_event(self) -> ConnectionEvent:
        return ConnectionEvent(
            account_id=self.account_id,
            event_type=self.event,
            details=self.details,
            timestamp=self.timestamp,
            id=self.id,
        )

    def __repr__(self) -> str:
        return f"<ConnectionEventRow {self.event} for {self.account_id} at {self.timestamp}>"


__all__ = ["Base", "ConnectionEventRow"]
