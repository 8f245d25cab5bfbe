"""Data model for the connection event log.

``ConnectionEvent`` is the plain value object passed between the services;
``ConnectionEventRow`` is its SQLAlchemy mapping used by ``SqlEventStore``.
"""
from .connection_event import ConnectionEvent
from .db_models import Base, ConnectionEventRow

__all__ = [
    "ConnectionEvent",
    "ConnectionEventRow",
    "Base",
]
