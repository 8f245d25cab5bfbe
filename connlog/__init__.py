"""Connection event log: record, query and expire account connection events."""
from connlog.errors import ConnLogError, StorageError, ValidationError
from connlog.models import ConnectionEvent
from connlog.query import QueryService
from connlog.recorder import Recorder
from connlog.retention import RetentionManager, RetentionResult
from connlog.service import EventLog, build_event_log
from connlog.sql_store import SqlEventStore
from connlog.store import EventStore, MemoryEventStore

__version__ = "0.1.0"

__all__ = [
    "ConnectionEvent",
    "EventStore",
    "MemoryEventStore",
    "SqlEventStore",
    "Recorder",
    "QueryService",
    "RetentionManager",
    "RetentionResult",
    "EventLog",
    "build_event_log",
    "ConnLogError",
    "ValidationError",
    "StorageError",
]
