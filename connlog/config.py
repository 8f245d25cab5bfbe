"""Runtime settings sourced from ``CONNLOG_*`` environment variables."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)

MEMORY_URL = "memory://"

DEFAULT_DATABASE_URL = "sqlite:///connlog.sqlite3"
DEFAULT_RECENT_LIMIT = 50
DEFAULT_BY_EVENT_LIMIT = 20
DEFAULT_RETENTION_DAYS = 7
DEFAULT_SCAN_BATCH = 100


def _safe_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _positive_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    value = _safe_int(raw, default)
    if value <= 0:
        logger.warning("Ignoring non-positive %s=%r; using %d", key, raw, default)
        return default
    return value


@dataclass(slots=True)
class Settings:
    """Configuration bundle for :func:`connlog.service.build_event_log`."""

    database_url: str = DEFAULT_DATABASE_URL
    recent_limit: int = DEFAULT_RECENT_LIMIT
    by_event_limit: int = DEFAULT_BY_EVENT_LIMIT
    retention_days: int = DEFAULT_RETENTION_DAYS
    scan_batch: int = DEFAULT_SCAN_BATCH
    log_level: str = "INFO"
    api_host: str = "127.0.0.1"
    api_port: int = 8000

    @property
    def uses_memory_store(self) -> bool:
        return self.database_url.strip().lower() == MEMORY_URL

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        return cls(
            database_url=(env.get("CONNLOG_DATABASE_URL") or DEFAULT_DATABASE_URL).strip(),
            recent_limit=_positive_int(env, "CONNLOG_RECENT_LIMIT", DEFAULT_RECENT_LIMIT),
            by_event_limit=_positive_int(env, "CONNLOG_BY_EVENT_LIMIT", DEFAULT_BY_EVENT_LIMIT),
            retention_days=_positive_int(env, "CONNLOG_RETENTION_DAYS", DEFAULT_RETENTION_DAYS),
            scan_batch=_positive_int(env, "CONNLOG_SCAN_BATCH", DEFAULT_SCAN_BATCH),
            log_level=(env.get("CONNLOG_LOG_LEVEL") or "INFO").strip().upper(),
            api_host=(env.get("CONNLOG_API_HOST") or "127.0.0.1").strip(),
            api_port=_positive_int(env, "CONNLOG_API_PORT", 8000),
        )


__all__ = [
    "Settings",
    "MEMORY_URL",
    "DEFAULT_DATABASE_URL",
    "DEFAULT_RECENT_LIMIT",
    "DEFAULT_BY_EVENT_LIMIT",
    "DEFAULT_RETENTION_DAYS",
    "DEFAULT_SCAN_BATCH",
]
