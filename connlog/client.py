"""HTTP client for a running connlog API.

Event logging from producers is best effort: by default failures are logged
and swallowed so a flaky log service never breaks the caller. With
``raise_errors`` a rejected request (HTTP 4xx) raises ``ValidationError``
carrying the server detail; transport failures and 5xx raise ``StorageError``.
"""
from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests
from requests import RequestException

from connlog.errors import StorageError, ValidationError
from connlog.models import ConnectionEvent

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = os.getenv("CONNLOG_API_BASE", "http://127.0.0.1:8000")


def _normalize_base_url(base_url: Optional[str]) -> str:
    candidate = (base_url or "").strip()
    if not candidate:
        return DEFAULT_API_BASE.rstrip("/")
    return candidate.rstrip("/")


def _error_detail(response: Any) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and payload.get("detail"):
        detail = payload["detail"]
        return detail if isinstance(detail, str) else json.dumps(detail)
    return f"HTTP {response.status_code}"


def _clean_params(params: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in params.items() if value is not None}


class EventLogClient:
    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: float = 10.0,
        raise_errors: bool = False,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = _normalize_base_url(base_url)
        self.timeout = timeout
        self.raise_errors = raise_errors
        self._http = session or requests.Session()

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        body: Optional[Dict[str, Any]] = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        response = self._http.request(
            method,
            url,
            params=_clean_params(params or {}),
            json=body,
            timeout=self.timeout,
        )
        if 400 <= response.status_code < 500:
            raise ValidationError(_error_detail(response))
        response.raise_for_status()
        try:
            return response.json()
        except ValueError:
            if response.text:
                return json.loads(response.text)
            return None

    def _failed(self, action: str, exc: Exception, fallback: Any) -> Any:
        if self.raise_errors:
            if isinstance(exc, ValidationError):
                raise exc
            raise StorageError(f"{action} failed: {exc}") from exc
        logger.warning("Error %s: %s", action, exc)
        return fallback

    def log(self, account_id: str, event: str, details: Optional[str] = None) -> Optional[str]:
        body = _clean_params({"accountId": account_id, "event": event, "details": details})
        try:
            result = self._request("POST", "/events", body=body)
        except (RequestException, ValueError) as exc:
            return self._failed("logging event", exc, None)
        return result.get("id") if isinstance(result, dict) else None

    def get_recent(self, account_id: str, limit: Optional[int] = None) -> List[ConnectionEvent]:
        try:
            result = self._request("GET", "/events/recent", params={"accountId": account_id, "limit": limit})
        except (RequestException, ValueError) as exc:
            return self._failed("fetching events", exc, [])
        return [ConnectionEvent.from_dict(item) for item in result or []]

    def get_by_event(
        self,
        account_id: str,
        event: str,
        limit: Optional[int] = None,
    ) -> List[ConnectionEvent]:
        params = {"accountId": account_id, "event": event, "limit": limit}
        try:
            result = self._request("GET", "/events/by-event", params=params)
        except (RequestException, ValueError) as exc:
            return self._failed("fetching events by type", exc, [])
        return [ConnectionEvent.from_dict(item) for item in result or []]

    def clear_old(self, days_to_keep: Optional[float] = None) -> Optional[Dict[str, Any]]:
        try:
            return self._request("POST", "/events/clear-old", params={"daysToKeep": days_to_keep})
        except (RequestException, ValueError) as exc:
            return self._failed("clearing old events", exc, None)

    def purge_account(self, account_id: str) -> Optional[Dict[str, Any]]:
        path = f"/accounts/{quote(account_id, safe='')}/events"
        try:
            return self._request("DELETE", path)
        except (RequestException, ValueError) as exc:
            return self._failed("purging account events", exc, None)

    def close(self) -> None:
        self._http.close()


__all__ = ["EventLogClient", "DEFAULT_API_BASE"]
