"""CSV export of recorded events."""
from __future__ import annotations

import csv
from pathlib import Path
from typing import IO, Iterable, Sequence, Union

from connlog.models import ConnectionEvent

EXPORT_FIELDS: Sequence[str] = (
    "id",
    "accountId",
    "event",
    "details",
    "timestamp",
)


def write_csv(events: Iterable[ConnectionEvent], handle: IO[str]) -> int:
    writer = csv.DictWriter(handle, fieldnames=EXPORT_FIELDS, extrasaction="ignore")
    writer.writeheader()
    written = 0
    for event in events:
        row = event.to_dict()
        row.setdefault("details", "")
        writer.writerow(row)
        written += 1
    handle.flush()
    return written


def export_csv(events: Iterable[ConnectionEvent], path: Union[str, Path]) -> int:
    """Write ``events`` to ``path`` and return the number of rows."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", newline="", encoding="utf-8") as handle:
        return write_csv(events, handle)


__all__ = ["export_csv", "write_csv", "EXPORT_FIELDS"]
