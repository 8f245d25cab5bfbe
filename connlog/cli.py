"""connlog command-line interface."""
from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from connlog.config import Settings
from connlog.errors import StorageError
from connlog.export import export_csv
from connlog.models import ConnectionEvent
from connlog.service import EventLog, build_event_log

try:  # pragma: no cover - optional rich rendering
	from rich.console import Console
	from rich.table import Table
except Exception:  # pragma: no cover
	Console = None  # type: ignore
	Table = None  # type: ignore

logger = logging.getLogger(__name__)


def _format_timestamp(value: Optional[int]) -> str:
	if value is None:
		return ""
	moment = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
	return moment.isoformat(timespec="milliseconds")


def _emit_events(events: Sequence[ConnectionEvent], *, as_json: bool, title: str) -> None:
	data = [event.to_dict() for event in events]
	if as_json:
		json.dump(data, sys.stdout, indent=2)
		sys.stdout.write("\n")
		return
	if Console and Table:
		console = Console()
		table = Table(title=title, show_lines=False)
		for column in ("time", "event", "details", "id"):
			table.add_column(column.upper())
		for entry in data:
			table.add_row(
				_format_timestamp(entry.get("timestamp")),
				str(entry.get("event", "")),
				str(entry.get("details", "")),
				str(entry.get("id", "")),
			)
		console.print(table)
	else:
		for entry in data:
			sys.stdout.write(
				f"{_format_timestamp(entry.get('timestamp'))}\t{entry.get('event')}\t"
				f"{entry.get('details', '')}\t{entry.get('id')}\n"
			)


def _emit_json(payload: Dict[str, Any]) -> None:
	json.dump(payload, sys.stdout)
	sys.stdout.write("\n")


def _cmd_log(args: argparse.Namespace, event_log: EventLog) -> int:
	event_id = event_log.log(args.account, args.event, args.details)
	_emit_json({"id": event_id})
	return 0


def _cmd_recent(args: argparse.Namespace, event_log: EventLog) -> int:
	events = event_log.get_recent(args.account, args.limit)
	_emit_events(events, as_json=args.json, title=f"Recent events for {args.account}")
	return 0


def _cmd_by_event(args: argparse.Namespace, event_log: EventLog) -> int:
	events = event_log.get_by_event(args.account, args.event, args.limit)
	_emit_events(events, as_json=args.json, title=f"'{args.event}' events for {args.account}")
	return 0


def _cmd_clear_old(args: argparse.Namespace, event_log: EventLog) -> int:
	result = event_log.clear_old(args.days)
	_emit_json(result.to_dict())
	return 1 if result.failed_ids else 0


def _cmd_purge_account(args: argparse.Namespace, event_log: EventLog) -> int:
	_emit_json(event_log.purge_account(args.account).to_dict())
	return 0


def _cmd_export(args: argparse.Namespace, event_log: EventLog) -> int:
	events = event_log.get_recent(args.account, args.limit)
	written = export_csv(events, args.output)
	_emit_json({"path": str(args.output), "rows": written})
	return 0


def _cmd_serve(args: argparse.Namespace, event_log: EventLog) -> int:
	import uvicorn

	import connlog.api as api_module

	api_module._event_log = event_log
	uvicorn.run(api_module.app, host=args.host, port=args.port)
	return 0


def _build_parser(settings: Settings) -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(description="Connection event log utilities")
	parser.add_argument("--database-url", help="SQLAlchemy URL, or memory:// (env CONNLOG_DATABASE_URL)")
	parser.add_argument("--log-level", default=settings.log_level, help="Python logging level")
	sub = parser.add_subparsers(dest="command", required=True)

	log = sub.add_parser("log", help="Record a connection event")
	log.add_argument("account", help="Owning account id")
	log.add_argument("event", help="Event type, e.g. connected")
	log.add_argument("--details", help="Optional free-form details")
	log.set_defaults(handler=_cmd_log)

	recent = sub.add_parser("recent", help="Show the most recent events of an account")
	recent.add_argument("account", help="Owning account id")
	recent.add_argument("--limit", type=int, help=f"Maximum events (default {settings.recent_limit})")
	recent.add_argument("--json", action="store_true", help="Output JSON")
	recent.set_defaults(handler=_cmd_recent)

	by_event = sub.add_parser("by-event", help="Show recent events of one type")
	by_event.add_argument("account", help="Owning account id")
	by_event.add_argument("event", help="Exact event type to match")
	by_event.add_argument("--limit", type=int, help=f"Maximum events (default {settings.by_event_limit})")
	by_event.add_argument("--json", action="store_true", help="Output JSON")
	by_event.set_defaults(handler=_cmd_by_event)

	clear_old = sub.add_parser("clear-old", help="Delete events older than the retention window, for all accounts")
	clear_old.add_argument("--days", type=float, help=f"Days to keep (default {settings.retention_days})")
	clear_old.set_defaults(handler=_cmd_clear_old)

	purge = sub.add_parser("purge-account", help="Delete every event of one account")
	purge.add_argument("account", help="Owning account id")
	purge.set_defaults(handler=_cmd_purge_account)

	export = sub.add_parser("export", help="Write recent events of an account to CSV")
	export.add_argument("account", help="Owning account id")
	export.add_argument("output", help="Destination CSV path")
	export.add_argument("--limit", type=int, help="Maximum events")
	export.set_defaults(handler=_cmd_export)

	serve = sub.add_parser("serve", help="Run the HTTP API")
	serve.add_argument("--host", default=settings.api_host, help="Bind address")
	serve.add_argument("--port", type=int, default=settings.api_port, help="Bind port")
	serve.set_defaults(handler=_cmd_serve)

	return parser


def main(argv: Optional[List[str]] = None, *, settings: Optional[Settings] = None) -> int:
	settings = settings or Settings.from_env()
	parser = _build_parser(settings)
	args = parser.parse_args(argv)
	logging.basicConfig(
		level=getattr(logging, str(args.log_level).upper(), logging.INFO),
		format="%(asctime)s %(levelname)s %(name)s: %(message)s",
	)
	if args.database_url:
		settings = replace(settings, database_url=args.database_url)
	try:
		event_log = build_event_log(settings)
	except StorageError as exc:
		sys.stderr.write(f"error: {exc}\n")
		return 1
	try:
		return args.handler(args, event_log)
	except ValueError as exc:
		parser.error(str(exc))
	except StorageError as exc:
		logger.debug("command %s failed", args.command, exc_info=True)
		sys.stderr.write(f"error: {exc}\n")
		return 1
	finally:
		event_log.close()


if __name__ == "__main__":
	sys.exit(main())
