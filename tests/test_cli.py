"""CLI tests against a temporary SQLite database."""
from __future__ import annotations

import contextlib
import csv
import io
import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from connlog import cli
from connlog.config import Settings


class CliTest(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        self.settings = Settings(database_url=f"sqlite:///{self.tmp / 'events.sqlite3'}")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _run(self, *argv: str) -> tuple[int, str]:
        buffer = io.StringIO()
        with contextlib.redirect_stdout(buffer):
            code = cli.main(list(argv), settings=self.settings)
        return code, buffer.getvalue()

    def test_log_then_recent_json(self) -> None:
        code, out = self._run("log", "acct-1", "connected", "--details", "phone online")
        self.assertEqual(code, 0)
        event_id = json.loads(out)["id"]

        code, out = self._run("recent", "acct-1", "--json")
        self.assertEqual(code, 0)
        [event] = json.loads(out)
        self.assertEqual(event["id"], event_id)
        self.assertEqual(event["details"], "phone online")

    def test_by_event_filters(self) -> None:
        self._run("log", "acct-1", "connected")
        self._run("log", "acct-1", "error")
        code, out = self._run("by-event", "acct-1", "error", "--json")
        self.assertEqual(code, 0)
        self.assertEqual([e["event"] for e in json.loads(out)], ["error"])

    def test_table_output_lists_events(self) -> None:
        self._run("log", "acct-1", "ready")
        code, out = self._run("recent", "acct-1")
        self.assertEqual(code, 0)
        self.assertIn("ready", out)

    def test_clear_old_and_purge(self) -> None:
        self._run("log", "acct-1", "connected")
        code, out = self._run("clear-old", "--days", "7")
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(out), {"deletedCount": 0, "failed": []})

        code, out = self._run("purge-account", "acct-1")
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(out)["deletedCount"], 1)

    def test_export_writes_csv(self) -> None:
        self._run("log", "acct-1", "connected")
        self._run("log", "acct-1", "disconnected", "--details", "logout")
        target = self.tmp / "out" / "events.csv"
        code, out = self._run("export", "acct-1", str(target))
        self.assertEqual(code, 0)
        self.assertEqual(json.loads(out)["rows"], 2)
        with target.open(newline="", encoding="utf-8") as handle:
            rows = list(csv.DictReader(handle))
        self.assertEqual(list(rows[0].keys()), ["id", "accountId", "event", "details", "timestamp"])
        self.assertEqual({row["event"] for row in rows}, {"connected", "disconnected"})

    def test_empty_account_exits_with_usage_error(self) -> None:
        with contextlib.redirect_stderr(io.StringIO()):
            with self.assertRaises(SystemExit) as ctx:
                self._run("log", "", "connected")
        self.assertEqual(ctx.exception.code, 2)

    def test_database_url_flag_overrides_settings(self) -> None:
        code, _ = self._run("--database-url", "memory://", "log", "acct-1", "connected")
        self.assertEqual(code, 0)
        code, out = self._run("recent", "acct-1", "--json")
        self.assertEqual(json.loads(out), [])

    def test_serve_hands_event_log_to_uvicorn(self) -> None:
        import connlog.api as api_module

        with patch("uvicorn.run") as run:
            code, _ = self._run("--database-url", "memory://", "serve", "--port", "9001")
        try:
            self.assertEqual(code, 0)
            run.assert_called_once()
            self.assertIs(run.call_args.args[0], api_module.app)
            self.assertEqual(run.call_args.kwargs["port"], 9001)
            self.assertIsNotNone(api_module._event_log)
        finally:
            api_module._event_log = None


if __name__ == "__main__":
    unittest.main()
