"""Recorder and query behaviour through the EventLog facade."""
from __future__ import annotations

import unittest

from connlog.config import Settings
from connlog.errors import ValidationError
from connlog.models import ConnectionEvent
from connlog.service import EventLog, build_event_log
from connlog.sql_store import SqlEventStore
from connlog.store import MemoryEventStore


class _Clock:
    def __init__(self, start: int = 1_700_000_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def tick(self, ms: int = 1) -> None:
        self.now += ms


class EventLogTest(unittest.TestCase):
    def setUp(self) -> None:
        self.clock = _Clock()
        self.log = EventLog(MemoryEventStore(clock=self.clock), clock=self.clock)

    def test_log_then_get_recent_returns_that_event(self) -> None:
        event_id = self.log.log("acct-1", "qr-generated", "attempt 1")
        [latest] = self.log.get_recent("acct-1", 1)
        self.assertEqual(latest.id, event_id)
        self.assertEqual(latest.event_type, "qr-generated")
        self.assertEqual(latest.details, "attempt 1")
        self.assertEqual(latest.timestamp, self.clock.now)

    def test_log_rejects_empty_fields(self) -> None:
        for account, event in (("", "connected"), ("   ", "connected"), ("acct-1", ""), (None, "x")):
            with self.subTest(account=account, event=event):
                with self.assertRaises(ValidationError):
                    self.log.log(account, event)  # type: ignore[arg-type]
        self.assertEqual(self.log.store.count(), 0)

    def test_two_account_scenario(self) -> None:
        self.log.log("A", "connected")
        self.clock.tick()
        self.log.log("A", "qr-generated")
        self.clock.tick()
        self.log.log("B", "connected")

        recent = self.log.get_recent("A", 10)
        self.assertEqual([e.event_type for e in recent], ["qr-generated", "connected"])
        by_event = self.log.get_by_event("A", "connected", 10)
        self.assertEqual([e.event_type for e in by_event], ["connected"])
        self.assertEqual(by_event[0].account_id, "A")

    def test_get_recent_respects_limit_and_order(self) -> None:
        for index in range(12):
            self.log.log("acct-1", f"e{index}")
            self.clock.tick(index % 2)  # some events share a millisecond
        recent = self.log.get_recent("acct-1", 5)
        self.assertEqual(len(recent), 5)
        stamps = [e.timestamp for e in recent]
        self.assertEqual(stamps, sorted(stamps, reverse=True))
        self.assertEqual(recent[0].event_type, "e11")

    def test_default_limits_apply_for_missing_or_non_positive(self) -> None:
        for index in range(60):
            self.log.log("acct-1", "connected" if index % 2 else "ready")
            self.clock.tick()
        self.assertEqual(len(self.log.get_recent("acct-1")), 50)
        self.assertEqual(len(self.log.get_recent("acct-1", 0)), 50)
        self.assertEqual(len(self.log.get_recent("acct-1", -3)), 50)
        self.assertEqual(len(self.log.get_by_event("acct-1", "connected")), 20)
        self.assertEqual(len(self.log.get_by_event("acct-1", "connected", 0)), 20)

    def test_configured_default_limits(self) -> None:
        settings = Settings(database_url="memory://", recent_limit=3, by_event_limit=2)
        log = EventLog(MemoryEventStore(clock=self.clock), settings=settings, clock=self.clock)
        for _ in range(5):
            log.log("acct-1", "ready")
            self.clock.tick()
        self.assertEqual(len(log.get_recent("acct-1")), 3)
        self.assertEqual(len(log.get_by_event("acct-1", "ready")), 2)

    def test_get_by_event_finds_matches_behind_many_other_events(self) -> None:
        settings = Settings(database_url="memory://", scan_batch=4)
        log = EventLog(MemoryEventStore(clock=self.clock), settings=settings, clock=self.clock)
        log.log("acct-1", "disconnected", "oldest")
        self.clock.tick()
        for _ in range(30):
            log.log("acct-1", "rssi")
            self.clock.tick()
        log.log("acct-1", "disconnected", "newest")

        matches = log.get_by_event("acct-1", "disconnected", 5)
        self.assertEqual([e.details for e in matches], ["newest", "oldest"])

    def test_get_by_event_is_subset_of_recent(self) -> None:
        for index in range(25):
            self.log.log("acct-1", ("connected", "ready", "error")[index % 3])
            self.clock.tick()
        everything = {e.id for e in self.log.get_recent("acct-1", 10_000)}
        matches = self.log.get_by_event("acct-1", "error", 4)
        self.assertEqual(len(matches), 4)
        self.assertTrue(all(e.event_type == "error" for e in matches))
        self.assertTrue({e.id for e in matches} <= everything)

    def test_get_by_event_exact_match_only(self) -> None:
        self.log.log("acct-1", "connected")
        self.log.log("acct-1", "Connected")
        self.log.log("acct-1", "connected-again")
        self.assertEqual(len(self.log.get_by_event("acct-1", "connected")), 1)

    def test_queries_reject_empty_arguments(self) -> None:
        with self.assertRaises(ValidationError):
            self.log.get_recent("")
        with self.assertRaises(ValidationError):
            self.log.get_by_event("acct-1", "")

    def test_events_are_read_only_copies(self) -> None:
        self.log.log("acct-1", "connected")
        [first] = self.log.get_recent("acct-1")
        self.assertIsInstance(first, ConnectionEvent)
        self.assertEqual(first.to_dict()["accountId"], "acct-1")
        self.assertNotIn("details", first.to_dict())


class BuildEventLogTest(unittest.TestCase):
    def test_memory_url_selects_memory_store(self) -> None:
        log = build_event_log(Settings(database_url="memory://"))
        self.assertIsInstance(log.store, MemoryEventStore)

    def test_sql_url_selects_sql_store(self) -> None:
        log = build_event_log(Settings(database_url="sqlite://"))
        try:
            self.assertIsInstance(log.store, SqlEventStore)
            event_id = log.log("acct-1", "ready")
            self.assertEqual(log.get_recent("acct-1")[0].id, event_id)
        finally:
            log.close()


if __name__ == "__main__":
    unittest.main()
