"""Tests for notification scheduler implementations."""

import os
import shutil
import tempfile
from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import orjson
import pytest

from fasting_app.errors import SchedulerError
from fasting_app.notifications.base import NotificationRequest
from fasting_app.notifications.file_scheduler import FileNotificationScheduler
from fasting_app.notifications.memory_scheduler import InMemoryNotificationScheduler

FIRE = datetime(2024, 3, 10, 12, 0, 0, tzinfo=timezone.utc)


def request(identifier, session_key="100", offset_hours=0, kind="custom_reminder"):
    return NotificationRequest(
        identifier=identifier,
        session_key=session_key,
        fire_time=FIRE + timedelta(hours=offset_hours),
        payload={"kind": kind, "title": "T", "body": "B"}
    )


class TestInMemoryNotificationScheduler:
    """Test the in-process scheduler."""

    def setup_method(self):
        """Setup scheduler."""
        self.scheduler = InMemoryNotificationScheduler()

    def test_schedule_records_request(self):
        """Scheduled requests are recorded with their identifier in the payload."""
        self.scheduler.schedule(request("a"))

        assert len(self.scheduler.requests) == 1
        assert self.scheduler.requests[0].payload["identifier"] == "a"
        assert self.scheduler.get_stats()["scheduled_count"] == 1

    def test_pending_ordered_by_fire_time(self):
        """Pending requests come back by fire time."""
        self.scheduler.schedule(request("late", offset_hours=4))
        self.scheduler.schedule(request("early", offset_hours=1))

        assert [r.identifier for r in self.scheduler.pending()] == ["early", "late"]

    def test_cancel_all_for_session(self):
        """Cancellation drops only the given session's requests."""
        self.scheduler.schedule(request("a", session_key="100"))
        self.scheduler.schedule(request("b", session_key="200"))

        self.scheduler.cancel_all_for("100")

        assert [r.identifier for r in self.scheduler.pending()] == ["b"]
        assert self.scheduler.cancelled_keys == ["100"]
        assert len(self.scheduler.requests) == 2

    def test_same_identifier_replaces(self):
        """Re-scheduling an identifier replaces the pending request."""
        self.scheduler.schedule(request("a", offset_hours=1))
        self.scheduler.schedule(request("a", offset_hours=2))

        pending = self.scheduler.pending()
        assert len(pending) == 1
        assert pending[0].fire_time == FIRE + timedelta(hours=2)

    def test_of_kind_and_clear(self):
        """Requests can be filtered by kind and cleared."""
        self.scheduler.schedule(request("a", kind="health_tip"))
        self.scheduler.schedule(request("b", kind="custom_reminder"))

        assert [r.identifier for r in self.scheduler.of_kind("health_tip")] == ["a"]

        self.scheduler.clear()
        assert self.scheduler.requests == []
        assert self.scheduler.pending() == []


class TestFileNotificationScheduler:
    """Test the JSONL outbox scheduler."""

    def setup_method(self):
        """Setup outbox in a temp directory."""
        self.temp_dir = tempfile.mkdtemp()
        self.output_path = os.path.join(self.temp_dir, "outbox", "notifications.jsonl")
        self.scheduler = FileNotificationScheduler(self.output_path)

    def teardown_method(self):
        """Cleanup temp directory."""
        shutil.rmtree(self.temp_dir)

    def test_writes_jsonl_records(self):
        """Each request is one JSON line."""
        self.scheduler.schedule(request("a"))
        self.scheduler.cancel_all_for("100")

        with open(self.output_path, "rb") as f:
            lines = f.read().splitlines()

        assert len(lines) == 2
        first = orjson.loads(lines[0])
        assert first["op"] == "schedule"
        assert first["identifier"] == "a"
        assert first["session_key"] == "100"
        assert first["fire_time"] == "2024-03-10T12:00:00+00:00"
        assert first["payload"]["kind"] == "custom_reminder"
        assert orjson.loads(lines[1])["op"] == "cancel"

    def test_pending_replays_tombstones(self):
        """Cancellations remove earlier requests of the same session only."""
        self.scheduler.schedule(request("a", session_key="100"))
        self.scheduler.schedule(request("b", session_key="200", offset_hours=2))
        self.scheduler.cancel_all_for("100")
        self.scheduler.schedule(request("c", session_key="100", offset_hours=1))

        pending = self.scheduler.pending()

        assert [r.identifier for r in pending] == ["c", "b"]
        assert pending[0].fire_time == FIRE + timedelta(hours=1)

    def test_corrupt_lines_skipped(self):
        """Unreadable lines do not break replay."""
        self.scheduler.schedule(request("a"))
        with open(self.output_path, "ab") as f:
            f.write(b"{not json\n")
        self.scheduler.schedule(request("b"))

        assert len(self.scheduler.read_records()) == 2

    def test_missing_outbox(self):
        """No file means nothing pending."""
        assert self.scheduler.pending() == []

    def test_unserializable_payload(self):
        """Payloads that cannot be encoded raise SchedulerError."""
        with pytest.raises(SchedulerError) as exc_info:
            self.scheduler.schedule_at("100", FIRE, {"identifier": "x", "obj": object()})

        assert exc_info.value.session_key == "100"
        assert exc_info.value.identifier == "x"

    def test_write_failure(self):
        """File system errors raise SchedulerError."""
        with patch("builtins.open", side_effect=OSError("read-only file system")):
            with pytest.raises(SchedulerError):
                self.scheduler.cancel_all_for("100")

        assert self.scheduler.get_stats()["cancel_count"] == 0

    def test_health_check(self):
        """The outbox directory is writable."""
        assert self.scheduler.health_check() is True

    def test_unwritable_outbox_detected_at_construction(self):
        """A missing outbox directory is reported without failing construction."""
        missing = os.path.join(self.temp_dir, "missing", "notifications.jsonl")

        with patch.object(FileNotificationScheduler, "health_check", return_value=False) as check:
            FileNotificationScheduler(missing, create_dirs=False)

        check.assert_called_once_with()
        assert FileNotificationScheduler(missing, create_dirs=False).health_check() is False
        assert not os.path.exists(os.path.dirname(missing))
