"""Integration tests for storage failures during lifecycle operations."""

from unittest.mock import patch

import pytest

from fasting_app.errors import PersistenceError
from fasting_app.state.models import Profile, SessionState


def disk_full(*args, **kwargs):
    raise PersistenceError("disk full", operation="write", target="test")


class TestStartFailures:
    """Test failures while starting a session."""

    def test_append_failure_leaves_engine_idle(self, engine, store, scheduler):
        """If the session cannot be stored nothing else happens."""
        with patch.object(store, "append", side_effect=disk_full):
            with pytest.raises(PersistenceError):
                engine.start("16-8")

        assert engine.state == SessionState.IDLE
        assert engine.active_session is None
        assert scheduler.requests == []
        assert store.load_all() == []

    def test_stale_marker_clear_failure_is_tolerated(self, engine, store):
        """Failing to clear markers of a fresh key does not block start."""
        with patch.object(store, "clear_notified_stages", side_effect=disk_full):
            engine.start("16-8")

        assert engine.state == SessionState.ACTIVE


class TestTickFailures:
    """Test failures during tick side effects."""

    def test_marker_failure_stops_walk(self, engine, store, scheduler, clock):
        """A failed marker write suppresses that notification and later ones."""
        session = engine.start("16-8")
        clock.advance(hours=9)

        real_save = store.save_notified_stages
        writes = []

        def flaky_save(session_key, stages):
            if writes:
                disk_full()
            writes.append(sorted(stages))
            real_save(session_key, stages)

        with patch.object(store, "save_notified_stages", side_effect=flaky_save):
            snapshot = engine.tick()

        assert [m.hour_offset for m in snapshot.new_milestones] == [0]
        assert [r.payload["hour"] for r in scheduler.of_kind("stage_reached")] == [0]
        assert store.load_notified_stages(session.session_key) == {0}

        # Storage recovered: the remaining stages are delivered once
        snapshot = engine.tick()
        assert [m.hour_offset for m in snapshot.new_milestones] == [4, 8]
        assert [r.payload["hour"] for r in scheduler.of_kind("stage_reached")] == [0, 4, 8]

    def test_auto_complete_failure_retried(self, engine, store, scheduler, clock):
        """If completion cannot be persisted the session stays active."""
        engine.start("16-8")
        clock.advance(hours=16)

        with patch.object(store, "update_by_id", side_effect=disk_full):
            snapshot = engine.tick()

        assert snapshot.auto_completed is False
        assert snapshot.state == SessionState.ACTIVE
        assert engine.state == SessionState.ACTIVE
        assert scheduler.of_kind("fast_completed") == []

        clock.advance(seconds=30)
        snapshot = engine.tick()

        assert snapshot.auto_completed is True
        assert engine.state == SessionState.IDLE
        assert store.load_all()[0].completed is True


class TestEndFailures:
    """Test failures while ending or cancelling."""

    def test_end_failure_keeps_session_active(self, engine, store, scheduler, clock):
        """A failed close propagates and changes nothing."""
        session = engine.start("16-8")
        clock.advance(hours=3)

        with patch.object(store, "update_by_id", side_effect=disk_full):
            with pytest.raises(PersistenceError):
                engine.end()

        assert engine.state == SessionState.ACTIVE
        assert engine.active_session == session
        assert scheduler.cancelled_keys == []
        assert store.load_all()[0].is_open

    def test_cancel_failure_keeps_session_active(self, engine, store, clock):
        """A failed cancel propagates and changes nothing."""
        engine.start("16-8")
        clock.advance(hours=1)

        with patch.object(store, "update_by_id", side_effect=disk_full):
            with pytest.raises(PersistenceError):
                engine.cancel()

        assert engine.state == SessionState.ACTIVE

    def test_profile_failure_after_close(self, engine, store, clock):
        """A failed profile save is logged; the closed session stands."""
        engine.start("16-8")
        clock.advance(hours=16)

        with patch.object(store, "save_profile", side_effect=disk_full):
            assert engine.end() is True

        assert engine.state == SessionState.IDLE
        assert store.load_all()[0].completed is True
        assert engine.get_profile() == Profile()
