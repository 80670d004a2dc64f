"""Tests for session lifecycle data models."""

from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta, timezone

import pytest

from fasting_app.state.models import (
    MilestoneDefinition,
    Plan,
    Profile,
    Session,
    SessionState,
    SessionStatus,
    Snapshot,
    StageCategory,
)

START = datetime(2024, 1, 1, 20, 0, 0, tzinfo=timezone.utc)


class TestSession:
    """Test the Session dataclass."""

    def test_new_session_defaults(self):
        """A new session is open, incomplete and has a generated id."""
        session = Session(plan_id="16-8", start_time=START)

        assert session.is_open
        assert session.completed is False
        assert session.actual_fasting_hours == 0.0
        assert session.status == SessionStatus.ACTIVE
        assert len(session.id) == 36

    def test_ids_are_unique(self):
        """Each session gets its own id."""
        assert Session("16-8", START).id != Session("16-8", START).id

    def test_session_key_is_epoch_seconds(self):
        """The session key is the start time as Unix epoch seconds."""
        session = Session(plan_id="16-8", start_time=START)
        assert session.session_key == str(int(START.timestamp()))
        assert session.session_key == "1704139200"

    def test_session_key_ignores_sub_second(self):
        """Fractional seconds do not change the key."""
        session = Session(plan_id="16-8", start_time=START + timedelta(microseconds=900000))
        assert session.session_key == "1704139200"

    def test_with_end_returns_new_instance(self):
        """Closing a session produces a new immutable instance."""
        session = Session(plan_id="16-8", start_time=START)
        end = START + timedelta(hours=16)

        closed = session.with_end(end, 16.0, completed=True)

        assert session.is_open
        assert closed.end_time == end
        assert closed.completed is True
        assert closed.id == session.id
        assert closed.status == SessionStatus.COMPLETED

    def test_incomplete_status(self):
        """Closed but unsuccessful sessions are labelled incomplete."""
        closed = Session("16-8", START).with_end(START + timedelta(hours=2), 2.0, completed=False)
        assert closed.status == SessionStatus.INCOMPLETE

    def test_reference_time(self):
        """End time is preferred over start time for day bucketing."""
        session = Session("16-8", START)
        assert session.reference_time == START

        closed = session.with_end(START + timedelta(hours=16), 16.0, True)
        assert closed.reference_time == START + timedelta(hours=16)

    def test_frozen(self):
        """Sessions cannot be mutated in place."""
        session = Session("16-8", START)
        with pytest.raises(FrozenInstanceError):
            session.completed = True


class TestPlan:
    """Test the Plan dataclass."""

    def test_time_based(self):
        """Plans with fasting hours are time-boxed."""
        assert Plan(id="16-8", name="16/8", fasting_hours=16, eating_hours=8).is_time_based

    def test_not_time_based(self):
        """Plans without fasting hours are not time-boxed."""
        assert not Plan(id="5-2", name="5:2").is_time_based


class TestValueObjects:
    """Test profile, milestone and snapshot defaults."""

    def test_profile_defaults(self):
        """A fresh profile starts at level 1 with zero counters."""
        profile = Profile()
        assert profile.level == 1
        assert profile.total_completed_fasts == 0
        assert profile.current_streak == 0
        assert profile.longest_streak == 0
        assert profile.last_fasting_date is None

    def test_milestone_default_category(self):
        """Milestones default to the metabolic category."""
        milestone = MilestoneDefinition(hour_offset=4, label="Post-Absorptive", detail="")
        assert milestone.category == StageCategory.METABOLIC

    def test_idle_snapshot(self):
        """Idle snapshots carry no session data."""
        snapshot = Snapshot.idle()
        assert snapshot.state == SessionState.IDLE
        assert snapshot.session_id is None
        assert snapshot.remaining_seconds is None
        assert snapshot.reached_milestones == ()

    def test_snapshot_elapsed_hours(self):
        """Elapsed hours are derived from elapsed seconds."""
        snapshot = Snapshot(state=SessionState.ACTIVE, elapsed_seconds=5400)
        assert snapshot.elapsed_hours == pytest.approx(1.5)

    def test_enums_are_strings(self):
        """State enums serialize as plain strings."""
        assert SessionState.ACTIVE == "active"
        assert SessionStatus.INCOMPLETE.value == "incomplete"
