"""Tests for streak and level calculations."""

from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from fasting_app.metrics.streaks import (
    apply_completion,
    calculate_current_streak,
    calculate_level,
    calculate_level_progress,
    fasts_needed_for_next_level,
    level_name,
)
from fasting_app.state.models import Profile, Session

TODAY = date(2024, 3, 10)


def completed_on(day: date, hour: int = 12, completed: bool = True) -> Session:
    end = datetime(day.year, day.month, day.day, hour, 0, tzinfo=timezone.utc)
    return Session(
        plan_id="16-8",
        start_time=end - timedelta(hours=16),
        end_time=end,
        completed=completed,
        actual_fasting_hours=16.0
    )


class TestCurrentStreak:
    """Test calendar-day streak continuity."""

    def test_empty_history(self):
        """No sessions means no streak."""
        assert calculate_current_streak([], TODAY) == 0

    def test_three_consecutive_days(self):
        """Completed sessions on D, D-1, D-2 give a streak of 3."""
        sessions = [completed_on(TODAY - timedelta(days=n)) for n in range(3)]
        assert calculate_current_streak(sessions, TODAY) == 3

    def test_gap_breaks_streak(self):
        """A gap at D-1 leaves only today."""
        sessions = [completed_on(TODAY), completed_on(TODAY - timedelta(days=2))]
        assert calculate_current_streak(sessions, TODAY) == 1

    def test_walk_starts_today(self):
        """Without a completed session today the streak is 0."""
        sessions = [completed_on(TODAY - timedelta(days=1)), completed_on(TODAY - timedelta(days=2))]
        assert calculate_current_streak(sessions, TODAY) == 0

    def test_same_day_duplicates_count_once(self):
        """Two fasts on one day count as one day."""
        sessions = [
            completed_on(TODAY, hour=8),
            completed_on(TODAY, hour=20),
            completed_on(TODAY - timedelta(days=1)),
        ]
        assert calculate_current_streak(sessions, TODAY) == 2

    def test_incomplete_sessions_ignored(self):
        """Incomplete sessions do not extend or break a streak."""
        sessions = [
            completed_on(TODAY),
            completed_on(TODAY - timedelta(days=1), completed=False),
            completed_on(TODAY - timedelta(days=2)),
        ]
        assert calculate_current_streak(sessions, TODAY) == 1

    def test_order_independent(self):
        """Input order does not matter."""
        sessions = [completed_on(TODAY - timedelta(days=n)) for n in (2, 0, 1)]
        assert calculate_current_streak(sessions, TODAY) == 3

    def test_open_session_uses_start_day(self):
        """Without an end time, the start time decides the day."""
        session = Session(
            plan_id="16-8",
            start_time=datetime(2024, 3, 10, 6, 0, tzinfo=timezone.utc),
            completed=True
        )
        assert calculate_current_streak([session], TODAY) == 1

    def test_local_calendar_day(self):
        """Days are bucketed in the given timezone, not UTC."""
        tz = ZoneInfo("America/New_York")
        # 2024-03-10 02:00 UTC is still 2024-03-09 in New York
        late_evening = Session(
            plan_id="16-8",
            start_time=datetime(2024, 3, 9, 10, 0, tzinfo=timezone.utc),
            end_time=datetime(2024, 3, 10, 2, 0, tzinfo=timezone.utc),
            completed=True,
            actual_fasting_hours=16.0
        )
        assert calculate_current_streak([late_evening], date(2024, 3, 9), tz) == 1
        assert calculate_current_streak([late_evening], date(2024, 3, 10), tz) == 0


class TestLevels:
    """Test level thresholds."""

    @pytest.mark.parametrize("fasts,level", [
        (0, 1), (4, 1), (5, 2), (14, 2), (15, 3), (29, 3), (30, 4), (100, 4),
    ])
    def test_calculate_level(self, fasts, level):
        """Lower bounds are inclusive."""
        assert calculate_level(fasts) == level

    @pytest.mark.parametrize("fasts,needed", [
        (0, 5), (4, 1), (5, 10), (14, 1), (15, 15), (29, 1), (30, 0), (45, 0),
    ])
    def test_fasts_needed_for_next_level(self, fasts, needed):
        """Distance to the next threshold, 0 at max level."""
        assert fasts_needed_for_next_level(fasts) == needed

    def test_level_names(self):
        """Each level has a display name."""
        assert [level_name(n) for n in range(1, 5)] == [
            "Beginner", "Consistent", "Advanced", "Expert"
        ]
        assert level_name(9) == "Unknown"

    def test_level_progress(self):
        """Fraction between the current and next thresholds."""
        assert calculate_level_progress(0) == 0.0
        assert calculate_level_progress(10) == pytest.approx(0.5)
        assert calculate_level_progress(15) == 0.0
        assert calculate_level_progress(30) == 1.0

    def test_custom_thresholds(self):
        """Thresholds can be configured."""
        assert calculate_level(3, thresholds=(3, 6)) == 2
        assert fasts_needed_for_next_level(3, thresholds=(3, 6)) == 3
        assert calculate_level_progress(7, thresholds=(3, 6)) == 1.0


class TestApplyCompletion:
    """Test incremental profile updates."""

    def test_first_completion(self):
        """First success updates every counter."""
        session = completed_on(TODAY)
        now = session.end_time

        profile = apply_completion(Profile(), session, [session], now)

        assert profile.total_completed_fasts == 1
        assert profile.total_hours_fasted == pytest.approx(16.0)
        assert profile.last_fasting_date == session.end_time
        assert profile.level == 1
        assert profile.current_streak == 1
        assert profile.longest_streak == 1

    def test_level_up_and_longest_kept(self):
        """Level recomputed from the new total; longest streak never shrinks."""
        previous = Profile(
            level=1,
            total_completed_fasts=4,
            current_streak=0,
            longest_streak=7,
            total_hours_fasted=64.0
        )
        session = completed_on(TODAY)

        profile = apply_completion(previous, session, [session], session.end_time)

        assert profile.total_completed_fasts == 5
        assert profile.level == 2
        assert profile.current_streak == 1
        assert profile.longest_streak == 7
        assert profile.total_hours_fasted == pytest.approx(80.0)
