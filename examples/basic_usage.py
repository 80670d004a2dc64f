#!/usr/bin/env python3
"""
Basic Usage Example - Fasting Session Lifecycle Engine

This script demonstrates the basic usage of the fasting session engine with
a simulated clock. It shows how to:
- Initialize the engine over a SQLite store
- Start a session and drive it with ticks
- Watch milestones and notifications appear
- Let a session auto-complete and inspect the profile

Run: python examples/basic_usage.py
"""

import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

from fasting_app.config.loader import load_config
from fasting_app.engine import FastingSessionEngine
from fasting_app.logging.config import configure_logging_from_config
from fasting_app.metrics.progress import format_time_remaining
from fasting_app.notifications.file_scheduler import FileNotificationScheduler
from fasting_app.persistence.session_store import SQLiteSessionStore
from fasting_app.state.models import Snapshot


class SimulatedClock:
    """Clock the example moves forward by hand."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def print_snapshot(snapshot: Snapshot) -> None:
    """Print the derived values of a snapshot."""
    print(f"📊 State: {snapshot.state.value}")
    print(f"  Elapsed: {format_time_remaining(snapshot.elapsed_seconds)}")
    if snapshot.remaining_seconds is not None:
        print(f"  Remaining: {format_time_remaining(snapshot.remaining_seconds)}")
    print(f"  Progress: {snapshot.progress:.1f}%")
    for milestone in snapshot.new_milestones:
        print(f"  🎯 Reached hour {milestone.hour_offset}: {milestone.label}")
    if snapshot.auto_completed:
        print("  🎉 Fast completed!")
    print("-" * 50)


def main() -> None:
    """Run a simulated 16:8 fast."""
    config = load_config(overrides={"logging": {"level": "WARNING"}})
    configure_logging_from_config(config)

    workdir = Path(tempfile.mkdtemp())
    clock = SimulatedClock(datetime(2024, 3, 10, 20, 0, tzinfo=timezone.utc))

    engine = FastingSessionEngine(
        store=SQLiteSessionStore(workdir / "fasting.db"),
        scheduler=FileNotificationScheduler(workdir / "notifications.jsonl"),
        config=config,
        clock=clock,
    )

    print("🚀 Starting 16:8 fast")
    session = engine.start("16-8")
    print(f"  Session {session.id} (key {session.session_key})")
    print_snapshot(engine.snapshot())

    for hours in (2, 4, 4, 4, 2):
        clock.advance(hours=hours)
        print(f"⏰ +{hours}h")
        print_snapshot(engine.tick())

    summary = engine.get_profile_summary()
    print("👤 Profile:")
    print(f"  Level: {summary.profile.level} ({summary.level_name})")
    print(f"  Completed fasts: {summary.profile.total_completed_fasts}")
    print(f"  Current streak: {summary.profile.current_streak}")
    print(f"  Fasts to next level: {summary.fasts_to_next_level}")

    pending = engine.scheduler.pending()
    print(f"📬 Pending notifications in outbox: {len(pending)}")
    for request in pending:
        print(f"  {request.fire_time.isoformat()} {request.payload['title']}")


if __name__ == "__main__":
    main()
