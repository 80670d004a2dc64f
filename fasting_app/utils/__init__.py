"""
Utility functions module.

Time Semantics:
- Session start_time is the single source of truth for elapsed time
- Elapsed time is always recomputed from wall-clock now, never counted
- All stored timestamps are timezone-aware UTC
- Calendar-day questions (streaks) use the configured local timezone
"""
