"""
Fasting App - Fasting Session Lifecycle Engine

Tracks time-boxed fasting sessions: starts and ends sessions, derives elapsed
time, remaining time and progress against a plan's target, detects stage
milestones exactly once, and rolls completed fasts into streaks and levels.
"""

__version__ = "0.1.0"
__author__ = "Fasting App Team"
