"""
State machine and session runtime module.

Manages the fasting session lifecycle (IDLE -> ACTIVE -> COMPLETED/ABANDONED
-> IDLE), pure tick evaluation, and persisted milestone idempotency tracking.
"""
