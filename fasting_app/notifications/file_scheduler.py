"""File-based notification scheduler writing a JSONL outbox for the host."""

import fcntl
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Union

import orjson

from ..errors import SchedulerError
from ..utils.time import format_timestamp, parse_timestamp, utc_now
from .base import BaseNotificationScheduler, NotificationRequest

OP_SCHEDULE = "schedule"
OP_CANCEL = "cancel"


class FileNotificationScheduler(BaseNotificationScheduler):
    """
    Append-only JSONL outbox.

    Each line is either a schedule record or a cancellation tombstone for a
    session key. The host replays the outbox to find what is still pending.
    """

    def __init__(self, output_path: Union[str, Path], name: str = "file", create_dirs: bool = True):
        super().__init__(name)
        self.output_path = Path(output_path)

        if create_dirs:
            self.output_path.parent.mkdir(parents=True, exist_ok=True)

        self.health_check()

    def schedule_at(self, session_key: str, fire_time: datetime, payload: dict[str, Any]) -> None:
        identifier = payload.get("identifier") or f"{payload.get('kind', 'notification')}_{session_key}"
        self._append({
            "op": OP_SCHEDULE,
            "identifier": identifier,
            "session_key": session_key,
            "fire_time": format_timestamp(fire_time),
            "payload": payload,
            "recorded_at": format_timestamp(utc_now()),
        }, session_key, identifier)

        self._scheduled_count += 1
        self.logger.info(
            "Notification written to outbox",
            scheduler=self.name,
            session_key=session_key,
            identifier=identifier,
            output_path=str(self.output_path)
        )

    def cancel_all_for(self, session_key: str) -> None:
        self._append({
            "op": OP_CANCEL,
            "session_key": session_key,
            "recorded_at": format_timestamp(utc_now()),
        }, session_key)

        self._cancel_count += 1
        self.logger.info(
            "Cancellation written to outbox",
            scheduler=self.name,
            session_key=session_key
        )

    def _append(self, record: dict[str, Any], session_key: str, identifier: Optional[str] = None) -> None:
        """Write one record in JSONL format under an exclusive lock."""
        try:
            line = orjson.dumps(record) + b"\n"
        except TypeError as e:
            raise SchedulerError(
                f"Notification payload is not serializable: {e}",
                session_key=session_key,
                identifier=identifier
            ) from e

        try:
            with open(self.output_path, "ab") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_EX)
                try:
                    f.write(line)
                    f.flush()
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
        except OSError as e:
            self.logger.warning(
                "Outbox write failed",
                scheduler=self.name,
                output_path=str(self.output_path),
                error=str(e)
            )
            raise SchedulerError(
                f"File system error: {e}",
                session_key=session_key,
                identifier=identifier
            ) from e

    def read_records(self) -> list[dict[str, Any]]:
        """All outbox records in write order; unreadable lines are skipped."""
        if not self.output_path.exists():
            return []

        records = []
        with open(self.output_path, "rb") as f:
            fcntl.flock(f.fileno(), fcntl.LOCK_SH)
            try:
                lines = f.read().splitlines()
            finally:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)

        for number, line in enumerate(lines, start=1):
            if not line.strip():
                continue
            try:
                records.append(orjson.loads(line))
            except orjson.JSONDecodeError:
                self.logger.warning(
                    "Skipping corrupt outbox line",
                    output_path=str(self.output_path),
                    line=number
                )

        return records

    def pending(self) -> list[NotificationRequest]:
        """Replay the outbox and return requests not cancelled, by fire time."""
        pending: dict[str, NotificationRequest] = {}

        for record in self.read_records():
            op = record.get("op")
            if op == OP_SCHEDULE:
                pending[record["identifier"]] = NotificationRequest(
                    identifier=record["identifier"],
                    session_key=record["session_key"],
                    fire_time=parse_timestamp(record["fire_time"]),
                    payload=record.get("payload") or {}
                )
            elif op == OP_CANCEL:
                pending = {
                    identifier: request
                    for identifier, request in pending.items()
                    if request.session_key != record.get("session_key")
                }

        return sorted(pending.values(), key=lambda r: r.fire_time)

    def health_check(self) -> bool:
        """Check if the outbox directory is writable."""
        try:
            test_file = self.output_path.parent / ".health_check_test"
            test_file.write_text("test")
            test_file.unlink()
            return True
        except OSError as e:
            self.logger.warning("Health check failed", scheduler=self.name, error=str(e))
            return False
