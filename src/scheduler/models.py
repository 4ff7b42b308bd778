"""ScheduleRecord data model."""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any


class ScheduleStatus(enum.StrEnum):
    PENDING = "pending"
    SENT = "sent"


def _parse_instant(value: str) -> datetime:
    """Parse an ISO 8601 string, treating a missing offset as UTC."""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def _format_instant(value: datetime | None) -> str | None:
    return value.astimezone(UTC).isoformat() if value is not None else None


@dataclass
class ScheduleRecord:
    """A message waiting to be delivered (or already delivered).

    Attributes:
        id: Unique identifier (UUID hex), immutable.
        destination: Address as the user typed it, e.g. ``"98765 43210"``.
        body: Message text, opaque to the scheduler.
        due_at: UTC instant from which the record may be sent.
        status: ``PENDING`` until a send succeeds, then ``SENT``.
        sent_at: Set exactly when ``status`` becomes ``SENT``.
        created_at: UTC creation time.
        scheduled_for: The raw time string supplied at creation.
    """

    id: str
    destination: str
    body: str
    due_at: datetime
    status: ScheduleStatus = ScheduleStatus.PENDING
    sent_at: datetime | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    scheduled_for: str = ""

    def __post_init__(self) -> None:
        if (self.status is ScheduleStatus.SENT) != (self.sent_at is not None):
            msg = f"Record {self.id}: status {self.status} disagrees with sent_at={self.sent_at}"
            raise ValueError(msg)

    # -- Convenience properties ------------------------------------------------

    @property
    def is_pending(self) -> bool:
        return self.status is ScheduleStatus.PENDING

    @property
    def is_sent(self) -> bool:
        return self.status is ScheduleStatus.SENT

    def is_due(self, now: datetime) -> bool:
        """True when the record is pending and its due time has been reached."""
        return self.is_pending and now >= self.due_at

    def mark_sent(self, at: datetime) -> None:
        """Transition Pending -> Sent. A record can only be sent once."""
        if self.is_sent:
            msg = f"Record {self.id} was already sent at {self.sent_at}"
            raise ValueError(msg)
        self.status = ScheduleStatus.SENT
        self.sent_at = at

    # -- Serialization ---------------------------------------------------------

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the JSON layout written by the store."""
        return {
            "id": self.id,
            "destination": self.destination,
            "body": self.body,
            "dueAt": _format_instant(self.due_at),
            "status": self.status.value,
            "sentAt": _format_instant(self.sent_at),
            "createdAt": _format_instant(self.created_at),
            "scheduledFor": self.scheduled_for,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScheduleRecord:
        """Deserialize from a stored JSON object.

        Files written by the first version of the bot used ``phone``,
        ``message``, ``timestamp`` and a boolean ``sent``; those keys are
        accepted as fallbacks.
        """
        if "status" in data:
            status = ScheduleStatus(data["status"])
        else:
            status = ScheduleStatus.SENT if data.get("sent") else ScheduleStatus.PENDING

        sent_at_raw = data.get("sentAt")
        sent_at = _parse_instant(sent_at_raw) if sent_at_raw else None
        # Legacy files could be marked sent without a timestamp
        if status is ScheduleStatus.SENT and sent_at is None:
            sent_at = _parse_instant(data.get("dueAt") or data["timestamp"])

        destination = data.get("destination", data.get("phone"))
        body = data.get("body", data.get("message"))
        if not isinstance(destination, str) or not isinstance(body, str):
            msg = f"Record {data.get('id')!r} has no usable destination/body"
            raise ValueError(msg)

        created_raw = data.get("createdAt")
        return cls(
            id=str(data["id"]),
            destination=destination,
            body=body,
            due_at=_parse_instant(data.get("dueAt") or data["timestamp"]),
            status=status,
            sent_at=sent_at,
            created_at=_parse_instant(created_raw) if created_raw else datetime.now(UTC),
            scheduled_for=data.get("scheduledFor") or "",
        )


def make_schedule_id() -> str:
    """Generate a new record ID."""
    return uuid.uuid4().hex
