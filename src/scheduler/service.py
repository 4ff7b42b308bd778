"""ScheduleService — owns the record set and runs dispatch passes."""

from __future__ import annotations

import asyncio
import logging
import zoneinfo
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from src.config import settings
from src.scheduler.errors import (
    InvalidInputError,
    ScheduleNotFoundError,
    SendFailure,
    StoreCorruptError,
    StoreError,
    StoreIOError,
)
from src.scheduler.models import ScheduleRecord, make_schedule_id
from src.scheduler.reconcile import find_due, sweep_expired
from src.transport.address import normalize_address

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping

    from src.scheduler.store import ScheduleStore
    from src.transport.base import MessageTransport

logger = logging.getLogger(__name__)

# Accepted create-payload keys, newest name first (older clients use the second)
_FIELD_ALIASES = {
    "destination": ("destination", "phone"),
    "body": ("body", "message"),
    "scheduledFor": ("scheduledFor", "datetime"),
}


@dataclass
class PassResult:
    """Outcome of one dispatch pass."""

    started_at: datetime
    sent: list[str] = field(default_factory=list)
    failures: list[SendFailure] = field(default_factory=list)
    pruned: list[str] = field(default_factory=list)
    saved: bool = False

    @property
    def attempted(self) -> int:
        return len(self.sent) + len(self.failures)


def _utcnow() -> datetime:
    return datetime.now(UTC)


class ScheduleService:
    """Single owner of the in-memory schedule and its persisted copy.

    Every mutation (create, delete, and the mark/sweep phase of a pass) runs
    under one lock and is followed by a full save.  Sends run outside the
    lock on copies of the due records.

    Args:
        store: ScheduleStore holding the persisted collection.
        transport: Outbound MessageTransport.
        clock: Returns the current UTC time (overridable in tests).
        retention: How long sent records are kept, from their due time.
        send_timeout: Seconds a single send may take before it counts as failed.
        timezone: IANA zone used for create times given without an offset.
        country_code: Prefix added to bare 10-digit numbers.
        address_suffix: Chat ID suffix of the transport.
    """

    def __init__(
        self,
        store: ScheduleStore,
        transport: MessageTransport,
        *,
        clock: Callable[[], datetime] = _utcnow,
        retention: timedelta | None = None,
        send_timeout: float | None = None,
        timezone: str | None = None,
        country_code: str | None = None,
        address_suffix: str | None = None,
    ) -> None:
        self._store = store
        self._transport = transport
        self._clock = clock
        self._retention = retention if retention is not None else settings.retention_window
        self._send_timeout = send_timeout or settings.send_timeout_seconds
        self._tz = zoneinfo.ZoneInfo(timezone or settings.scheduler_timezone)
        self._country_code = country_code or settings.default_country_code
        self._address_suffix = address_suffix or settings.whatsapp_address_suffix
        self._records: dict[str, ScheduleRecord] = {}
        self._lock = asyncio.Lock()

    # -- Loading / persistence ---------------------------------------------------

    async def load(self) -> int:
        """Fill the cache from the store. Returns the number of records loaded.

        A corrupt file is moved aside and the service starts empty; an
        unreadable one leaves the service empty as well.  Neither is fatal.
        """
        async with self._lock:
            try:
                records = await asyncio.to_thread(self._store.load)
            except StoreCorruptError:
                logger.exception("Schedule file is corrupt; starting with an empty schedule")
                await asyncio.to_thread(self._store.quarantine)
                records = []
            except StoreIOError:
                logger.exception("Schedule file is unreadable; starting with an empty schedule")
                records = []
            self._records = {}
            for record in records:
                if record.id in self._records:
                    new_id = make_schedule_id()
                    logger.warning(
                        "Duplicate schedule id %s in %s; keeping both, re-keyed one as %s",
                        record.id,
                        self._store.path,
                        new_id,
                    )
                    record = replace(record, id=new_id)  # noqa: PLW2901
                self._records[record.id] = record
            count = len(self._records)
        logger.info("Loaded %d schedule(s) from %s", count, self._store.path)
        return count

    async def _save(self) -> None:
        """Persist the full set. Caller must hold the lock."""
        await asyncio.to_thread(self._store.save, list(self._records.values()))

    # -- Admin operations ----------------------------------------------------------

    def _parse_due_at(self, value: str) -> datetime:
        try:
            parsed = datetime.fromisoformat(value.strip())
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=self._tz)
            return parsed.astimezone(UTC)
        except (ValueError, OverflowError) as exc:
            msg = f"Invalid date format: {value!r}"
            raise InvalidInputError(msg) from exc

    def _build_record(self, payload: Mapping[str, Any]) -> ScheduleRecord:
        values: dict[str, str] = {}
        for name, aliases in _FIELD_ALIASES.items():
            value = next((payload[k] for k in aliases if payload.get(k)), None)
            if value is None:
                msg = "Missing required fields: destination, body, scheduledFor"
                raise InvalidInputError(msg)
            if not isinstance(value, str):
                msg = f"Field {name!r} must be a string"
                raise InvalidInputError(msg)
            values[name] = value

        return ScheduleRecord(
            id=make_schedule_id(),
            destination=values["destination"],
            body=values["body"],
            due_at=self._parse_due_at(values["scheduledFor"]),
            created_at=self._clock(),
            scheduled_for=values["scheduledFor"],
        )

    async def create(self, payload: Mapping[str, Any]) -> ScheduleRecord:
        """Validate *payload*, add a pending record and persist it.

        Raises InvalidInputError before touching any state, and StoreIOError
        (after rolling the insert back) when the save fails.
        """
        record = self._build_record(payload)
        async with self._lock:
            self._records[record.id] = record
            try:
                await self._save()
            except StoreError:
                del self._records[record.id]
                raise
        logger.info(
            "Scheduled %s for %s at %s", record.id, record.destination, record.due_at.isoformat()
        )
        return record

    async def list_records(self) -> list[ScheduleRecord]:
        """Return copies of every record, sent ones included."""
        async with self._lock:
            return [replace(r) for r in self._records.values()]

    async def delete(self, record_id: str) -> ScheduleRecord:
        """Remove a record by ID and persist. Raises ScheduleNotFoundError."""
        async with self._lock:
            record = self._records.pop(record_id, None)
            if record is None:
                raise ScheduleNotFoundError(record_id)
            try:
                await self._save()
            except StoreError:
                self._records[record_id] = record
                raise
        logger.info("Deleted schedule %s", record_id)
        return record

    async def status(self) -> dict[str, Any]:
        async with self._lock:
            total = len(self._records)
            pending = sum(1 for r in self._records.values() if r.is_pending)
        return {"ready": self._transport.ready, "totalCount": total, "pendingCount": pending}

    # -- Dispatch pass -------------------------------------------------------------

    async def run_pass(self, now: datetime | None = None) -> PassResult:
        """Send everything that is due, mark the outcome, prune and save once.

        Failed sends leave their record pending; it is tried again on the next
        pass.  Errors never escape: they are logged and reflected in the
        returned PassResult.
        """
        now = now or self._clock()
        result = PassResult(started_at=now)

        async with self._lock:
            due = find_due(self._records.values(), now)

        for record in due:
            failure = await self._deliver(record)
            if failure is None:
                result.sent.append(record.id)
            else:
                result.failures.append(failure)

        async with self._lock:
            for record_id in result.sent:
                live = self._records.get(record_id)
                if live is None:
                    logger.warning("Schedule %s was deleted while its send was in flight", record_id)
                    continue
                if live.is_pending:
                    live.mark_sent(now)

            result.pruned = [r.id for r in sweep_expired(self._records, now, self._retention)]
            if result.pruned:
                logger.info("Pruned %d expired schedule(s)", len(result.pruned))

            try:
                await self._save()
                result.saved = True
            except StoreError:
                logger.exception("Failed to persist schedules after pass")

        logger.info(
            "Pass complete at %s: attempted=%d sent=%d failed=%d pruned=%d",
            now.isoformat(),
            result.attempted,
            len(result.sent),
            len(result.failures),
            len(result.pruned),
        )
        return result

    async def _deliver(self, record: ScheduleRecord) -> SendFailure | None:
        """Send one record. Returns None on success, the failure otherwise."""
        address = normalize_address(
            record.destination,
            country_code=self._country_code,
            suffix=self._address_suffix,
        )
        try:
            ok = await asyncio.wait_for(
                self._transport.send(address, record.body), timeout=self._send_timeout
            )
        except TimeoutError:
            failure = SendFailure(record.id, f"timed out after {self._send_timeout}s")
            logger.warning("Failed to send message to %s: %s", record.destination, failure.reason)
            return failure
        except Exception as exc:
            logger.exception("Failed to send message to %s", record.destination)
            return SendFailure(record.id, repr(exc))

        if not ok:
            failure = SendFailure(record.id, "rejected by transport")
            logger.warning("Failed to send message to %s: %s", record.destination, failure.reason)
            return failure

        logger.info("Message sent to %s (%s): %d chars", record.destination, address, len(record.body))
        return None
