"""Shared test fixtures."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest

from src.scheduler.service import ScheduleService
from src.scheduler.store import ScheduleStore

T0 = datetime(2025, 6, 1, 9, 0, tzinfo=UTC)


class FakeTransport:
    """In-memory MessageTransport that records every send."""

    def __init__(self, *, ready: bool = True, succeed: bool = True) -> None:
        self.sent: list[tuple[str, str]] = []
        self.succeed = succeed
        self.ready = ready

    @property
    def name(self) -> str:
        return "fake"

    async def send(self, address: str, body: str) -> bool:
        self.sent.append((address, body))
        return self.succeed


class FakeClock:
    """Settable clock; ``advance()`` moves it forward."""

    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def store(tmp_path: Path) -> ScheduleStore:
    """Create a ScheduleStore backed by a temp file."""
    return ScheduleStore(path=tmp_path / "schedules.json")


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def service(store: ScheduleStore, transport: FakeTransport, clock: FakeClock) -> ScheduleService:
    return ScheduleService(
        store,
        transport,
        clock=clock,
        retention=timedelta(hours=24),
        send_timeout=1,
        timezone="Asia/Kolkata",
        country_code="91",
        address_suffix="@c.us",
    )
