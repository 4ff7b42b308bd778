"""Delayed message scheduling — models, persistence, dispatch passes and the clock."""

from src.scheduler.engine import SchedulerEngine
from src.scheduler.errors import (
    InvalidInputError,
    ScheduleError,
    ScheduleNotFoundError,
    SendFailure,
    StoreCorruptError,
    StoreError,
    StoreIOError,
)
from src.scheduler.models import ScheduleRecord, ScheduleStatus
from src.scheduler.service import PassResult, ScheduleService
from src.scheduler.store import ScheduleStore

__all__ = [
    "InvalidInputError",
    "PassResult",
    "ScheduleError",
    "ScheduleNotFoundError",
    "ScheduleRecord",
    "ScheduleService",
    "ScheduleStatus",
    "ScheduleStore",
    "SchedulerEngine",
    "SendFailure",
    "StoreCorruptError",
    "StoreError",
    "StoreIOError",
]
