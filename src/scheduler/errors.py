"""Exceptions raised by the scheduling core."""


class ScheduleError(Exception):
    """Base class for all scheduling errors."""


class InvalidInputError(ScheduleError):
    """A create request is missing a field or carries an unparseable time."""


class ScheduleNotFoundError(ScheduleError):
    """No record exists with the requested ID."""

    def __init__(self, record_id: str) -> None:
        super().__init__(f"Schedule not found: {record_id}")
        self.record_id = record_id


class StoreError(ScheduleError):
    """Base class for persistence failures."""


class StoreCorruptError(StoreError):
    """The persisted file exists but cannot be parsed into records."""


class StoreIOError(StoreError):
    """Reading or writing the persisted file failed at the OS level."""


class SendFailure(ScheduleError):
    """The transport rejected a message or did not answer in time."""

    def __init__(self, record_id: str, reason: str) -> None:
        super().__init__(f"Send failed for {record_id}: {reason}")
        self.record_id = record_id
        self.reason = reason
