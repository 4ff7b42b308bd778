"""ScheduleStore — atomic JSON-file persistence for schedule records."""

from __future__ import annotations

import contextlib
import json
import logging
import os
import tempfile
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from src.config import settings
from src.scheduler.errors import StoreCorruptError, StoreIOError
from src.scheduler.models import ScheduleRecord

if TYPE_CHECKING:
    from collections.abc import Iterable

logger = logging.getLogger(__name__)


class ScheduleStore:
    """Persists the whole record list as a single JSON document.

    Every save rewrites the full collection through a temporary file and an
    atomic rename, so a reader never sees a half-written file.  Pass an
    explicit *path* for test isolation (e.g. ``tmp_path / "schedules.json"``).
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = Path(path or settings.schedules_path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> list[ScheduleRecord]:
        """Read every record. A missing file is an empty schedule."""
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        except OSError as exc:
            msg = f"Cannot read {self._path}: {exc}"
            raise StoreIOError(msg) from exc

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            msg = f"{self._path} is not valid JSON: {exc}"
            raise StoreCorruptError(msg) from exc

        if not isinstance(data, list):
            msg = f"{self._path} must hold a JSON list, got {type(data).__name__}"
            raise StoreCorruptError(msg)

        records: list[ScheduleRecord] = []
        for index, item in enumerate(data):
            try:
                records.append(ScheduleRecord.from_dict(item))
            except (KeyError, TypeError, ValueError, AttributeError) as exc:
                msg = f"{self._path}: record #{index} is unreadable: {exc!r}"
                raise StoreCorruptError(msg) from exc
        return records

    def save(self, records: Iterable[ScheduleRecord]) -> None:
        """Replace the persisted collection with *records*."""
        payload = json.dumps([r.to_dict() for r in records], indent=2)
        tmp_name: str | None = None
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, self._path)
        except OSError as exc:
            if tmp_name is not None:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)
            msg = f"Cannot write {self._path}: {exc}"
            raise StoreIOError(msg) from exc

    def quarantine(self) -> Path | None:
        """Move an unreadable file aside so the next save does not destroy it."""
        if not self._path.exists():
            return None
        stamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")
        target = self._path.with_name(f"{self._path.name}.corrupt-{stamp}")
        try:
            os.replace(self._path, target)
        except OSError:
            logger.exception("Could not move corrupt schedule file %s aside", self._path)
            return None
        logger.warning("Moved corrupt schedule file to %s", target)
        return target
