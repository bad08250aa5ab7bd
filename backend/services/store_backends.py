from __future__ import annotations

import asyncio
import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from db.models import SmokingDate
from services.change_feed import ChangeCallback, ChangeFeed, DateChange, Subscription

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """Base class for persistence failures behind the checked-day store."""


class LoadFailure(StoreError):
    """Raised when the persisted checked-day map cannot be read."""


class WriteFailure(StoreError):
    """Raised when a checked-day write cannot be persisted."""


class CheckedDayBackend(ABC):
    """Persistence medium behind ``CheckedDayStore``."""

    name: str = "base"

    @abstractmethod
    def fetch_all(self) -> dict[str, bool]:
        """Return every persisted entry.

        Raises:
            LoadFailure if the medium cannot be read.
        """
        ...

    @abstractmethod
    def persist(self, key: str, value: bool, snapshot: dict[str, bool]) -> None:
        """Write one mutation.

        Args:
            key: DateKey that changed.
            value: Its new flag.
            snapshot: The whole in-memory map after the mutation.

        Raises:
            WriteFailure if the write did not land.
        """
        ...

    def subscribe(
        self,
        callback: ChangeCallback,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> Subscription | None:
        """Open a change subscription, or return None when the medium has no feed."""
        return None

    @property
    def supports_sync(self) -> bool:
        return False


class RemoteTableBackend(CheckedDayBackend):
    """``smoking_dates`` table with a change feed shared by every writer."""

    name = "remote"

    def __init__(self, session_factory: Callable[[], Session], feed: ChangeFeed):
        self._session_factory = session_factory
        self._feed = feed

    @property
    def supports_sync(self) -> bool:
        return True

    def fetch_all(self) -> dict[str, bool]:
        db = self._session_factory()
        try:
            rows = db.query(SmokingDate.date, SmokingDate.checked).all()
        except SQLAlchemyError as e:
            raise LoadFailure(f"Could not read smoking_dates: {e}") from e
        finally:
            db.close()
        return {str(row.date): bool(row.checked) for row in rows}

    def upsert(self, key: str, checked: bool) -> DateChange:
        """Insert or overwrite the row for ``key`` and broadcast the change."""
        db = self._session_factory()
        try:
            row = db.get(SmokingDate, key)
            if row is None:
                db.add(SmokingDate(date=key, checked=bool(checked)))
            else:
                row.checked = bool(checked)
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            raise WriteFailure(f"Could not upsert smoking_dates[{key}]: {e}") from e
        finally:
            db.close()
        change = DateChange(date=key, checked=bool(checked))
        self._feed.publish(change)
        return change

    def persist(self, key: str, value: bool, snapshot: dict[str, bool]) -> None:
        _ = snapshot
        self.upsert(key, value)

    def subscribe(
        self,
        callback: ChangeCallback,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> Subscription:
        return self._feed.subscribe(callback, loop=loop)


class LocalSlotBackend(CheckedDayBackend):
    """One named JSON slot on disk, rewritten wholesale on every mutation."""

    name = "local"

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def fetch_all(self) -> dict[str, bool]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError) as e:
            raise LoadFailure(f"Could not read slot {self.path}: {e}") from e
        if not isinstance(raw, dict):
            raise LoadFailure(f"Slot {self.path} does not hold a JSON object")
        return {str(k): bool(v) for k, v in raw.items()}

    def persist(self, key: str, value: bool, snapshot: dict[str, bool]) -> None:
        _ = key
        _ = value
        tmp = self.path.with_name(self.path.name + ".tmp")
        with self._lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                tmp.write_text(json.dumps(snapshot, sort_keys=True), encoding="utf-8")
                os.replace(tmp, self.path)
            except OSError as e:
                raise WriteFailure(f"Could not write slot {self.path}: {e}") from e


def build_backend(app_settings, feed: ChangeFeed | None = None) -> CheckedDayBackend:
    """Create the backend selected by ``STORE_BACKEND``."""
    if app_settings.store_backend == "local":
        logger.info("Using local slot backend at %s", app_settings.local_slot_path)
        return LocalSlotBackend(app_settings.local_slot_path)

    from db.database import SessionLocal
    from services.change_feed import change_feed

    logger.info("Using remote table backend")
    return RemoteTableBackend(SessionLocal, feed or change_feed)
