from __future__ import annotations

import asyncio
import logging

from services.change_feed import DateChange, Subscription
from services.store_backends import CheckedDayBackend, LoadFailure, WriteFailure

logger = logging.getLogger(__name__)


class CheckedDayStore:
    """In-memory CheckedMap kept in step with a persistence backend.

    Toggles are applied optimistically and written through in the background;
    the in-memory map stays authoritative when a write fails. Change-feed
    notifications overwrite entries unconditionally (last writer wins).

    All mutating methods must run on the event loop that called ``start``.
    """

    def __init__(self, backend: CheckedDayBackend):
        self.backend = backend
        self._checked: dict[str, bool] = {}
        self._pending: set[asyncio.Task] = set()
        self._write_lock: asyncio.Lock | None = None
        self._subscription: Subscription | None = None
        self._started = False

    @property
    def subscribed(self) -> bool:
        return self._subscription is not None and not self._subscription.closed

    @property
    def clean_days(self) -> int:
        return sum(1 for value in self._checked.values() if value)

    def is_checked(self, key: str) -> bool:
        return bool(self._checked.get(key, False))

    def snapshot(self) -> dict[str, bool]:
        return dict(self._checked)

    async def load(self) -> dict[str, bool]:
        try:
            loaded = await asyncio.to_thread(self.backend.fetch_all)
        except LoadFailure as e:
            logger.warning(f"Checked-day load failed, starting empty: {e}")
            loaded = {}
        self._checked = dict(loaded)
        return self.snapshot()

    async def start(self) -> None:
        if self._started:
            return
        self._started = True
        await self.load()
        if self.backend.supports_sync:
            self._subscription = self.backend.subscribe(
                self.apply_remote_change,
                loop=asyncio.get_running_loop(),
            )

    async def stop(self) -> None:
        if not self._started:
            return
        self._started = False
        await self.flush()
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None

    def toggle(self, key: str) -> bool:
        value = not self._checked.get(key, False)
        self._checked[key] = value
        task = asyncio.get_running_loop().create_task(self._persist(key, value))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return value

    async def _persist(self, key: str, value: bool) -> None:
        if self._write_lock is None:
            self._write_lock = asyncio.Lock()
        async with self._write_lock:
            try:
                await asyncio.to_thread(self.backend.persist, key, value, self.snapshot())
            except WriteFailure as e:
                logger.warning(f"Checked-day write failed for {key}: {e}")

    async def flush(self) -> None:
        while self._pending:
            await asyncio.gather(*list(self._pending))

    def apply_remote_change(self, change: DateChange) -> None:
        self._checked[change.date] = bool(change.checked)
