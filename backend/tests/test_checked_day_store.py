from __future__ import annotations

import asyncio
import sys
import threading
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from services.change_feed import ChangeFeed, DateChange  # noqa: E402
from services.checked_day_store import CheckedDayStore  # noqa: E402
from services.store_backends import (  # noqa: E402
    CheckedDayBackend,
    LoadFailure,
    LocalSlotBackend,
    WriteFailure,
)


class _MemoryBackend(CheckedDayBackend):
    name = "memory"

    def __init__(self, rows=None, *, fail_load=False, fail_write=False, feed=None):
        self.rows = dict(rows or {})
        self.fail_load = fail_load
        self.fail_write = fail_write
        self.writes: list[tuple[str, bool]] = []
        self.feed = feed
        self.release = threading.Event()
        self.release.set()

    @property
    def supports_sync(self) -> bool:
        return self.feed is not None

    def fetch_all(self):
        if self.fail_load:
            raise LoadFailure("backend offline")
        return dict(self.rows)

    def persist(self, key, value, snapshot):
        self.release.wait(timeout=5)
        if self.fail_write:
            raise WriteFailure("backend offline")
        self.rows[key] = value
        self.writes.append((key, value))

    def subscribe(self, callback, loop=None):
        if self.feed is None:
            return None
        return self.feed.subscribe(callback, loop=loop)


def test_load_replaces_map_with_persisted_entries():
    store = CheckedDayStore(_MemoryBackend({"2025-05-14": True, "2025-05-15": False}))
    loaded = asyncio.run(store.load())
    assert loaded == {"2025-05-14": True, "2025-05-15": False}
    assert store.is_checked("2025-05-14") is True
    assert store.is_checked("2025-05-15") is False
    assert store.is_checked("2025-05-16") is False
    assert store.clean_days == 1


def test_load_failure_proceeds_with_empty_map():
    store = CheckedDayStore(_MemoryBackend({"2025-05-14": True}, fail_load=True))
    assert asyncio.run(store.load()) == {}
    assert store.clean_days == 0


def test_toggle_flips_absent_true_and_false():
    backend = _MemoryBackend({"2025-05-15": False})
    store = CheckedDayStore(backend)

    async def _run():
        await store.load()
        first = store.toggle("2025-05-14")
        second = store.toggle("2025-05-14")
        third = store.toggle("2025-05-15")
        await store.flush()
        return first, second, third

    assert asyncio.run(_run()) == (True, False, True)
    assert backend.writes == [("2025-05-14", True), ("2025-05-14", False), ("2025-05-15", True)]
    assert backend.rows == {"2025-05-14": False, "2025-05-15": True}


def test_toggle_twice_restores_original_value_and_leaves_other_keys():
    store = CheckedDayStore(_MemoryBackend({"2025-05-14": True, "2025-06-01": True}))

    async def _run():
        await store.load()
        before = store.snapshot()
        store.toggle("2025-05-14")
        store.toggle("2025-05-14")
        await store.flush()
        return before

    before = asyncio.run(_run())
    assert store.snapshot() == before


def test_toggle_is_visible_before_persistence_resolves():
    backend = _MemoryBackend()
    backend.release.clear()
    store = CheckedDayStore(backend)

    async def _run():
        store.toggle("2025-05-20")
        seen = store.is_checked("2025-05-20")
        writes_before = list(backend.writes)
        backend.release.set()
        await store.flush()
        return seen, writes_before

    seen, writes_before = asyncio.run(_run())
    assert seen is True
    assert writes_before == []
    assert backend.writes == [("2025-05-20", True)]


def test_write_failure_keeps_optimistic_value():
    store = CheckedDayStore(_MemoryBackend(fail_write=True))

    async def _run():
        store.toggle("2025-05-20")
        await store.flush()

    asyncio.run(_run())
    assert store.is_checked("2025-05-20") is True
    assert store.clean_days == 1


def test_remote_change_inserts_and_overwrites():
    store = CheckedDayStore(_MemoryBackend({"2025-05-14": True}))
    asyncio.run(store.load())

    store.apply_remote_change(DateChange(date="2025-05-30", checked=True))
    assert store.is_checked("2025-05-30") is True

    store.apply_remote_change(DateChange(date="2025-05-14", checked=False))
    assert store.is_checked("2025-05-14") is False
    assert store.clean_days == 1


def test_clean_days_counts_every_month():
    store = CheckedDayStore(
        _MemoryBackend({"2025-05-14": True, "2025-06-02": True, "2025-07-20": True, "2025-07-21": False})
    )

    async def _run():
        await store.load()
        store.toggle("2026-01-01")
        await store.flush()

    asyncio.run(_run())
    assert store.clean_days == 4


def test_start_subscribes_and_stop_releases_subscription():
    feed = ChangeFeed()
    store = CheckedDayStore(_MemoryBackend(feed=feed))

    async def _run():
        await store.start()
        subscribed = store.subscribed
        count_while_running = feed.subscriber_count
        feed.publish(DateChange(date="2025-05-18", checked=True))
        await asyncio.sleep(0)
        seen = store.is_checked("2025-05-18")
        await store.stop()
        return subscribed, count_while_running, seen

    subscribed, count_while_running, seen = asyncio.run(_run())
    assert subscribed is True
    assert count_while_running == 1
    assert seen is True
    assert feed.subscriber_count == 0
    assert store.subscribed is False


def test_start_without_feed_does_not_subscribe():
    store = CheckedDayStore(_MemoryBackend({"2025-05-14": True}))

    async def _run():
        await store.start()
        await store.start()
        subscribed = store.subscribed
        await store.stop()
        return subscribed

    assert asyncio.run(_run()) is False
    assert store.is_checked("2025-05-14") is True


def test_local_slot_persists_whole_map_and_rehydrates(tmp_path):
    slot = tmp_path / "smoking_dates.json"
    store = CheckedDayStore(LocalSlotBackend(slot))

    async def _run():
        await store.start()
        store.toggle("2025-05-14")
        store.toggle("2025-05-15")
        store.toggle("2025-05-15")
        await store.stop()

    asyncio.run(_run())

    fresh = CheckedDayStore(LocalSlotBackend(slot))
    assert asyncio.run(fresh.load()) == {"2025-05-14": True, "2025-05-15": False}
