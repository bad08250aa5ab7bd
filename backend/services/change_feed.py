from __future__ import annotations

import asyncio
import itertools
import logging
import threading
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DateChange:
    date: str
    checked: bool

    def to_dict(self) -> dict:
        return {"date": self.date, "checked": self.checked}


ChangeCallback = Callable[[DateChange], None]


class Subscription:
    """Handle returned by ``ChangeFeed.subscribe``; closing it stops delivery."""

    def __init__(self, feed: "ChangeFeed", token: int):
        self._feed = feed
        self._token = token
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._feed._remove(self._token)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class ChangeFeed:
    """In-process fan-out of ``DateChange`` events to live subscribers."""

    def __init__(self) -> None:
        self._subscribers: dict[int, tuple[ChangeCallback, asyncio.AbstractEventLoop | None]] = {}
        self._tokens = itertools.count(1)
        self._lock = threading.Lock()

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def subscribe(
        self,
        callback: ChangeCallback,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> Subscription:
        """Register ``callback``.

        When ``loop`` is given the callback runs on that loop, whichever thread
        published the change; otherwise it runs inline in the publisher.
        """
        with self._lock:
            token = next(self._tokens)
            self._subscribers[token] = (callback, loop)
        logger.info("Change feed subscription %s opened", token)
        return Subscription(self, token)

    def publish(self, change: DateChange) -> None:
        with self._lock:
            targets = list(self._subscribers.values())
        for callback, loop in targets:
            if loop is not None:
                if loop.is_closed():
                    continue
                try:
                    loop.call_soon_threadsafe(callback, change)
                except RuntimeError as e:
                    logger.warning(f"Change feed delivery skipped for closed loop: {e}")
                continue
            try:
                callback(change)
            except Exception as e:
                logger.warning(f"Change feed subscriber failed for {change.date}: {e}")

    def _remove(self, token: int) -> None:
        with self._lock:
            self._subscribers.pop(token, None)
        logger.info("Change feed subscription %s closed", token)


change_feed = ChangeFeed()
