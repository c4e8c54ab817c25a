"""
Bounded automation log with subscriber fan-out.

Entries are kept newest-first and capped; the oldest entry is evicted once the
cap is reached. Subscribers get the current snapshot on subscription and a new
snapshot after every append. One lock guards the buffer and the subscriber
table, and notifications are delivered while it is held, so every subscriber
sees appends in the same order no matter which task or thread appended.
"""
from __future__ import annotations

import itertools
import logging
import threading
from collections import deque
from datetime import datetime, timezone
from typing import Callable, Deque, Dict, List, Optional

from azadi_cms.db.schemas import AutomationLog, LogStatus

logger = logging.getLogger(__name__)

LOG_CAPACITY = 50

Subscriber = Callable[[List[AutomationLog]], None]
Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LogBroadcast:
    def __init__(self, capacity: int = LOG_CAPACITY, clock: Optional[Clock] = None) -> None:
        if capacity < 1:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._clock = clock or _utcnow
        self._entries: Deque[AutomationLog] = deque(maxlen=capacity)
        self._subscribers: Dict[int, Subscriber] = {}
        self._sequence = itertools.count(1)
        self._tokens = itertools.count(1)
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def snapshot(self) -> List[AutomationLog]:
        with self._lock:
            return list(self._entries)

    def append(self, task: str, status: LogStatus, message: str) -> AutomationLog:
        with self._lock:
            now = self._clock()
            entry = AutomationLog(
                id=f"{int(now.timestamp() * 1000)}-{next(self._sequence)}",
                task=task,
                status=LogStatus(status),
                message=message,
                timestamp=now,
            )
            self._entries.appendleft(entry)
            snapshot = list(self._entries)
            for callback in list(self._subscribers.values()):
                self._deliver(callback, snapshot)
        return entry

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback`` and return a function that removes it again."""
        with self._lock:
            token = next(self._tokens)
            self._subscribers[token] = callback
            self._deliver(callback, list(self._entries))

        def unsubscribe() -> None:
            with self._lock:
                self._subscribers.pop(token, None)

        return unsubscribe

    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscribers)

    def serialized_size(self) -> int:
        """Byte size of the buffer as JSON, counted toward storage usage."""
        with self._lock:
            return sum(len(entry.model_dump_json(by_alias=True).encode("utf-8")) for entry in self._entries)

    @staticmethod
    def _deliver(callback: Subscriber, snapshot: List[AutomationLog]) -> None:
        try:
            callback(list(snapshot))
        except Exception:
            # a failing subscriber must not break the append or its siblings
            logger.exception("Automation log subscriber raised; continuing")
