"""In-memory store of customer booking flows."""

from __future__ import annotations

import threading
import time
import uuid
from typing import Callable, Optional, TypeVar

from .flow import BookingFlow

T = TypeVar("T")


class FlowStore:
    """Thread-safe map of flow id -> `BookingFlow` with idle expiry.

    Flows untouched for `ttl_seconds` are dropped; when more than
    `max_flows` are held the least recently used ones are evicted.
    """

    def __init__(self, max_flows: int = 1000, ttl_seconds: int = 2 * 3600,
                 clock: Callable[[], float] = time.monotonic):
        self._flows: dict[str, BookingFlow] = {}
        self._touched: dict[str, float] = {}
        self._lock = threading.Lock()
        self._max_flows = max_flows
        self._ttl_seconds = ttl_seconds
        self._clock = clock

    def create(self) -> tuple[str, BookingFlow]:
        self._cleanup()
        flow_id = uuid.uuid4().hex
        flow = BookingFlow()
        with self._lock:
            self._flows[flow_id] = flow
            self._touched[flow_id] = self._clock()
            if len(self._flows) > self._max_flows:
                oldest = sorted(self._touched, key=self._touched.get)
                for old in oldest[: len(self._flows) - self._max_flows]:
                    self._flows.pop(old, None)
                    self._touched.pop(old, None)
        return flow_id, flow

    def get(self, flow_id: str) -> Optional[BookingFlow]:
        self._cleanup()
        with self._lock:
            flow = self._flows.get(flow_id)
            if flow is not None:
                self._touched[flow_id] = self._clock()
            return flow

    def update(self, flow_id: str, fn: Callable[[BookingFlow], T]) -> T:
        """Run `fn` on the flow while holding the store lock.

        Raises KeyError when the flow is unknown or expired.
        """
        self._cleanup()
        with self._lock:
            flow = self._flows.get(flow_id)
            if flow is None:
                raise KeyError(flow_id)
            self._touched[flow_id] = self._clock()
            return fn(flow)

    def __len__(self) -> int:
        with self._lock:
            return len(self._flows)

    def _cleanup(self) -> None:
        cutoff = self._clock() - self._ttl_seconds
        with self._lock:
            expired = [fid for fid, ts in self._touched.items() if ts < cutoff]
            for fid in expired:
                self._flows.pop(fid, None)
                self._touched.pop(fid, None)
