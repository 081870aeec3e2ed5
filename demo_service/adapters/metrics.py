from __future__ import annotations

import threading
from typing import Dict

import structlog


logger = structlog.get_logger(__name__)


class _Counter:
    """Monotonic integer guarded by its own lock."""

    __slots__ = ("_lock", "_value")

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value = 0

    def increment(self) -> int:
        with self._lock:
            self._value += 1
            return self._value

    @property
    def value(self) -> int:
        with self._lock:
            return self._value


class RequestMetrics:
    """In-process request counters.

    Holds a process-lifetime total of tracked requests plus one counter per
    endpoint key. Endpoint counters are created lazily on first increment and
    never removed. Values are discarded when the process exits.
    """

    def __init__(self) -> None:
        self._total = _Counter()
        # Only guards insertion of new keys; increments use the per-key lock.
        self._keys_lock = threading.Lock()
        self._endpoints: Dict[str, _Counter] = {}

    def increment_request_count(self) -> int:
        return self._total.increment()

    def get_request_count(self) -> int:
        return self._total.value

    def increment_endpoint_count(self, key: str) -> int:
        counter = self._endpoints.get(key)
        if counter is None:
            with self._keys_lock:
                counter = self._endpoints.get(key)
                if counter is None:
                    counter = _Counter()
                    self._endpoints[key] = counter
                    logger.debug("metrics.endpoint_registered", endpoint=key)
        return counter.increment()

    def get_all_endpoint_counts(self) -> Dict[str, int]:
        """Return a snapshot of every known endpoint key and its count."""
        with self._keys_lock:
            items = list(self._endpoints.items())
        return {key: counter.value for key, counter in items}
