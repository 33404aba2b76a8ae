"""Short-lived cache in front of carrier tracking lookups.

Entries expire lazily: a stale entry is only noticed, and replaced, when its
code is asked for again. Without ``max_entries`` the cache grows with the
number of distinct tracking codes seen; with it, the least recently used
entry is dropped once the bound is exceeded.
"""

import threading
from collections import OrderedDict
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

import structlog

from storefront.carrier.port import CarrierPort

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class _Entry:
    fetched_at: datetime
    payload: dict


class TrackingCache:
    def __init__(self, carrier: CarrierPort, ttl=timedelta(minutes=5), clock=None, max_entries=None):
        self._carrier = carrier
        self._ttl = ttl
        self._clock = clock or (lambda: datetime.now(UTC))
        self._max_entries = max_entries
        self._lock = threading.Lock()
        self._entries: OrderedDict[str, _Entry] = OrderedDict()

    def __len__(self):
        return len(self._entries)

    def get(self, tracking_code: str) -> dict:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(tracking_code)
            if entry is not None and now - entry.fetched_at < self._ttl:
                self._entries.move_to_end(tracking_code)
                return entry.payload

        # Fetch outside the lock; a concurrent miss on the same code costs one extra lookup
        payload = self._carrier.get_tracking(tracking_code)
        logger.debug("Tracking fetched from carrier", tracking_code=tracking_code)

        with self._lock:
            self._entries[tracking_code] = _Entry(fetched_at=self._clock(), payload=payload)
            self._entries.move_to_end(tracking_code)
            if self._max_entries is not None:
                while len(self._entries) > self._max_entries:
                    self._entries.popitem(last=False)
        return payload

    def invalidate(self, tracking_code: str):
        with self._lock:
            self._entries.pop(tracking_code, None)
