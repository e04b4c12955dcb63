"""In-memory LRU cache for decoded suggestion responses."""

import logging
import threading
from collections import OrderedDict
from typing import Iterable, Optional, Tuple

from listing_form.models import Place

logger = logging.getLogger(__name__)


class ResponseCache:
    """Query -> places store bounded to ``capacity`` entries.

    Keys are the exact query strings handed to the controller; nothing is
    normalised here. Safe to share between form instances.
    """

    def __init__(self, capacity: int = 128) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._entries: "OrderedDict[str, Tuple[Place, ...]]" = OrderedDict()
        self._capacity = capacity
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._capacity

    def get(self, key: str) -> Optional[Tuple[Place, ...]]:
        with self._lock:
            places = self._entries.get(key)
            if places is None:
                return None
            self._entries.move_to_end(key)
            return places

    def put(self, key: str, places: Iterable[Place]) -> None:
        with self._lock:
            self._entries[key] = tuple(places)
            self._entries.move_to_end(key)
            while len(self._entries) > self._capacity:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted cached suggestions for query=%r", evicted)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
