import time
from typing import Any, Callable, Dict, Hashable, Optional, Tuple


class TTLCache:
    """In-process map of key -> (value, expires_at); expiry checked on every read."""

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[Hashable, Tuple[Any, float]] = {}

    def get(self, key: Hashable) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            self._entries.pop(key, None)
            return None
        return value

    def set(self, key: Hashable, value: Any, ttl_seconds: Optional[float] = None) -> None:
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        self._entries[key] = (value, self._clock() + ttl)
