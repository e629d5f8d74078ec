from __future__ import annotations
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

# Key namespaces
ODDS = "odds"
PROPS = "props"
ALTERNATE = "alternate"
PERIODS = "periods"


class TTLCache:
    """Very small, process-local TTL cache. Constructed once and injected where needed."""
    def __init__(self, default_ttl: float = 30.0, max_items: int = 500,
                 clock: Callable[[], float] = time.time):
        self._ttl = default_ttl
        self._max = max_items
        self._clock = clock
        self._store: Dict[str, Tuple[float, Any]] = {}
        self._lock = threading.Lock()

    @staticmethod
    def key(namespace: str, *parts: Any) -> str:
        return ":".join([namespace, *(str(p) for p in parts)])

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            item = self._store.get(key)
            if not item:
                return None
            exp, val = item
            if exp < self._clock():
                self._store.pop(key, None)
                return None
            return val

    def set(self, key: str, value: Any, ttl: Optional[float] = None) -> None:
        with self._lock:
            if key not in self._store and len(self._store) >= self._max:
                # drop the entry closest to expiry
                oldest = min(self._store.items(), key=lambda p: p[1][0])[0]
                self._store.pop(oldest, None)
            self._store[key] = (self._clock() + (ttl or self._ttl), value)

    def delete(self, key: str) -> None:
        with self._lock:
            self._store.pop(key, None)

    def clear(self) -> int:
        with self._lock:
            n = len(self._store)
            self._store.clear()
            return n

    def __len__(self) -> int:
        return len(self._store)
