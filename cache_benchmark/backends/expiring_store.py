# cache_benchmark/backends/expiring_store.py

from collections import OrderedDict
from typing import Any, Callable, Dict, Optional, Tuple


class ExpiringStore:
    """
    Самостоятельный кеш второго уровня со своей политикой вытеснения:
    ограничение max_entries (LRU) и время жизни записи time_to_live.

    Интерфейс узкий (get/put/remove_all/size), признака
    попадания наружу не отдаёт, get возвращает None для отсутствующих
    и просроченных записей.

    :param clock: источник текущего времени (обычно lambda: env.now)
    """

    def __init__(
            self,
            clock: Callable[[], float],
            *,
            max_entries: Optional[int] = 10_000,
            time_to_live: Optional[float] = 120.0,
    ):
        if max_entries is not None and max_entries <= 0:
            raise ValueError("max_entries must be positive")
        if time_to_live is not None and time_to_live <= 0:
            raise ValueError("time_to_live must be positive")
        self._clock = clock
        self.max_entries = max_entries
        self.time_to_live = time_to_live
        # key -> (value, expires_at), порядок LRU
        self._items: "OrderedDict[str, Tuple[Any, Optional[float]]]" = OrderedDict()
        # key -> expires_at в порядке вставки; TTL общий, поэтому сроки не убывают
        self._deadlines: "OrderedDict[str, float]" = OrderedDict()

        self.hits = 0
        self.misses = 0
        self.evictions = 0
        self.expirations = 0

    def get(self, key: str) -> Any:
        item = self._items.get(key)
        if item is None:
            self.misses += 1
            return None
        value, expires_at = item
        if expires_at is not None and self._clock() >= expires_at:
            self.remove(key)
            self.expirations += 1
            self.misses += 1
            return None
        self._items.move_to_end(key)
        self.hits += 1
        return value

    def put(self, key: str, value: Any) -> None:
        self._purge_expired()
        expires_at = self._clock() + self.time_to_live if self.time_to_live is not None else None
        self._items[key] = (value, expires_at)
        self._items.move_to_end(key)
        if expires_at is not None:
            self._deadlines.pop(key, None)
            self._deadlines[key] = expires_at
        while self.max_entries is not None and len(self._items) > self.max_entries:
            evicted, _ = self._items.popitem(last=False)
            self._deadlines.pop(evicted, None)
            self.evictions += 1

    def remove_all(self) -> None:
        self._items.clear()
        self._deadlines.clear()

    def size(self) -> int:
        self._purge_expired()
        return len(self._items)

    def _purge_expired(self) -> None:
        # просроченные записи всегда в голове очереди сроков
        now = self._clock()
        while self._deadlines:
            key, expires_at = next(iter(self._deadlines.items()))
            if now < expires_at:
                break
            self.remove(key)
            self.expirations += 1

    def stats(self) -> Dict[str, Any]:
        total = self.hits + self.misses
        return {
            "hits": self.hits,
            "misses": self.misses,
            "hit_rate": self.hits / total if total else 0.0,
            "evictions": self.evictions,
            "expirations": self.expirations,
            "items": len(self._items),
            "max_entries": self.max_entries,
            "time_to_live": self.time_to_live,
        }

    def remove(self, key: str) -> None:
        self._items.pop(key, None)
        self._deadlines.pop(key, None)
