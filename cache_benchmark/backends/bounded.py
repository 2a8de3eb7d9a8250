# cache_benchmark/backends/bounded.py

from collections import OrderedDict
from typing import Any, Callable, Dict, Optional

import simpy

from cache_benchmark.backends.base import DEFAULT_HIT_LATENCY, CacheBackend
from cache_benchmark.backing_store import BackingStore
from cache_benchmark.exceptions import CacheInconsistency
from cache_benchmark.logger import get_logger

logger = get_logger(__name__)


class LruLoadingCache:
    """
    LRU-кеш с функцией загрузки.

    На промахе вызывает loader(key) (процесс SimPy) и вставляет результат,
    вытесняя самую давно использованную запись, если задан max_size.
    Без max_size кеш не ограничен.
    """

    def __init__(self, loader: Callable[[str], simpy.Event], max_size: Optional[int] = None):
        if max_size is not None and max_size <= 0:
            raise ValueError("max_size must be positive")
        self._loader = loader
        self.max_size = max_size
        self._entries: "OrderedDict[str, Any]" = OrderedDict()
        self.evictions = 0

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def get_if_present(self, key: str, default: Any = None) -> Any:
        """Значение без загрузки; попадание освежает позицию в LRU."""
        if key not in self._entries:
            return default
        self._entries.move_to_end(key)
        return self._entries[key]

    def load(self, key: str):
        """Генератор: загрузить значение через loader и вставить его."""
        value = yield self._loader(key)
        self.put(key, value)
        return value

    def put(self, key: str, value: Any) -> None:
        self._entries[key] = value
        try:
            self._entries.move_to_end(key)
            while self.max_size is not None and len(self._entries) > self.max_size:
                evicted, _ = self._entries.popitem(last=False)
                self.evictions += 1
                logger.debug(f"LRU evicted key={evicted}")
        except Exception as exc:
            self._entries.pop(key, None)
            raise CacheInconsistency(f"insert of key={key!r} did not complete") from exc

    def invalidate_all(self) -> None:
        self._entries.clear()


class BoundedCacheBackend(CacheBackend):
    """
    Кеш с загрузчиком и LRU-ограничением по размеру
    (по умолчанию без ограничения).
    """

    NAME = "bounded"

    def __init__(
            self,
            env: simpy.Environment,
            store: BackingStore,
            *,
            max_size: Optional[int] = None,
            hit_latency: float = DEFAULT_HIT_LATENCY,
    ):
        if hit_latency <= 0:
            raise ValueError("hit_latency must be positive")
        self.env = env
        self.store = store
        self.hit_latency = hit_latency
        self.cache = LruLoadingCache(store.request, max_size=max_size)
        self._last_hit = False

    @property
    def last_read_was_cache_hit(self) -> bool:
        return self._last_hit

    def count(self) -> int:
        return len(self.cache)

    def stats(self) -> Dict[str, Any]:
        return {"size": self.count(), "max_size": self.cache.max_size, "evictions": self.cache.evictions}

    def init(self, dataset: Dict[str, Any]) -> None:
        self.cache.invalidate_all()
        self.store.init(dataset)

    def get(self, key: str) -> simpy.Process:
        return self.env.process(self._get_proc(key))

    def _get_proc(self, key: str):
        if key in self.cache:
            self._last_hit = True
            yield self.env.timeout(self.hit_latency)
            return self.cache.get_if_present(key)

        self._last_hit = False
        value = yield from self.cache.load(key)
        return value
