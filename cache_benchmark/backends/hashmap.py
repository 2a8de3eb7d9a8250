# cache_benchmark/backends/hashmap.py

from typing import Any, Dict

import simpy

from cache_benchmark.backends.base import DEFAULT_HIT_LATENCY, CacheBackend
from cache_benchmark.backing_store import BackingStore
from cache_benchmark.logger import get_logger

logger = get_logger(__name__)


class HashMapBackend(CacheBackend):
    """
    Наивный кеш: обычный dict без вытеснения.
    Каждый промах остаётся в кеше до следующего init.
    """

    NAME = "hashmap"

    def __init__(
            self,
            env: simpy.Environment,
            store: BackingStore,
            *,
            hit_latency: float = DEFAULT_HIT_LATENCY,
    ):
        if hit_latency <= 0:
            raise ValueError("hit_latency must be positive")
        self.env = env
        self.store = store
        self.hit_latency = hit_latency
        self._map: Dict[str, Any] = {}
        self._last_hit = False

    @property
    def last_read_was_cache_hit(self) -> bool:
        return self._last_hit

    def count(self) -> int:
        return len(self._map)

    def init(self, dataset: Dict[str, Any]) -> None:
        self._map.clear()
        self.store.init(dataset)

    def get(self, key: str) -> simpy.Process:
        return self.env.process(self._get_proc(key))

    def _get_proc(self, key: str):
        if key in self._map:
            self._last_hit = True
            yield self.env.timeout(self.hit_latency)
            return self._map[key]

        self._last_hit = False
        value = yield self.store.request(key)
        self._map[key] = value
        logger.debug(f"t={self.env.now:.3f}: {self.NAME} loaded key={key}")
        return value
