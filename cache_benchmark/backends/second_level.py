# cache_benchmark/backends/second_level.py

from typing import Any, Dict

import simpy

from cache_benchmark.backends.base import DEFAULT_HIT_LATENCY, CacheBackend
from cache_benchmark.backing_store import BackingStore
from cache_benchmark.exceptions import CacheInconsistency
from cache_benchmark.logger import get_logger

logger = get_logger(__name__)


class SecondLevelCacheBackend(CacheBackend):
    """
    Обёртка над внешним кешем (get/put/remove_all/size), у которого свои
    правила вытеснения и истечения (см. ExpiringStore).

    Внешний кеш не сообщает о попадании, поэтому флаг выводится по ответу:
    None из cache.get считается промахом. Закешированное значение None от
    отсутствия не отличить, такой ключ каждый раз идёт в хранилище и
    засчитывается как промах. Это известная неточность флага у этого варианта.
    """

    NAME = "second_level"

    def __init__(
            self,
            env: simpy.Environment,
            store: BackingStore,
            cache,
            *,
            hit_latency: float = DEFAULT_HIT_LATENCY,
    ):
        if hit_latency <= 0:
            raise ValueError("hit_latency must be positive")
        self.env = env
        self.store = store
        self.cache = cache
        self.hit_latency = hit_latency
        self._last_hit = False

    @property
    def last_read_was_cache_hit(self) -> bool:
        return self._last_hit

    def count(self) -> int:
        return self.cache.size()

    def stats(self) -> Dict[str, Any]:
        stats = getattr(self.cache, "stats", None)
        return stats() if stats is not None else super().stats()

    def init(self, dataset: Dict[str, Any]) -> None:
        self.cache.remove_all()
        self.store.init(dataset)

    def get(self, key: str) -> simpy.Process:
        return self.env.process(self._get_proc(key))

    def _get_proc(self, key: str):
        value = self.cache.get(key)
        if value is not None:
            self._last_hit = True
            yield self.env.timeout(self.hit_latency)
            return value

        self._last_hit = False
        value = yield self.store.request(key)
        try:
            self.cache.put(key, value)
        except Exception as exc:
            self._discard(key)
            raise CacheInconsistency(f"insert of key={key!r} did not complete") from exc
        return value

    def _discard(self, key: str) -> None:
        # точечное удаление в контракт коллаборатора не входит
        remove = getattr(self.cache, "remove", None)
        if remove is not None:
            remove(key)
