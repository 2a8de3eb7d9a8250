# cache_benchmark/backends/factory.py

import simpy

from cache_benchmark.backends.base import CacheBackend
from cache_benchmark.backends.bounded import BoundedCacheBackend
from cache_benchmark.backends.expiring_store import ExpiringStore
from cache_benchmark.backends.hashmap import HashMapBackend
from cache_benchmark.backends.second_level import SecondLevelCacheBackend
from cache_benchmark.backing_store import BackingStore
from cache_benchmark.config import BackendsConfig


def build_backend(name: str, env: simpy.Environment, store: BackingStore, cfg: BackendsConfig) -> CacheBackend:
    if name == HashMapBackend.NAME:
        return HashMapBackend(env, store, hit_latency=cfg.hit_latency)
    if name == BoundedCacheBackend.NAME:
        return BoundedCacheBackend(env, store, max_size=cfg.bounded.max_size, hit_latency=cfg.hit_latency)
    if name == SecondLevelCacheBackend.NAME:
        cache = ExpiringStore(
            lambda: env.now,
            max_entries=cfg.second_level.max_entries,
            time_to_live=cfg.second_level.time_to_live,
        )
        return SecondLevelCacheBackend(env, store, cache, hit_latency=cfg.hit_latency)
    raise ValueError(f"Unknown backend «{name}»")
