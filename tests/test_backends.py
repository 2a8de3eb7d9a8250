import random

import pytest
import simpy

from cache_benchmark.backends.base import DEFAULT_HIT_LATENCY
from cache_benchmark.backends.bounded import BoundedCacheBackend
from cache_benchmark.backends.expiring_store import ExpiringStore
from cache_benchmark.backends.factory import build_backend
from cache_benchmark.backends.hashmap import HashMapBackend
from cache_benchmark.backends.second_level import SecondLevelCacheBackend
from cache_benchmark.backing_store import BackingStore
from cache_benchmark.config import BackendsConfig
from cache_benchmark.exceptions import CacheInconsistency, TransientUnavailable

DATASET = {"a": 1, "b": 2, "c": 3, "d": 4}
HIT_LATENCY = 0.001
BACKENDS = ["hashmap", "bounded", "second_level"]


def make_store(env):
    return BackingStore(env, min_latency=0.008, max_latency=0.010, failure_latency=5.0,
                        failure_injection=False, rng=random.Random(1))


def make_backend(name, env, store=None):
    cfg = BackendsConfig(hit_latency=HIT_LATENCY)
    return build_backend(name, env, store if store is not None else make_store(env), cfg)


def read(env, backend, key):
    value = env.run(until=backend.get(key))
    return value, backend.last_read_was_cache_hit


@pytest.mark.parametrize("name", BACKENDS)
def test_first_read_misses_then_hits(name):
    env = simpy.Environment()
    backend = make_backend(name, env)
    backend.init(DATASET)

    assert read(env, backend, "a") == (1, False)
    for _ in range(5):
        assert read(env, backend, "a") == (1, True)


@pytest.mark.parametrize("name", BACKENDS)
def test_count_tracks_distinct_keys(name):
    env = simpy.Environment()
    backend = make_backend(name, env)
    backend.init(DATASET)
    assert backend.count() == 0

    for key in ["a", "b", "a", "c", "b"]:
        read(env, backend, key)
    assert backend.count() == 3


@pytest.mark.parametrize("name", BACKENDS)
def test_init_with_empty_dataset_resets_count(name):
    env = simpy.Environment()
    backend = make_backend(name, env)
    backend.init(DATASET)
    for key in DATASET:
        read(env, backend, key)

    backend.init({})
    assert backend.count() == 0


@pytest.mark.parametrize("name", BACKENDS)
def test_hit_is_cheap_and_miss_pays_store_latency(name):
    env = simpy.Environment()
    backend = make_backend(name, env)
    backend.init(DATASET)

    start = env.now
    read(env, backend, "b")
    assert 0.008 <= env.now - start <= 0.010

    start = env.now
    read(env, backend, "b")
    assert env.now - start == pytest.approx(HIT_LATENCY)


@pytest.mark.parametrize("name", BACKENDS)
def test_failed_fetch_leaves_cache_unchanged(name):
    env = simpy.Environment()
    store = make_store(env)
    backend = make_backend(name, env, store)
    backend.init(DATASET)
    read(env, backend, "a")
    store.force_failing(True)

    with pytest.raises(TransientUnavailable):
        env.run(until=backend.get("b"))
    assert backend.last_read_was_cache_hit is False
    assert backend.count() == 1

    # закешированный ключ обслуживается и во время отказа
    assert read(env, backend, "a") == (1, True)


def test_all_backends_return_identical_values():
    env = simpy.Environment()
    backends = [make_backend(name, env) for name in BACKENDS]
    for backend in backends:
        backend.init(DATASET)

    for key in ["a", "c", "a", "d", "missing"]:
        values = {read(env, backend, key)[0] for backend in backends}
        assert len(values) == 1


def test_hashmap_caches_missing_key_as_none():
    env = simpy.Environment()
    backend = HashMapBackend(env, make_store(env), hit_latency=HIT_LATENCY)
    backend.init(DATASET)

    assert read(env, backend, "missing") == (None, False)
    assert read(env, backend, "missing") == (None, True)


def test_bounded_evicts_least_recently_used():
    env = simpy.Environment()
    backend = BoundedCacheBackend(env, make_store(env), max_size=2, hit_latency=HIT_LATENCY)
    backend.init(DATASET)

    read(env, backend, "a")
    read(env, backend, "b")
    read(env, backend, "a")  # a становится самым свежим
    read(env, backend, "c")  # вытесняет b

    assert backend.count() == 2
    assert backend.cache.evictions == 1
    assert read(env, backend, "a") == (1, True)
    assert read(env, backend, "b") == (2, False)


def test_bounded_is_unbounded_by_default():
    env = simpy.Environment()
    backend = BoundedCacheBackend(env, make_store(env), hit_latency=HIT_LATENCY)
    backend.init(DATASET)
    for key in DATASET:
        read(env, backend, key)

    assert backend.count() == len(DATASET)
    assert backend.cache.evictions == 0


def test_second_level_entry_expires():
    env = simpy.Environment()
    cache = ExpiringStore(lambda: env.now, max_entries=None, time_to_live=1.0)
    backend = SecondLevelCacheBackend(env, make_store(env), cache, hit_latency=HIT_LATENCY)
    backend.init(DATASET)

    read(env, backend, "a")
    env.run(until=env.now + 2.0)

    assert backend.count() == 0
    assert read(env, backend, "a") == (1, False)


def test_second_level_cannot_tell_cached_none_from_absence():
    """Признак попадания выводится по None, поэтому None всегда промах."""
    env = simpy.Environment()
    backend = make_backend("second_level", env)
    backend.init({"n": None})

    assert read(env, backend, "n") == (None, False)
    assert read(env, backend, "n") == (None, False)


class BrokenPutCache(ExpiringStore):
    def put(self, key, value):
        super().put(key, value)
        raise MemoryError("disk tier unavailable")


def test_second_level_failed_insert_is_rolled_back():
    env = simpy.Environment()
    cache = BrokenPutCache(lambda: env.now)
    backend = SecondLevelCacheBackend(env, make_store(env), cache, hit_latency=HIT_LATENCY)
    backend.init(DATASET)

    with pytest.raises(CacheInconsistency):
        env.run(until=backend.get("a"))
    assert backend.count() == 0


def test_unknown_backend_name_rejected():
    env = simpy.Environment()
    with pytest.raises(ValueError):
        build_backend("memcached", env, make_store(env), BackendsConfig())


BACKEND_CLASSES = {
    "hashmap": lambda env, store, **kw: HashMapBackend(env, store, **kw),
    "bounded": lambda env, store, **kw: BoundedCacheBackend(env, store, **kw),
    "second_level": lambda env, store, **kw: SecondLevelCacheBackend(
        env, store, ExpiringStore(lambda: env.now), **kw),
}


@pytest.mark.parametrize("name", BACKENDS)
@pytest.mark.parametrize("hit_latency", [0, 0.0, -1])
def test_non_positive_hit_latency_rejected(name, hit_latency):
    env = simpy.Environment()
    with pytest.raises(ValueError):
        BACKEND_CLASSES[name](env, make_store(env), hit_latency=hit_latency)


@pytest.mark.parametrize("name", BACKENDS)
def test_default_hit_takes_simulated_time(name):
    env = simpy.Environment()
    backend = BACKEND_CLASSES[name](env, make_store(env))
    backend.init(DATASET)
    read(env, backend, "a")

    before = env.now
    assert read(env, backend, "a") == (1, True)
    assert env.now - before == pytest.approx(DEFAULT_HIT_LATENCY)
    assert DEFAULT_HIT_LATENCY == BackendsConfig().hit_latency


@pytest.mark.parametrize("name", BACKENDS)
def test_stats_report_current_size(name):
    env = simpy.Environment()
    backend = make_backend(name, env)
    backend.init(DATASET)
    read(env, backend, "a")
    read(env, backend, "b")

    stats = backend.stats()
    assert stats.get("size", stats.get("items")) == 2


def test_bounded_stats_count_evictions():
    env = simpy.Environment()
    backend = BoundedCacheBackend(env, make_store(env), max_size=1, hit_latency=HIT_LATENCY)
    backend.init(DATASET)
    read(env, backend, "a")
    read(env, backend, "b")

    assert backend.stats() == {"size": 1, "max_size": 1, "evictions": 1}
