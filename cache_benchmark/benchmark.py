# cache_benchmark/benchmark.py

import json
import random
import threading
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

import simpy

from cache_benchmark.backends.base import CacheBackend
from cache_benchmark.backends.factory import build_backend
from cache_benchmark.backing_store import BackingStore
from cache_benchmark.config import Settings
from cache_benchmark.dataset import generate_dataset
from cache_benchmark.logger import get_logger
from cache_benchmark.metrics import MetricsCollector
from cache_benchmark.scenario import ScenarioRunner

logger = get_logger(__name__)


def make_environment(realtime_factor: Optional[float] = None) -> simpy.Environment:
    """Без factor симуляция идёт «как можно быстрее», иначе привязана к часам."""
    if realtime_factor is None:
        return simpy.Environment()
    return simpy.RealtimeEnvironment(factor=realtime_factor, strict=False)


class Benchmark:
    """
    Фасад бенчмарка: строит окружение, по хранилищу на каждый бэкенд,
    сами бэкенды и раунд за раундом гоняет сценарии последовательно,
    бэкенд за бэкендом, на свежем наборе данных.
    """

    def __init__(self, settings: Settings, *, env: Optional[simpy.Environment] = None):
        self.cfg = settings
        self.env = env or make_environment(self.cfg.benchmark.realtime_factor)
        self.metrics = MetricsCollector()

        # фиксируем seed для воспроизводимости
        self.rng = random.Random(self.cfg.benchmark.random_seed)
        self._stop = threading.Event()
        self.rounds_completed = 0

        # 1) Хранилища и бэкенды, у каждого бэкенда своё хранилище
        store_cfg = self.cfg.backing_store
        self.stores: Dict[str, BackingStore] = {}
        self.backends: Dict[str, CacheBackend] = {}
        for name in self.cfg.backends.enabled:
            store = BackingStore(
                self.env,
                name=f"{name}.store",
                min_latency=store_cfg.min_latency,
                max_latency=store_cfg.max_latency,
                failure_latency=store_cfg.failure_latency,
                tick_interval=store_cfg.tick_interval,
                onset_probability=store_cfg.onset_probability,
                recovery_probability=store_cfg.recovery_probability,
                failure_injection=store_cfg.failure_injection,
                rng=random.Random(self.rng.getrandbits(64)),
                metrics=self.metrics,
            )
            self.stores[name] = store
            self.backends[name] = build_backend(name, self.env, store, self.cfg.backends)

        logger.info(f"[Benchmark] backends: {', '.join(self.backends) or 'none'}")

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def stop(self) -> None:
        """Потокобезопасная остановка: сценарий завершится на ближайшей проверке бюджета."""
        self._stop.set()

    # ------------------------------------------------------------------ #
    def _rounds(self):
        bcfg = self.cfg.benchmark
        if not self.backends:
            logger.warning("[Benchmark] no backends enabled, nothing to run")
            return
        while not self.stopped and (bcfg.rounds is None or self.rounds_completed < bcfg.rounds):
            dataset = generate_dataset(bcfg.dataset_size, self.rng)
            logger.info(f"t={self.env.now:.2f}: round {self.rounds_completed + 1} on {len(dataset)} keys")

            for name, backend in self.backends.items():
                if self.stopped:
                    break
                if bcfg.reset_metrics_each_round:
                    self.metrics.reset(name)
                runner = ScenarioRunner(
                    self.env,
                    backend,
                    self.metrics,
                    name=name,
                    duration=bcfg.duration,
                    iterations=bcfg.iterations,
                    rng=random.Random(self.rng.getrandbits(64)),
                    stop_event=self._stop,
                )
                yield runner.run(dataset)

            self.rounds_completed += 1
            yield from self._pause(bcfg.round_pause)

    def _pause(self, seconds: float):
        # ждём кусками, чтобы stop() не висел на длинной паузе
        waited = 0.0
        while waited < seconds and not self.stopped:
            step = min(1.0, seconds - waited)
            yield self.env.timeout(step)
            waited += step

    def run(self) -> dict:
        logger.info(f"=== Benchmark start: rounds={self.cfg.benchmark.rounds} ===")
        main = self.env.process(self._rounds())
        self.env.run(until=main)
        self.close()

        payload = {
            "settings": self.cfg.model_dump(by_alias=True),
            "metrics": self.metrics.summary(),
            "backends": self.backend_stats(),
        }
        if self.cfg.output and self.cfg.output.path:
            self.export(payload, self.cfg.output.path)
        logger.info(f"=== Benchmark finished at t={self.env.now:.2f} ===")
        return payload

    def close(self) -> None:
        """Останавливает фоновые процессы отказов и дожидается их завершения."""
        for store in self.stores.values():
            store.stop()
        self.env.run()

    def backend_stats(self) -> Dict[str, dict]:
        return {name: backend.stats() for name, backend in self.backends.items()}

    def store_states(self) -> List[str]:
        return [f"{name}: {'FAILING' if s.is_failing else 'normal'}" for name, s in self.stores.items()]

    @staticmethod
    def export(payload: dict, path: str) -> Path:
        fn = Path(path).with_suffix("")
        fn = fn.with_name(f"{fn.stem}_{datetime.now():%Y%m%d_%H%M%S}.json")
        fn.parent.mkdir(parents=True, exist_ok=True)
        with open(fn, "w", encoding="utf-8") as out:
            json.dump(payload, out, indent=2, ensure_ascii=False)
        logger.info(f"[Benchmark] Metrics exported to {fn}")
        return fn
