"""
Сценарий нагрузки на один кеш-бэкенд.

ScenarioRunner последовательно читает случайные ключи набора данных
(равномерно, с возвращением, так что повторы дают попадания), замеряет задержку
каждого get в сим-времени и отдаёт наблюдения в ObservationSink.

Бюджет — длительность в сим-секундах и/или число итераций; проверяется
перед каждой итерацией, прерывания get на середине нет. Отказ хранилища
(TransientUnavailable) считается одной завершённой, долгой и ошибочной операцией:
она учитывается и цикл продолжается.
"""

from __future__ import annotations

import random
import threading
from typing import Any, Callable, Dict, Optional

import simpy

from cache_benchmark.backends.base import CacheBackend
from cache_benchmark.exceptions import StalledScenario, TransientUnavailable
from cache_benchmark.logger import get_logger
from cache_benchmark.metrics import Observation, ObservationSink

logger = get_logger(__name__)


class ScenarioRunner:
    """
    Parameters
    ----------
    env : simpy.Environment
    backend : CacheBackend
        Бэкенд под нагрузкой; используется только этим сценарием.
    sink : ObservationSink
        Приёмник наблюдений.
    name : str, optional
        Имя сценария для метрик (по умолчанию backend.NAME).
    duration : float, optional
        Бюджет по времени, сим-секунды.
    iterations : int, optional
        Бюджет по числу чтений.
    rng : random.Random, optional
        Источник случайности для выбора индекса ключа.
    key_sampler : Callable[[int], int], optional
        Выбор индекса в [0, n); подменяет rng (детерминированные тесты).
    stop_event : threading.Event, optional
        Внешняя остановка, проверяется вместе с бюджетом.
    """

    # подряд чтений за нулевое время, после которых бюджет по времени считается недостижимым
    STALL_LIMIT = 1000

    def __init__(
            self,
            env: simpy.Environment,
            backend: CacheBackend,
            sink: ObservationSink,
            *,
            name: Optional[str] = None,
            duration: Optional[float] = None,
            iterations: Optional[int] = None,
            rng: Optional[random.Random] = None,
            key_sampler: Optional[Callable[[int], int]] = None,
            stop_event: Optional[threading.Event] = None,
    ):
        if duration is None and iterations is None:
            raise ValueError("Either duration or iterations must be provided")
        if duration is not None and duration <= 0:
            raise ValueError("duration must be positive")
        if iterations is not None and iterations <= 0:
            raise ValueError("iterations must be positive")

        self.env = env
        self.backend = backend
        self.sink = sink
        self.name = name or backend.NAME
        self.duration = duration
        self.iterations = iterations
        self.rng = rng or random.Random()
        self.key_sampler = key_sampler or self.rng.randrange
        self.stop_event = stop_event

        self.hits = 0
        self.misses = 0
        self.errors = 0

    @property
    def completed(self) -> int:
        return self.hits + self.misses

    def run(self, dataset: Dict[str, Any]) -> simpy.Process:
        return self.env.process(self._run(dataset))

    # ------------------------------------------------------------------ #
    def _budget_exhausted(self, started: float) -> bool:
        if self.stop_event is not None and self.stop_event.is_set():
            return True
        if self.iterations is not None and self.completed >= self.iterations:
            return True
        return self.duration is not None and self.env.now - started >= self.duration

    def _run(self, dataset: Dict[str, Any]):
        logger.info(f"t={self.env.now:.2f}: Starting scenario for {self.name}")
        self.backend.init(dataset)
        keys = list(dataset)
        started = self.env.now

        try:
            if not keys:
                logger.warning(f"[{self.name}] empty dataset, nothing to read")
                return

            stalled = 0
            while not self._budget_exhausted(started):
                key = keys[self.key_sampler(len(keys))]
                before = self.env.now
                yield from self._read(key)
                stalled = stalled + 1 if self.env.now == before else 0
                if self.iterations is None and stalled >= self.STALL_LIMIT:
                    raise StalledScenario(
                        f"[{self.name}] {stalled} reads without simulated time progress, "
                        f"duration budget can never be exhausted"
                    )
        finally:
            # сброс кеша, gauge размера уходит в 0
            self.backend.init({})
            logger.info(
                f"t={self.env.now:.2f}: Ending scenario for {self.name}: "
                f"reads={self.completed}, hits={self.hits}, misses={self.misses}, errors={self.errors}"
            )

    def _read(self, key: str):
        start = self.env.now
        error = False
        try:
            yield self.backend.get(key)
        except TransientUnavailable as exc:
            error = True
            self.errors += 1
            logger.debug(f"t={self.env.now:.2f}: [{self.name}] read of {key} failed: {exc}")
        latency = self.env.now - start

        hit = self.backend.last_read_was_cache_hit
        if hit:
            self.hits += 1
        else:
            self.misses += 1

        self.sink.record(self.name, Observation(latency, hit, error, self.backend.count()))
