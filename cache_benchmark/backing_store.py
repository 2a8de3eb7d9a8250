# cache_benchmark/backing_store.py

import random
import threading
from typing import Any, Dict, Optional

import simpy

from cache_benchmark.exceptions import TransientUnavailable
from cache_benchmark.logger import get_logger
from cache_benchmark.metrics import MetricsCollector

logger = get_logger(__name__)


class BackingStore:
    """
    Медленное внешнее хранилище с кратковременными отказами.

    Режим Normal/Failing переключает фоновый процесс `_failure_loop`:
    каждые tick_interval сим-секунд один бросок монеты:
    в Normal с вероятностью onset_probability уходим в Failing,
    в Failing с вероятностью recovery_probability возвращаемся.
    Цепь Маркова без памяти: редкие отказы, быстрое восстановление.

    В режиме Failing каждый запрос ждёт failure_latency и падает
    с TransientUnavailable (таймаут, затем ошибка).
    """

    def __init__(
            self,
            env: simpy.Environment,
            *,
            name: str = "store",
            min_latency: float = 0.008,
            max_latency: float = 0.010,
            failure_latency: float = 5.0,
            tick_interval: float = 1.0,
            onset_probability: float = 0.01,
            recovery_probability: float = 0.2,
            failure_injection: bool = True,
            rng: Optional[random.Random] = None,
            metrics: Optional[MetricsCollector] = None,
    ):
        if min_latency <= 0 or max_latency < min_latency:
            raise ValueError("latencies must satisfy 0 < min_latency <= max_latency")
        if failure_latency < 0:
            raise ValueError("failure_latency must be non-negative")
        if tick_interval <= 0:
            raise ValueError("tick_interval must be positive")
        for p in (onset_probability, recovery_probability):
            if not (0.0 <= p <= 1.0):
                raise ValueError("probabilities must be within [0, 1]")

        self.env = env
        self.name = name
        self.min_latency = min_latency
        self.max_latency = max_latency
        self.failure_latency = failure_latency
        self.tick_interval = tick_interval
        self.onset_probability = onset_probability
        self.recovery_probability = recovery_probability
        self.rng = rng or random.Random()
        self.metrics = metrics

        self._data: Dict[str, Any] = {}
        # пишет только toggler; читают get и поток консоли
        self._failing = threading.Event()

        # статистика тиков
        self.ticks = 0
        self.failing_ticks = 0
        self.outages = 0

        self._toggler: Optional[simpy.Process] = None
        if failure_injection:
            self._toggler = env.process(self._failure_loop())

    # ------------------------------------------------------------------ #
    @property
    def is_failing(self) -> bool:
        return self._failing.is_set()

    @property
    def failing_fraction(self) -> float:
        """Доля тиков, проведённых в режиме Failing."""
        return self.failing_ticks / self.ticks if self.ticks else 0.0

    def __len__(self) -> int:
        return len(self._data)

    def init(self, dataset: Dict[str, Any]) -> None:
        """Полностью заменяет содержимое хранилища."""
        self._data.clear()
        self._data.update(dataset)

    def request(self, key: str) -> simpy.Process:
        """
        Запрос значения по ключу. Возвращает процесс SimPy, значение которого:
        данные или None, если ключа нет. В режиме Failing процесс падает с
        TransientUnavailable после failure_latency.
        """
        return self.env.process(self._request_proc(key))

    get = request

    def _request_proc(self, key: str):
        # режим читаем один раз: весь вызов либо быстрый и успешный, либо долгий и ошибочный
        if self._failing.is_set():
            yield self.env.timeout(self.failure_latency)
            logger.debug(f"t={self.env.now:.3f}: {self.name} failed key={key}")
            raise TransientUnavailable("Lost connection to backing store during query")

        yield self.env.timeout(self.rng.uniform(self.min_latency, self.max_latency))
        return self._data.get(key)

    # ------------------------------------------------------------------ #
    #   Режим отказов                                                     #
    # ------------------------------------------------------------------ #
    def tick(self) -> bool:
        """Один шаг цепи Маркова. Возвращает режим после шага (True — Failing)."""
        draw = self.rng.random()
        if self._failing.is_set():
            if draw < self.recovery_probability:
                self._set_failing(False)
        elif draw < self.onset_probability:
            self._set_failing(True)

        failing = self._failing.is_set()
        self.ticks += 1
        if failing:
            self.failing_ticks += 1
        return failing

    def force_failing(self, failing: bool) -> None:
        """Принудительно выставить режим (для тестов и отладки)."""
        if failing != self._failing.is_set():
            self._set_failing(failing)

    def _set_failing(self, failing: bool) -> None:
        if failing:
            self._failing.set()
            self.outages += 1
            logger.warning(f"t={self.env.now:.2f}: {self.name} entered failing mode")
        else:
            self._failing.clear()
            logger.info(f"t={self.env.now:.2f}: {self.name} recovered")
        if self.metrics:
            self.metrics.record_store_transition(self.name, self.env.now, failing)

    def _failure_loop(self):
        while True:
            try:
                yield self.env.timeout(self.tick_interval)
            except simpy.Interrupt:
                logger.debug(f"{self.name}: failure toggler stopped")
                return
            self.tick()

    def stop(self) -> None:
        """Останавливает фоновый процесс отказов. Повторный вызов ничего не делает."""
        if self._toggler is not None and self._toggler.is_alive:
            self._toggler.interrupt()
        self._toggler = None
