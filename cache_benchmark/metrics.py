# cache_benchmark/metrics.py

import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, NamedTuple, Optional

import numpy as np

from cache_benchmark.logger import get_logger

logger = get_logger(__name__)


class Observation(NamedTuple):
    """Результат одного вызова backend.get."""
    latency: float
    hit: bool
    error: bool
    cache_size: int


class ObservationSink(ABC):
    """Приёмник наблюдений сценария. Наблюдения привязаны к имени сценария."""

    @abstractmethod
    def record(self, scenario: str, observation: Observation) -> None:
        ...


class ScenarioMetrics:
    """
    Метрики одного сценария (одного бэкенда).
    Attributes:
        size: последнее значение gauge размера кеша.
        latencies: задержки всех чтений, включая ошибочные.
        error_latencies: задержки чтений, завершившихся TransientUnavailable.
    """

    def __init__(self, name: str):
        self.name = name
        self.size: int = 0
        self.hits: int = 0
        self.misses: int = 0
        self.errors: int = 0
        self.latencies: List[float] = []
        self.error_latencies: List[float] = []

    @property
    def total_reads(self) -> int:
        return self.hits + self.misses

    def add(self, obs: Observation) -> None:
        self.size = obs.cache_size
        self.latencies.append(obs.latency)
        if obs.hit:
            self.hits += 1
        else:
            self.misses += 1
        if obs.error:
            self.errors += 1
            self.error_latencies.append(obs.latency)

    def summary(self) -> Dict[str, Any]:
        total = self.total_reads
        data: Dict[str, Any] = {
            "size": self.size,
            "total_reads": total,
            "hits": self.hits,
            "misses": self.misses,
            "errors": self.errors,
            "hit_rate": self.hits / total if total else 0.0,
            "miss_rate": self.misses / total if total else 0.0,
            "error_rate": self.errors / total if total else 0.0,
            "mean_error_latency": float(np.mean(self.error_latencies)) if self.error_latencies else None,
        }
        if self.latencies:
            lat = np.asarray(self.latencies)
            p50, p95, p99 = np.percentile(lat, [50, 95, 99])
            data.update(
                mean_latency=float(lat.mean()),
                p50_latency=float(p50),
                p95_latency=float(p95),
                p99_latency=float(p99),
                max_latency=float(lat.max()),
            )
        else:
            data.update(mean_latency=None, p50_latency=None, p95_latency=None,
                        p99_latency=None, max_latency=None)
        return data


class MetricsCollector(ObservationSink):
    """
    Сбор метрик бенчмарка.

    * по сценарию — gauge размера, таймер задержек, счётчики hit/miss/error;
    * по хранилищу — журнал переходов Normal ↔ Failing.

    Читается из потока консоли, пока симуляция пишет, поэтому все обращения
    идут под блокировкой.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._scenarios: Dict[str, ScenarioMetrics] = {}
        self.store_transitions: List[Dict[str, Any]] = []

    # ------------------------------------------------------------------ #
    #   Методы‑регистраторы                                              #
    # ------------------------------------------------------------------ #
    def record(self, scenario: str, observation: Observation) -> None:
        with self._lock:
            metrics = self._scenarios.get(scenario)
            if metrics is None:
                metrics = self._scenarios[scenario] = ScenarioMetrics(scenario)
            metrics.add(observation)

    def record_store_transition(self, store: str, time: float, failing: bool) -> None:
        with self._lock:
            self.store_transitions.append({"store": store, "time": time, "failing": failing})

    def reset(self, scenario: Optional[str] = None) -> None:
        """Сбросить метрики одного сценария или все сразу."""
        with self._lock:
            if scenario is None:
                self._scenarios.clear()
                self.store_transitions.clear()
            else:
                self._scenarios.pop(scenario, None)

    # ------------------------------------------------------------------ #
    #   Доступ и сводка                                                  #
    # ------------------------------------------------------------------ #
    def scenarios(self) -> List[str]:
        with self._lock:
            return list(self._scenarios)

    def latencies(self, scenario: str) -> List[float]:
        with self._lock:
            metrics = self._scenarios.get(scenario)
            return list(metrics.latencies) if metrics else []

    def summary(self) -> dict:
        with self._lock:
            outages: Dict[str, int] = {}
            for rec in self.store_transitions:
                outages.setdefault(rec["store"], 0)
                if rec["failing"]:
                    outages[rec["store"]] += 1
            return {
                "scenarios": {name: m.summary() for name, m in self._scenarios.items()},
                "store_outages": outages,
                "store_transitions": list(self.store_transitions),
            }

    def info(self) -> str:
        """Текстовый отчёт для команды «p» консоли."""
        summary = self.summary()
        lines = []
        for name, data in summary["scenarios"].items():
            lines.append(f"{name}.size: value={data['size']}")
            lines.append(
                f"{name}.read: count={data['total_reads']}, "
                f"mean={_fmt(data['mean_latency'])}, p95={_fmt(data['p95_latency'])}, "
                f"max={_fmt(data['max_latency'])}"
            )
            lines.append(f"{name}.cache.read: count={data['hits']}, rate={data['hit_rate']:.3f}")
            lines.append(f"{name}.db.read: count={data['misses']}, rate={data['miss_rate']:.3f}")
            lines.append(
                f"{name}.errors: count={data['errors']}, "
                f"mean={_fmt(data['mean_error_latency'])}"
            )
        for store, count in summary["store_outages"].items():
            lines.append(f"{store}.outages: count={count}")
        return "\n".join(lines) if lines else "no observations yet"


def _fmt(value: Optional[float]) -> str:
    return "n/a" if value is None else f"{value:.6f}"
