"""
Pydantic-конфиг бенчмарка кеш-бэкендов.
"""

import os
from typing import List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, model_validator

BackendName = Literal["hashmap", "bounded", "second_level"]


# ---------- логирование ----------
class FileLogConfig(BaseModel):
    path: str
    max_bytes: int = 10_485_760
    backup_count: int = 3
    level: str = "DEBUG"
    fmt: str = Field("%(asctime)s %(levelname)s %(name)s: %(message)s", alias="format")


class ConsoleLogConfig(BaseModel):
    level: str = "INFO"
    fmt: str = Field("%(asctime)s %(levelname)s %(message)s", alias="format")


class LoggingConfig(BaseModel):
    console: ConsoleLogConfig = Field(default_factory=ConsoleLogConfig)
    file: Optional[FileLogConfig] = None
    date_format: str = "%Y-%m-%d %H:%M:%S"


# ---------- бенчмарк ----------
class BenchmarkConfig(BaseModel):
    random_seed: int = 42
    dataset_size: int = Field(5000, ge=0)
    duration: Optional[float] = Field(40.0, gt=0)  # сим-секунды на один сценарий
    iterations: Optional[int] = Field(None, gt=0)
    rounds: Optional[int] = Field(1, gt=0)  # None — до остановки
    round_pause: float = Field(0.0, ge=0)
    reset_metrics_each_round: bool = False  # счётчики сценария живут один раунд
    realtime_factor: Optional[float] = Field(None, gt=0)  # None — без привязки к часам

    @model_validator(mode="after")
    def _check_budget(self) -> "BenchmarkConfig":
        if self.duration is None and self.iterations is None:
            raise ValueError("either benchmark.duration or benchmark.iterations must be set")
        return self


# ---------- хранилище ----------
class BackingStoreConfig(BaseModel):
    min_latency: float = Field(0.008, gt=0)
    max_latency: float = Field(0.010, gt=0)
    failure_latency: float = Field(5.0, ge=0)
    tick_interval: float = Field(1.0, gt=0)
    onset_probability: float = Field(0.01, ge=0, le=1)
    recovery_probability: float = Field(0.2, ge=0, le=1)
    failure_injection: bool = True

    @model_validator(mode="after")
    def _check_latency_range(self) -> "BackingStoreConfig":
        if self.min_latency > self.max_latency:
            raise ValueError("backing_store.min_latency must not exceed max_latency")
        return self


# ---------- бэкенды ----------
class BoundedConfig(BaseModel):
    max_size: Optional[int] = Field(None, gt=0)  # None — без ограничения


class SecondLevelConfig(BaseModel):
    max_entries: Optional[int] = Field(10_000, gt=0)
    time_to_live: Optional[float] = Field(120.0, gt=0)


class BackendsConfig(BaseModel):
    enabled: List[BackendName] = ["hashmap", "bounded", "second_level"]
    hit_latency: float = Field(0.0001, gt=0)
    bounded: BoundedConfig = Field(default_factory=BoundedConfig)
    second_level: SecondLevelConfig = Field(default_factory=SecondLevelConfig)


# ---------- вывод ----------
class OutputConfig(BaseModel):
    path: str


class Settings(BaseModel):
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    benchmark: BenchmarkConfig = Field(default_factory=BenchmarkConfig)
    backing_store: BackingStoreConfig = Field(default_factory=BackingStoreConfig)
    backends: BackendsConfig = Field(default_factory=BackendsConfig)
    output: Optional[OutputConfig] = None

    # загрузка из YAML
    @classmethod
    def load(cls, path: Optional[str] = None) -> "Settings":
        yaml_path = path or os.getenv("CONFIG_PATH", "config/default.yaml")
        with open(yaml_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return cls.model_validate(data)
