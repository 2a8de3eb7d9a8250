from pathlib import Path

import pytest
from pydantic import ValidationError

from cache_benchmark.config import Settings

DEFAULT_CONFIG = Path(__file__).resolve().parent.parent / "config" / "default.yaml"


def test_load_default_config():
    settings = Settings.load(str(DEFAULT_CONFIG))

    assert settings.benchmark.dataset_size == 5000
    assert settings.backing_store.onset_probability == 0.01
    assert settings.backing_store.recovery_probability == 0.2
    assert settings.backing_store.failure_latency == 5.0
    assert settings.backends.enabled == ["hashmap", "bounded", "second_level"]
    assert settings.backends.bounded.max_size is None
    assert settings.logging.file is not None
    assert settings.logging.console.fmt.startswith("%(asctime)s")


def test_partial_config_uses_defaults(tmp_path):
    cfg = tmp_path / "small.yaml"
    cfg.write_text("benchmark:\n  iterations: 10\n  duration: null\n", encoding="utf-8")

    settings = Settings.load(str(cfg))
    assert settings.benchmark.iterations == 10
    assert settings.benchmark.duration is None
    assert settings.backing_store.tick_interval == 1.0
    assert settings.logging.file is None
    assert settings.output is None


def test_config_path_from_environment(tmp_path, monkeypatch):
    cfg = tmp_path / "env.yaml"
    cfg.write_text("benchmark:\n  random_seed: 7\n", encoding="utf-8")
    monkeypatch.setenv("CONFIG_PATH", str(cfg))

    assert Settings.load().benchmark.random_seed == 7


@pytest.mark.parametrize("data", [
    {"benchmark": {"duration": None, "iterations": None}},
    {"benchmark": {"iterations": 0}},
    {"backing_store": {"min_latency": 0.5, "max_latency": 0.1}},
    {"backing_store": {"onset_probability": 1.5}},
    {"backends": {"enabled": ["memcached"]}},
    {"backends": {"hit_latency": 0}},
])
def test_invalid_values_rejected(data):
    with pytest.raises(ValidationError):
        Settings.model_validate(data)
