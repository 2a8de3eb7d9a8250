import logging
from logging.handlers import RotatingFileHandler
from typing import List, Optional

from cache_benchmark.config import Settings

# хендлеры, поставленные последним вызовом setup_logging
_installed: List[logging.Handler] = []


def setup_logging(settings: Optional[Settings] = None):
    """
    Настройка логгера на основе pydantic-модели Settings.logging.
    Без настроек только консоль с уровнем INFO.
    Повторный вызов заменяет свои хендлеры, а не добавляет новые.
    """
    log_cfg = (settings or Settings()).logging

    console_level = logging.getLevelName(log_cfg.console.level.upper())
    levels = [console_level]

    root = logging.getLogger()
    while _installed:
        handler = _installed.pop()
        root.removeHandler(handler)
        handler.close()

    # консоль
    ch = logging.StreamHandler()
    ch.setLevel(console_level)
    ch.setFormatter(logging.Formatter(log_cfg.console.fmt, datefmt=log_cfg.date_format))
    root.addHandler(ch)
    _installed.append(ch)

    # файл с ротацией (опционально)
    if log_cfg.file is not None:
        file_level = logging.getLevelName(log_cfg.file.level.upper())
        levels.append(file_level)
        fh = RotatingFileHandler(
            filename=log_cfg.file.path,
            maxBytes=log_cfg.file.max_bytes,
            backupCount=log_cfg.file.backup_count,
            encoding="utf-8"
        )
        fh.setLevel(file_level)
        fh.setFormatter(logging.Formatter(log_cfg.file.fmt, datefmt=log_cfg.date_format))
        root.addHandler(fh)
        _installed.append(fh)

    root.setLevel(min(levels))


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
