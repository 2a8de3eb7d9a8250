# cache_benchmark/backends/base.py

from abc import ABC, abstractmethod
from typing import Any, Dict

import simpy

# задержка попадания по умолчанию, сим-секунды; должна быть > 0,
# иначе сценарий с бюджетом по времени не сдвигает часы
DEFAULT_HIT_LATENCY = 0.0001


class CacheBackend(ABC):
    """
    Базовый абстрактный класс кеш-бэкенда поверх BackingStore.
    Состояния не хранит: контейнер, хранилище и флаг у каждого варианта свои.

    Флаг last_read_was_cache_hit не реентерабелен: у экземпляра
    один вызывающий процесс, флаг читается сразу после завершения get.
    """

    NAME: str = ""

    @abstractmethod
    def init(self, dataset: Dict[str, Any]) -> None:
        """
        Очищает кеш и передаёт dataset в хранилище.

        :param dataset: новое содержимое хранилища (пустой dict — просто сброс)
        """
        ...

    @abstractmethod
    def get(self, key: str) -> simpy.Process:
        """
        Чтение через кеш. Возвращает процесс SimPy со значением.
        HIT — значение из кеша; MISS — запрос в хранилище и вставка в кеш.
        TransientUnavailable хранилища пробрасывается без изменений, кеш при этом
        не меняется.

        :param key: ключ из набора данных
        """
        ...

    @abstractmethod
    def count(self) -> int:
        """Число записей в кеше на текущий момент."""
        ...

    @property
    @abstractmethod
    def last_read_was_cache_hit(self) -> bool:
        """True, если последний завершённый get обслужен из кеша."""
        ...

    def stats(self) -> Dict[str, Any]:
        """Внутренняя статистика кеша для сводки; по умолчанию только размер."""
        return {"size": self.count()}
