# cache_benchmark/exceptions.py


class BenchmarkError(RuntimeError):
    """Базовое исключение бенчмарка."""


class TransientUnavailable(BenchmarkError):
    """
    Хранилище находится в режиме отказа: запрос отработал полный таймаут
    и завершился ошибкой. Восстановимо: вызывающая сторона продолжает работу.
    """


class StalledScenario(BenchmarkError):
    """
    Сценарий с бюджетом по времени не сдвигает сим-часы: чтения идут
    за нулевое время, и бюджет никогда не исчерпается.
    """


class CacheInconsistency(BenchmarkError):
    """
    Значение успешно получено из хранилища, но вставка в кеш не завершилась.
    Частичная запись к этому моменту уже откатана.
    """
