# cache_benchmark/dataset.py

import random
import uuid
from typing import Dict, Optional


def generate_dataset(size: int, rng: Optional[random.Random] = None) -> Dict[str, int]:
    """
    Набор из size уникальных ключей-UUID со значениями 0..size-1.
    UUID берутся из rng, чтобы прогон с фиксированным seed повторялся.
    """
    if size < 0:
        raise ValueError("size must be non-negative")
    rng = rng or random.Random()
    data: Dict[str, int] = {}
    while len(data) < size:
        key = str(uuid.UUID(int=rng.getrandbits(128), version=4))
        data.setdefault(key, len(data))
    return data
