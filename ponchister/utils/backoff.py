import random
from typing import Optional


def exp_backoff_with_jitter(attempt: int, base: float = 2.0, initial: float = 0.5, max_delay: float = 10.0,
                            rng: Optional[random.Random] = None) -> float:
    if attempt < 1:
        attempt = 1
    delay = min(max_delay, initial * (base ** (attempt - 1)))
    jitter = (rng or random).uniform(0, delay * 0.25)
    return min(max_delay, delay + jitter)
