import random
from typing import List, Optional, Sequence, TypeVar

T = TypeVar('T')


def shuffle_songs(entries: Sequence[T], rng: Optional[random.Random] = None) -> List[T]:
    """Fisher-Yates shuffle on a copy; the input sequence is left untouched."""
    rng = rng or random.Random()
    copy = list(entries)
    for index in range(len(copy) - 1, 0, -1):
        swap_index = rng.randrange(index + 1)
        copy[index], copy[swap_index] = copy[swap_index], copy[index]
    return copy
