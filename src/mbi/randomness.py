"""Randomness helpers for pair generation and respondent identifiers."""

import logging
import os
import random
import string
from typing import List, Optional, Sequence, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)

_BASE36 = string.digits + string.ascii_lowercase


class RandomSource:
    """
    Injectable random stream.

    Pair generation only draws through this object, so a seeded instance makes
    the whole sequence reproducible.
    """

    def __init__(self, seed: Optional[int] = None) -> None:
        self._rng = random.Random(seed)

    def shuffled(self, items: Sequence[T]) -> List[T]:
        """Return a uniformly shuffled copy (Fisher-Yates); the input is left untouched."""
        result = list(items)
        for i in range(len(result) - 1, 0, -1):
            j = self._rng.randint(0, i)
            result[i], result[j] = result[j], result[i]
        return result

    def coin(self) -> bool:
        """Fair 50/50 draw."""
        return self._rng.random() < 0.5

    def base36(self, length: int) -> str:
        return "".join(self._rng.choice(_BASE36) for _ in range(length))


def to_base36(value: int) -> str:
    if value < 0:
        return "-" + to_base36(-value)
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def source_from_env() -> RandomSource:
    """Seeded source if the SEED env var holds an integer, otherwise an unseeded one."""
    seed = os.environ.get("SEED")
    if seed is not None:
        try:
            return RandomSource(int(seed))
        except ValueError:
            logger.warning("Ignoring non-integer SEED %r; run will not be reproducible", seed)
    return RandomSource()
