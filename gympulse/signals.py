"""
Signal sources for synthetic occupancy data.

Everything random in the dashboard goes through a signal source so tests
can replace it with a fixed sequence.
"""

import logging
from typing import Iterable, Optional

import numpy as np

logger = logging.getLogger(__name__)


class SignalSource:
    """Interface for synthetic signal draws."""

    def integer(self, low: int, high: int) -> int:
        """Return an integer in [low, high)."""
        raise NotImplementedError

    def chance(self, probability: float) -> bool:
        """Return True with the given probability."""
        raise NotImplementedError


class RandomSignalSource(SignalSource):
    """Signal source backed by a numpy random generator."""

    def __init__(self, seed: Optional[int] = None):
        self._rng = np.random.default_rng(seed)

    def integer(self, low: int, high: int) -> int:
        return int(self._rng.integers(low, high))

    def chance(self, probability: float) -> bool:
        return bool(self._rng.random() < probability)


class SequenceSignalSource(SignalSource):
    """
    Deterministic signal source that replays fixed values in order.

    Integer draws cycle through `integers`; chance draws cycle through
    `chances` and are always False when none are given.
    """

    def __init__(self, integers: Iterable[int], chances: Iterable[bool] = ()):
        self._integers = list(integers)
        self._chances = list(chances)
        self._integer_pos = 0
        self._chance_pos = 0

        if not self._integers:
            raise ValueError("SequenceSignalSource needs at least one integer")

    def integer(self, low: int, high: int) -> int:
        value = self._integers[self._integer_pos % len(self._integers)]
        self._integer_pos += 1
        if not low <= value < high:
            raise ValueError(f"Sequence value {value} outside requested range [{low}, {high})")
        return value

    def chance(self, probability: float) -> bool:
        if not self._chances:
            return False
        value = self._chances[self._chance_pos % len(self._chances)]
        self._chance_pos += 1
        return bool(value)
