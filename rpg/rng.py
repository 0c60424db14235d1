"""Random draws built on a single ``random()`` float source.

Every helper only calls ``rng.random()`` so callers can inject any object
exposing that method (a seeded :class:`random.Random`, or a scripted source
in tests) and reproduce every decision.
"""

from __future__ import annotations

import random
from typing import Mapping, Sequence, TypeVar

__all__ = ["pick", "roll_percent", "uniform", "weighted_key"]

T = TypeVar("T")


def _generator(rng: random.Random | None) -> random.Random:
    return rng if rng is not None else random.Random()


def roll_percent(rng: random.Random | None = None) -> float:
    """Return a draw in ``[0, 100)``."""

    return _generator(rng).random() * 100


def uniform(low: float, high: float, rng: random.Random | None = None) -> float:
    """Return a draw in ``[low, high)``."""

    return low + _generator(rng).random() * (high - low)


def pick(population: Sequence[T], rng: random.Random | None = None) -> T:
    """Select one element uniformly at random."""

    if not population:
        raise LookupError("Cannot pick from an empty population")
    index = int(_generator(rng).random() * len(population))
    # Guard against sources returning exactly 1.0.
    return population[min(index, len(population) - 1)]


def weighted_key(weights: Mapping[str, float], rng: random.Random | None = None) -> str:
    """Select a key from ``weights`` proportionally to its weight."""

    entries = [(key, float(weight)) for key, weight in weights.items() if weight > 0]
    if not entries:
        raise LookupError("Weighted table has no positive entries")
    total = sum(weight for _, weight in entries)
    point = _generator(rng).random() * total
    cumulative = 0.0
    for key, weight in entries:
        cumulative += weight
        if point < cumulative:
            return key
    return entries[-1][0]
