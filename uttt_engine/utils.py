"""Utility helpers shared across the engine, the arena and the tests."""
from __future__ import annotations

from typing import Optional, Sequence, TypeVar

import numpy as np

from .game import Player

T = TypeVar("T")


def opponent(player: Player) -> Player:
    return "O" if player == "X" else "X"


def make_rng(seed: Optional[int] = None) -> np.random.Generator:
    return np.random.default_rng(None if seed is None else seed % (2**32))


def random_element(rng: np.random.Generator, items: Sequence[T]) -> T:
    if not items:
        raise ValueError("cannot pick from an empty sequence")
    return items[int(rng.integers(len(items)))]


def weighted_element(
    rng: np.random.Generator, items: Sequence[T], weights: Sequence[float]
) -> T:
    """Pick an item with probability proportional to its weight."""

    if not items:
        raise ValueError("cannot pick from an empty sequence")
    arr = np.asarray(weights, dtype=np.float64)
    if arr.shape != (len(items),):
        raise ValueError("items and weights must share the same length")
    total = arr.sum()
    if total <= 0:
        return random_element(rng, items)
    return items[int(rng.choice(len(items), p=arr / total))]


__all__ = ["make_rng", "opponent", "random_element", "weighted_element"]
