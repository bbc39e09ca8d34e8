"""
Track Shuffler - Randomisation Utilities

Every function takes an optional `random.Random`. Passing a seeded instance
makes results reproducible; omitting it uses a fresh unseeded generator so
no random state is shared between calls.
"""

import random
from typing import AbstractSet, List, Optional, Sequence, TypeVar

from .models.core import PopularityQuadrants

T = TypeVar("T")


def _rng(rng: Optional[random.Random]) -> random.Random:
    return rng if rng is not None else random.Random()


def shuffle(sequence: Sequence[T], rng: Optional[random.Random] = None) -> List[T]:
    """Fisher-Yates shuffle returning a new list; the input is not modified."""
    rng = _rng(rng)
    shuffled = list(sequence)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randint(0, i)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def _available(sequence: Sequence[T], excluding: AbstractSet[str]) -> List[T]:
    if not excluding:
        return list(sequence)
    return [item for item in sequence if getattr(item, "id", None) not in excluding]


def sample(
    sequence: Sequence[T],
    k: int,
    excluding: AbstractSet[str] = frozenset(),
    rng: Optional[random.Random] = None,
) -> List[T]:
    """Up to `k` random items whose id is not in `excluding`.

    Returns fewer than `k` items when not enough remain, and an empty list
    when none do.
    """
    if not sequence or k <= 0:
        return []
    return shuffle(_available(sequence, excluding), rng)[:k]


def pick_random(
    sequence: Sequence[T],
    excluding: AbstractSet[str] = frozenset(),
    rng: Optional[random.Random] = None,
) -> Optional[T]:
    """One random item whose id is not in `excluding`, or None."""
    available = _available(sequence, excluding)
    if not available:
        return None
    return available[_rng(rng).randrange(len(available))]


def shuffle_quadrants(
    quadrants: PopularityQuadrants,
    rng: Optional[random.Random] = None,
) -> PopularityQuadrants:
    """New quadrants with each tier shuffled independently."""
    rng = _rng(rng)
    return PopularityQuadrants(
        top_hits=shuffle(quadrants.top_hits, rng),
        popular=shuffle(quadrants.popular, rng),
        moderate=shuffle(quadrants.moderate, rng),
        deep_cuts=shuffle(quadrants.deep_cuts, rng),
    )
