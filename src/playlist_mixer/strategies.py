"""
Mixing Strategies - Position-Dependent Tier Selection

Each strategy maps the playback position (as a ratio of the expected output
length) to the popularity tiers it prefers at that point:

    mixed         all tiers throughout
    front-loaded  hits first, fading to deep cuts (breaks at 0.3 / 0.7)
    mid-peak      builds to hits mid-playlist, then fades (0.2 / 0.4 / 0.6 / 0.8)
    crescendo     deep cuts first, building to hits (0.3 / 0.6)

Tracks from the remaining tiers are appended after the preferred ones, so a
source is never reported empty while it still has tracks.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Type, Union

from .models.core import AnnotatedTrack, PopularityQuadrants, PopularityStrategy, Tier

logger = logging.getLogger(__name__)

ALL_TIERS: Tuple[Tier, ...] = (Tier.TOP_HITS, Tier.POPULAR, Tier.MODERATE, Tier.DEEP_CUTS)


def position_ratio(position: int, total_length: int) -> float:
    """Position as a fraction of the output length, clamped to [0, 1]."""
    ratio = position / max(1, total_length)
    return min(1.0, max(0.0, ratio))


def add_fallback_tracks(
    strategy_tracks: Sequence[AnnotatedTrack],
    all_tracks: Sequence[AnnotatedTrack],
) -> List[AnnotatedTrack]:
    """Append every track not already preferred, de-duplicated by id."""
    if not strategy_tracks:
        return list(all_tracks)

    preferred_ids = {t.id for t in strategy_tracks}
    fallback = [t for t in all_tracks if t.id not in preferred_ids]
    return [*strategy_tracks, *fallback]


class MixingStrategy(ABC):
    """Base class for popularity strategies."""

    name: PopularityStrategy

    @abstractmethod
    def preferred_tiers(self, ratio: float) -> Tuple[Tier, ...]:
        """Tiers preferred at a position ratio in [0, 1]."""

    def preferred_tracks(
        self,
        pools: Mapping[str, PopularityQuadrants],
        source_id: str,
        position: int,
        total_length: int,
    ) -> List[AnnotatedTrack]:
        """Tracks of the preferred tiers only (may be empty)."""
        quadrants = pools.get(source_id)
        if quadrants is None:
            return []

        tracks: List[AnnotatedTrack] = []
        for tier in self.preferred_tiers(position_ratio(position, total_length)):
            tracks.extend(quadrants.tier(tier))
        return tracks

    def eligible_tracks(
        self,
        pools: Mapping[str, PopularityQuadrants],
        source_id: str,
        position: int,
        total_length: int,
    ) -> List[AnnotatedTrack]:
        """Preferred tracks followed by every other track of the source.

        Empty only when the source has no tracks at all.
        """
        quadrants = pools.get(source_id)
        if quadrants is None:
            return []

        preferred = self.preferred_tracks(pools, source_id, position, total_length)
        if not preferred:
            logger.debug(
                f"{self.name.value}: preferred tiers empty for {source_id} at position "
                f"{position}/{total_length}, falling back to all tiers"
            )
        return add_fallback_tracks(preferred, quadrants.all_tracks())

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class MixedStrategy(MixingStrategy):
    """All tiers mixed evenly across the playlist."""

    name = PopularityStrategy.MIXED

    def preferred_tiers(self, ratio: float) -> Tuple[Tier, ...]:
        return ALL_TIERS


class FrontLoadedStrategy(MixingStrategy):
    """Popular songs first, fading to deep cuts."""

    name = PopularityStrategy.FRONT_LOADED

    def preferred_tiers(self, ratio: float) -> Tuple[Tier, ...]:
        if ratio < 0.3:
            return (Tier.TOP_HITS, Tier.POPULAR)
        if ratio < 0.7:
            return (Tier.MODERATE, Tier.POPULAR)
        return (Tier.DEEP_CUTS, Tier.MODERATE)


class MidPeakStrategy(MixingStrategy):
    """Build to a peak of hits in the middle, then fade."""

    name = PopularityStrategy.MID_PEAK

    def preferred_tiers(self, ratio: float) -> Tuple[Tier, ...]:
        if ratio < 0.2:
            return (Tier.MODERATE, Tier.DEEP_CUTS)
        if ratio < 0.4:
            return (Tier.POPULAR, Tier.MODERATE)
        if ratio < 0.6:
            return (Tier.TOP_HITS, Tier.POPULAR)
        if ratio < 0.8:
            return (Tier.POPULAR, Tier.MODERATE)
        return (Tier.MODERATE, Tier.DEEP_CUTS)


class CrescendoStrategy(MixingStrategy):
    """Build from deep cuts to the biggest hits."""

    name = PopularityStrategy.CRESCENDO

    def preferred_tiers(self, ratio: float) -> Tuple[Tier, ...]:
        if ratio < 0.3:
            return (Tier.DEEP_CUTS, Tier.MODERATE)
        if ratio < 0.6:
            return (Tier.MODERATE, Tier.POPULAR)
        return (Tier.POPULAR, Tier.TOP_HITS)


_STRATEGIES: Dict[PopularityStrategy, Type[MixingStrategy]] = {
    PopularityStrategy.MIXED: MixedStrategy,
    PopularityStrategy.FRONT_LOADED: FrontLoadedStrategy,
    PopularityStrategy.MID_PEAK: MidPeakStrategy,
    PopularityStrategy.CRESCENDO: CrescendoStrategy,
}


def get_strategy(
    name: Union[str, PopularityStrategy, None],
    log: Optional[logging.Logger] = None,
) -> MixingStrategy:
    """Strategy for `name`; unknown names log a warning and fall back to mixed."""
    try:
        key = name if isinstance(name, PopularityStrategy) else PopularityStrategy(name)
    except ValueError:
        (log or logger).warning(f"Unknown strategy '{name}', falling back to 'mixed'")
        key = PopularityStrategy.MIXED
    return _STRATEGIES[key]()


def available_strategies() -> List[MixingStrategy]:
    """One instance of every strategy."""
    return [cls() for cls in _STRATEGIES.values()]
