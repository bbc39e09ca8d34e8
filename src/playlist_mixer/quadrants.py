"""
Popularity Quadrants - Tier Partitioning per Source

Splits each source's tracks into four popularity tiers by adjusted
popularity: top hits (>= 80), popular (60-79), moderate (40-59) and deep
cuts (< 40). Insertion order is kept within a tier unless shuffling is
requested.
"""

import logging
import random
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from .models.core import PopularityQuadrants, Tier, Track
from .popularity import annotate_track, round_one_decimal
from .shuffler import shuffle_quadrants

logger = logging.getLogger(__name__)


def build_quadrants(
    tracks: List[Track],
    recency_boost: bool = False,
    now: Optional[datetime] = None,
) -> PopularityQuadrants:
    """Annotate tracks and partition them into tiers in a single pass."""
    quadrants = PopularityQuadrants()
    for track in tracks:
        annotated = annotate_track(track, recency_boost, now)
        quadrants.tier(annotated.tier).append(annotated)
    return quadrants


def build_pools(
    source_tracks_by_id: Mapping[str, List[Track]],
    recency_boost: bool = False,
    shuffle_within_groups: bool = False,
    rng: Optional[random.Random] = None,
    now: Optional[datetime] = None,
) -> Dict[str, PopularityQuadrants]:
    """Build popularity quadrants for every non-empty source.

    Args:
        source_tracks_by_id: Cleaned source ID -> tracks
        recency_boost: Apply the recency bonus while annotating
        shuffle_within_groups: Shuffle each tier after partitioning
        rng: Random generator used for shuffling
        now: Reference time for the recency bonus

    Returns:
        Source ID -> quadrants. Sources without tracks are omitted; callers
        treat a missing ID as fully exhausted.
    """
    pools: Dict[str, PopularityQuadrants] = {}

    for source_id, tracks in source_tracks_by_id.items():
        if not tracks:
            continue

        quadrants = build_quadrants(tracks, recency_boost, now)
        if shuffle_within_groups:
            quadrants = shuffle_quadrants(quadrants, rng)

        logger.debug(
            f"Pool {source_id}: {len(quadrants.top_hits)} top hits, {len(quadrants.popular)} popular, "
            f"{len(quadrants.moderate)} moderate, {len(quadrants.deep_cuts)} deep cuts"
        )
        pools[source_id] = quadrants

    return pools


def get_quadrant_stats(quadrants: PopularityQuadrants) -> Dict[str, Any]:
    """Per-tier track counts and average adjusted popularity."""
    stats: Dict[str, Any] = {"total": len(quadrants)}
    for tier in Tier:
        tracks = quadrants.tier(tier)
        average = sum(t.adjusted_popularity for t in tracks) / len(tracks) if tracks else 0.0
        stats[tier.value] = {
            "count": len(tracks),
            "average_popularity": round_one_decimal(average),
        }
    return stats


def validate_quadrants(quadrants: PopularityQuadrants, source_tracks: List[Track]) -> List[str]:
    """Check that quadrants partition `source_tracks` totally and disjointly.

    Returns:
        List of validation error messages (empty if valid)
    """
    errors = []

    if len(quadrants) != len(source_tracks):
        errors.append(
            f"Quadrants hold {len(quadrants)} tracks but the source has {len(source_tracks)}"
        )

    seen: Dict[int, Tier] = {}
    for tier in Tier:
        for annotated in quadrants.tier(tier):
            key = id(annotated.track)
            if key in seen:
                errors.append(f"Track {annotated.id} appears in both {seen[key].value} and {tier.value}")
            seen[key] = tier
            if annotated.tier is not tier:
                errors.append(
                    f"Track {annotated.id} (popularity {annotated.adjusted_popularity}) misplaced in {tier.value}"
                )

    missing = [t.id for t in source_tracks if id(t) not in seen]
    if missing:
        errors.append(f"Tracks missing from quadrants: {', '.join(missing)}")

    return errors
