"""
Popularity Calculator - Track Annotation with Recency Boost

Derives the popularity data the mixer works with. Source popularity scores
favour older catalogue hits, so releases from the last two years can receive
a bonus of up to 20 points that decays linearly with age.
"""

import logging
import math
from datetime import datetime
from typing import Iterable, List, Optional

from dateutil.parser import parse

from .models.core import (
    AnnotatedTrack,
    Tier,
    Track,
    UNKNOWN_RELEASE_YEAR,
)
from .models.validation import PopularityMetrics

logger = logging.getLogger(__name__)

MAX_RECENCY_BONUS = 20.0
RECENCY_WINDOW_DAYS = 730

# Missing month/day in partial release dates ("2021", "2021-04") mean January 1st
_RELEASE_DATE_DEFAULT = datetime(2000, 1, 1)


def round_one_decimal(value: float) -> float:
    """Round half-up to one decimal place."""
    return math.floor(value * 10 + 0.5) / 10


def parse_release_date(value: Optional[str]) -> Optional[datetime]:
    """Parse an album release date, returning None when it is unusable."""
    if not value or not isinstance(value, str):
        return None
    try:
        return parse(value, default=_RELEASE_DATE_DEFAULT).replace(tzinfo=None)
    except (ValueError, OverflowError, TypeError):
        logger.debug(f"Unparseable release date {value!r}")
        return None


def calculate_recency_bonus(release_date: datetime, now: Optional[datetime] = None) -> float:
    """Unrounded recency bonus (0-20) for a release date.

    Tracks released less than 730 days ago get 20 * (1 - days / 730).
    Future release dates receive the full bonus.
    """
    now = now or datetime.now()
    days_since_release = (now - release_date).total_seconds() / 86400

    if days_since_release < RECENCY_WINDOW_DAYS:
        bonus = MAX_RECENCY_BONUS * (1 - days_since_release / RECENCY_WINDOW_DAYS)
        return min(MAX_RECENCY_BONUS, max(0.0, bonus))

    return 0.0


def annotate_track(
    track: Track,
    recency_boost: bool = False,
    now: Optional[datetime] = None,
) -> AnnotatedTrack:
    """Compute adjusted popularity for a track.

    The adjusted score adds the unrounded bonus; the stored recency_bonus is
    rounded to one decimal. Missing or invalid fields degrade to 0/"unknown".

    Args:
        track: Source track
        recency_boost: Whether to apply the recency bonus
        now: Reference time (defaults to the current time)

    Returns:
        AnnotatedTrack
    """
    base_popularity = track.popularity or 0
    release_date = parse_release_date(track.release_date)
    release_year = release_date.year if release_date else UNKNOWN_RELEASE_YEAR

    if not recency_boost or release_date is None:
        return AnnotatedTrack(
            track=track,
            base_popularity=base_popularity,
            recency_bonus=0.0,
            adjusted_popularity=float(base_popularity),
            release_year=release_year,
        )

    raw_bonus = calculate_recency_bonus(release_date, now)

    return AnnotatedTrack(
        track=track,
        base_popularity=base_popularity,
        recency_bonus=round_one_decimal(raw_bonus),
        adjusted_popularity=min(100.0, base_popularity + raw_bonus),
        release_year=release_year,
    )


def sort_tracks_by_popularity(tracks: Iterable[AnnotatedTrack]) -> List[AnnotatedTrack]:
    """Sort by adjusted popularity, highest first (stable)."""
    return sorted(tracks, key=lambda t: t.adjusted_popularity, reverse=True)


def get_popularity_metrics(tracks: List[AnnotatedTrack]) -> PopularityMetrics:
    """Summarise the popularity profile of annotated tracks."""
    distribution = {tier.value: 0 for tier in Tier}

    if not tracks:
        return PopularityMetrics(
            total_tracks=0,
            average_popularity=0.0,
            average_recency_bonus=0.0,
            distribution=distribution,
        )

    popularity_values = [t.adjusted_popularity for t in tracks]
    bonus_values = [t.recency_bonus for t in tracks]
    release_years = [t.release_year for t in tracks if isinstance(t.release_year, int)]

    for track in tracks:
        distribution[track.tier.value] += 1

    return PopularityMetrics(
        total_tracks=len(tracks),
        average_popularity=round_one_decimal(sum(popularity_values) / len(tracks)),
        average_recency_bonus=round_one_decimal(sum(bonus_values) / len(tracks)),
        popularity_range=(min(popularity_values), max(popularity_values)),
        recency_bonus_range=(min(bonus_values), max(bonus_values)),
        release_year_range=(
            (min(release_years), max(release_years)) if release_years
            else (UNKNOWN_RELEASE_YEAR, UNKNOWN_RELEASE_YEAR)
        ),
        distribution=distribution,
    )
