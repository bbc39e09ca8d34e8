"""
Mix Statistics Calculator

Summarises a mixed playlist: per-source counts, how closely the output
follows the configured weights, average popularity and total duration.
"""

import logging
from typing import Any, Dict, List, Mapping, Sequence

from .models.core import MixedTrack, SourceRatioConfig, WeightType
from .models.validation import MixStatistics
from .popularity import round_one_decimal
from .quota import round_half_up
from .track_utils import calculate_total_duration

logger = logging.getLogger(__name__)


def empty_statistics() -> MixStatistics:
    return MixStatistics(
        total_tracks=0,
        per_source_count={},
        ratio_compliance=1.0,
        average_popularity=0.0,
        total_duration_minutes=0,
    )


def calculate_ratio_compliance(
    mixed_tracks: Sequence[MixedTrack],
    ratio_config: Mapping[str, SourceRatioConfig],
    source_ids: Sequence[str],
) -> float:
    """Mean of max(0, 1 - |expected share - actual share|) over `source_ids`.

    Time-weighted sources are measured by their share of the output
    duration, frequency-weighted sources by their share of the track count.
    An empty output is fully compliant.
    """
    if not mixed_tracks or not source_ids:
        return 1.0

    total_weight = sum(ratio_config[sid].weight for sid in source_ids)
    if total_weight <= 0:
        return 1.0

    total_count = len(mixed_tracks)
    total_ms = calculate_total_duration(mixed_tracks)

    scores: List[float] = []
    for sid in source_ids:
        config = ratio_config[sid]
        expected = config.weight / total_weight
        from_source = [t for t in mixed_tracks if t.source_playlist_id == sid]

        if config.weight_type is WeightType.TIME and total_ms > 0:
            actual = calculate_total_duration(from_source) / total_ms
        else:
            actual = len(from_source) / total_count

        scores.append(max(0.0, 1 - abs(expected - actual)))

    return sum(scores) / len(scores)


def calculate_statistics(
    mixed_tracks: Sequence[MixedTrack],
    source_tracks_by_id: Mapping[str, Any],
    ratio_config: Mapping[str, Any],
) -> MixStatistics:
    """Compute summary statistics for a mixed playlist.

    Args:
        mixed_tracks: Mixer output
        source_tracks_by_id: Source map the mix was drawn from (only the
            keys are used)
        ratio_config: Source ID -> SourceRatioConfig or payload dict

    Returns:
        MixStatistics

    Raises:
        ConfigurationError: If a ratio entry cannot be interpreted
    """
    ratios = {sid: SourceRatioConfig.coerce(raw) for sid, raw in ratio_config.items()}

    per_source_count: Dict[str, int] = {sid: 0 for sid in source_tracks_by_id}
    for track in mixed_tracks:
        per_source_count[track.source_playlist_id] = per_source_count.get(track.source_playlist_id, 0) + 1

    compared_ids = [sid for sid in ratios if sid in source_tracks_by_id]
    compliance = calculate_ratio_compliance(mixed_tracks, ratios, compared_ids)

    if mixed_tracks:
        average_popularity = round_one_decimal(
            sum(t.popularity for t in mixed_tracks) / len(mixed_tracks)
        )
    else:
        average_popularity = 0.0

    total_duration_ms = calculate_total_duration(mixed_tracks)

    statistics = MixStatistics(
        total_tracks=len(mixed_tracks),
        per_source_count=per_source_count,
        ratio_compliance=compliance,
        average_popularity=average_popularity,
        total_duration_minutes=round_half_up(total_duration_ms / 60000),
    )
    logger.debug(
        f"Mix statistics: {statistics.total_tracks} tracks, "
        f"{statistics.total_duration_minutes} min, compliance {compliance:.1%}"
    )
    return statistics
