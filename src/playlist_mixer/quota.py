"""
Quota Calculator - Per-Source Targets

Converts the ratio configuration and the global target (song count, duration
or "use all songs") into per-source target counts and durations plus an
estimate of the output length, which strategies use to place positions.
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Mapping, Tuple

from .exceptions import ConfigurationError
from .models.core import MixOptions, SourceRatioConfig, Track
from .track_utils import DEFAULT_TRACK_DURATION_MS, average_duration_ms, calculate_total_duration

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuotaPlan:
    """Targets for one mixing run.

    Attributes:
        estimated_total_length: Expected output length in tracks
        per_source_target: Source ID -> target track count
        per_source_target_ms: Source ID -> target duration in milliseconds
        average_duration_ms: Source ID -> mean track duration
        total_weight: Sum of the active sources' weights
        active_ids: Sources in both maps with at least one track, in ratio
            configuration order
    """

    estimated_total_length: int
    per_source_target: Dict[str, int]
    per_source_target_ms: Dict[str, float]
    average_duration_ms: Dict[str, float]
    total_weight: float
    active_ids: Tuple[str, ...]


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def active_source_ids(
    source_tracks_by_id: Mapping[str, List[Track]],
    ratio_config: Mapping[str, SourceRatioConfig],
) -> List[str]:
    """IDs configured in `ratio_config` that have at least one track."""
    return [sid for sid in ratio_config if source_tracks_by_id.get(sid)]


def estimate_track_count(
    target_ms: float,
    ratio_config: Mapping[str, SourceRatioConfig],
    averages: Mapping[str, float],
    total_weight: float,
) -> int:
    """Tracks needed to fill `target_ms` at the weight-averaged track length.

    Bounded by the sum of the max counts when every source has one.
    """
    average_ms = sum(ratio_config[sid].weight / total_weight * averages[sid] for sid in ratio_config)
    estimate = int(math.ceil(target_ms / average_ms))
    max_counts = [config.max_count for config in ratio_config.values()]
    if all(count is not None for count in max_counts):
        estimate = min(estimate, sum(max_counts))
    return estimate


def compute_targets(
    source_tracks_by_id: Mapping[str, List[Track]],
    ratio_config: Mapping[str, SourceRatioConfig],
    options: MixOptions,
    default_track_ms: int = DEFAULT_TRACK_DURATION_MS,
) -> QuotaPlan:
    """Compute per-source targets.

    Args:
        source_tracks_by_id: Cleaned source ID -> tracks
        ratio_config: Source ID -> ratio rules
        options: Mix options
        default_track_ms: Track length assumed for sources without durations

    Returns:
        QuotaPlan

    Raises:
        ConfigurationError: If the options are invalid or no source is active
    """
    errors = options.validate()
    if errors:
        raise ConfigurationError("Invalid mix options", errors)

    active_ids = active_source_ids(source_tracks_by_id, ratio_config)
    if not active_ids:
        raise ConfigurationError("No source has both tracks and a ratio configuration")

    total_weight = sum(ratio_config[sid].weight for sid in active_ids)
    if total_weight <= 0:
        raise ConfigurationError(f"Total weight must be > 0, got {total_weight}")

    averages = {
        sid: average_duration_ms(source_tracks_by_id[sid], default_track_ms) for sid in active_ids
    }
    targets: Dict[str, int] = {}
    targets_ms: Dict[str, float] = {}

    if options.use_all_songs:
        for sid in active_ids:
            targets[sid] = len(source_tracks_by_id[sid])
            targets_ms[sid] = float(calculate_total_duration(source_tracks_by_id[sid]))
        estimated_total_length = sum(targets.values())
        mode = "all songs"

    elif options.use_time_limit:
        for sid in active_ids:
            config = ratio_config[sid]
            source_ms = config.weight / total_weight * options.target_duration_ms
            # Round down so the duration target is not overshot
            count = int(source_ms // averages[sid])
            if config.max_count is not None:
                count = min(config.max_count, count)
            targets[sid] = count
            targets_ms[sid] = source_ms
        estimated_total_length = estimate_track_count(
            options.target_duration_ms,
            {sid: ratio_config[sid] for sid in active_ids},
            averages,
            total_weight,
        )
        mode = f"{options.target_duration_minutes:g} minutes"

    else:
        for sid in active_ids:
            config = ratio_config[sid]
            count = config.clamp(round_half_up(options.total_songs * config.weight / total_weight))
            targets[sid] = count
            targets_ms[sid] = count * averages[sid]
        estimated_total_length = options.total_songs
        mode = f"{options.total_songs} songs"

    for sid in active_ids:
        logger.debug(
            f"{sid}: weight {ratio_config[sid].weight}/{total_weight} "
            f"({ratio_config[sid].weight_type.value}) -> ~{targets[sid]} songs"
        )
    logger.info(
        f"Quota plan ({mode}): {len(active_ids)} sources, ~{estimated_total_length} tracks expected"
    )

    return QuotaPlan(
        estimated_total_length=estimated_total_length,
        per_source_target=targets,
        per_source_target_ms=targets_ms,
        average_duration_ms=averages,
        total_weight=total_weight,
        active_ids=tuple(active_ids),
    )
