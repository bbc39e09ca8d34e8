"""
Mixing Orchestrator - Weighted Multi-Source Playlist Generation

Interleaves tracks from several source playlists into one playlist. Each
step picks the source that is furthest behind its weighted quota, then draws
a random unused track from the popularity tiers the strategy prefers at the
current position. The run stops when the target is reached, when sources run
dry, or when the attempt cap is hit; the stop reason is reported in the
result instead of being raised.
"""

import logging
import random
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple

from .exceptions import ConfigurationError
from .mix_statistics import calculate_statistics, empty_statistics
from .models.core import (
    AnnotatedTrack,
    MixedTrack,
    MixOptions,
    MixPreview,
    MixResult,
    PopularityQuadrants,
    SourceRatioConfig,
    StopReason,
    Track,
    WeightType,
)
from .quadrants import build_pools
from .quota import QuotaPlan, compute_targets
from .shuffler import pick_random
from .strategies import MixingStrategy, get_strategy
from .track_utils import DEFAULT_TRACK_DURATION_MS
from .validator import check_mix_inputs

logger = logging.getLogger(__name__)

DEFAULT_PREVIEW_LIMIT = 20


@dataclass(frozen=True)
class MixingContext:
    """Read-only inputs of a mixing run.

    Attributes:
        source_tracks: Cleaned source ID -> tracks
        ratio_config: Source ID -> ratio rules
        options: Mix options
        pools: Active source ID -> popularity quadrants
        plan: Per-source targets
        strategy: Popularity strategy
        configured_ids: Every source in the ratio configuration, in order
    """

    source_tracks: Mapping[str, List[Track]]
    ratio_config: Mapping[str, SourceRatioConfig]
    options: MixOptions
    pools: Mapping[str, PopularityQuadrants]
    plan: QuotaPlan
    strategy: MixingStrategy
    configured_ids: Tuple[str, ...]

    @property
    def attempt_cap(self) -> int:
        estimated = self.plan.estimated_total_length
        requested = self.options.total_songs if self.options.is_count_mode else estimated
        return max(1, estimated * 2, requested * 10)


@dataclass
class MixingState:
    """Mutable progress of a mixing run."""

    mixed_tracks: List[MixedTrack] = field(default_factory=list)
    counts: Dict[str, int] = field(default_factory=dict)
    durations: Dict[str, int] = field(default_factory=dict)
    exhausted: Dict[str, bool] = field(default_factory=dict)
    used_ids: Set[str] = field(default_factory=set)
    attempts: int = 0

    @classmethod
    def initial(cls, context: MixingContext) -> 'MixingState':
        """Fresh state; configured sources without tracks start exhausted."""
        return cls(
            counts={sid: 0 for sid in context.configured_ids},
            durations={sid: 0 for sid in context.configured_ids},
            exhausted={sid: sid not in context.pools for sid in context.configured_ids},
        )

    @property
    def total_duration_ms(self) -> int:
        return sum(self.durations.values())

    def record(self, source_id: str, annotated: AnnotatedTrack) -> MixedTrack:
        mixed = MixedTrack(
            track=annotated.track,
            source_playlist_id=source_id,
            adjusted_popularity=annotated.adjusted_popularity,
        )
        self.mixed_tracks.append(mixed)
        self.counts[source_id] += 1
        self.durations[source_id] += annotated.duration_ms
        self.used_ids.add(annotated.id)
        return mixed


def build_context(
    source_tracks: Mapping[str, List[Track]],
    ratio_config: Mapping[str, SourceRatioConfig],
    options: MixOptions,
    rng: random.Random,
    default_track_ms: int = DEFAULT_TRACK_DURATION_MS,
    now: Optional[datetime] = None,
    log: Optional[logging.Logger] = None,
) -> MixingContext:
    """Build pools, targets and strategy for cleaned, typed inputs.

    Raises:
        ConfigurationError: If targets cannot be computed
    """
    plan = compute_targets(source_tracks, ratio_config, options, default_track_ms)
    active_tracks = {sid: source_tracks[sid] for sid in plan.active_ids}
    pools = build_pools(
        active_tracks,
        recency_boost=options.recency_boost,
        shuffle_within_groups=options.shuffle_within_groups,
        rng=rng,
        now=now,
    )
    return MixingContext(
        source_tracks=source_tracks,
        ratio_config=ratio_config,
        options=options,
        pools=pools,
        plan=plan,
        strategy=get_strategy(options.popularity_strategy, log),
        configured_ids=tuple(ratio_config),
    )


class MixingRun:
    """Single mixing run over a prepared context."""

    def __init__(
        self,
        context: MixingContext,
        rng: random.Random,
        log: Optional[logging.Logger] = None,
    ):
        self.context = context
        self.rng = rng
        self.log = log or logger
        self.state = MixingState.initial(context)
        self._order = {sid: index for index, sid in enumerate(context.plan.active_ids)}

    def execute(self) -> MixResult:
        """Run the mixing loop to completion."""
        self.log.info(
            f"Mixing {len(self.context.plan.active_ids)} sources with "
            f"'{self.context.strategy.name.value}' strategy "
            f"(~{self.context.plan.estimated_total_length} tracks, cap {self.context.attempt_cap} attempts)"
        )

        while True:
            stop_reason = self._stop_reason()
            if stop_reason is not None:
                break

            self.state.attempts += 1
            source_id = self._select_source()
            if source_id is None:
                self.log.debug("Every source has reached its maximum count")
                stop_reason = StopReason.TARGET_REACHED
                break

            self._draw_from(source_id)

        self.log.info(
            f"Mix finished: {len(self.state.mixed_tracks)} tracks, "
            f"{stop_reason.value} after {self.state.attempts} attempts"
        )
        return MixResult(
            tracks=list(self.state.mixed_tracks),
            stop_reason=stop_reason,
            attempts=self.state.attempts,
        )

    def _target_reached(self) -> bool:
        options = self.context.options
        produced = len(self.state.mixed_tracks)
        if options.use_all_songs:
            return produced >= self.context.plan.estimated_total_length
        if options.use_time_limit:
            return self.state.total_duration_ms >= options.target_duration_ms
        return produced >= options.total_songs

    def _stop_reason(self) -> Optional[StopReason]:
        if self._target_reached():
            return StopReason.TARGET_REACHED

        exhausted = [sid for sid, done in self.state.exhausted.items() if done]
        if len(exhausted) == len(self.state.exhausted):
            return StopReason.ALL_SOURCES_EXHAUSTED

        if exhausted and not self.context.options.continue_when_playlist_empty:
            self.log.info(f"Source {exhausted[0]} is exhausted, stopping")
            return StopReason.SINGLE_SOURCE_EXHAUSTED_AND_NO_CONTINUE

        if self.state.attempts >= self.context.attempt_cap:
            self.log.warning(f"Attempt cap of {self.context.attempt_cap} reached")
            return StopReason.ATTEMPT_CAP_REACHED

        return None

    def _deficit(self, source_id: str) -> float:
        """Tracks still owed to a source (negative once it is over target)."""
        plan = self.context.plan
        if self.context.ratio_config[source_id].weight_type is WeightType.TIME:
            remaining_ms = plan.per_source_target_ms[source_id] - self.state.durations[source_id]
            return remaining_ms / plan.average_duration_ms[source_id]
        return plan.per_source_target[source_id] - self.state.counts[source_id]

    def _remaining_slots(self) -> int:
        options = self.context.options
        total = options.total_songs if options.is_count_mode else self.context.plan.estimated_total_length
        return total - len(self.state.mixed_tracks)

    def _below_minimum(self, candidates: List[str]) -> List[str]:
        """Sources that must be drawn now for their minimum count to fit."""
        if self.context.options.use_all_songs:
            return []
        ratio_config = self.context.ratio_config
        below = [sid for sid in candidates if self.state.counts[sid] < ratio_config[sid].min_count]
        if not below:
            return []
        outstanding = sum(ratio_config[sid].min_count - self.state.counts[sid] for sid in below)
        return below if self._remaining_slots() <= outstanding else []

    def _has_preferred_track(self, source_id: str) -> bool:
        preferred = self.context.strategy.preferred_tracks(
            self.context.pools,
            source_id,
            len(self.state.mixed_tracks),
            self.context.plan.estimated_total_length,
        )
        return any(t.id not in self.state.used_ids for t in preferred)

    def _select_source(self) -> Optional[str]:
        """Source furthest behind its weighted quota, or None if all are capped."""
        context = self.context
        candidates = [
            sid for sid in context.plan.active_ids
            if not self.state.exhausted[sid]
            and (context.options.use_all_songs
                 or context.ratio_config[sid].allows_more(self.state.counts[sid]))
        ]
        if not candidates:
            return None

        deficits = {sid: self._deficit(sid) for sid in candidates}
        owing = [sid for sid in candidates if deficits[sid] > 0]
        pool = self._below_minimum(candidates) or owing or candidates
        pool = [sid for sid in pool if self._has_preferred_track(sid)] or pool

        return max(
            pool,
            key=lambda sid: (
                deficits[sid] * context.ratio_config[sid].weight,
                abs(deficits[sid]),
                -self._order[sid],
            ),
        )

    def _draw_from(self, source_id: str) -> None:
        strategy = self.context.strategy
        position = len(self.state.mixed_tracks)
        total_length = self.context.plan.estimated_total_length

        annotated = pick_random(
            strategy.preferred_tracks(self.context.pools, source_id, position, total_length),
            self.state.used_ids,
            self.rng,
        )
        if annotated is None:
            annotated = pick_random(
                strategy.eligible_tracks(self.context.pools, source_id, position, total_length),
                self.state.used_ids,
                self.rng,
            )

        if annotated is None:
            self.state.exhausted[source_id] = True
            self.log.debug(f"Source {source_id} exhausted after {self.state.counts[source_id]} tracks")
            return

        self.state.record(source_id, annotated)
        self.log.debug(
            f"#{position + 1}: {annotated.name} from {source_id} "
            f"({annotated.tier.value}, popularity {annotated.adjusted_popularity:.1f})"
        )


def _resolve_rng(rng: Optional[random.Random], seed: Optional[int]) -> random.Random:
    if rng is not None:
        return rng
    return random.Random(seed)


def run_mix(
    source_tracks_by_id: Any,
    ratio_config: Any,
    options: Any,
    *,
    rng: Optional[random.Random] = None,
    seed: Optional[int] = None,
    logger: Optional[logging.Logger] = None,
    default_track_ms: int = DEFAULT_TRACK_DURATION_MS,
    now: Optional[datetime] = None,
) -> MixResult:
    """Mix source playlists and report how the run ended.

    Invalid configuration never raises: the result is empty, carries
    StopReason.INVALID_CONFIGURATION and lists every error found.

    Args:
        source_tracks_by_id: Source ID -> tracks (objects or payload dicts)
        ratio_config: Source ID -> SourceRatioConfig or payload dict
        options: MixOptions or payload dict
        rng: Random generator (takes precedence over `seed`)
        seed: Seed for a fresh generator
        logger: Logger for run diagnostics (defaults to the module logger)
        default_track_ms: Track length assumed for sources without durations
        now: Reference time for the recency bonus

    Returns:
        MixResult
    """
    log = logger or logging.getLogger(__name__)
    generator = _resolve_rng(rng, seed)

    checked = check_mix_inputs(source_tracks_by_id, ratio_config, options)
    errors = list(checked.errors)
    context = None
    if not errors:
        try:
            context = build_context(
                checked.source_tracks,
                checked.ratio_config,
                checked.options,
                generator,
                default_track_ms=default_track_ms,
                now=now,
                log=log,
            )
        except ConfigurationError as e:
            errors = e.errors

    if context is None:
        log.error(f"Invalid mix configuration: {'; '.join(errors)}")
        return MixResult(tracks=[], stop_reason=StopReason.INVALID_CONFIGURATION, errors=errors)

    return MixingRun(context, generator, log).execute()


def mix_playlists(
    source_tracks_by_id: Any,
    ratio_config: Any,
    options: Any,
    *,
    rng: Optional[random.Random] = None,
    seed: Optional[int] = None,
    logger: Optional[logging.Logger] = None,
) -> List[MixedTrack]:
    """Mix source playlists and return the tracks in playlist order."""
    return run_mix(source_tracks_by_id, ratio_config, options, rng=rng, seed=seed, logger=logger).tracks


def preview_mix(
    source_tracks_by_id: Any,
    ratio_config: Any,
    options: Any,
    *,
    limit: Optional[int] = None,
    rng: Optional[random.Random] = None,
    seed: Optional[int] = None,
    logger: Optional[logging.Logger] = None,
    default_track_ms: int = DEFAULT_TRACK_DURATION_MS,
) -> MixPreview:
    """Quick, reduced mix for UI feedback.

    Runs in count mode with at most `limit` tracks (20 by default), whatever
    the requested target.
    """
    log = logger or logging.getLogger(__name__)
    if limit is None:
        limit = DEFAULT_PREVIEW_LIMIT

    try:
        mix_options = MixOptions.coerce(options)
    except ConfigurationError as e:
        log.error(f"Invalid mix configuration: {'; '.join(e.errors)}")
        return MixPreview(
            tracks=[],
            statistics=empty_statistics(),
            stop_reason=StopReason.INVALID_CONFIGURATION,
        )

    requested = mix_options.total_songs if mix_options.is_count_mode else limit
    preview_options = replace(
        mix_options,
        total_songs=min(limit, requested),
        use_time_limit=False,
        use_all_songs=False,
    )

    result = run_mix(
        source_tracks_by_id,
        ratio_config,
        preview_options,
        rng=rng,
        seed=seed,
        logger=log,
        default_track_ms=default_track_ms,
    )
    if result.stop_reason is StopReason.INVALID_CONFIGURATION:
        statistics = empty_statistics()
    else:
        statistics = calculate_statistics(result.tracks, source_tracks_by_id, ratio_config)

    return MixPreview(tracks=result.tracks, statistics=statistics, stop_reason=result.stop_reason)
