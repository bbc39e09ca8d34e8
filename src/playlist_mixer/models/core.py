"""
Core data models for the Playlist Mixer.

This module contains the dataclasses and enumerations that describe the
inputs and outputs of a mixing run.

Entities:
    - Track: Source track as delivered by the streaming API
    - AnnotatedTrack: Track with derived popularity data (immutable)
    - PopularityQuadrants: Four popularity tiers for one source
    - SourceRatioConfig: Per-source quota and weighting rules
    - MixOptions: Global options for a mixing run
    - MixedTrack: Output element tagged with its source
    - MixResult / MixPreview / MixMetadata: Results handed back to callers
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from ..exceptions import ConfigurationError, DataQualityIssue
from .validation import MixStatistics


# ============================================================================
# Enumerations
# ============================================================================


class PopularityStrategy(Enum):
    """Shape of the popularity curve across the output playlist."""
    MIXED = "mixed"
    FRONT_LOADED = "front-loaded"
    MID_PEAK = "mid-peak"
    CRESCENDO = "crescendo"


class WeightType(Enum):
    """How a source's share of the output is accounted."""
    FREQUENCY = "frequency"
    TIME = "time"


class Tier(Enum):
    """Popularity tier (quadrant) of an annotated track."""
    TOP_HITS = "top_hits"
    POPULAR = "popular"
    MODERATE = "moderate"
    DEEP_CUTS = "deep_cuts"


class StopReason(Enum):
    """Why a mixing run stopped."""
    TARGET_REACHED = "target_reached"
    ALL_SOURCES_EXHAUSTED = "all_sources_exhausted"
    SINGLE_SOURCE_EXHAUSTED_AND_NO_CONTINUE = "single_source_exhausted_and_no_continue"
    ATTEMPT_CAP_REACHED = "attempt_cap_reached"
    INVALID_CONFIGURATION = "invalid_configuration"


# Lower bounds (inclusive) of the adjusted popularity tiers
TOP_HITS_THRESHOLD = 80
POPULAR_THRESHOLD = 60
MODERATE_THRESHOLD = 40

UNKNOWN_RELEASE_YEAR = "unknown"


def tier_for_popularity(adjusted_popularity: float) -> Tier:
    """Return the tier an adjusted popularity score falls into."""
    if adjusted_popularity >= TOP_HITS_THRESHOLD:
        return Tier.TOP_HITS
    if adjusted_popularity >= POPULAR_THRESHOLD:
        return Tier.POPULAR
    if adjusted_popularity >= MODERATE_THRESHOLD:
        return Tier.MODERATE
    return Tier.DEEP_CUTS


def _as_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


# ============================================================================
# Track Entities
# ============================================================================


@dataclass(frozen=True)
class Artist:
    """Track artist."""
    id: str = ""
    name: str = ""


@dataclass(frozen=True)
class Album:
    """Album a track belongs to.

    release_date is kept verbatim ("2021", "2021-04" or "2021-04-16").
    """
    id: str = ""
    name: str = ""
    release_date: Optional[str] = None


@dataclass(frozen=True)
class Track:
    """Source track as delivered by the streaming API.

    Attributes:
        id: Track identifier
        uri: Playable URI (e.g. spotify:track:...)
        name: Track title
        artists: Performing artists, primary first
        album: Album metadata (carries the release date)
        duration_ms: Duration in milliseconds (>= 0)
        popularity: Source popularity 0-100, None when not reported
    """

    id: str
    uri: str
    name: str
    artists: Tuple[Artist, ...] = ()
    album: Optional[Album] = None
    duration_ms: int = 0
    popularity: Optional[int] = None

    @property
    def primary_artist(self) -> str:
        """Name of the first credited artist, empty if none."""
        return self.artists[0].name if self.artists else ""

    @property
    def release_date(self) -> Optional[str]:
        """Album release date string, if known."""
        return self.album.release_date if self.album else None

    def is_valid(self) -> bool:
        """Whether the track carries the fields a mix needs (id, uri, name)."""
        return all(
            isinstance(value, str) and len(value) > 0
            for value in (self.id, self.uri, self.name)
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Track':
        """Build a track from an API payload.

        Missing or malformed optional fields fall back to defaults. Missing
        identity fields produce an invalid track (see is_valid) rather than
        an exception.

        Raises:
            DataQualityIssue: If the payload is not a mapping at all
        """
        if not isinstance(data, dict):
            raise DataQualityIssue(f"Track payload must be a mapping, got {type(data).__name__}")

        artists = []
        for artist in data.get("artists") or []:
            if isinstance(artist, dict):
                artists.append(Artist(id=str(artist.get("id") or ""), name=str(artist.get("name") or "")))
            elif isinstance(artist, str):
                artists.append(Artist(name=artist))

        album_data = data.get("album")
        album = None
        if isinstance(album_data, dict):
            album = Album(
                id=str(album_data.get("id") or ""),
                name=str(album_data.get("name") or ""),
                release_date=album_data.get("release_date") or None,
            )

        popularity = data.get("popularity")
        if popularity is not None:
            popularity = min(100, max(0, _as_int(popularity)))

        return cls(
            id=data.get("id") or "",
            uri=data.get("uri") or "",
            name=data.get("name") or "",
            artists=tuple(artists),
            album=album,
            duration_ms=max(0, _as_int(data.get("duration_ms"))),
            popularity=popularity,
        )


@dataclass(frozen=True)
class AnnotatedTrack:
    """Track with derived popularity data.

    Computed once per mixing run and never mutated afterwards.

    Attributes:
        track: Wrapped source track
        base_popularity: Source popularity (0 when absent)
        recency_bonus: Bonus for recent releases, rounded to one decimal (0-20)
        adjusted_popularity: min(100, base_popularity + unrounded bonus)
        release_year: Release year, or "unknown"
    """

    track: Track
    base_popularity: int
    recency_bonus: float
    adjusted_popularity: float
    release_year: Union[int, str]

    @property
    def id(self) -> str:
        return self.track.id

    @property
    def uri(self) -> str:
        return self.track.uri

    @property
    def name(self) -> str:
        return self.track.name

    @property
    def duration_ms(self) -> int:
        return self.track.duration_ms

    @property
    def tier(self) -> Tier:
        return tier_for_popularity(self.adjusted_popularity)


@dataclass
class PopularityQuadrants:
    """Popularity tiers of a single source.

    The four lists form a total, disjoint partition of the source's tracks.
    """

    top_hits: List[AnnotatedTrack] = field(default_factory=list)
    popular: List[AnnotatedTrack] = field(default_factory=list)
    moderate: List[AnnotatedTrack] = field(default_factory=list)
    deep_cuts: List[AnnotatedTrack] = field(default_factory=list)

    def tier(self, tier: Tier) -> List[AnnotatedTrack]:
        """Tracks of one tier."""
        return {
            Tier.TOP_HITS: self.top_hits,
            Tier.POPULAR: self.popular,
            Tier.MODERATE: self.moderate,
            Tier.DEEP_CUTS: self.deep_cuts,
        }[tier]

    def all_tracks(self) -> List[AnnotatedTrack]:
        """All tracks, most popular tier first."""
        return [*self.top_hits, *self.popular, *self.moderate, *self.deep_cuts]

    def __len__(self) -> int:
        return len(self.top_hits) + len(self.popular) + len(self.moderate) + len(self.deep_cuts)


# ============================================================================
# Configuration Entities
# ============================================================================


_TRUE_FLAGS = {"true", "1", "yes", "on"}
_FALSE_FLAGS = {"false", "0", "no", "off", ""}


def _is_positive_number(value: Any) -> bool:
    """True for finite numbers above zero (bools excluded)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and value > 0


def _parse_flag(value: Any) -> bool:
    """Interpret a payload flag; strings such as "false" or "0" are False."""
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in _TRUE_FLAGS:
            return True
        if normalized in _FALSE_FLAGS:
            return False
        raise ValueError(f"invalid boolean value {value!r}")
    return bool(value)


@dataclass
class SourceRatioConfig:
    """Quota and weighting rules for one source.

    Attributes:
        min_count: Minimum tracks this source should contribute
        max_count: Maximum tracks this source may contribute (None = unbounded)
        weight: Relative share of the output (> 0)
        weight_type: FREQUENCY counts tracks, TIME counts milliseconds
    """

    min_count: int = 0
    max_count: Optional[int] = None
    weight: float = 1.0
    weight_type: WeightType = WeightType.FREQUENCY

    def clamp(self, count: int) -> int:
        """Clamp a track count into [min_count, max_count]."""
        count = max(self.min_count, count)
        if self.max_count is not None:
            count = min(self.max_count, count)
        return count

    def allows_more(self, drawn: int) -> bool:
        """Whether another track may be drawn after `drawn` tracks."""
        return self.max_count is None or drawn < self.max_count

    def validate(self) -> List[str]:
        """Validate ratio rules.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []
        if self.min_count < 0:
            errors.append(f"min ({self.min_count}) must be >= 0")
        if self.max_count is not None and self.max_count < self.min_count:
            errors.append(f"max ({self.max_count}) must be >= min ({self.min_count})")
        if not _is_positive_number(self.weight):
            errors.append(f"weight ({self.weight}) must be a finite number > 0")
        if not isinstance(self.weight_type, WeightType):
            errors.append(f"weightType ({self.weight_type}) must be 'frequency' or 'time'")
        return errors

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SourceRatioConfig':
        """Build from a UI payload (``min``/``max``/``weight``/``weightType``).

        Raises:
            ConfigurationError: If a value cannot be interpreted
        """
        try:
            raw_max = data.get("max", data.get("max_count"))
            weight_type = data.get("weightType", data.get("weight_type", WeightType.FREQUENCY.value))
            return cls(
                min_count=int(data.get("min", data.get("min_count", 0)) or 0),
                max_count=int(raw_max) if raw_max is not None else None,
                weight=float(data.get("weight", 1.0)),
                weight_type=weight_type if isinstance(weight_type, WeightType) else WeightType(weight_type),
            )
        except (TypeError, ValueError, AttributeError) as e:
            raise ConfigurationError(f"Invalid ratio configuration {data!r}: {e}") from e

    @classmethod
    def coerce(cls, value: Any) -> 'SourceRatioConfig':
        """Return `value` as a SourceRatioConfig, converting payload dicts."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, dict):
            raise ConfigurationError(f"Ratio configuration must be a mapping, got {type(value).__name__}")
        return cls.from_dict(value)


@dataclass
class MixOptions:
    """Global options for a mixing run.

    Attributes:
        total_songs: Requested output length (count mode)
        target_duration_minutes: Requested output duration (time mode)
        use_time_limit: Duration-driven target instead of a song count
        use_all_songs: Drain every source, ignoring count/duration targets
        shuffle_within_groups: Shuffle each popularity tier before mixing
        popularity_strategy: Strategy name (see PopularityStrategy)
        recency_boost: Add the recency bonus to recent releases
        continue_when_playlist_empty: Keep mixing after a source runs dry
    """

    total_songs: int = 20
    target_duration_minutes: float = 60.0
    use_time_limit: bool = False
    use_all_songs: bool = False
    shuffle_within_groups: bool = False
    popularity_strategy: str = PopularityStrategy.MIXED.value
    recency_boost: bool = False
    continue_when_playlist_empty: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.popularity_strategy, PopularityStrategy):
            self.popularity_strategy = self.popularity_strategy.value

    @property
    def target_duration_ms(self) -> float:
        return self.target_duration_minutes * 60 * 1000

    @property
    def is_count_mode(self) -> bool:
        return not self.use_time_limit and not self.use_all_songs

    def validate(self) -> List[str]:
        """Validate option combinations.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []
        if self.use_time_limit and not _is_positive_number(self.target_duration_minutes):
            errors.append("targetDurationMinutes must be a finite positive number when useTimeLimit is true")
        if self.is_count_mode and (not self.total_songs or self.total_songs <= 0):
            errors.append("totalSongs must be positive when not using time limit or all songs")
        return errors

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'MixOptions':
        """Build from a UI payload (camelCase keys) or snake_case keys.

        Raises:
            ConfigurationError: If a numeric value cannot be interpreted
        """
        defaults = cls()

        def pick(camel: str, snake: str, default: Any) -> Any:
            if camel in data:
                return data[camel]
            return data.get(snake, default)

        try:
            duration = pick("targetDurationMinutes", "target_duration_minutes",
                            data.get("targetDuration", defaults.target_duration_minutes))
            return cls(
                total_songs=int(pick("totalSongs", "total_songs", defaults.total_songs) or 0),
                target_duration_minutes=float(duration or 0),
                use_time_limit=_parse_flag(pick("useTimeLimit", "use_time_limit", False)),
                use_all_songs=_parse_flag(pick("useAllSongs", "use_all_songs", False)),
                shuffle_within_groups=_parse_flag(pick("shuffleWithinGroups", "shuffle_within_groups", False)),
                popularity_strategy=pick("popularityStrategy", "popularity_strategy",
                                         defaults.popularity_strategy),
                recency_boost=_parse_flag(pick("recencyBoost", "recency_boost", False)),
                continue_when_playlist_empty=_parse_flag(
                    pick("continueWhenPlaylistEmpty", "continue_when_playlist_empty", False)
                ),
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid mix options: {e}") from e

    @classmethod
    def coerce(cls, value: Any) -> 'MixOptions':
        """Return `value` as MixOptions, converting payload dicts.

        Raises:
            ConfigurationError: If the value is missing or cannot be interpreted
        """
        if isinstance(value, cls):
            return value
        if value is None:
            raise ConfigurationError("Mix options are required")
        if not isinstance(value, dict):
            raise ConfigurationError(f"Mix options must be a mapping, got {type(value).__name__}")
        return cls.from_dict(value)


# ============================================================================
# Output Entities
# ============================================================================


@dataclass(frozen=True)
class MixedTrack:
    """Output element: a track tagged with the source it was drawn from.

    Position in the output list is the final playlist order.
    """

    track: Track
    source_playlist_id: str
    adjusted_popularity: Optional[float] = None

    @property
    def id(self) -> str:
        return self.track.id

    @property
    def uri(self) -> str:
        return self.track.uri

    @property
    def name(self) -> str:
        return self.track.name

    @property
    def duration_ms(self) -> int:
        return self.track.duration_ms

    @property
    def popularity(self) -> int:
        return self.track.popularity or 0

    def to_dict(self) -> Dict[str, Any]:
        """Serialise for the UI layer."""
        return {
            "id": self.id,
            "uri": self.uri,
            "name": self.name,
            "artists": [artist.name for artist in self.track.artists],
            "durationMs": self.duration_ms,
            "popularity": self.track.popularity,
            "sourcePlaylistId": self.source_playlist_id,
        }


@dataclass
class MixMetadata:
    """Provenance of a full mix."""
    generated_at: datetime
    strategy: str
    source_count: int
    config_hash: str


@dataclass
class MixResult:
    """Complete outcome of a mixing run.

    Attributes:
        tracks: Mixed tracks in playlist order
        stop_reason: Why the run stopped
        attempts: Loop attempts consumed
        errors: Configuration errors (INVALID_CONFIGURATION runs only)
        statistics: Summary statistics, when computed
        metadata: Provenance, when produced through the service
    """

    tracks: List[MixedTrack]
    stop_reason: StopReason
    attempts: int = 0
    errors: List[str] = field(default_factory=list)
    statistics: Optional[MixStatistics] = None
    metadata: Optional[MixMetadata] = None

    @property
    def stopped_early(self) -> bool:
        """True when the run ended before reaching its target."""
        return self.stop_reason is not StopReason.TARGET_REACHED


@dataclass
class MixPreview:
    """Reduced mix for fast UI feedback."""
    tracks: List[MixedTrack]
    statistics: MixStatistics
    stop_reason: StopReason
    is_preview: bool = True
