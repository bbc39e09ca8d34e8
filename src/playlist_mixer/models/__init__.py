"""
Playlist Mixer Models Package.

Core Entities:
    - Track, Artist, Album: Source tracks
    - AnnotatedTrack: Track with derived popularity data
    - PopularityQuadrants: Popularity tiers of a source
    - SourceRatioConfig, MixOptions: Run configuration
    - MixedTrack, MixResult, MixPreview, MixMetadata: Results

Validation:
    - ValidationResult, MixStatistics, PopularityMetrics

Enumerations:
    - PopularityStrategy, WeightType, Tier, StopReason
"""

from .core import (
    # Enumerations
    PopularityStrategy,
    WeightType,
    Tier,
    StopReason,

    # Thresholds
    TOP_HITS_THRESHOLD,
    POPULAR_THRESHOLD,
    MODERATE_THRESHOLD,
    UNKNOWN_RELEASE_YEAR,
    tier_for_popularity,

    # Tracks
    Artist,
    Album,
    Track,
    AnnotatedTrack,
    PopularityQuadrants,

    # Configuration
    SourceRatioConfig,
    MixOptions,

    # Results
    MixedTrack,
    MixMetadata,
    MixResult,
    MixPreview,
)

from .validation import (
    ValidationResult,
    MixStatistics,
    PopularityMetrics,
)

__all__ = [
    "PopularityStrategy",
    "WeightType",
    "Tier",
    "StopReason",
    "TOP_HITS_THRESHOLD",
    "POPULAR_THRESHOLD",
    "MODERATE_THRESHOLD",
    "UNKNOWN_RELEASE_YEAR",
    "tier_for_popularity",
    "Artist",
    "Album",
    "Track",
    "AnnotatedTrack",
    "PopularityQuadrants",
    "SourceRatioConfig",
    "MixOptions",
    "MixedTrack",
    "MixMetadata",
    "MixResult",
    "MixPreview",
    "ValidationResult",
    "MixStatistics",
    "PopularityMetrics",
]
