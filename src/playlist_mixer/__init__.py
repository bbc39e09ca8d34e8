"""Weighted Multi-Source Playlist Mixer

Interleaves tracks from several source playlists into one playlist, following
per-source weights, min/max quotas and a position-dependent popularity
strategy, with an optional recency boost for new releases.

The package only emits records through ``logging``. Applications configure
output once at startup with the bundled ``logger`` module:

    from logger import setup_logging

    setup_logging()  # honours MIXER_LOG_LEVEL and MIXER_LOG_FILE
"""

from .config import MixerSettings
from .exceptions import ConfigurationError, DataQualityIssue, MixerError
from .mix_statistics import calculate_statistics
from .models import (
    MixedTrack,
    MixOptions,
    MixPreview,
    MixResult,
    MixStatistics,
    PopularityStrategy,
    SourceRatioConfig,
    StopReason,
    Track,
    ValidationResult,
    WeightType,
)
from .orchestrator import mix_playlists, preview_mix, run_mix
from .service import PlaylistMixerService
from .validator import validate_mix_config

__version__ = "1.0.0"

__all__ = [
    "mix_playlists",
    "run_mix",
    "preview_mix",
    "validate_mix_config",
    "calculate_statistics",
    "PlaylistMixerService",
    "MixerSettings",
    "MixerError",
    "ConfigurationError",
    "DataQualityIssue",
    "MixedTrack",
    "MixOptions",
    "MixPreview",
    "MixResult",
    "MixStatistics",
    "PopularityStrategy",
    "SourceRatioConfig",
    "StopReason",
    "Track",
    "ValidationResult",
    "WeightType",
]
