"""
Playlist Mixer Service

Groups the mixer entry points behind one object configured from
MixerSettings: full mixes (stamped with statistics and provenance
metadata), previews, configuration validation and statistics.
"""

import hashlib
import json
import logging
import random
from dataclasses import asdict
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from .config import MixerSettings
from .mix_statistics import calculate_statistics
from .models.core import (
    MixedTrack,
    MixMetadata,
    MixOptions,
    MixPreview,
    MixResult,
    SourceRatioConfig,
    StopReason,
)
from .models.validation import MixStatistics, ValidationResult
from .orchestrator import preview_mix, run_mix
from .validator import validate_mix_config

logger = logging.getLogger(__name__)


def config_hash(
    source_ids: List[str],
    ratio_config: Mapping[str, SourceRatioConfig],
    options: MixOptions,
) -> str:
    """Stable fingerprint of a mix configuration (first 16 hex digits of SHA-256)."""
    payload = {
        "sources": sorted(source_ids),
        "ratio": {
            sid: {**asdict(config), "weight_type": config.weight_type.value}
            for sid, config in sorted(ratio_config.items())
        },
        "options": asdict(options),
    }
    content = json.dumps(payload, sort_keys=True, default=str)
    return hashlib.sha256(content.encode()).hexdigest()[:16]


class PlaylistMixerService:
    """Entry point for the UI layer."""

    def __init__(self, settings: Optional[MixerSettings] = None):
        self.settings = settings or MixerSettings.from_environment()
        self.settings.validate()

    def _rng(self, seed: Optional[int]) -> random.Random:
        return random.Random(seed if seed is not None else self.settings.random_seed)

    def _options(self, options: Any) -> Any:
        """Apply the configured default strategy to payloads that omit one."""
        if isinstance(options, dict) and not (
            "popularityStrategy" in options or "popularity_strategy" in options
        ):
            return {**options, "popularityStrategy": self.settings.default_strategy}
        return options

    def mix_playlists(
        self,
        source_tracks_by_id: Any,
        ratio_config: Any,
        options: Any,
        seed: Optional[int] = None,
    ) -> MixResult:
        """Run a full mix and attach statistics and metadata."""
        options = self._options(options)
        result = run_mix(
            source_tracks_by_id,
            ratio_config,
            options,
            rng=self._rng(seed),
            default_track_ms=self.settings.default_track_ms,
        )

        if result.stop_reason is StopReason.INVALID_CONFIGURATION:
            return result

        ratios: Dict[str, SourceRatioConfig] = {
            sid: SourceRatioConfig.coerce(raw) for sid, raw in ratio_config.items()
        }
        mix_options = MixOptions.coerce(options)

        result.statistics = calculate_statistics(result.tracks, source_tracks_by_id, ratios)
        result.metadata = MixMetadata(
            generated_at=datetime.now(),
            strategy=mix_options.popularity_strategy,
            source_count=len(source_tracks_by_id),
            config_hash=config_hash(list(source_tracks_by_id), ratios, mix_options),
        )
        logger.info(
            f"Generated mix {result.metadata.config_hash}: {result.statistics.total_tracks} tracks, "
            f"{result.statistics.total_duration_minutes} min"
        )
        return result

    def preview_mix(
        self,
        source_tracks_by_id: Any,
        ratio_config: Any,
        options: Any,
        limit: Optional[int] = None,
        seed: Optional[int] = None,
    ) -> MixPreview:
        """Reduced mix capped at the configured preview limit."""
        return preview_mix(
            source_tracks_by_id,
            ratio_config,
            self._options(options),
            limit=self.settings.preview_track_limit if limit is None else limit,
            rng=self._rng(seed),
            default_track_ms=self.settings.default_track_ms,
        )

    def validate_mix_config(self, source_tracks_by_id: Any, ratio_config: Any, options: Any) -> ValidationResult:
        return validate_mix_config(source_tracks_by_id, ratio_config, self._options(options))

    def calculate_statistics(
        self,
        mixed_tracks: List[MixedTrack],
        source_tracks_by_id: Any,
        ratio_config: Any,
    ) -> MixStatistics:
        return calculate_statistics(mixed_tracks, source_tracks_by_id, ratio_config)
