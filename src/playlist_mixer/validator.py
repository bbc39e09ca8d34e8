"""
Mix Configuration Validator

Collects every problem with a mix configuration in one pass so the UI can
show them inline. The orchestrator runs the same checks before mixing and
reports the identical error list when it refuses a configuration.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from .exceptions import ConfigurationError
from .models.core import MixOptions, SourceRatioConfig, Track
from .models.validation import ValidationResult
from .quota import active_source_ids
from .track_utils import clean_source_tracks

logger = logging.getLogger(__name__)


@dataclass
class CheckedInputs:
    """Normalised mix inputs plus the problems found while normalising."""

    source_tracks: Dict[str, List[Track]]
    ratio_config: Dict[str, SourceRatioConfig]
    options: Optional[MixOptions]
    errors: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors


def check_mix_inputs(
    source_tracks_by_id: Any,
    ratio_config: Any,
    options: Any,
) -> CheckedInputs:
    """Normalise raw inputs and collect configuration errors.

    Args:
        source_tracks_by_id: Source ID -> tracks (objects or payload dicts)
        ratio_config: Source ID -> SourceRatioConfig or payload dict
        options: MixOptions or payload dict

    Returns:
        CheckedInputs with cleaned tracks, typed configuration and errors
    """
    errors: List[str] = []

    if not source_tracks_by_id:
        errors.append("No source playlists provided")
    if not ratio_config:
        errors.append("Ratio configuration is empty")

    mix_options: Optional[MixOptions] = None
    try:
        mix_options = MixOptions.coerce(options)
    except ConfigurationError as e:
        errors.extend(e.errors)
    else:
        errors.extend(mix_options.validate())

    ratios: Dict[str, SourceRatioConfig] = {}
    if isinstance(ratio_config, Mapping):
        for source_id, raw in ratio_config.items():
            try:
                config = SourceRatioConfig.coerce(raw)
            except ConfigurationError as e:
                errors.extend(f"{source_id}: {error}" for error in e.errors)
                continue
            errors.extend(f"{source_id}: {error}" for error in config.validate())
            ratios[source_id] = config
    elif ratio_config:
        errors.append(f"Ratio configuration must be a mapping, got {type(ratio_config).__name__}")

    cleaned = clean_source_tracks(source_tracks_by_id or {})
    if source_tracks_by_id and not cleaned:
        errors.append("No valid tracks found in any source playlist")
    elif cleaned and ratios and not active_source_ids(cleaned, ratios):
        errors.append("No source playlist has both tracks and a ratio configuration")

    if isinstance(ratio_config, Mapping):
        missing = [sid for sid in cleaned if sid not in ratio_config]
        if missing:
            errors.append(f"Missing ratio configuration for playlists: {', '.join(missing)}")

    if mix_options is not None and mix_options.is_count_mode and mix_options.total_songs > 0:
        required = sum(ratios[sid].min_count for sid in active_source_ids(cleaned, ratios))
        if required > mix_options.total_songs:
            errors.append(
                f"Sum of minimum counts ({required}) exceeds totalSongs ({mix_options.total_songs})"
            )

    return CheckedInputs(
        source_tracks=cleaned,
        ratio_config=ratios,
        options=mix_options,
        errors=errors,
    )


def validate_mix_config(
    source_tracks_by_id: Any,
    ratio_config: Any,
    options: Any,
) -> ValidationResult:
    """Validate a mix configuration without running it.

    Returns:
        ValidationResult listing every error found
    """
    checked = check_mix_inputs(source_tracks_by_id, ratio_config, options)
    if checked.errors:
        logger.debug(f"Mix configuration has {len(checked.errors)} error(s)")
    return ValidationResult.from_errors(checked.errors)
