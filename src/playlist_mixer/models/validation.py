"""
Validation and statistics models for the Playlist Mixer.

This module contains dataclasses for configuration validation results and
summary statistics computed over mixed playlists.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Union


# ============================================================================
# Validation Result
# ============================================================================


@dataclass
class ValidationResult:
    """Outcome of validating a mix configuration.

    Attributes:
        is_valid: True when no errors were found
        errors: Human-readable error messages, suitable for inline form display
    """

    is_valid: bool
    errors: List[str] = field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: List[str]) -> 'ValidationResult':
        return cls(is_valid=not errors, errors=list(errors))

    def get_summary(self) -> str:
        """Get a one-paragraph summary of the validation outcome."""
        if self.is_valid:
            return "✓ Mix configuration is valid"
        lines = [f"✗ Mix configuration has {len(self.errors)} error(s):"]
        lines.extend(f"  - {error}" for error in self.errors)
        return "\n".join(lines)


# ============================================================================
# Mix Statistics
# ============================================================================


@dataclass
class MixStatistics:
    """Summary statistics for a mixed playlist.

    Attributes:
        total_tracks: Number of tracks in the output
        per_source_count: Source ID -> tracks contributed
        ratio_compliance: How closely the output matches the configured
            weights (0.0-1.0, 1.0 = exact)
        average_popularity: Mean source popularity, one decimal
        total_duration_minutes: Output duration, rounded to whole minutes
    """

    total_tracks: int
    per_source_count: Dict[str, int]
    ratio_compliance: float
    average_popularity: float
    total_duration_minutes: int


# ============================================================================
# Popularity Metrics
# ============================================================================


@dataclass
class PopularityMetrics:
    """Popularity profile of a set of annotated tracks.

    Ranges are (min, max) tuples; release years fall back to "unknown".
    """

    total_tracks: int
    average_popularity: float
    average_recency_bonus: float
    popularity_range: tuple = (0, 0)
    recency_bonus_range: tuple = (0, 0)
    release_year_range: tuple = ("unknown", "unknown")
    distribution: Dict[str, int] = field(default_factory=dict)

    @property
    def dominant_tier(self) -> Union[str, None]:
        """Tier holding the most tracks, None when empty."""
        if not self.total_tracks or not self.distribution:
            return None
        return max(self.distribution, key=lambda tier: self.distribution[tier])
