"""Configuration management for the playlist mixer.

Settings are read from environment variables; every setting has a default so
the mixer works without any configuration.
"""
import os
from dataclasses import dataclass
from typing import Optional

from .models.core import PopularityStrategy


@dataclass
class MixerSettings:
    """Runtime settings for the mixer (reads from environment)."""

    # Preview runs are capped at this many tracks
    preview_track_limit: int = 20

    # Assumed track length when a source reports no durations
    default_track_seconds: int = 210

    # Fixed seed for reproducible runs; None draws fresh randomness per call
    random_seed: Optional[int] = None

    default_strategy: str = PopularityStrategy.MIXED.value

    @classmethod
    def from_environment(cls) -> 'MixerSettings':
        """Load settings from environment variables.

        Returns:
            MixerSettings: Loaded settings object

        Raises:
            EnvironmentError: If a numeric variable cannot be parsed
        """
        integers = {
            'MIXER_PREVIEW_LIMIT': os.getenv('MIXER_PREVIEW_LIMIT', str(cls.preview_track_limit)),
            'MIXER_DEFAULT_TRACK_SECONDS': os.getenv(
                'MIXER_DEFAULT_TRACK_SECONDS', str(cls.default_track_seconds)
            ),
        }
        seed = os.getenv('MIXER_RANDOM_SEED')
        if seed:
            integers['MIXER_RANDOM_SEED'] = seed

        parsed = {}
        invalid = []
        for var, value in integers.items():
            try:
                parsed[var] = int(value)
            except ValueError:
                invalid.append(f"{var}={value!r}")

        if invalid:
            raise EnvironmentError(
                f"Environment variables must be integers: {', '.join(invalid)}"
            )

        return cls(
            preview_track_limit=parsed['MIXER_PREVIEW_LIMIT'],
            default_track_seconds=parsed['MIXER_DEFAULT_TRACK_SECONDS'],
            random_seed=parsed.get('MIXER_RANDOM_SEED'),
            default_strategy=os.getenv('MIXER_DEFAULT_STRATEGY', PopularityStrategy.MIXED.value),
        )

    def validate(self) -> None:
        """Validate settings.

        Raises:
            ValueError: If a setting is out of range
        """
        if self.preview_track_limit <= 0:
            raise ValueError(
                f"Invalid preview_track_limit: {self.preview_track_limit}. Must be > 0"
            )
        if self.default_track_seconds <= 0:
            raise ValueError(
                f"Invalid default_track_seconds: {self.default_track_seconds}. Must be > 0"
            )
        valid_strategies = {s.value for s in PopularityStrategy}
        if self.default_strategy not in valid_strategies:
            raise ValueError(
                f"Invalid default_strategy: {self.default_strategy}. "
                f"Must be one of {', '.join(sorted(valid_strategies))}"
            )

    @property
    def default_track_ms(self) -> int:
        return self.default_track_seconds * 1000
