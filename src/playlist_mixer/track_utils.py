"""
Track Utilities - Input Cleaning and Duration Helpers

Normalises the source track map handed over by the UI layer: payload dicts
become Track objects, tracks missing an id, uri or name are dropped, and
sources left without any valid track are removed.
"""

import logging
from typing import Any, Dict, Iterable, List, Mapping

from .exceptions import DataQualityIssue
from .models.core import Track

logger = logging.getLogger(__name__)

# Assumed track length when a source reports no durations (3.5 minutes)
DEFAULT_TRACK_DURATION_MS = 210_000


def coerce_track(item: Any) -> Track:
    """Return `item` as a Track.

    Raises:
        DataQualityIssue: If the item is neither a Track nor a payload mapping
    """
    if isinstance(item, Track):
        return item
    return Track.from_dict(item)


def clean_source_tracks(source_tracks_by_id: Mapping[str, Any]) -> Dict[str, List[Track]]:
    """Drop invalid tracks and empty sources.

    Args:
        source_tracks_by_id: Source ID -> list of tracks (Track objects or
            API payload dicts). A value wrapped as {"tracks": [...]} is
            unwrapped.

    Returns:
        Source ID -> valid tracks, preserving source and track order. Sources
        with no valid track are omitted.
    """
    if not isinstance(source_tracks_by_id, Mapping):
        logger.warning(f"Source track map must be a mapping, got {type(source_tracks_by_id).__name__}")
        return {}

    cleaned: Dict[str, List[Track]] = {}
    for source_id, raw in source_tracks_by_id.items():
        if isinstance(raw, Mapping) and isinstance(raw.get("tracks"), list):
            raw = raw["tracks"]
        if not isinstance(raw, (list, tuple)):
            logger.warning(f"Invalid track list for source {source_id}, treating as empty")
            raw = []

        valid: List[Track] = []
        for item in raw:
            try:
                track = coerce_track(item)
            except DataQualityIssue as e:
                logger.debug(f"Dropping track from {source_id}: {e}")
                continue
            if track.is_valid():
                valid.append(track)
            else:
                logger.debug(f"Dropping track without id/uri/name from {source_id}")

        logger.debug(f"Cleaned source {source_id}: {len(valid)} valid tracks from {len(raw)} total")
        if valid:
            cleaned[source_id] = valid

    return cleaned


def calculate_total_duration(tracks: Iterable[Any]) -> int:
    """Total duration in milliseconds of tracks exposing `duration_ms`."""
    return sum(getattr(track, "duration_ms", 0) or 0 for track in tracks)


def average_duration_ms(tracks: List[Any], default_ms: int = DEFAULT_TRACK_DURATION_MS) -> float:
    """Mean duration of the tracks that report one, else `default_ms`."""
    durations = [t.duration_ms for t in tracks if getattr(t, "duration_ms", 0)]
    if not durations:
        return float(default_ms)
    return sum(durations) / len(durations)


def format_duration(duration_ms: int) -> str:
    """Format milliseconds as m:ss."""
    if not isinstance(duration_ms, (int, float)) or duration_ms < 0:
        return "0:00"
    total_seconds = int(duration_ms // 1000)
    minutes, seconds = divmod(total_seconds, 60)
    return f"{minutes}:{seconds:02d}"
