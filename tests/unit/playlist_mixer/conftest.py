"""Shared fixtures for playlist mixer tests."""
from datetime import datetime
from typing import List, Optional

import pytest

from src.playlist_mixer.models import Album, Artist, Track


def _make_track(
    track_id: str,
    popularity: Optional[int] = 50,
    duration_ms: int = 200_000,
    release_date: Optional[str] = "2015-06-01",
    artist: str = "Test Artist",
) -> Track:
    return Track(
        id=track_id,
        uri=f"spotify:track:{track_id}",
        name=f"Song {track_id}",
        artists=(Artist(id=f"artist-{artist}", name=artist),),
        album=Album(id=f"album-{track_id}", name="Album", release_date=release_date),
        duration_ms=duration_ms,
        popularity=popularity,
    )


def _make_source(prefix: str, popularities: List[int], duration_ms: int = 200_000) -> List[Track]:
    return [
        _make_track(f"{prefix}{index}", popularity=popularity, duration_ms=duration_ms)
        for index, popularity in enumerate(popularities, start=1)
    ]


@pytest.fixture
def make_track():
    """Factory for valid tracks with sensible defaults."""
    return _make_track


@pytest.fixture
def make_source():
    """Factory for a source playlist with one track per popularity value."""
    return _make_source


@pytest.fixture
def reference_now() -> datetime:
    """Fixed reference time for recency calculations."""
    return datetime(2024, 6, 1)


@pytest.fixture
def two_sources():
    """Two five-track sources spanning all popularity tiers."""
    return {
        "A": _make_source("a", [90, 70, 50, 30, 85]),
        "B": _make_source("b", [88, 65, 45, 20, 10]),
    }
