"""
Tests for the mixing orchestrator.

Tests cover:
- Weighted interleaving in count, time and use-all modes
- Strategy-driven source preference by position
- Exhaustion policy and stop reasons
- Min/max quotas, duplicate suppression and termination
- Reproducibility with seeded generators
- Invalid configuration reporting
"""
import logging
import random
from unittest.mock import PropertyMock

import pytest

from src.playlist_mixer.models import MixOptions, SourceRatioConfig, StopReason
from src.playlist_mixer.orchestrator import (
    MixingContext,
    MixingRun,
    build_context,
    mix_playlists,
    preview_mix,
    run_mix,
)
from src.playlist_mixer.track_utils import clean_source_tracks
from src.playlist_mixer.validator import validate_mix_config


@pytest.fixture
def hits_and_deep_cuts(make_source):
    """Source A holds only top hits, source B only deep cuts."""
    return {
        "A": make_source("a", [90] * 5),
        "B": make_source("b", [10] * 5),
    }


@pytest.fixture
def even_ratio():
    return {"A": SourceRatioConfig(), "B": SourceRatioConfig()}


def sources_of(tracks):
    return [t.source_playlist_id for t in tracks]


class TestWeightedInterleaving:
    """Scenarios for count, time and use-all targets."""

    def test_even_weights_split_evenly(self, hits_and_deep_cuts, even_ratio):
        """Test two equally weighted sources alternate to a 3/3 split."""
        # Arrange
        options = MixOptions(total_songs=6, popularity_strategy="mixed")

        # Act
        result = run_mix(hits_and_deep_cuts, even_ratio, options, seed=1)

        # Assert
        assert result.stop_reason is StopReason.TARGET_REACHED
        assert len(result.tracks) == 6
        assert sources_of(result.tracks) == ["A", "B", "A", "B", "A", "B"]

    def test_weights_shape_the_split(self, two_sources):
        ratio = {"A": SourceRatioConfig(weight=2), "B": SourceRatioConfig(weight=1)}

        result = run_mix(two_sources, ratio, MixOptions(total_songs=6), seed=3)

        assert sources_of(result.tracks).count("A") == 4
        assert sources_of(result.tracks).count("B") == 2

    def test_front_loaded_prefers_hits_early(self, hits_and_deep_cuts, even_ratio):
        """Test hits open the playlist and deep cuts close it."""
        options = MixOptions(total_songs=4, popularity_strategy="front-loaded")

        result = run_mix(hits_and_deep_cuts, even_ratio, options, seed=11)

        assert sources_of(result.tracks) == ["A", "A", "B", "B"]

    def test_crescendo_prefers_deep_cuts_early(self, hits_and_deep_cuts, even_ratio):
        options = MixOptions(total_songs=4, popularity_strategy="crescendo")

        result = run_mix(hits_and_deep_cuts, even_ratio, options, seed=11)

        assert sources_of(result.tracks)[:2] == ["B", "B"]
        assert sources_of(result.tracks)[2:] == ["A", "A"]

    def test_use_all_songs_drains_every_source(self, make_source, even_ratio):
        """Test every input track is used exactly once."""
        # Arrange
        sources = {"A": make_source("a", [50, 70, 90]), "B": make_source("b", [10, 20, 30, 40, 60, 80, 95])}
        options = MixOptions(use_all_songs=True)

        # Act
        result = run_mix(sources, even_ratio, options, seed=5)

        # Assert
        ids = [t.id for t in result.tracks]
        assert result.stop_reason is StopReason.TARGET_REACHED
        assert len(ids) == 10
        assert sorted(ids) == sorted(t.id for tracks in sources.values() for t in tracks)

    def test_time_limit_stops_once_duration_reached(self, make_source, even_ratio):
        # 10 minutes of 200 s tracks needs 3 tracks
        sources = {"A": make_source("a", [50] * 5), "B": make_source("b", [50] * 5)}
        options = MixOptions(use_time_limit=True, target_duration_minutes=10)

        result = run_mix(sources, even_ratio, options, seed=2)

        assert result.stop_reason is StopReason.TARGET_REACHED
        assert len(result.tracks) == 3
        assert sum(t.duration_ms for t in result.tracks) >= 600_000

    def test_time_limit_with_many_small_shares(self, make_source):
        """Test a long duration target is filled when each source share is under one track."""
        # Arrange: 10 sources, 3 minutes each of 240 s tracks
        sources = {f"s{i}": make_source(f"s{i}-", [50] * 10, duration_ms=240_000) for i in range(10)}
        ratio = {sid: SourceRatioConfig() for sid in sources}
        options = MixOptions(use_time_limit=True, target_duration_minutes=30)

        # Act
        result = run_mix(sources, ratio, options, seed=6)

        # Assert
        assert result.stop_reason is StopReason.TARGET_REACHED
        assert sum(t.duration_ms for t in result.tracks) >= 1_800_000
        assert len(result.tracks) == 8
        assert len(set(sources_of(result.tracks))) == 8

    def test_mixed_tracks_carry_source_and_popularity(self, hits_and_deep_cuts, even_ratio):
        result = run_mix(hits_and_deep_cuts, even_ratio, MixOptions(total_songs=2), seed=0)

        first = result.tracks[0]
        assert first.source_playlist_id == "A"
        assert first.id.startswith("a")
        assert first.adjusted_popularity == 90.0


class TestQuotas:
    """Tests for min/max enforcement."""

    def test_counts_within_min_and_max(self, two_sources):
        """Test a completed run respects every configured bound."""
        # Arrange
        ratio = {"A": SourceRatioConfig(max_count=2), "B": SourceRatioConfig(min_count=3)}

        # Act
        result = run_mix(two_sources, ratio, MixOptions(total_songs=6), seed=9)

        # Assert
        counts = {sid: sources_of(result.tracks).count(sid) for sid in ratio}
        assert result.stop_reason is StopReason.TARGET_REACHED
        assert len(result.tracks) == 6
        assert counts["A"] <= 2
        assert counts["B"] >= 3

    def test_minimum_is_met_against_heavy_weight(self, make_source):
        """Test a lightly weighted source still reaches its minimum."""
        sources = {"A": make_source("a", [50] * 10), "B": make_source("b", [50] * 10)}
        ratio = {"A": SourceRatioConfig(weight=10), "B": SourceRatioConfig(weight=1, min_count=3)}

        result = run_mix(sources, ratio, MixOptions(total_songs=6), seed=4)

        assert sources_of(result.tracks).count("B") == 3
        assert sources_of(result.tracks).count("A") == 3

    def test_all_sources_capped_stops_short(self, two_sources):
        ratio = {"A": SourceRatioConfig(max_count=1), "B": SourceRatioConfig(max_count=1)}

        result = run_mix(two_sources, ratio, MixOptions(total_songs=6), seed=4)

        assert result.stop_reason is StopReason.TARGET_REACHED
        assert len(result.tracks) == 2


class TestExhaustion:
    """Tests for exhaustion policy and stop reasons."""

    def test_empty_source_stops_immediately(self, make_source, even_ratio):
        """Test an empty configured source ends the run when continuing is off."""
        sources = {"A": [], "B": make_source("b", [50] * 5)}
        options = MixOptions(total_songs=4, continue_when_playlist_empty=False)

        result = run_mix(sources, even_ratio, options, seed=1)

        assert result.tracks == []
        assert result.stop_reason is StopReason.SINGLE_SOURCE_EXHAUSTED_AND_NO_CONTINUE
        assert result.stopped_early

    def test_empty_source_skipped_when_continuing(self, make_source, even_ratio):
        sources = {"A": [], "B": make_source("b", [50] * 5)}
        options = MixOptions(total_songs=4, continue_when_playlist_empty=True)

        result = run_mix(sources, even_ratio, options, seed=1)

        assert result.stop_reason is StopReason.TARGET_REACHED
        assert sources_of(result.tracks) == ["B"] * 4

    def test_source_running_dry_mid_run(self, make_source, even_ratio):
        """Test the run stops when a source empties and continuing is off."""
        sources = {"A": make_source("a", [50] * 2), "B": make_source("b", [50] * 10)}
        options = MixOptions(total_songs=8)

        result = run_mix(sources, even_ratio, options, seed=6)

        assert result.stop_reason is StopReason.SINGLE_SOURCE_EXHAUSTED_AND_NO_CONTINUE
        assert sources_of(result.tracks).count("A") == 2
        assert len(result.tracks) < 8

    def test_continue_until_all_exhausted(self, make_source, even_ratio):
        sources = {"A": make_source("a", [50] * 2), "B": make_source("b", [50] * 3)}
        options = MixOptions(total_songs=20, continue_when_playlist_empty=True)

        result = run_mix(sources, even_ratio, options, seed=6)

        assert result.stop_reason is StopReason.ALL_SOURCES_EXHAUSTED
        assert len(result.tracks) == 5

    def test_shared_track_used_once(self, make_track, even_ratio):
        """Test a track present in two sources appears only once."""
        shared = make_track("shared")
        sources = {
            "A": [shared, make_track("a2")],
            "B": [shared, make_track("b2")],
        }
        options = MixOptions(total_songs=4, continue_when_playlist_empty=True)

        result = run_mix(sources, even_ratio, options, seed=8)

        ids = [t.id for t in result.tracks]
        assert len(ids) == len(set(ids)) == 3
        assert result.stop_reason is StopReason.ALL_SOURCES_EXHAUSTED

    def test_attempt_cap(self, mocker, two_sources, even_ratio):
        """Test the loop stops once the attempt cap is reached."""
        mocker.patch.object(MixingContext, "attempt_cap", new_callable=PropertyMock, return_value=2)

        result = run_mix(two_sources, even_ratio, MixOptions(total_songs=6), seed=1)

        assert result.stop_reason is StopReason.ATTEMPT_CAP_REACHED
        assert result.attempts == 2
        assert len(result.tracks) == 2

    def test_no_tracks_anywhere_returns_promptly(self, even_ratio):
        result = run_mix({"A": [], "B": []}, even_ratio, MixOptions(total_songs=50))

        assert result.tracks == []
        assert result.stop_reason is StopReason.INVALID_CONFIGURATION


class TestReproducibility:
    """Tests for seeded runs and strategy fallback."""

    @pytest.fixture
    def options(self):
        return MixOptions(
            total_songs=8,
            shuffle_within_groups=True,
            recency_boost=True,
            popularity_strategy="mid-peak",
        )

    def test_same_seed_same_output(self, two_sources, even_ratio, options):
        first = mix_playlists(two_sources, even_ratio, options, seed=1234)
        second = mix_playlists(two_sources, even_ratio, options, rng=random.Random(1234))

        assert [t.id for t in first] == [t.id for t in second]

    def test_unknown_strategy_matches_mixed(self, two_sources, even_ratio, caplog):
        """Test an unknown strategy name behaves exactly like 'mixed'."""
        # Arrange
        mixed = MixOptions(total_songs=8, shuffle_within_groups=True, popularity_strategy="mixed")
        unknown = MixOptions(total_songs=8, shuffle_within_groups=True, popularity_strategy="nonexistent")

        # Act
        expected = mix_playlists(two_sources, even_ratio, mixed, seed=77)
        with caplog.at_level(logging.WARNING):
            actual = mix_playlists(two_sources, even_ratio, unknown, seed=77)

        # Assert
        assert [t.id for t in actual] == [t.id for t in expected]
        assert "nonexistent" in caplog.text


class TestInvalidConfiguration:
    """Tests for configurations the mixer refuses."""

    def test_invalid_options_return_empty_result(self, two_sources, even_ratio, caplog):
        """Test the run reports the same errors as validation, without raising."""
        # Arrange
        options = MixOptions(use_time_limit=True, target_duration_minutes=0)

        # Act
        with caplog.at_level(logging.ERROR):
            result = run_mix(two_sources, even_ratio, options)

        # Assert
        assert result.tracks == []
        assert result.stop_reason is StopReason.INVALID_CONFIGURATION
        assert result.errors == validate_mix_config(two_sources, even_ratio, options).errors
        assert "targetDurationMinutes" in caplog.text

    @pytest.mark.parametrize("ratio,options", [
        ({"A": {"weight": "nan"}, "B": {"weight": 1}}, {"totalSongs": 4}),
        ({"A": {"weight": "inf"}, "B": {"weight": 1}}, {"totalSongs": 4}),
        ({"A": {}, "B": {}}, {"useTimeLimit": True, "targetDurationMinutes": "nan"}),
        ({"A": {}, "B": {}}, {"useTimeLimit": True, "targetDurationMinutes": "inf"}),
    ])
    def test_non_finite_numbers_are_rejected(self, two_sources, ratio, options):
        """Test NaN and infinite weights or durations are reported, not raised."""
        result = run_mix(two_sources, ratio, options, seed=1)

        assert result.tracks == []
        assert result.stop_reason is StopReason.INVALID_CONFIGURATION
        assert not validate_mix_config(two_sources, ratio, options).is_valid

    def test_empty_ratio_config(self, two_sources):
        assert mix_playlists(two_sources, {}, MixOptions()) == []

    def test_malformed_options_payload(self, two_sources, even_ratio):
        result = run_mix(two_sources, even_ratio, {"totalSongs": "lots"})

        assert result.stop_reason is StopReason.INVALID_CONFIGURATION
        assert result.errors


class TestPayloadsAndLogging:
    """Tests for dict inputs and logger injection."""

    def test_plain_dict_inputs(self):
        """Test UI payloads work without building dataclasses first."""
        # Arrange
        sources = {
            "p1": [{"id": f"p1-{i}", "uri": f"spotify:track:p1-{i}", "name": "x", "popularity": 50}
                   for i in range(4)],
            "p2": [{"id": f"p2-{i}", "uri": f"spotify:track:p2-{i}", "name": "y", "popularity": 50}
                   for i in range(4)],
        }
        ratio = {"p1": {"min": 1, "max": 3, "weight": 1}, "p2": {"weight": 1, "weightType": "frequency"}}
        options = {"totalSongs": 4, "popularityStrategy": "mixed"}

        # Act
        tracks = mix_playlists(sources, ratio, options, seed=3)

        # Assert
        assert len(tracks) == 4
        assert {t.source_playlist_id for t in tracks} == {"p1", "p2"}

    def test_injected_logger_receives_run_messages(self, mocker, two_sources, even_ratio):
        log = mocker.Mock(spec=logging.Logger)

        run_mix(two_sources, even_ratio, MixOptions(total_songs=2), seed=1, logger=log)

        assert log.info.call_count >= 2

    def test_mixing_run_directly(self, two_sources, even_ratio):
        """Test MixingRun can execute a prepared context."""
        rng = random.Random(4)
        context = build_context(clean_source_tracks(two_sources), even_ratio, MixOptions(total_songs=3), rng)

        result = MixingRun(context, rng).execute()

        assert len(result.tracks) == 3
        assert result.attempts == 3


class TestPreviewMix:
    """Tests for preview_mix()."""

    def test_preview_limited(self, two_sources, even_ratio):
        preview = preview_mix(two_sources, even_ratio, MixOptions(total_songs=10), limit=3, seed=1)

        assert preview.is_preview
        assert len(preview.tracks) == 3
        assert preview.statistics.total_tracks == 3

    def test_preview_uses_requested_count_when_smaller(self, two_sources, even_ratio):
        preview = preview_mix(two_sources, even_ratio, MixOptions(total_songs=2), limit=20, seed=1)

        assert len(preview.tracks) == 2

    def test_preview_of_time_mode_runs_in_count_mode(self, two_sources, even_ratio):
        options = MixOptions(use_time_limit=True, target_duration_minutes=120)

        preview = preview_mix(two_sources, even_ratio, options, limit=4, seed=1)

        assert len(preview.tracks) == 4
        assert preview.stop_reason is StopReason.TARGET_REACHED

    def test_preview_of_invalid_configuration(self, two_sources):
        preview = preview_mix(two_sources, {}, MixOptions(), limit=4)

        assert preview.tracks == []
        assert preview.stop_reason is StopReason.INVALID_CONFIGURATION
        assert preview.statistics.total_tracks == 0

    def test_explicit_zero_limit_is_not_replaced(self, two_sources, even_ratio):
        """Test limit=0 is honoured instead of falling back to the default."""
        preview = preview_mix(two_sources, even_ratio, MixOptions(total_songs=10), limit=0, seed=1)

        assert preview.tracks == []
        assert preview.stop_reason is StopReason.INVALID_CONFIGURATION
